"""
Tests for payments app.

This package contains test modules for:
- test_money.py: Cent arithmetic and settlement splits
- test_models.py: WebhookEvent and PlatformSetting model tests
- test_payout_eligibility.py: Payout status derivation and the payout gate
- test_platform_settings.py: Runtime fee configuration
- test_views.py: Connect and fee settings endpoints

Webhook, ledger and adapter tests live next to those packages.

Usage:
    pytest payments/tests/
    pytest payments/tests/test_money.py
"""
