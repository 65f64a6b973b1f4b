"""
Payment services.

- PlatformSettings: Runtime fee/deposit configuration
- PayoutEligibilityGate / derive_payout_status: Provider payout readiness
- ConnectOnboardingService: Stripe Connect account linking

Usage:
    from payments.services import PayoutEligibilityGate, PlatformSettings

    fee_percent = PlatformSettings.platform_fee_percent()
    PayoutEligibilityGate.ensure_ready(provider)
"""

from payments.services.connect_onboarding import ConnectOnboardingService
from payments.services.payout_eligibility import PayoutEligibilityGate, derive_payout_status
from payments.services.platform_settings import PlatformSettings

__all__ = [
    "ConnectOnboardingService",
    "PayoutEligibilityGate",
    "PlatformSettings",
    "derive_payout_status",
]
