"""
DRF serializers for payments app.

This module provides serializers for:
- Escrow ledger entries
- Stripe Connect onboarding requests and status
- Platform fee settings

Related files:
    - views.py: Connect and fee settings views
    - bookings/views.py: EscrowLedgerView renders LedgerEntrySerializer

Usage:
    serializer = LedgerEntrySerializer(entries, many=True)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from payments.ledger.models import LedgerEntry
from payments.state_machines import PayoutStatus


class LedgerEntrySerializer(serializers.ModelSerializer):
    """
    One immutable ledger movement.

    Accounts are shown by type; the booking id is implied by the URL.
    """

    debit_account = serializers.CharField(source="debit_account.type", read_only=True)
    credit_account = serializers.CharField(source="credit_account.type", read_only=True)

    class Meta:
        model = LedgerEntry
        fields = [
            "id",
            "entry_type",
            "debit_account",
            "credit_account",
            "amount_cents",
            "currency",
            "stripe_object_id",
            "description",
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Stripe Connect
# =============================================================================


class ConnectAccountRequestSerializer(serializers.Serializer):
    country = serializers.CharField(min_length=2, max_length=2, required=False)


class ConnectAccountResponseSerializer(serializers.Serializer):
    account_id = serializers.CharField()
    created = serializers.BooleanField()
    payout_status = serializers.ChoiceField(choices=PayoutStatus.choices)


class OnboardingLinkRequestSerializer(serializers.Serializer):
    """
    Onboarding link request.

    Both URLs fall back to CONNECT_ONBOARDING_REFRESH_URL and
    CONNECT_ONBOARDING_RETURN_URL.
    """

    refresh_url = serializers.URLField(required=False)
    return_url = serializers.URLField(required=False)


class OnboardingLinkResponseSerializer(serializers.Serializer):
    url = serializers.URLField()


class ConnectStatusSerializer(serializers.Serializer):
    payout_status = serializers.ChoiceField(choices=PayoutStatus.choices)
    charges_enabled = serializers.BooleanField()
    payouts_enabled = serializers.BooleanField()
    requirements = serializers.DictField()


# =============================================================================
# Fee settings
# =============================================================================


def _percent_field(**kwargs) -> serializers.DecimalField:
    return serializers.DecimalField(
        max_digits=8,
        decimal_places=4,
        min_value=0,
        coerce_to_string=False,
        **kwargs,
    )


class FeeSettingsSerializer(serializers.Serializer):
    """
    Percentages used by the escrow flow.

    Write requests may send any subset; range checks per key are done by
    PlatformSettings.update_fee_settings.
    """

    platform_fee_percent = _percent_field(required=False)
    deposit_percentage = _percent_field(required=False)
    payment_fee_percent = _percent_field(required=False)
    final_cap_percent = _percent_field(required=False)
