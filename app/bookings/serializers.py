"""
Serializers for booking and escrow endpoints.

Serializer Hierarchy:
    BookingSerializer: Full booking, read only
    EscrowStateSerializer: Monetary fields and status returned by escrow actions
    BookingCreateSerializer / BookingRespondSerializer / BookingFlagSerializer:
        Booking request bodies
    DepositSerializer / ProposeFinalSerializer / ApproveFinalSerializer /
    SettleSerializer: Escrow request bodies
    CheckoutIntentSerializer: Flat-fee checkout response

Design Decisions:
    - Read and write serializers are separate
    - Request serializers only validate shape; business rules (status,
      caps, payout readiness) are enforced by the services
"""

from __future__ import annotations

from rest_framework import serializers

from bookings.models import Booking
from bookings.state_machines import FLAG_STATUSES
from payments.money import BPS_DENOMINATOR


# =============================================================================
# Read serializers
# =============================================================================


ESCROW_FIELDS = [
    "id",
    "status",
    "total_cents",
    "amount_budgeted_cents",
    "amount_deposit_cents",
    "amount_final_cents",
    "amount_delta_cents",
    "amount_funded_cents",
    "retainage_bps",
    "retainage_hold_cents",
    "homeowner_pm_saved",
    "final_proposal_note",
    "deposit_charge_id",
    "delta_charge_id",
    "stripe_payment_intent_id",
    "stripe_transfer_id",
    "version",
    "updated_at",
]


class EscrowStateSerializer(serializers.ModelSerializer):
    """Escrow fields and status after a transition."""

    class Meta:
        model = Booking
        fields = ESCROW_FIELDS
        read_only_fields = fields


class BookingSerializer(serializers.ModelSerializer):
    """Booking detail for either party or an administrator."""

    buyer_id = serializers.IntegerField(read_only=True)
    seller_id = serializers.IntegerField(read_only=True)
    buyer_email = serializers.EmailField(source="buyer.email", read_only=True)
    seller_email = serializers.EmailField(source="seller.email", read_only=True)

    class Meta:
        model = Booking
        fields = [
            "buyer_id",
            "buyer_email",
            "seller_id",
            "seller_email",
            "start_at",
            "end_at",
            "notes",
            "subtotal_cents",
            "platform_fee_cents",
            *ESCROW_FIELDS,
            "created_at",
        ]
        read_only_fields = fields


# =============================================================================
# Booking requests
# =============================================================================


class BookingCreateSerializer(serializers.Serializer):
    """Provider's request to work for a homeowner."""

    buyer_user_id = serializers.IntegerField()
    subtotal_cents = serializers.IntegerField(min_value=0)
    start_at = serializers.DateTimeField(required=False, allow_null=True)
    end_at = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BookingRespondSerializer(serializers.Serializer):
    accept = serializers.BooleanField()


class BookingFlagSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=sorted(FLAG_STATUSES))


class CheckoutIntentSerializer(serializers.Serializer):
    payment_intent_id = serializers.CharField()
    client_secret = serializers.CharField()


# =============================================================================
# Escrow requests
# =============================================================================


class DepositSerializer(serializers.Serializer):
    """
    Deposit payment.

    Fields:
        payment_method_id: PaymentMethod collected by the client (pm_xxx)
        save_pm: Save the method for off-session delta charges (default true)
    """

    payment_method_id = serializers.CharField(max_length=255)
    save_pm = serializers.BooleanField(required=False, default=True)


class ProposeFinalSerializer(serializers.Serializer):
    final_cents = serializers.IntegerField(min_value=0)
    note = serializers.CharField(required=False, allow_blank=True, default="")


class ApproveFinalSerializer(serializers.Serializer):
    """
    Final amount approval.

    payment_method_id is only needed when the final amount exceeds the
    deposit and no method was saved with the deposit.
    """

    agree = serializers.BooleanField()
    payment_method_id = serializers.CharField(
        max_length=255, required=False, allow_blank=True, allow_null=True
    )


class SettleSerializer(serializers.Serializer):
    retainage_bps = serializers.IntegerField(
        min_value=0,
        max_value=BPS_DENOMINATOR,
        required=False,
        allow_null=True,
    )
