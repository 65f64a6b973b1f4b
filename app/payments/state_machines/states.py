"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

Payout readiness (User.payout_status):
    UNSET → PENDING → READY
    PENDING/READY → RESTRICTED (Stripe disabled the account)
    RESTRICTED → PENDING/READY (requirements satisfied)

WebhookEvent processing:
    pending → processing → processed
    pending → processing → failed → processing (retry)
"""

from django.db import models


class PayoutStatus(models.TextChoices):
    """
    Readiness of a provider's Stripe Connect account to receive transfers.

    Only READY permits a transfer. Derived from the account's
    charges_enabled / payouts_enabled / requirements.disabled_reason flags
    by payments.services.payout_eligibility.derive_payout_status().
    """

    UNSET = "UNSET", "Unset"
    PENDING = "PENDING", "Pending"
    READY = "READY", "Ready"
    RESTRICTED = "RESTRICTED", "Restricted"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class EscrowStep(models.TextChoices):
    """
    Semantic tag for each money movement in a booking's lifecycle.

    Sent to Stripe as metadata["type"] and used as the step component of
    idempotency keys, so a gateway object can always be traced back to
    the booking and the step that created it.
    """

    CHECKOUT = "checkout", "Checkout"
    DEPOSIT = "deposit", "Deposit"
    DELTA_CHARGE = "delta_charge", "Delta Charge"
    DELTA_REFUND = "delta_refund", "Delta Refund"
    FINAL_PAYOUT = "final_payout", "Final Payout"
    RETAINAGE_RELEASE = "retainage_release", "Retainage Release"
    LEGACY_PAYOUT = "legacy_payout", "Legacy Payout"


__all__ = [
    "PayoutStatus",
    "WebhookEventStatus",
    "EscrowStep",
]
