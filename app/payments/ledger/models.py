"""
Ledger models for double-entry escrow bookkeeping.

- LedgerAccount: Holds monetary value (escrow per booking, revenue, payouts)
- LedgerEntry: Immutable movement between two accounts

Every monetary event of a booking debits one account and credits another,
so the books always balance. A booking's escrow account balance equals
the amount currently held for it.

Usage:
    from payments.ledger.models import AccountType, LedgerAccount

    escrow = LedgerAccount.objects.get(
        type=AccountType.PLATFORM_ESCROW, booking_id=booking.id
    )
    escrow.get_balance()  # cents held for this booking
"""

from __future__ import annotations

from django.db import models
from django.db.models import Case, Q, Sum, Value, When
from django.db.models.functions import Coalesce

from core.model_mixins import UUIDPrimaryKeyMixin


class AccountType(models.TextChoices):
    """
    Types of ledger accounts.

    Values:
        EXTERNAL_STRIPE: Money in/out of Stripe (the outside world)
        PLATFORM_ESCROW: Funds held for one booking
        PLATFORM_REVENUE: Platform fees earned
        PROVIDER_PAYOUT: Funds transferred to providers' Connect accounts
        RETAINAGE_HOLD: Retainage withheld at settlement for one booking
    """

    EXTERNAL_STRIPE = "external_stripe", "External Stripe"
    PLATFORM_ESCROW = "platform_escrow", "Platform Escrow"
    PLATFORM_REVENUE = "platform_revenue", "Platform Revenue"
    PROVIDER_PAYOUT = "provider_payout", "Provider Payout"
    RETAINAGE_HOLD = "retainage_hold", "Retainage Hold"


# Accounts scoped to a single booking; the others are platform-wide.
BOOKING_SCOPED_ACCOUNTS = frozenset({AccountType.PLATFORM_ESCROW, AccountType.RETAINAGE_HOLD})


class EntryType(models.TextChoices):
    """Category of a monetary event in a booking's lifecycle."""

    CHECKOUT_CHARGE = "checkout_charge", "Checkout Charge"
    DEPOSIT_CHARGE = "deposit_charge", "Deposit Charge"
    DELTA_CHARGE = "delta_charge", "Delta Charge"
    DELTA_REFUND = "delta_refund", "Delta Refund"
    PLATFORM_FEE = "platform_fee", "Platform Fee"
    FINAL_PAYOUT = "final_payout", "Final Payout"
    RETAINAGE_HOLD = "retainage_hold", "Retainage Hold"
    RETAINAGE_RELEASE = "retainage_release", "Retainage Release"
    LEGACY_PAYOUT = "legacy_payout", "Legacy Payout"
    EXTERNAL_REFUND = "external_refund", "External Refund"


class LedgerAccount(UUIDPrimaryKeyMixin, models.Model):
    """
    A ledger account that holds monetary value.

    The balance is the sum of credits minus debits over related entries.

    Fields:
        type: Account category
        booking_id: Set for booking-scoped accounts (escrow, retainage hold)
        currency: ISO 4217 currency code
        allow_negative: Only the external Stripe account may go negative

    Constraints:
        - Unique combination of (type, booking_id, currency)
    """

    type = models.CharField(
        max_length=50,
        choices=AccountType.choices,
        help_text="Category of this account",
    )
    booking_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Booking this account is scoped to",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )
    allow_negative = models.BooleanField(
        default=False,
        help_text="Whether this account can have a negative balance",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Timestamp when this account was created",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["type", "booking_id", "currency"],
                name="unique_ledger_account_per_booking",
            )
        ]

    def __str__(self) -> str:
        if self.booking_id:
            return f"{self.get_type_display()} ({self.booking_id})"
        return self.get_type_display()

    def get_balance(self) -> int:
        """Credits minus debits, in cents."""
        result = LedgerEntry.objects.filter(
            Q(credit_account=self) | Q(debit_account=self)
        ).aggregate(
            credits=Coalesce(
                Sum(
                    Case(
                        When(credit_account=self, then="amount_cents"),
                        default=Value(0),
                        output_field=models.BigIntegerField(),
                    )
                ),
                Value(0),
                output_field=models.BigIntegerField(),
            ),
            debits=Coalesce(
                Sum(
                    Case(
                        When(debit_account=self, then="amount_cents"),
                        default=Value(0),
                        output_field=models.BigIntegerField(),
                    )
                ),
                Value(0),
                output_field=models.BigIntegerField(),
            ),
        )
        return result["credits"] - result["debits"]


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    Immutable movement of money between two accounts.

    Corrections are new entries; an existing row is never updated.

    Fields:
        debit_account: Account money leaves
        credit_account: Account money enters
        amount_cents: Always positive
        entry_type: EntryType
        booking_id: Booking the movement belongs to
        stripe_object_id: Gateway object that moved the money
        idempotency_key: Unique per monetary event
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )
    debit_account = models.ForeignKey(
        LedgerAccount,
        on_delete=models.PROTECT,
        related_name="debit_entries",
    )
    credit_account = models.ForeignKey(
        LedgerAccount,
        on_delete=models.PROTECT,
        related_name="credit_entries",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in cents (always positive)",
    )
    currency = models.CharField(max_length=3, default="usd")
    entry_type = models.CharField(max_length=50, choices=EntryType.choices)
    booking_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Booking this movement belongs to",
    )
    stripe_object_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="PaymentIntent, Refund or Transfer id",
    )
    description = models.TextField(blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.CharField(max_length=255, blank=True, default="")
    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    class Meta:
        ordering = ["created_at"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["booking_id", "entry_type"], name="ledger_entry_booking_type_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="ledger_entry_amount_cents_positive",
            )
        ]

    def __str__(self) -> str:
        return f"{self.get_entry_type_display()}: {self.amount_cents} cents"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Ledger entries are immutable")
        super().save(*args, **kwargs)
