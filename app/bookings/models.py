"""
Booking model: the escrow state machine's persistent record.

A booking pairs a homeowner (buyer, the payer) with a provider (seller,
the payee). Its status is an FSMField that changes only through the
transition methods below, and every save is a conditional UPDATE guarded
by the status the instance was loaded with (ConcurrentTransitionMixin),
so two requests racing on the same booking cannot both advance it.

Usage:
    from bookings.models import Booking

    booking = Booking.objects.select_for_update().get(pk=booking_id)
    booking.fund()
    booking.save()

Note:
    status is protected: refresh_from_db() cannot reload it. Re-fetch the
    booking with Booking.objects.get() instead.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django_fsm import RETURN_VALUE, ConcurrentTransitionMixin, FSMField, transition

from bookings.state_machines import (
    FLAG_STATUSES,
    FLAGGABLE_STATUSES,
    PRE_FUNDING_STATUSES,
    REFUNDABLE_STATUSES,
    BookingStatus,
)
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin
from core.models import BaseModel


class BookingQuerySet(models.QuerySet):
    def for_participant(self, user):
        """Bookings where the user is the buyer or the seller."""
        return self.filter(Q(buyer=user) | Q(seller=user))

    def for_stripe_charge(self, payment_intent_id: str | None, charge_id: str | None):
        """Bookings referencing a PaymentIntent or one of their charges."""
        condition = Q(pk__in=[])
        if payment_intent_id:
            condition |= Q(stripe_payment_intent_id=payment_intent_id)
        if charge_id:
            condition |= Q(deposit_charge_id=charge_id) | Q(delta_charge_id=charge_id)
        return self.filter(condition)


class Booking(UUIDPrimaryKeyMixin, ConcurrentTransitionMixin, VersionedModelMixin, BaseModel):
    """
    A service booking and its escrow ledger fields.

    Parties:
        buyer: Homeowner who pays
        seller: Provider who is paid

    Quote:
        subtotal_cents, platform_fee_cents, total_cents

    Escrow:
        amount_budgeted_cents: total_cents snapshot when the deposit is paid
        amount_deposit_cents: Deposit charged
        amount_final_cents: Provider-proposed final price
        amount_delta_cents: final - deposit (signed)
        amount_funded_cents: Currently held in escrow, never negative
        retainage_bps / retainage_hold_cents: Holdback chosen at settlement
        homeowner_pm_saved: Buyer's card saved for off-session charges
        deposit_charge_id / delta_charge_id: Refund targets
        stripe_payment_intent_id / stripe_transfer_id: Latest gateway ids

    Concurrency:
        version: Bumped on every save (VersionedModelMixin)
        status: Saves only succeed if the row still has the loaded status
    """

    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings_as_buyer",
        help_text="Homeowner paying for the service",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings_as_seller",
        help_text="Provider performing the service",
    )
    status = FSMField(
        default=BookingStatus.PENDING,
        choices=BookingStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status (managed by FSM)",
    )

    start_at = models.DateTimeField(null=True, blank=True)
    end_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    # ==========================================================================
    # Quote
    # ==========================================================================

    subtotal_cents = models.PositiveBigIntegerField()
    platform_fee_cents = models.PositiveBigIntegerField(default=0)
    total_cents = models.PositiveBigIntegerField()

    # ==========================================================================
    # Escrow amounts
    # ==========================================================================

    amount_budgeted_cents = models.PositiveBigIntegerField(null=True, blank=True)
    amount_deposit_cents = models.PositiveBigIntegerField(null=True, blank=True)
    amount_final_cents = models.PositiveBigIntegerField(null=True, blank=True)
    amount_delta_cents = models.BigIntegerField(
        null=True,
        blank=True,
        help_text="final - deposit; positive is owed by the buyer",
    )
    amount_funded_cents = models.BigIntegerField(
        default=0,
        help_text="Cents currently held in escrow",
    )
    retainage_bps = models.PositiveIntegerField(default=0)
    retainage_hold_cents = models.PositiveBigIntegerField(default=0)
    homeowner_pm_saved = models.BooleanField(default=False)
    final_proposal_note = models.TextField(blank=True, default="")

    # ==========================================================================
    # Gateway references
    # ==========================================================================

    deposit_charge_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    delta_charge_id = models.CharField(max_length=255, blank=True, default="", db_index=True)
    stripe_payment_intent_id = models.CharField(
        max_length=255, blank=True, default="", db_index=True
    )
    stripe_transfer_id = models.CharField(max_length=255, blank=True, default="")

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["buyer", "status"], name="bookings_bo_buyer_i_3c5e1a_idx"),
            models.Index(fields=["seller", "status"], name="bookings_bo_seller__8f2d4b_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_funded_cents__gte=0),
                name="booking_funded_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(retainage_bps__lte=10000),
                name="booking_retainage_bps_range",
            ),
            models.CheckConstraint(
                condition=Q(amount_final_cents__isnull=True)
                | Q(amount_deposit_cents__isnull=True)
                | Q(amount_delta_cents=F("amount_final_cents") - F("amount_deposit_cents")),
                name="booking_delta_matches_final_minus_deposit",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking({self.id}, {self.status}, {self.total_cents} cents)"

    def is_buyer(self, user) -> bool:
        return user is not None and user.pk == self.buyer_id

    def is_seller(self, user) -> bool:
        return user is not None and user.pk == self.seller_id

    def is_participant(self, user) -> bool:
        return self.is_buyer(user) or self.is_seller(user)

    @property
    def transfer_group(self) -> str:
        """Correlates every charge, refund and transfer of this booking."""
        prefix = getattr(settings, "ESCROW_TRANSFER_GROUP_PREFIX", "booking_")
        return f"{prefix}{self.id}"

    # ==========================================================================
    # Request transitions
    # ==========================================================================

    @transition(field=status, source=BookingStatus.PENDING, target=BookingStatus.ACCEPTED)
    def accept(self):
        """Homeowner accepts the provider's request."""

    @transition(field=status, source=BookingStatus.PENDING, target=BookingStatus.DECLINED)
    def decline(self):
        """Homeowner declines the provider's request."""

    @transition(field=status, source=list(PRE_FUNDING_STATUSES), target=BookingStatus.CANCELED)
    def cancel(self):
        """Either party withdraws before any money moved."""

    # ==========================================================================
    # Deposit flow
    # ==========================================================================

    @transition(field=status, source=BookingStatus.ACCEPTED, target=BookingStatus.FUNDED)
    def fund(self, deposit_cents: int, payment_intent_id: str, charge_id: str, pm_saved: bool):
        """Deposit charged: snapshot the budget and start holding funds."""
        self.amount_budgeted_cents = self.total_cents
        self.amount_deposit_cents = deposit_cents
        self.amount_funded_cents = deposit_cents
        self.homeowner_pm_saved = pm_saved
        self.deposit_charge_id = charge_id or ""
        self.stripe_payment_intent_id = payment_intent_id

    @transition(field=status, source=BookingStatus.FUNDED, target=BookingStatus.IN_PROGRESS)
    def start_work(self):
        """Provider starts the job."""

    @transition(
        field=status,
        source=[BookingStatus.FUNDED, BookingStatus.IN_PROGRESS],
        target=BookingStatus.FINAL_PROPOSED,
    )
    def propose_final(self, final_cents: int, note: str = ""):
        """Provider proposes the final price."""
        self.amount_final_cents = final_cents
        self.amount_delta_cents = final_cents - (self.amount_deposit_cents or 0)
        self.final_proposal_note = note or ""

    @transition(
        field=status,
        source=BookingStatus.FINAL_PROPOSED,
        target=BookingStatus.FINAL_APPROVED,
    )
    def approve_final(
        self,
        charged_cents: int = 0,
        refunded_cents: int = 0,
        payment_intent_id: str = "",
        charge_id: str = "",
    ):
        """Buyer approves; funded amount absorbs the delta charge or refund."""
        self.amount_funded_cents = self.amount_funded_cents + charged_cents - refunded_cents
        if charge_id:
            self.delta_charge_id = charge_id
        if payment_intent_id:
            self.stripe_payment_intent_id = payment_intent_id

    @transition(
        field=status,
        source=BookingStatus.FINAL_APPROVED,
        target=RETURN_VALUE(BookingStatus.PARTIAL_RELEASED, BookingStatus.SETTLED),
    )
    def settle(self, retainage_bps: int, retainage_cents: int, transfer_id: str):
        """Payout sent; keep retainage in escrow when requested."""
        self.retainage_bps = retainage_bps
        self.retainage_hold_cents = retainage_cents
        self.amount_funded_cents = retainage_cents
        if transfer_id:
            self.stripe_transfer_id = transfer_id
        if retainage_cents > 0:
            return BookingStatus.PARTIAL_RELEASED
        return BookingStatus.SETTLED

    @transition(
        field=status,
        source=BookingStatus.PARTIAL_RELEASED,
        target=BookingStatus.SETTLED,
    )
    def release_retainage(self, transfer_id: str):
        """Retainage transferred to the provider."""
        self.retainage_hold_cents = 0
        self.amount_funded_cents = 0
        self.stripe_transfer_id = transfer_id

    # ==========================================================================
    # Flat-fee flow
    # ==========================================================================

    @transition(field=status, source=list(PRE_FUNDING_STATUSES), target=BookingStatus.PAID)
    def mark_paid(self, payment_intent_id: str, amount_cents: int):
        """Checkout PaymentIntent succeeded (webhook)."""
        self.stripe_payment_intent_id = payment_intent_id
        self.amount_funded_cents = amount_cents

    @transition(field=status, source=BookingStatus.PAID, target=BookingStatus.COMPLETED)
    def complete(self, transfer_id: str):
        """Provider paid out in one transfer."""
        self.stripe_transfer_id = transfer_id
        self.amount_funded_cents = 0

    # ==========================================================================
    # Out-of-band transitions
    # ==========================================================================

    @transition(
        field=status,
        source=list(REFUNDABLE_STATUSES),
        target=BookingStatus.CANCELED,
    )
    def cancel_refunded(self):
        """The charge was refunded in full at the gateway."""
        self.amount_funded_cents = 0

    @transition(
        field=status,
        source=list(FLAGGABLE_STATUSES),
        target=RETURN_VALUE(*FLAG_STATUSES),
    )
    def flag(self, status: str):
        """Administrator marks the booking disputed or no_show."""
        return status
