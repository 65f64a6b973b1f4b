"""
Escrow service: the money-moving transitions of a booking.

Every operation follows the same sequence:

    1. Lock-free read of the booking
    2. Authorize the caller and check the status
    3. Compute amounts with payments.money (integer cents, half-up)
    4. Call the gateway with a key derived from (booking, step), so a
       retry after a timeout returns the original Stripe object
    5. Under a row lock, re-check the status, apply the django-fsm
       transition, save conditionally, and write the ledger entries

Nothing is written to the booking until the gateway confirmed the side
effect. If another request moved the booking while the gateway call was
in flight, step 5 raises instead of applying a second transition; the
idempotency key guarantees the client's retry cannot charge twice.

Usage:
    from bookings.services import EscrowService

    service = EscrowService()
    booking = service.pay_deposit(booking_id, request.user, "pm_xxx")
    booking = service.settle(booking_id, request.user, retainage_bps=1000)

Testing:
    service = EscrowService(stripe_adapter=MockStripeAdapter)
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.conf import settings

from bookings.models import Booking
from bookings.services.booking_service import (
    commit_transition,
    get_booking,
    require_buyer,
    require_buyer_or_admin,
    require_seller,
    require_status,
)
from bookings.state_machines import BookingStatus
from core.exceptions import ValidationError
from core.services import BaseService
from payments.adapters import ChargeParams, ChargeResult, IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    PaymentIncompleteError,
    PaymentMethodRequiredError,
    PaymentProcessingError,
    PaymentValidationError,
)
from payments.ledger import EscrowLedger
from payments.money import (
    compute_settlement,
    max_final_amount,
    percent_of,
    validate_bps,
    validate_non_negative,
)
from payments.services import PayoutEligibilityGate, PlatformSettings

if TYPE_CHECKING:
    from authentication.models import User


class EscrowService(BaseService):
    """
    Deposit, final-amount negotiation, settlement and payout.

    Args:
        stripe_adapter: Gateway adapter (StripeAdapter or a test fake)
    """

    def __init__(self, stripe_adapter=StripeAdapter):
        self.stripe_adapter = stripe_adapter

    @staticmethod
    def _currency() -> str:
        return settings.ESCROW_CURRENCY

    def _confirmed_charge(self, booking: Booking, params: ChargeParams) -> ChargeResult:
        """Charge and insist on ``succeeded``; anything else leaves the booking as is."""
        result = self.stripe_adapter.charge(params)
        if not result.succeeded:
            self.get_logger().warning(
                "Charge did not succeed",
                extra={
                    "booking_id": str(booking.id),
                    "payment_intent_id": result.id,
                    "status": result.status,
                    "step": params.metadata.get("type"),
                },
            )
            raise PaymentIncompleteError(result.id, result.status)
        return result

    # =========================================================================
    # Deposit
    # =========================================================================

    def pay_deposit(
        self,
        booking_id: uuid.UUID,
        user: User,
        payment_method_id: str,
        save_pm: bool = True,
    ) -> Booking:
        """
        Charge the deposit for an accepted booking (accepted -> funded).

        deposit = round(total_cents x deposit_percentage / 100). The buyer's
        Stripe Customer is created on first use; with save_pm the payment
        method is attached as the default for later off-session charges.

        Raises:
            PermissionDeniedError: Caller is not the buyer
            InvalidStateTransitionError: Booking is not accepted (includes replays)
            PaymentIncompleteError: Charge needs further action
            StripeError: Gateway failure
        """
        booking = get_booking(booking_id)
        action = "pay the deposit for"
        require_buyer(booking, user, action)
        require_status(booking, [BookingStatus.ACCEPTED], action)

        deposit_percentage = PlatformSettings.deposit_percentage()
        deposit_cents = percent_of(booking.total_cents, deposit_percentage)
        if deposit_cents <= 0:
            raise PaymentValidationError(
                "Deposit amount must be positive",
                error_code="INVALID_DEPOSIT",
                details={
                    "total_cents": booking.total_cents,
                    "deposit_percentage": str(deposit_percentage),
                },
            )

        customer = self.stripe_adapter.create_or_reuse_customer(
            user.pk, user.email, user.stripe_customer_id or None
        )
        if customer.created:
            user.stripe_customer_id = customer.id
            user.save(update_fields=["stripe_customer_id", "updated_at"])

        if save_pm:
            self.stripe_adapter.attach_payment_method(
                payment_method_id, customer.id, set_default=True
            )

        charge = self._confirmed_charge(
            booking,
            ChargeParams(
                amount_cents=deposit_cents,
                currency=self._currency(),
                idempotency_key=IdempotencyKeyGenerator.for_step(
                    booking.id, "deposit", scope=payment_method_id
                ),
                customer_id=customer.id,
                payment_method_id=payment_method_id,
                setup_future_usage="off_session" if save_pm else None,
                transfer_group=booking.transfer_group,
                metadata={
                    "bookingId": str(booking.id),
                    "type": "deposit",
                    "userId": str(user.pk),
                },
            ),
        )

        booking = commit_transition(
            self,
            booking.id,
            [BookingStatus.ACCEPTED],
            action,
            lambda b: b.fund(deposit_cents, charge.id, charge.charge_id or "", save_pm),
            lambda b: EscrowLedger.record_deposit(b.id, deposit_cents, charge.id),
        )

        self.get_logger().info(
            "Deposit paid",
            extra={
                "booking_id": str(booking.id),
                "amount_cents": deposit_cents,
                "payment_intent_id": charge.id,
                "pm_saved": save_pm,
            },
        )
        return booking

    def start_work(self, booking_id: uuid.UUID, user: User) -> Booking:
        """Provider starts the job (funded -> in_progress)."""
        booking = get_booking(booking_id)
        action = "start work on"
        require_seller(booking, user, action)
        require_status(booking, [BookingStatus.FUNDED], action)

        return commit_transition(
            self, booking.id, [BookingStatus.FUNDED], action, lambda b: b.start_work()
        )

    # =========================================================================
    # Final amount
    # =========================================================================

    def propose_final(
        self,
        booking_id: uuid.UUID,
        user: User,
        final_cents: int,
        note: str = "",
    ) -> Booking:
        """
        Provider proposes the final price (funded|in_progress -> final_proposed).

        Only the booking's provider may propose. The proposal may not exceed
        final_cap_percent (default 125) of the deposit unless that provider
        is also an administrator.

        Raises:
            PermissionDeniedError: Caller is not the provider
            PaymentValidationError: Negative amount, or above the cap for a
                non-admin (details carry max_allowed_cents)
        """
        booking = get_booking(booking_id)
        action = "propose a final amount for"
        require_seller(booking, user, action)
        is_admin = getattr(user, "is_admin", False)
        expected = [BookingStatus.FUNDED, BookingStatus.IN_PROGRESS]
        require_status(booking, expected, action)
        validate_non_negative(final_cents, "final_cents")

        cap_percent = PlatformSettings.final_cap_percent()
        max_allowed = max_final_amount(booking.amount_deposit_cents or 0, cap_percent)
        if final_cents > max_allowed:
            if not is_admin:
                raise PaymentValidationError(
                    f"Final amount exceeds {cap_percent}% of the deposit",
                    error_code="FINAL_AMOUNT_EXCEEDS_CAP",
                    details={
                        "final_cents": final_cents,
                        "max_allowed_cents": max_allowed,
                        "cap_percent": str(cap_percent),
                    },
                )
            self.get_logger().info(
                "Final amount cap overridden by administrator",
                extra={
                    "booking_id": str(booking.id),
                    "final_cents": final_cents,
                    "max_allowed_cents": max_allowed,
                    "admin_id": user.pk,
                },
            )

        booking = commit_transition(
            self, booking.id, expected, action, lambda b: b.propose_final(final_cents, note)
        )
        self.get_logger().info(
            "Final amount proposed",
            extra={
                "booking_id": str(booking.id),
                "final_cents": final_cents,
                "delta_cents": booking.amount_delta_cents,
            },
        )
        return booking

    def approve_final(
        self,
        booking_id: uuid.UUID,
        user: User,
        agree: bool,
        payment_method_id: str | None = None,
    ) -> Booking:
        """
        Buyer approves the final amount (final_proposed -> final_approved).

        delta > 0 charges the difference (off-session on the saved default
        method unless a payment method is supplied); delta < 0 refunds the
        difference against the deposit charge; delta == 0 moves no money.

        Raises:
            ValidationError: agree is not true
            PaymentMethodRequiredError: delta > 0 with no usable payment method
            PaymentIncompleteError: Delta charge needs further action
        """
        booking = get_booking(booking_id)
        action = "approve the final amount of"
        require_buyer(booking, user, action)
        if agree is not True:
            raise ValidationError(
                "Approving the final amount requires agree=true",
                error_code="AGREEMENT_REQUIRED",
            )
        expected = [BookingStatus.FINAL_PROPOSED]
        require_status(booking, expected, action)

        delta = booking.amount_delta_cents or 0

        if delta > 0:
            return self._charge_delta(booking, user, delta, payment_method_id, action)
        if delta < 0:
            return self._refund_delta(booking, -delta, action)

        booking = commit_transition(self, booking.id, expected, action, lambda b: b.approve_final())
        self.get_logger().info(
            "Final amount approved without money movement",
            extra={"booking_id": str(booking.id)},
        )
        return booking

    def _charge_delta(
        self,
        booking: Booking,
        user: User,
        delta: int,
        payment_method_id: str | None,
        action: str,
    ) -> Booking:
        off_session = False
        if not payment_method_id and booking.homeowner_pm_saved and user.stripe_customer_id:
            payment_method_id = self.stripe_adapter.get_default_payment_method(
                user.stripe_customer_id
            )
            off_session = bool(payment_method_id)
        if not payment_method_id:
            raise PaymentMethodRequiredError(delta)

        charge = self._confirmed_charge(
            booking,
            ChargeParams(
                amount_cents=delta,
                currency=self._currency(),
                idempotency_key=IdempotencyKeyGenerator.for_step(
                    booking.id, "delta_charge", scope=payment_method_id
                ),
                customer_id=user.stripe_customer_id or None,
                payment_method_id=payment_method_id,
                off_session=off_session,
                transfer_group=booking.transfer_group,
                metadata={
                    "bookingId": str(booking.id),
                    "type": "delta_charge",
                    "userId": str(user.pk),
                },
            ),
        )

        booking = commit_transition(
            self,
            booking.id,
            [BookingStatus.FINAL_PROPOSED],
            action,
            lambda b: b.approve_final(
                charged_cents=delta,
                payment_intent_id=charge.id,
                charge_id=charge.charge_id or "",
            ),
            lambda b: EscrowLedger.record_delta_charge(b.id, delta, charge.id),
        )
        self.get_logger().info(
            "Delta charged on final approval",
            extra={
                "booking_id": str(booking.id),
                "amount_cents": delta,
                "payment_intent_id": charge.id,
                "off_session": off_session,
            },
        )
        return booking

    def _refund_delta(self, booking: Booking, refund_cents: int, action: str) -> Booking:
        if not booking.deposit_charge_id:
            self.get_logger().error(
                "Cannot refund delta, booking has no deposit charge",
                extra={"booking_id": str(booking.id), "amount_cents": refund_cents},
            )
            raise PaymentProcessingError(
                f"Booking {booking.id} has no deposit charge to refund",
                details={"booking_id": str(booking.id)},
            )

        refund = self.stripe_adapter.refund(
            booking.deposit_charge_id,
            refund_cents,
            IdempotencyKeyGenerator.for_step(booking.id, "delta_refund"),
            metadata={"bookingId": str(booking.id), "type": "delta_refund"},
        )

        booking = commit_transition(
            self,
            booking.id,
            [BookingStatus.FINAL_PROPOSED],
            action,
            lambda b: b.approve_final(refunded_cents=refund_cents),
            lambda b: EscrowLedger.record_delta_refund(b.id, refund_cents, refund.id),
        )
        self.get_logger().info(
            "Delta refunded on final approval",
            extra={
                "booking_id": str(booking.id),
                "amount_cents": refund_cents,
                "refund_id": refund.id,
            },
        )
        return booking

    # =========================================================================
    # Payout
    # =========================================================================

    def _transfer_to_provider(
        self,
        booking: Booking,
        amount_cents: int,
        step: str,
        metadata: dict[str, str],
    ) -> str:
        """Transfer to the seller's Connect account; returns the transfer id."""
        transfer = self.stripe_adapter.transfer(
            amount_cents,
            booking.seller.stripe_connect_account_id,
            IdempotencyKeyGenerator.for_step(booking.id, step),
            transfer_group=booking.transfer_group,
            currency=self._currency(),
            metadata={"bookingId": str(booking.id), "type": step, **metadata},
        )
        return transfer.id

    def settle(
        self,
        booking_id: uuid.UUID,
        user: User,
        retainage_bps: int | None = None,
    ) -> Booking:
        """
        Pay the provider net of platform fee and retainage
        (final_approved -> settled | partial_released).

        retainage_bps defaults to the value stored on the booking, else 0.
        A payout that computes to 0 cents skips the transfer.

        Raises:
            PayoutNotReadyError: Provider's Connect account is not READY
            PaymentValidationError: bps out of range, or fee + retainage
                exceed the funded amount
        """
        booking = get_booking(booking_id)
        action = "settle"
        require_buyer_or_admin(booking, user, action)
        expected = [BookingStatus.FINAL_APPROVED]
        require_status(booking, expected, action)

        bps = retainage_bps if retainage_bps is not None else (booking.retainage_bps or 0)
        validate_bps(bps)
        PayoutEligibilityGate.ensure_ready(booking.seller)

        amounts = compute_settlement(
            booking.amount_funded_cents, PlatformSettings.platform_fee_percent(), bps
        )

        transfer_id = ""
        if amounts.payout_cents > 0:
            transfer_id = self._transfer_to_provider(
                booking,
                amounts.payout_cents,
                "final_payout",
                {
                    "providerId": str(booking.seller_id),
                    "platformFee": str(amounts.platform_fee_cents),
                    "retainage": str(amounts.retainage_cents),
                },
            )
        else:
            self.get_logger().info(
                "Settlement payout is zero, skipping transfer",
                extra={"booking_id": str(booking.id), "funded_cents": amounts.funded_cents},
            )

        booking = commit_transition(
            self,
            booking.id,
            expected,
            action,
            lambda b: b.settle(bps, amounts.retainage_cents, transfer_id),
            lambda b: EscrowLedger.record_settlement(b.id, amounts, transfer_id),
        )
        self.get_logger().info(
            "Booking settled",
            extra={
                "booking_id": str(booking.id),
                "payout_cents": amounts.payout_cents,
                "platform_fee_cents": amounts.platform_fee_cents,
                "retainage_cents": amounts.retainage_cents,
                "transfer_id": transfer_id,
                "status": booking.status,
            },
        )
        return booking

    def release_retainage(self, booking_id: uuid.UUID, user: User) -> Booking:
        """Transfer the held retainage to the provider (partial_released -> settled)."""
        booking = get_booking(booking_id)
        action = "release retainage for"
        require_buyer_or_admin(booking, user, action)
        expected = [BookingStatus.PARTIAL_RELEASED]
        require_status(booking, expected, action)

        hold_cents = booking.retainage_hold_cents
        if hold_cents <= 0:
            raise PaymentValidationError(
                "No retainage is held for this booking",
                error_code="NO_RETAINAGE_HELD",
                details={"retainage_hold_cents": hold_cents},
            )
        PayoutEligibilityGate.ensure_ready(booking.seller)

        transfer_id = self._transfer_to_provider(
            booking,
            hold_cents,
            "retainage_release",
            {"providerId": str(booking.seller_id)},
        )

        booking = commit_transition(
            self,
            booking.id,
            expected,
            action,
            lambda b: b.release_retainage(transfer_id),
            lambda b: EscrowLedger.record_retainage_release(b.id, hold_cents, transfer_id),
        )
        self.get_logger().info(
            "Retainage released",
            extra={
                "booking_id": str(booking.id),
                "amount_cents": hold_cents,
                "transfer_id": transfer_id,
            },
        )
        return booking

    def complete_and_payout(self, booking_id: uuid.UUID, user: User) -> Booking:
        """
        Flat-fee completion (paid -> completed).

        Transfers total - platform fee in one step. The checkout charge was
        confirmed by the payment_intent.succeeded webhook.
        """
        booking = get_booking(booking_id)
        action = "complete"
        require_buyer_or_admin(booking, user, action)
        expected = [BookingStatus.PAID]
        require_status(booking, expected, action)

        if not booking.stripe_payment_intent_id:
            raise PaymentValidationError(
                "Booking has no payment to pay out",
                error_code="NO_PAYMENT_INTENT",
                details={"booking_id": str(booking.id)},
            )
        PayoutEligibilityGate.ensure_ready(booking.seller)

        total_cents = booking.total_cents
        fee_cents = percent_of(total_cents, PlatformSettings.platform_fee_percent())
        payout_cents = total_cents - fee_cents
        payment_intent_id = booking.stripe_payment_intent_id

        transfer_id = ""
        if payout_cents > 0:
            transfer_id = self._transfer_to_provider(
                booking,
                payout_cents,
                "legacy_payout",
                {
                    "providerId": str(booking.seller_id),
                    "platformFeeCents": str(fee_cents),
                },
            )

        booking = commit_transition(
            self,
            booking.id,
            expected,
            action,
            lambda b: b.complete(transfer_id),
            lambda b: EscrowLedger.record_legacy_payout(
                b.id, total_cents, fee_cents, payout_cents, payment_intent_id, transfer_id
            ),
        )
        self.get_logger().info(
            "Booking completed and paid out",
            extra={
                "booking_id": str(booking.id),
                "payout_cents": payout_cents,
                "platform_fee_cents": fee_cents,
                "transfer_id": transfer_id,
            },
        )
        return booking

