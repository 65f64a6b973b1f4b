"""
Booking lifecycle outside the money-moving escrow steps.

Covers creation by the provider, listing and lookup for participants,
the homeowner's accept/decline response, pre-funding cancellation,
administrator flags, and the flat-fee checkout intent.

Usage:
    from bookings.services import BookingService

    booking = BookingService.create_booking(
        seller=request.user,
        buyer_user_id=homeowner.pk,
        subtotal_cents=47619,
    )
    BookingService.respond(booking.id, homeowner, accept=True)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from django.conf import settings
from django.contrib.auth import get_user_model
from django_fsm import ConcurrentTransition

from bookings.models import Booking
from bookings.state_machines import (
    FLAG_STATUSES,
    FLAGGABLE_STATUSES,
    PRE_FUNDING_STATUSES,
    BookingStatus,
)
from core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from core.services import BaseService
from payments.adapters import ChargeParams, IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentValidationError,
    StaleRecordError,
)
from payments.money import percent_of, validate_non_negative
from payments.services import PlatformSettings

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from django.db.models import QuerySet

    from authentication.models import User


def get_booking(booking_id: uuid.UUID | str) -> Booking:
    """
    Load a booking with both parties.

    Raises:
        NotFoundError: No booking with that id
    """
    booking = Booking.objects.select_related("buyer", "seller").filter(pk=booking_id).first()
    if booking is None:
        raise NotFoundError(
            f"Booking {booking_id} not found",
            error_code="BOOKING_NOT_FOUND",
            details={"booking_id": str(booking_id)},
        )
    return booking


def require_status(booking: Booking, expected: Iterable[str], action: str) -> None:
    """Raise InvalidStateTransitionError unless booking.status is in expected."""
    expected = list(expected)
    if booking.status not in expected:
        raise InvalidStateTransitionError(
            f"Cannot {action} a booking in status '{booking.status}'",
            current_status=booking.status,
            expected_status=expected,
        )


def require_buyer(booking: Booking, user: User, action: str) -> None:
    if not booking.is_buyer(user):
        raise PermissionDeniedError(
            f"Only the homeowner can {action}",
            error_code="NOT_BOOKING_BUYER",
        )


def require_seller(booking: Booking, user: User, action: str) -> None:
    if not booking.is_seller(user):
        raise PermissionDeniedError(
            f"Only the provider can {action}",
            error_code="NOT_BOOKING_SELLER",
        )


def require_buyer_or_admin(booking: Booking, user: User, action: str) -> None:
    if not (booking.is_buyer(user) or getattr(user, "is_admin", False)):
        raise PermissionDeniedError(
            f"Only the homeowner or an administrator can {action}",
            error_code="NOT_BOOKING_BUYER_OR_ADMIN",
        )


def commit_transition(
    service: type[BaseService] | BaseService,
    booking_id: uuid.UUID,
    expected: Iterable[str],
    action: str,
    apply: Callable[[Booking], None],
    after_save: Callable[[Booking], None] | None = None,
) -> Booking:
    """
    Re-check the status under a row lock, apply the transition and save.

    after_save runs inside the same transaction, so a ledger write that
    fails rolls the status change back with it.

    The save itself is a conditional UPDATE on the loaded status, so a
    writer that slipped in between the lock-free read and this commit
    surfaces as InvalidStateTransitionError (seen under the lock) or
    StaleRecordError (seen by the UPDATE).
    """
    expected = list(expected)
    try:
        with service.atomic():
            booking = (
                Booking.objects.select_for_update()
                .select_related("buyer", "seller")
                .get(pk=booking_id)
            )
            if booking.status not in expected:
                service.get_logger().warning(
                    "Booking status changed before commit",
                    extra={
                        "booking_id": str(booking_id),
                        "action": action,
                        "current_status": booking.status,
                        "expected_status": expected,
                    },
                )
                require_status(booking, expected, action)
            apply(booking)
            booking.save()
            if after_save is not None:
                after_save(booking)
    except ConcurrentTransition as e:
        raise StaleRecordError(
            f"Booking {booking_id} was modified concurrently",
            details={"booking_id": str(booking_id), "action": action},
        ) from e
    return booking


class BookingService(BaseService):
    """
    Booking CRUD and the non-escrow transitions.

    Only create_checkout_intent talks to the gateway, so it is the only
    instance method; everything else is a classmethod.

    Args:
        stripe_adapter: Gateway adapter (StripeAdapter or a test fake)
    """

    def __init__(self, stripe_adapter=StripeAdapter):
        self.stripe_adapter = stripe_adapter

    @classmethod
    def create_booking(
        cls,
        seller: User,
        buyer_user_id: int,
        subtotal_cents: int,
        start_at: datetime | None = None,
        end_at: datetime | None = None,
        notes: str = "",
    ) -> Booking:
        """
        Provider requests to work for a homeowner.

        The platform fee is quoted at creation with the current
        platform_fee_percent and added on top of the subtotal.

        Raises:
            NotFoundError: Buyer does not exist
            ValidationError: Self-booking or end before start
            PaymentValidationError: Negative subtotal
        """
        validate_non_negative(subtotal_cents, "subtotal_cents")

        buyer = get_user_model().objects.filter(pk=buyer_user_id, is_active=True).first()
        if buyer is None:
            raise NotFoundError(
                f"User {buyer_user_id} not found",
                error_code="BUYER_NOT_FOUND",
                details={"buyer_user_id": buyer_user_id},
            )
        if buyer.pk == seller.pk:
            raise ValidationError(
                "A provider cannot book their own request",
                error_code="SELF_BOOKING",
            )
        if start_at and end_at and end_at < start_at:
            raise ValidationError(
                "end_at must not be before start_at",
                error_code="INVALID_SCHEDULE",
                details={"start_at": start_at.isoformat(), "end_at": end_at.isoformat()},
            )

        fee_cents = percent_of(subtotal_cents, PlatformSettings.platform_fee_percent())
        booking = Booking.objects.create(
            buyer=buyer,
            seller=seller,
            start_at=start_at,
            end_at=end_at,
            notes=notes or "",
            subtotal_cents=subtotal_cents,
            platform_fee_cents=fee_cents,
            total_cents=subtotal_cents + fee_cents,
        )

        cls.get_logger().info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "buyer_id": buyer.pk,
                "seller_id": seller.pk,
                "total_cents": booking.total_cents,
            },
        )
        return booking

    @staticmethod
    def list_for_user(user: User, status: str | None = None) -> QuerySet[Booking]:
        """Bookings where the user is a party, newest first."""
        bookings = Booking.objects.for_participant(user).select_related("buyer", "seller")
        if status:
            if status not in BookingStatus.values:
                raise ValidationError(
                    f"Unknown booking status '{status}'",
                    error_code="INVALID_STATUS_FILTER",
                    details={"status": status, "allowed": list(BookingStatus.values)},
                )
            bookings = bookings.filter(status=status)
        return bookings

    @staticmethod
    def get_for_participant(booking_id: uuid.UUID, user: User) -> Booking:
        """
        Booking visible to its parties and administrators.

        Non-parties get NotFoundError rather than PermissionDeniedError so
        booking ids cannot be probed.
        """
        booking = get_booking(booking_id)
        if not (booking.is_participant(user) or getattr(user, "is_admin", False)):
            raise NotFoundError(
                f"Booking {booking_id} not found",
                error_code="BOOKING_NOT_FOUND",
                details={"booking_id": str(booking_id)},
            )
        return booking

    @classmethod
    def respond(cls, booking_id: uuid.UUID, user: User, accept: bool) -> Booking:
        """Homeowner accepts or declines a pending request."""
        booking = get_booking(booking_id)
        action = "respond to this request"
        require_buyer(booking, user, action)
        require_status(booking, [BookingStatus.PENDING], action)

        booking = commit_transition(
            cls,
            booking_id,
            [BookingStatus.PENDING],
            action,
            lambda b: b.accept() if accept else b.decline(),
        )
        cls.get_logger().info(
            "Booking request answered",
            extra={"booking_id": str(booking_id), "status": booking.status},
        )
        return booking

    @classmethod
    def cancel(cls, booking_id: uuid.UUID, user: User) -> Booking:
        """Either party withdraws before any money has moved."""
        booking = get_booking(booking_id)
        if not booking.is_participant(user):
            raise PermissionDeniedError(
                "Only the homeowner or the provider can cancel",
                error_code="NOT_BOOKING_PARTICIPANT",
            )
        require_status(booking, PRE_FUNDING_STATUSES, "cancel")

        booking = commit_transition(
            cls, booking_id, PRE_FUNDING_STATUSES, "cancel", lambda b: b.cancel()
        )
        cls.get_logger().info(
            "Booking canceled",
            extra={"booking_id": str(booking_id), "canceled_by": user.pk},
        )
        return booking

    @classmethod
    def flag(cls, booking_id: uuid.UUID, user: User, status: str) -> Booking:
        """
        Administrator moves an active booking to disputed or no_show.

        Raises:
            PermissionDeniedError: Caller is not an administrator
            ValidationError: status is not a flag status
            InvalidStateTransitionError: Booking is not in a flaggable status
        """
        if not getattr(user, "is_admin", False):
            raise PermissionDeniedError(
                "Only administrators can flag bookings",
                error_code="ADMIN_REQUIRED",
            )
        if status not in FLAG_STATUSES:
            raise ValidationError(
                f"Cannot flag a booking as '{status}'",
                error_code="INVALID_FLAG_STATUS",
                details={"status": status, "allowed": list(FLAG_STATUSES)},
            )

        booking = get_booking(booking_id)
        require_status(booking, FLAGGABLE_STATUSES, "flag")

        booking = commit_transition(
            cls, booking_id, FLAGGABLE_STATUSES, "flag", lambda b: b.flag(status)
        )
        cls.get_logger().warning(
            "Booking flagged by administrator",
            extra={"booking_id": str(booking_id), "status": status, "admin_id": user.pk},
        )
        return booking

    def create_checkout_intent(self, booking_id: uuid.UUID, user: User) -> dict[str, str]:
        """
        Start the flat-fee checkout for an accepted booking.

        Creates an unconfirmed PaymentIntent for the full total; the
        payment_intent.succeeded webhook later moves the booking to paid.

        Returns:
            {"payment_intent_id", "client_secret"}
        """
        booking = get_booking(booking_id)
        action = "start checkout for"
        require_buyer(booking, user, action)
        require_status(booking, [BookingStatus.ACCEPTED], action)
        if booking.total_cents <= 0:
            raise PaymentValidationError(
                "Booking total must be positive to check out",
                error_code="INVALID_AMOUNT",
                details={"total_cents": booking.total_cents},
            )

        intent = self.stripe_adapter.charge(
            ChargeParams(
                amount_cents=booking.total_cents,
                currency=settings.ESCROW_CURRENCY,
                idempotency_key=IdempotencyKeyGenerator.for_step(booking.id, "checkout"),
                customer_id=user.stripe_customer_id or None,
                confirm=False,
                transfer_group=booking.transfer_group,
                metadata={
                    "bookingId": str(booking.id),
                    "buyerId": str(booking.buyer_id),
                    "sellerId": str(booking.seller_id),
                    "type": "checkout",
                },
            )
        )

        def _store_intent(b: Booking) -> None:
            b.stripe_payment_intent_id = intent.id

        commit_transition(self, booking_id, [BookingStatus.ACCEPTED], action, _store_intent)

        self.get_logger().info(
            "Checkout intent created",
            extra={
                "booking_id": str(booking_id),
                "payment_intent_id": intent.id,
                "amount_cents": booking.total_cents,
            },
        )
        return {"payment_intent_id": intent.id, "client_secret": intent.client_secret or ""}

