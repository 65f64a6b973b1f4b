"""
Webhook event handlers for Stripe events.

This module provides a handler registry and the reconciliation handlers
that apply asynchronous gateway events to bookings and providers.

The handlers race with the synchronous escrow endpoints for the same
booking. They lock the booking row, check the status against the
django-fsm transition table, and no-op when the booking is already past
the transition the event asks for, so replayed deliveries and
late-arriving events never apply a change twice.

Handled events:
    payment_intent.succeeded       flat-fee checkout: pending/accepted -> paid
    payment_intent.payment_failed  flat-fee checkout: pending/accepted -> canceled
    charge.refunded                full refund: refundable status -> canceled
    account.updated                provider payout_status recomputed

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    # Register a custom handler
    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    # Dispatch an event to its handler
    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.contrib.auth import get_user_model
from django.db import transaction
from django_fsm import ConcurrentTransition, can_proceed

from bookings.models import Booking
from bookings.state_machines import BookingStatus
from core.services import ServiceResult
from payments.adapters import AccountStatus
from payments.ledger import EscrowLedger
from payments.models import WebhookEvent
from payments.services import PayoutEligibilityGate

logger = logging.getLogger(__name__)

# PaymentIntents created by the escrow endpoints; those record their own
# outcome synchronously.
ESCROW_INTENT_TYPES = frozenset({"deposit", "delta_charge"})


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment_intent.succeeded")
        def handle_payment_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
            ...

    Args:
        event_type: The Stripe event type (e.g., "payment_intent.succeeded")

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Looks up the handler by event type and calls it. If no handler
    is registered, logs and returns success (to avoid failing on
    unknown events).

    Args:
        webhook_event: The WebhookEvent to process

    Returns:
        ServiceResult from the handler, or success if no handler
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )

    return handler(webhook_event)


def _ignored(reason: str) -> ServiceResult:
    return ServiceResult.success({"ignored": reason})


def _booking_id_from_metadata(webhook_event: WebhookEvent) -> str | None:
    metadata = webhook_event.data_object.get("metadata") or {}
    return metadata.get("bookingId") or None


def _intent_type(webhook_event: WebhookEvent) -> str:
    metadata = webhook_event.data_object.get("metadata") or {}
    return metadata.get("type") or ""


def _concurrent_failure(webhook_event: WebhookEvent, booking_id) -> ServiceResult:
    logger.warning(
        "Booking changed while applying webhook, will retry",
        extra={
            "stripe_event_id": webhook_event.stripe_event_id,
            "booking_id": str(booking_id),
        },
    )
    return ServiceResult.failure(
        f"Booking {booking_id} was modified concurrently",
        error_code="STALE_RECORD",
    )


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Mark a flat-fee booking paid once its checkout PaymentIntent succeeds.

    Deposit and delta intents are skipped: the escrow service already
    recorded them when the confirmed charge returned. A booking that is
    already paid or completed is left alone (replay).
    """
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")
    booking_id = _booking_id_from_metadata(webhook_event)

    if not booking_id:
        logger.error(
            "payment_intent.succeeded without bookingId metadata",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return _ignored("missing_booking_id")

    if _intent_type(webhook_event) in ESCROW_INTENT_TYPES:
        logger.info(
            "Escrow intent succeeded, recorded synchronously",
            extra={
                "booking_id": booking_id,
                "payment_intent_id": payment_intent_id,
                "type": _intent_type(webhook_event),
            },
        )
        return _ignored("escrow_intent")

    amount_cents = intent.get("amount_received") or intent.get("amount") or 0

    try:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
            if booking is None:
                logger.warning(
                    "Booking not found for payment_intent.succeeded",
                    extra={"booking_id": booking_id, "payment_intent_id": payment_intent_id},
                )
                return _ignored("booking_not_found")

            if booking.status in (BookingStatus.PAID, BookingStatus.COMPLETED):
                logger.info(
                    "Booking already paid, nothing to do",
                    extra={"booking_id": booking_id, "status": booking.status},
                )
                return ServiceResult.success({"booking_id": booking_id, "status": booking.status})

            if not can_proceed(booking.mark_paid):
                logger.warning(
                    "payment_intent.succeeded for booking in non-payable status",
                    extra={
                        "booking_id": booking_id,
                        "status": booking.status,
                        "payment_intent_id": payment_intent_id,
                    },
                )
                return _ignored("status_not_payable")

            booking.mark_paid(payment_intent_id, amount_cents)
            booking.save()
            EscrowLedger.record_checkout_charge(booking.id, amount_cents, payment_intent_id)
    except ConcurrentTransition:
        return _concurrent_failure(webhook_event, booking_id)

    logger.info(
        "Booking marked paid",
        extra={
            "booking_id": booking_id,
            "payment_intent_id": payment_intent_id,
            "amount_cents": amount_cents,
        },
    )
    return ServiceResult.success({"booking_id": booking_id, "status": BookingStatus.PAID})


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Cancel a flat-fee booking whose checkout payment failed.

    Only bookings that never received money are canceled; a failed delta
    charge was already reported to the buyer by the approve endpoint.
    """
    intent = webhook_event.data_object
    payment_intent_id = intent.get("id")
    booking_id = _booking_id_from_metadata(webhook_event)

    if not booking_id:
        logger.error(
            "payment_intent.payment_failed without bookingId metadata",
            extra={
                "stripe_event_id": webhook_event.stripe_event_id,
                "payment_intent_id": payment_intent_id,
            },
        )
        return _ignored("missing_booking_id")

    if _intent_type(webhook_event) in ESCROW_INTENT_TYPES:
        return _ignored("escrow_intent")

    failure = intent.get("last_payment_error") or {}

    try:
        with transaction.atomic():
            booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
            if booking is None:
                logger.warning(
                    "Booking not found for payment_intent.payment_failed",
                    extra={"booking_id": booking_id, "payment_intent_id": payment_intent_id},
                )
                return _ignored("booking_not_found")

            if not can_proceed(booking.cancel):
                logger.info(
                    "Payment failed for booking past funding, leaving status",
                    extra={"booking_id": booking_id, "status": booking.status},
                )
                return _ignored("status_not_cancelable")

            booking.cancel()
            booking.save()
    except ConcurrentTransition:
        return _concurrent_failure(webhook_event, booking_id)

    logger.info(
        "Booking canceled after payment failure",
        extra={
            "booking_id": booking_id,
            "payment_intent_id": payment_intent_id,
            "failure_code": failure.get("code"),
        },
    )
    return ServiceResult.success({"booking_id": booking_id, "status": BookingStatus.CANCELED})


# =============================================================================
# Refund Handlers
# =============================================================================


def _escrow_refunded_cents(booking: Booking) -> int:
    """Cents refunded on the deposit charge by final approval, recorded or in flight."""
    refunded = EscrowLedger.delta_refunded_cents(booking.id)
    if booking.status == BookingStatus.FINAL_PROPOSED and (booking.amount_delta_cents or 0) < 0:
        refunded = max(refunded, -booking.amount_delta_cents)
    return refunded


@register_handler("charge.refunded")
def handle_charge_refunded(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Cancel a booking whose funding charge was refunded in full.

    The booking is found by PaymentIntent id or by deposit/delta charge id.
    Only a full refund of the charge that funded the booking cancels it.
    Refunds the escrow flow issued itself on the deposit charge, partial
    refunds and refunds of a delta charge are acknowledged without a state
    change. Remaining escrow funds are booked back to Stripe in the ledger.
    """
    charge = webhook_event.data_object
    charge_id = charge.get("id")
    payment_intent_id = charge.get("payment_intent")
    if isinstance(payment_intent_id, dict):
        payment_intent_id = payment_intent_id.get("id")

    amount = charge.get("amount") or 0
    amount_refunded = charge.get("amount_refunded") or 0
    full_refund = charge.get("refunded") is True or (amount > 0 and amount_refunded >= amount)

    log_context = {
        "stripe_event_id": webhook_event.stripe_event_id,
        "charge_id": charge_id,
        "payment_intent_id": payment_intent_id,
        "amount_refunded": amount_refunded,
    }

    try:
        with transaction.atomic():
            booking = (
                Booking.objects.select_for_update()
                .for_stripe_charge(payment_intent_id, charge_id)
                .first()
            )
            if booking is None:
                logger.warning("No booking for refunded charge", extra=log_context)
                return _ignored("booking_not_found")

            log_context["booking_id"] = str(booking.id)

            if booking.status == BookingStatus.CANCELED:
                logger.info("Booking already canceled, refund replay", extra=log_context)
                return ServiceResult.success(
                    {"booking_id": str(booking.id), "status": booking.status}
                )

            if charge_id and charge_id == booking.delta_charge_id:
                logger.warning("Delta charge refunded outside escrow flow", extra=log_context)
                return _ignored("delta_charge_refund")

            escrow_refunded = _escrow_refunded_cents(booking)
            if escrow_refunded and amount_refunded <= escrow_refunded:
                logger.info("Refund issued by escrow flow", extra=log_context)
                return _ignored("escrow_refund")

            if not full_refund:
                logger.info("Partial refund acknowledged", extra=log_context)
                return _ignored("partial_refund")

            if not can_proceed(booking.cancel_refunded):
                logger.warning(
                    "Full refund for booking that was already paid out",
                    extra={**log_context, "status": booking.status},
                )
                return _ignored("status_not_refundable")

            booking.cancel_refunded()
            booking.save()
            remaining = EscrowLedger.escrow_balance(booking.id)
            EscrowLedger.record_external_refund(booking.id, remaining, charge_id or "")
    except ConcurrentTransition:
        return _concurrent_failure(webhook_event, log_context.get("booking_id"))

    logger.info("Booking canceled after full refund", extra=log_context)
    return ServiceResult.success(
        {"booking_id": log_context["booking_id"], "status": BookingStatus.CANCELED}
    )


# =============================================================================
# Connect Account Handlers
# =============================================================================


@register_handler("account.updated")
def handle_account_updated(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Recompute payout_status for the provider(s) linked to the account.

    Uses the same derivation as GET /payments/connect/status.
    """
    account = AccountStatus.from_stripe(webhook_event.data_object)
    if not account.id:
        logger.error(
            "account.updated without account id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.failure(
            "Could not extract account id from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    users = list(get_user_model().objects.with_connect_account(account.id))
    if not users:
        logger.warning(
            "No user linked to Connect account",
            extra={"account_id": account.id, "stripe_event_id": webhook_event.stripe_event_id},
        )
        return _ignored("account_not_linked")

    statuses = {}
    for user in users:
        statuses[user.pk] = PayoutEligibilityGate.apply_account_status(user, account)

    return ServiceResult.success({"account_id": account.id, "payout_status": statuses})
