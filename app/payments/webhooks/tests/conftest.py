"""
Pytest fixtures for webhook tests.

Provides WebhookEvent rows in each processing status and bookings for
the handlers to reconcile. Payload builders live in payloads.py.
"""

import pytest

from bookings.tests.factories import BookingFactory
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory


# =============================================================================
# WebhookEvent Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    """Event with no registered handler; dispatch acknowledges it."""
    return WebhookEventFactory(event_type="customer.created")


@pytest.fixture
def processing_webhook_event(db):
    return WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)


@pytest.fixture
def processed_webhook_event(db):
    event = WebhookEventFactory(retry_count=1)
    event.mark_processed()
    event.save()
    return event


@pytest.fixture
def failed_webhook_event(db):
    return WebhookEventFactory(
        status=WebhookEventStatus.FAILED,
        retry_count=2,
        error_message="Booking was modified concurrently",
    )


# =============================================================================
# Booking Fixtures
# =============================================================================


@pytest.fixture
def accepted_booking(db):
    """Flat-fee booking awaiting its checkout PaymentIntent (pi_checkout)."""
    return BookingFactory(accepted=True, stripe_payment_intent_id="pi_checkout")


@pytest.fixture
def funded_booking(db):
    """Deposit of 5000 held in escrow (pi_deposit / ch_deposit)."""
    return BookingFactory(funded=True)
