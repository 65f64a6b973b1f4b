"""
Stripe webhook payload builders for handler and task tests.

Usage:
    from payments.webhooks.tests.payloads import payment_intent, webhook_event_for

    event = webhook_event_for("payment_intent.succeeded", payment_intent(booking))
"""

import uuid

from payments.tests.factories import WebhookEventFactory, stripe_event


def payment_intent(booking=None, intent_type="checkout", **overrides):
    """PaymentIntent data.object tagged with the booking's metadata."""
    metadata = {"type": intent_type}
    if booking is not None:
        metadata["bookingId"] = str(booking.id)
    obj = {
        "id": "pi_checkout",
        "object": "payment_intent",
        "amount": 50000,
        "amount_received": 50000,
        "currency": "usd",
        "status": "succeeded",
        "metadata": metadata,
    }
    obj.update(overrides)
    return obj


def refunded_charge(payment_intent_id="pi_deposit", charge_id="ch_deposit", **overrides):
    """Charge data.object as sent with charge.refunded."""
    obj = {
        "id": charge_id,
        "object": "charge",
        "payment_intent": payment_intent_id,
        "amount": 5000,
        "amount_refunded": 5000,
        "refunded": True,
        "currency": "usd",
    }
    obj.update(overrides)
    return obj


def connect_account(account_id, charges_enabled=True, payouts_enabled=True, **requirements):
    """Account data.object as sent with account.updated."""
    return {
        "id": account_id,
        "object": "account",
        "charges_enabled": charges_enabled,
        "payouts_enabled": payouts_enabled,
        "requirements": {
            "currently_due": requirements.get("currently_due", []),
            "disabled_reason": requirements.get("disabled_reason"),
        },
    }


def webhook_event_for(event_type, data_object, **kwargs):
    """Stored WebhookEvent whose payload carries data_object."""
    event_id = f"evt_{uuid.uuid4().hex[:24]}"
    return WebhookEventFactory(
        stripe_event_id=event_id,
        event_type=event_type,
        payload=stripe_event(event_type, data_object, event_id=event_id),
        **kwargs,
    )
