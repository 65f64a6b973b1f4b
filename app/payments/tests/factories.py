"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import WebhookEventFactory, PlatformSettingFactory

    event = WebhookEventFactory(event_type="charge.refunded")
    failed = WebhookEventFactory(status=WebhookEventStatus.FAILED, retry_count=2)
"""

import uuid

import factory

from payments.models import PlatformSetting, WebhookEvent
from payments.state_machines import WebhookEventStatus


def stripe_event(event_type: str, data_object: dict, event_id: str | None = None) -> dict:
    """Build a Stripe event payload shaped like the webhook body."""
    return {
        "id": event_id or f"evt_{uuid.uuid4().hex[:24]}",
        "object": "event",
        "type": event_type,
        "data": {"object": data_object},
    }


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Default creates a PENDING payment_intent.succeeded event.

    Example:
        event = WebhookEventFactory(
            event_type="account.updated",
            payload=stripe_event("account.updated", {"id": "acct_1"}),
        )
    """

    class Meta:
        model = WebhookEvent
        skip_postgeneration_save = True

    stripe_event_id = factory.Sequence(lambda n: f"evt_test_{n}_{uuid.uuid4().hex[:8]}")
    event_type = "payment_intent.succeeded"
    payload = factory.LazyAttribute(
        lambda o: stripe_event(
            o.event_type,
            {
                "id": f"pi_{uuid.uuid4().hex[:24]}",
                "object": "payment_intent",
                "amount": 10000,
                "currency": "usd",
                "status": "succeeded",
                "metadata": {},
            },
            event_id=o.stripe_event_id,
        )
    )
    status = WebhookEventStatus.PENDING


class PlatformSettingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PlatformSetting
        django_get_or_create = ("key",)

    key = "deposit_percentage"
    value = "10"
