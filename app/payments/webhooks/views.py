"""
Stripe webhook endpoint.

The view only authenticates and records the delivery; reconciliation
runs in the process_webhook_event Celery task:

1. Verify the Stripe-Signature header against the raw request body
2. Store the event once per stripe_event_id (WebhookEvent)
3. Queue it for processing and return 200

Stripe redelivers on any non-2xx response, so a delivery that could not
be queued answers 503 and the redelivery queues it again.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST
from kombu.exceptions import OperationalError as BrokerError

from payments.adapters import StripeAdapter
from payments.exceptions import StripeInvalidRequestError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tasks import process_webhook_event

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive, verify and queue a Stripe webhook event.

    request.body is passed untouched to signature verification; any
    parsing or re-encoding before that breaks the signature.

    Idempotency:
        WebhookEvent.stripe_event_id is unique. A replay of an event that
        was already processed returns 200 "Already processed" without
        queuing it again.

    Returns:
        200: Event accepted (new, in flight, or already processed)
        400: Missing or invalid signature, malformed event
        503: Event stored but the task broker is unreachable
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    if not signature:
        logger.warning("Webhook received without Stripe-Signature header")
        return HttpResponse("Missing signature", status=400)

    try:
        event_data = StripeAdapter.verify_webhook_signature(payload, signature)
    except StripeInvalidRequestError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message, "stripe_code": e.stripe_code},
        )
        return HttpResponse("Invalid signature", status=400)

    stripe_event_id = event_data.get("id")
    event_type = event_data.get("type")

    if not stripe_event_id or not event_type:
        logger.warning("Webhook missing id or type")
        return HttpResponse("Invalid event", status=400)

    webhook_event, created = WebhookEvent.objects.get_or_create(
        stripe_event_id=stripe_event_id,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed",
            extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
        )
        return HttpResponse("Already processed", status=200)

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
            "redelivery": not created,
            "status": webhook_event.status,
        },
    )

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except BrokerError:
        logger.error(
            "Failed to queue webhook, asking Stripe to redeliver",
            extra={"stripe_event_id": stripe_event_id, "webhook_event_id": str(webhook_event.id)},
            exc_info=True,
        )
        return HttpResponse("Queue unavailable", status=503)

    return HttpResponse("Accepted", status=200)
