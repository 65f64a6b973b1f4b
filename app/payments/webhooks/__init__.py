"""
Stripe webhook ingestion and reconciliation.

Events are verified and stored by the view, then applied to bookings and
providers by the process_webhook_event task through the handler registry.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler

__all__ = [
    "dispatch_webhook",
    "register_handler",
]
