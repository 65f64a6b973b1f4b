"""
Payments app configuration.

This app provides the money side of the escrow service:
- Stripe adapter and Connect onboarding
- Double-entry escrow ledger
- Webhook ingestion and reconciliation
- Runtime fee settings
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self) -> None:
        # Register webhook handlers
        from payments.webhooks import handlers  # noqa: F401
