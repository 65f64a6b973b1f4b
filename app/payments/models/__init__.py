"""
Payment domain models.

- WebhookEvent: Stripe webhook event tracking for idempotent processing
- PlatformSetting: Runtime-tunable fee and deposit configuration
- LedgerAccount / LedgerEntry: Double-entry escrow ledger (payments.ledger)
"""

from payments.ledger.models import LedgerAccount, LedgerEntry
from payments.models.platform_setting import PlatformSetting
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "LedgerAccount",
    "LedgerEntry",
    "PlatformSetting",
    "WebhookEvent",
]
