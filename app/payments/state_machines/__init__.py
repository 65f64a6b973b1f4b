"""
State enums shared by payment and booking models.
"""

from payments.state_machines.states import (
    EscrowStep,
    PayoutStatus,
    WebhookEventStatus,
)

__all__ = [
    "EscrowStep",
    "PayoutStatus",
    "WebhookEventStatus",
]
