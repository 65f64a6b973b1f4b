"""
Data types for ledger operations.

Types:
    RecordEntryParams: Parameters for recording one double-entry row

Usage:
    from payments.ledger.types import RecordEntryParams

    params = RecordEntryParams(
        debit_account_id=external.id,
        credit_account_id=escrow.id,
        amount_cents=5000,
        entry_type=EntryType.DEPOSIT_CHARGE,
        idempotency_key=f"booking:{booking.id}:deposit_charge",
        booking_id=booking.id,
        stripe_object_id="pi_123",
    )
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RecordEntryParams:
    """
    Parameters for recording a ledger entry.

    Every entry debits one account and credits another by a positive
    amount. The idempotency key makes recording safe to repeat.

    Required Attributes:
        debit_account_id: Account money leaves
        credit_account_id: Account money enters
        amount_cents: Positive amount in cents
        entry_type: EntryType value
        idempotency_key: Unique per monetary event

    Optional Attributes:
        booking_id: Booking the movement belongs to
        stripe_object_id: PaymentIntent, Refund or Transfer id
        description: Human-readable description
        metadata: JSON-serializable extras
        created_by: Service that recorded the entry
    """

    debit_account_id: uuid.UUID
    credit_account_id: uuid.UUID
    amount_cents: int
    entry_type: str
    idempotency_key: str

    booking_id: uuid.UUID | None = None
    stripe_object_id: str = ""
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_by: str = ""

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if self.debit_account_id == self.credit_account_id:
            raise ValueError("debit_account_id and credit_account_id must be different")
