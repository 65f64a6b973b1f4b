"""
Ledger - Double-entry bookkeeping for escrow money movements.

Public API:
    Models:
        LedgerAccount, LedgerEntry, AccountType, EntryType
    Services:
        LedgerService - Generic account and entry operations
        EscrowLedger - One method per escrow monetary event
    Types:
        RecordEntryParams
    Exceptions:
        LedgerError, AccountNotFound, InsufficientBalance

Usage:
    from payments.ledger import EscrowLedger

    EscrowLedger.record_deposit(booking.id, 5000, "pi_123")
    EscrowLedger.escrow_balance(booking.id)  # 5000
"""

from .escrow import EscrowLedger
from .exceptions import AccountNotFound, InsufficientBalance, LedgerError
from .models import AccountType, EntryType, LedgerAccount, LedgerEntry
from .services import LedgerService
from .types import RecordEntryParams

__all__ = [
    "LedgerAccount",
    "LedgerEntry",
    "AccountType",
    "EntryType",
    "LedgerService",
    "EscrowLedger",
    "RecordEntryParams",
    "LedgerError",
    "AccountNotFound",
    "InsufficientBalance",
]
