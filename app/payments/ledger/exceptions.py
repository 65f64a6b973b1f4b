"""
Ledger-specific exceptions.

Exception Hierarchy:
    LedgerError (base)
    ├── AccountNotFound - Account lookup failures
    └── InsufficientBalance - A debit would overdraw a non-negative account
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError

if TYPE_CHECKING:
    import uuid
    from typing import Any


class LedgerError(BaseApplicationError):
    """Base exception for all ledger operations."""

    default_error_code: str = "LEDGER_ERROR"
    http_status: int = 500


class AccountNotFound(LedgerError):
    """Raised when a ledger account cannot be found."""

    default_error_code: str = "ACCOUNT_NOT_FOUND"


class InsufficientBalance(LedgerError):
    """
    Raised when a debit exceeds the account balance.

    For a booking's escrow account this means the recorded movements would
    release more than was collected, which must never happen.

    Attributes:
        account_id: The account with insufficient funds
        required: Cents the debit needs
        available: Cents the account holds
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        account_id: uuid.UUID,
        required: int,
        available: int,
        details: dict[str, Any] | None = None,
    ):
        self.account_id = account_id
        self.required = required
        self.available = available

        full_details = {
            "account_id": str(account_id),
            "required_cents": required,
            "available_cents": available,
        }
        full_details.update(details or {})

        super().__init__(
            message=(
                f"Account {account_id} has insufficient balance: "
                f"required {required} cents, available {available} cents"
            ),
            details=full_details,
        )
