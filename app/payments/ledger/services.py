"""
Ledger service layer.

All ledger writes go through LedgerService so that validation, locking
and idempotency are applied uniformly.

Usage:
    from payments.ledger.services import LedgerService
    from payments.ledger.types import RecordEntryParams

    escrow = LedgerService.get_or_create_account(
        AccountType.PLATFORM_ESCROW, booking_id=booking.id
    )
    LedgerService.record_entries([RecordEntryParams(...), ...])
"""

from __future__ import annotations

import uuid

from django.db import IntegrityError, transaction

from payments.money import Money

from .exceptions import AccountNotFound, InsufficientBalance
from .models import BOOKING_SCOPED_ACCOUNTS, AccountType, LedgerAccount, LedgerEntry
from .types import RecordEntryParams


class LedgerService:
    """
    Double-entry ledger operations.

    - Atomic transactions for multi-entry events
    - Idempotency via unique keys (safe to retry)
    - Balance validation before debits
    - Account row locks taken in id order
    """

    @staticmethod
    def get_or_create_account(
        account_type: AccountType | str,
        booking_id: uuid.UUID | None = None,
        currency: str = "usd",
    ) -> LedgerAccount:
        """
        Get or create the account for (type, booking, currency).

        Booking-scoped types require booking_id; platform-wide types
        ignore it. Only the external Stripe account may go negative.
        """
        if account_type in BOOKING_SCOPED_ACCOUNTS:
            if booking_id is None:
                raise ValueError(f"{account_type} accounts are scoped to a booking")
        else:
            booking_id = None

        account, _ = LedgerAccount.objects.get_or_create(
            type=account_type,
            booking_id=booking_id,
            currency=currency,
            defaults={"allow_negative": account_type == AccountType.EXTERNAL_STRIPE},
        )
        return account

    @staticmethod
    def get_account(account_id: uuid.UUID) -> LedgerAccount:
        try:
            return LedgerAccount.objects.get(id=account_id)
        except LedgerAccount.DoesNotExist:
            raise AccountNotFound(
                f"Account {account_id} not found",
                details={"account_id": str(account_id)},
            )

    @staticmethod
    def _validate_account_for_debit(account: LedgerAccount, amount_cents: int) -> None:
        if not account.allow_negative:
            current_balance = account.get_balance()
            if current_balance < amount_cents:
                raise InsufficientBalance(
                    account_id=account.id,
                    required=amount_cents,
                    available=current_balance,
                )

    @staticmethod
    def record_entry(params: RecordEntryParams) -> LedgerEntry:
        """Record a single entry. See record_entries."""
        return LedgerService.record_entries([params])[0]

    @staticmethod
    def record_entries(entries: list[RecordEntryParams]) -> list[LedgerEntry]:
        """
        Record multiple ledger entries atomically.

        All entries succeed or all fail. An entry whose idempotency key
        already exists is returned unchanged instead of being recorded
        again. Entries are applied in order, so a later debit sees the
        credits of earlier entries in the same batch.

        Raises:
            AccountNotFound: If any account doesn't exist
            InsufficientBalance: If any debit would overdraw its account
        """
        if not entries:
            return []

        results: list[LedgerEntry] = []

        with transaction.atomic():
            account_ids: set[uuid.UUID] = set()
            for params in entries:
                account_ids.add(params.debit_account_id)
                account_ids.add(params.credit_account_id)

            # Consistent lock order prevents deadlocks between batches
            accounts = {
                acc.id: acc
                for acc in LedgerAccount.objects.filter(id__in=account_ids)
                .select_for_update()
                .order_by("id")
            }

            for account_id in account_ids:
                if account_id not in accounts:
                    raise AccountNotFound(
                        f"Account {account_id} not found",
                        details={"account_id": str(account_id)},
                    )

            for params in entries:
                debit_account = accounts[params.debit_account_id]
                credit_account = accounts[params.credit_account_id]

                # Idempotency check must precede the balance check
                existing = LedgerEntry.objects.filter(
                    idempotency_key=params.idempotency_key
                ).first()
                if existing is not None:
                    results.append(existing)
                    continue

                LedgerService._validate_account_for_debit(
                    debit_account, params.amount_cents
                )

                try:
                    with transaction.atomic():
                        entry = LedgerEntry.objects.create(
                            idempotency_key=params.idempotency_key,
                            debit_account=debit_account,
                            credit_account=credit_account,
                            amount_cents=params.amount_cents,
                            currency=debit_account.currency,
                            entry_type=params.entry_type,
                            booking_id=params.booking_id,
                            stripe_object_id=params.stripe_object_id,
                            description=params.description,
                            metadata=params.metadata,
                            created_by=params.created_by,
                        )
                except IntegrityError:
                    # Another process recorded the same event first
                    entry = LedgerEntry.objects.get(
                        idempotency_key=params.idempotency_key
                    )

                results.append(entry)

        return results

    @staticmethod
    def get_balance(account_id: uuid.UUID) -> Money:
        account = LedgerService.get_account(account_id)
        return Money(cents=account.get_balance(), currency=account.currency)

    @staticmethod
    def get_entries_for_booking(booking_id: uuid.UUID) -> list[LedgerEntry]:
        """All entries of a booking, oldest first."""
        return list(
            LedgerEntry.objects.filter(booking_id=booking_id)
            .select_related("debit_account", "credit_account")
            .order_by("created_at")
        )
