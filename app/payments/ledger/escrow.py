"""
Escrow bookkeeping for a booking's monetary events.

EscrowLedger translates each escrow step into double-entry rows:

    deposit charge     external_stripe  -> platform_escrow
    delta charge       external_stripe  -> platform_escrow
    delta refund       platform_escrow  -> external_stripe
    platform fee       platform_escrow  -> platform_revenue
    final payout       platform_escrow  -> provider_payout
    retainage hold     platform_escrow  -> retainage_hold
    retainage release  retainage_hold   -> provider_payout
    external refund    platform_escrow  -> external_stripe

Escrow and retainage accounts are scoped per booking, so the escrow
balance of a booking always equals its funded amount. Idempotency keys
are derived from (booking, entry type): recording the same step twice
returns the first entries.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import Sum

from .models import AccountType, EntryType, LedgerEntry
from .services import LedgerService
from .types import RecordEntryParams

if TYPE_CHECKING:
    from payments.money import SettlementAmounts


CREATED_BY = "escrow_service"


def _currency() -> str:
    return getattr(settings, "ESCROW_CURRENCY", "usd")


class EscrowLedger:
    """Records the monetary events of the escrow flow."""

    @staticmethod
    def entry_key(booking_id: uuid.UUID, entry_type: str) -> str:
        return f"booking:{booking_id}:{entry_type}"

    @classmethod
    def _params(
        cls,
        booking_id: uuid.UUID,
        entry_type: EntryType,
        debit: AccountType,
        credit: AccountType,
        amount_cents: int,
        stripe_object_id: str = "",
        metadata: dict | None = None,
    ) -> RecordEntryParams:
        currency = _currency()
        return RecordEntryParams(
            debit_account_id=LedgerService.get_or_create_account(
                debit, booking_id=booking_id, currency=currency
            ).id,
            credit_account_id=LedgerService.get_or_create_account(
                credit, booking_id=booking_id, currency=currency
            ).id,
            amount_cents=amount_cents,
            entry_type=entry_type,
            idempotency_key=cls.entry_key(booking_id, entry_type),
            booking_id=booking_id,
            stripe_object_id=stripe_object_id or "",
            description=entry_type.label,
            metadata=metadata or {},
            created_by=CREATED_BY,
        )

    @classmethod
    def _charge(
        cls,
        entry_type: EntryType,
        booking_id: uuid.UUID,
        amount_cents: int,
        stripe_object_id: str,
    ) -> list[LedgerEntry]:
        if amount_cents <= 0:
            return []
        return LedgerService.record_entries(
            [
                cls._params(
                    booking_id,
                    entry_type,
                    AccountType.EXTERNAL_STRIPE,
                    AccountType.PLATFORM_ESCROW,
                    amount_cents,
                    stripe_object_id,
                )
            ]
        )

    @classmethod
    def record_checkout_charge(
        cls, booking_id: uuid.UUID, amount_cents: int, payment_intent_id: str
    ) -> list[LedgerEntry]:
        """Flat-fee checkout payment confirmed by webhook."""
        return cls._charge(EntryType.CHECKOUT_CHARGE, booking_id, amount_cents, payment_intent_id)

    @classmethod
    def record_deposit(
        cls, booking_id: uuid.UUID, amount_cents: int, payment_intent_id: str
    ) -> list[LedgerEntry]:
        return cls._charge(EntryType.DEPOSIT_CHARGE, booking_id, amount_cents, payment_intent_id)

    @classmethod
    def record_delta_charge(
        cls, booking_id: uuid.UUID, amount_cents: int, payment_intent_id: str
    ) -> list[LedgerEntry]:
        return cls._charge(EntryType.DELTA_CHARGE, booking_id, amount_cents, payment_intent_id)

    @classmethod
    def record_delta_refund(
        cls, booking_id: uuid.UUID, amount_cents: int, refund_id: str
    ) -> list[LedgerEntry]:
        if amount_cents <= 0:
            return []
        return LedgerService.record_entries(
            [
                cls._params(
                    booking_id,
                    EntryType.DELTA_REFUND,
                    AccountType.PLATFORM_ESCROW,
                    AccountType.EXTERNAL_STRIPE,
                    amount_cents,
                    refund_id,
                )
            ]
        )

    @classmethod
    def record_settlement(
        cls,
        booking_id: uuid.UUID,
        amounts: SettlementAmounts,
        transfer_id: str = "",
    ) -> list[LedgerEntry]:
        """Fee, payout and retainage hold as one atomic batch."""
        legs = [
            (EntryType.PLATFORM_FEE, AccountType.PLATFORM_REVENUE, amounts.platform_fee_cents, ""),
            (EntryType.FINAL_PAYOUT, AccountType.PROVIDER_PAYOUT, amounts.payout_cents, transfer_id),
            (EntryType.RETAINAGE_HOLD, AccountType.RETAINAGE_HOLD, amounts.retainage_cents, ""),
        ]
        return LedgerService.record_entries(
            [
                cls._params(
                    booking_id,
                    entry_type,
                    AccountType.PLATFORM_ESCROW,
                    credit,
                    cents,
                    stripe_id,
                    metadata={"retainage_bps": amounts.retainage_bps},
                )
                for entry_type, credit, cents, stripe_id in legs
                if cents > 0
            ]
        )

    @classmethod
    def record_retainage_release(
        cls, booking_id: uuid.UUID, amount_cents: int, transfer_id: str
    ) -> list[LedgerEntry]:
        if amount_cents <= 0:
            return []
        return LedgerService.record_entries(
            [
                cls._params(
                    booking_id,
                    EntryType.RETAINAGE_RELEASE,
                    AccountType.RETAINAGE_HOLD,
                    AccountType.PROVIDER_PAYOUT,
                    amount_cents,
                    transfer_id,
                )
            ]
        )

    @classmethod
    def record_legacy_payout(
        cls,
        booking_id: uuid.UUID,
        total_cents: int,
        platform_fee_cents: int,
        payout_cents: int,
        payment_intent_id: str,
        transfer_id: str,
    ) -> list[LedgerEntry]:
        """
        Flat-fee completion: checkout charge, fee and payout.

        The checkout charge is normally recorded by the webhook already;
        its idempotency key makes the repeat a no-op.
        """
        entries: list[RecordEntryParams] = []
        if total_cents > 0:
            entries.append(
                cls._params(
                    booking_id,
                    EntryType.CHECKOUT_CHARGE,
                    AccountType.EXTERNAL_STRIPE,
                    AccountType.PLATFORM_ESCROW,
                    total_cents,
                    payment_intent_id,
                )
            )
        if platform_fee_cents > 0:
            entries.append(
                cls._params(
                    booking_id,
                    EntryType.PLATFORM_FEE,
                    AccountType.PLATFORM_ESCROW,
                    AccountType.PLATFORM_REVENUE,
                    platform_fee_cents,
                )
            )
        if payout_cents > 0:
            entries.append(
                cls._params(
                    booking_id,
                    EntryType.LEGACY_PAYOUT,
                    AccountType.PLATFORM_ESCROW,
                    AccountType.PROVIDER_PAYOUT,
                    payout_cents,
                    transfer_id,
                )
            )
        return LedgerService.record_entries(entries)

    @classmethod
    def record_external_refund(
        cls, booking_id: uuid.UUID, amount_cents: int, charge_id: str
    ) -> list[LedgerEntry]:
        """Refund issued outside the escrow flow (dashboard, dispute) emptying escrow."""
        if amount_cents <= 0:
            return []
        return LedgerService.record_entries(
            [
                cls._params(
                    booking_id,
                    EntryType.EXTERNAL_REFUND,
                    AccountType.PLATFORM_ESCROW,
                    AccountType.EXTERNAL_STRIPE,
                    amount_cents,
                    charge_id,
                )
            ]
        )

    @staticmethod
    def escrow_balance(booking_id: uuid.UUID) -> int:
        """Cents currently held in escrow for the booking."""
        account = LedgerService.get_or_create_account(
            AccountType.PLATFORM_ESCROW, booking_id=booking_id, currency=_currency()
        )
        return account.get_balance()

    @staticmethod
    def delta_refunded_cents(booking_id: uuid.UUID) -> int:
        """Cents the escrow flow itself refunded against the deposit charge."""
        return (
            LedgerEntry.objects.filter(
                booking_id=booking_id, entry_type=EntryType.DELTA_REFUND
            ).aggregate(total=Sum("amount_cents"))["total"]
            or 0
        )

    @staticmethod
    def entries_for_booking(booking_id: uuid.UUID) -> list[LedgerEntry]:
        return LedgerService.get_entries_for_booking(booking_id)
