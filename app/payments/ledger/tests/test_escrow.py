"""
Tests for EscrowLedger.

Each escrow step must leave the booking's escrow balance equal to the
amount still held for it, and recording a step twice must not double it.
"""

import pytest

from payments.ledger import AccountType, EntryType, EscrowLedger, InsufficientBalance, LedgerService
from payments.money import compute_settlement


def balance(account_type, booking_id=None):
    return LedgerService.get_or_create_account(account_type, booking_id=booking_id).get_balance()


class TestCharges:
    def test_deposit_credits_booking_escrow(self, db, booking_id):
        entries = EscrowLedger.record_deposit(booking_id, 5000, "pi_deposit")

        assert len(entries) == 1
        assert entries[0].entry_type == EntryType.DEPOSIT_CHARGE
        assert entries[0].stripe_object_id == "pi_deposit"
        assert EscrowLedger.escrow_balance(booking_id) == 5000

    def test_deposit_recorded_once(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 5000, "pi_deposit")
        EscrowLedger.record_deposit(booking_id, 5000, "pi_deposit")

        assert EscrowLedger.escrow_balance(booking_id) == 5000
        assert len(EscrowLedger.entries_for_booking(booking_id)) == 1

    def test_zero_amount_records_nothing(self, db, booking_id):
        assert EscrowLedger.record_delta_charge(booking_id, 0, "pi_x") == []
        assert EscrowLedger.record_delta_refund(booking_id, 0, "re_x") == []

    def test_delta_refund_returns_money_to_stripe(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 5000, "pi_deposit")
        EscrowLedger.record_delta_refund(booking_id, 1500, "re_123")

        assert EscrowLedger.escrow_balance(booking_id) == 3500
        assert EscrowLedger.delta_refunded_cents(booking_id) == 1500

    def test_no_delta_refund_totals_zero(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 5000, "pi_deposit")
        assert EscrowLedger.delta_refunded_cents(booking_id) == 0

    def test_refund_cannot_exceed_held_amount(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 1000, "pi_deposit")

        with pytest.raises(InsufficientBalance):
            EscrowLedger.record_delta_refund(booking_id, 1001, "re_123")


class TestSettlement:
    def test_settlement_with_retainage(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 100000, "pi_deposit")
        amounts = compute_settlement(100000, 5, 1000)

        entries = EscrowLedger.record_settlement(booking_id, amounts, "tr_final")

        assert {e.entry_type for e in entries} == {
            EntryType.PLATFORM_FEE,
            EntryType.FINAL_PAYOUT,
            EntryType.RETAINAGE_HOLD,
        }
        assert EscrowLedger.escrow_balance(booking_id) == 0
        assert balance(AccountType.RETAINAGE_HOLD, booking_id) == 10000
        assert balance(AccountType.PROVIDER_PAYOUT) == 85000
        assert balance(AccountType.PLATFORM_REVENUE) == 5000

    def test_release_moves_hold_to_provider(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 100000, "pi_deposit")
        EscrowLedger.record_settlement(booking_id, compute_settlement(100000, 5, 1000), "tr_final")

        EscrowLedger.record_retainage_release(booking_id, 10000, "tr_retainage")

        assert balance(AccountType.RETAINAGE_HOLD, booking_id) == 0
        assert balance(AccountType.PROVIDER_PAYOUT) == 95000

    def test_settlement_without_retainage_skips_hold(self, db, booking_id):
        EscrowLedger.record_deposit(booking_id, 6000, "pi_deposit")

        entries = EscrowLedger.record_settlement(booking_id, compute_settlement(6000, 5), "tr_final")

        assert EntryType.RETAINAGE_HOLD not in {e.entry_type for e in entries}
        assert EscrowLedger.escrow_balance(booking_id) == 0


class TestLegacyPayout:
    def test_records_checkout_fee_and_payout(self, db, booking_id):
        entries = EscrowLedger.record_legacy_payout(
            booking_id,
            total_cents=10000,
            platform_fee_cents=500,
            payout_cents=9500,
            payment_intent_id="pi_checkout",
            transfer_id="tr_legacy",
        )

        assert [e.entry_type for e in entries] == [
            EntryType.CHECKOUT_CHARGE,
            EntryType.PLATFORM_FEE,
            EntryType.LEGACY_PAYOUT,
        ]
        assert EscrowLedger.escrow_balance(booking_id) == 0

    def test_checkout_already_recorded_by_webhook(self, db, booking_id):
        EscrowLedger.record_checkout_charge(booking_id, 10000, "pi_checkout")

        EscrowLedger.record_legacy_payout(booking_id, 10000, 500, 9500, "pi_checkout", "tr_legacy")

        checkout = [
            e for e in EscrowLedger.entries_for_booking(booking_id)
            if e.entry_type == EntryType.CHECKOUT_CHARGE
        ]
        assert len(checkout) == 1
        assert EscrowLedger.escrow_balance(booking_id) == 0
