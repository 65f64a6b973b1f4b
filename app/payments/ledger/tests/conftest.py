"""
Pytest fixtures for ledger tests.

Sections:
    - Account Fixtures: Pre-configured ledger accounts
    - Test Data Fixtures: UUIDs and keys
"""

import uuid

import pytest

from payments.ledger.models import AccountType
from payments.ledger.tests.factories import LedgerAccountFactory, LedgerEntryFactory


# ==========================================================================
# Account Fixtures
# ==========================================================================


@pytest.fixture
def booking_id():
    return uuid.uuid4()


@pytest.fixture
def external_account(db):
    """External Stripe account; allowed to go negative."""
    return LedgerAccountFactory(
        type=AccountType.EXTERNAL_STRIPE,
        booking_id=None,
        allow_negative=True,
    )


@pytest.fixture
def escrow_account(db, booking_id):
    """Empty escrow account for one booking."""
    return LedgerAccountFactory(type=AccountType.PLATFORM_ESCROW, booking_id=booking_id)


@pytest.fixture
def revenue_account(db):
    return LedgerAccountFactory(type=AccountType.PLATFORM_REVENUE, booking_id=None)


@pytest.fixture
def funded_escrow_account(db, external_account, escrow_account):
    """Escrow account holding 10000 cents."""
    LedgerEntryFactory(
        debit_account=external_account,
        credit_account=escrow_account,
        amount_cents=10000,
    )
    return escrow_account


# ==========================================================================
# Test Data Fixtures
# ==========================================================================


@pytest.fixture
def unique_idempotency_key():
    return f"test-{uuid.uuid4()}"
