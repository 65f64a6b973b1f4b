"""
Factory Boy factories for ledger test data.

Usage:
    from payments.ledger.tests.factories import LedgerAccountFactory, LedgerEntryFactory

    escrow = LedgerAccountFactory(type=AccountType.PLATFORM_ESCROW)
    entry = LedgerEntryFactory(credit_account=escrow, amount_cents=5000)
"""

import uuid

import factory

from payments.ledger.models import AccountType, EntryType, LedgerAccount, LedgerEntry


class LedgerAccountFactory(factory.django.DjangoModelFactory):
    """Defaults to a booking-scoped escrow account."""

    class Meta:
        model = LedgerAccount
        skip_postgeneration_save = True

    type = AccountType.PLATFORM_ESCROW
    booking_id = factory.LazyFunction(uuid.uuid4)
    currency = "usd"
    allow_negative = False


class LedgerEntryFactory(factory.django.DjangoModelFactory):
    """Defaults to a deposit moving money from Stripe into escrow."""

    class Meta:
        model = LedgerEntry
        skip_postgeneration_save = True

    debit_account = factory.SubFactory(
        LedgerAccountFactory,
        type=AccountType.EXTERNAL_STRIPE,
        booking_id=None,
        allow_negative=True,
    )
    credit_account = factory.SubFactory(LedgerAccountFactory)
    amount_cents = 1000
    currency = "usd"
    entry_type = EntryType.DEPOSIT_CHARGE
    booking_id = factory.SelfAttribute("credit_account.booking_id")
    idempotency_key = factory.Sequence(lambda n: f"test-entry-{n}-{uuid.uuid4()}")
    description = factory.Faker("sentence")
    metadata = factory.LazyFunction(dict)
    created_by = "test_factory"
