"""
Factory Boy factories for bookings.

BookingFactory creates a pending 50000-cent booking (47619 subtotal +
2381 fee) between a homeowner and a payout-ready provider. Traits put it
in a later escrow state with consistent amounts; money that such a state
holds in escrow or retainage is seeded in the ledger so later steps can
move it.

Usage:
    from bookings.tests.factories import BookingFactory

    booking = BookingFactory(accepted=True)
    booking = BookingFactory(funded=True)                     # deposit 5000 held
    booking = BookingFactory(final_proposed=True, amount_final_cents=6000)
    booking = BookingFactory(final_approved=True, amount_funded_cents=100000)
"""

import factory

from authentication.tests.factories import ProviderFactory, UserFactory
from bookings.models import Booking
from bookings.state_machines import BookingStatus
from payments.ledger import EscrowLedger
from payments.money import SettlementAmounts

DEPOSIT_CENTS = 5000


def _seed_ledger(booking: Booking) -> None:
    """Book the money a seeded state already holds."""
    if booking.status == BookingStatus.PARTIAL_RELEASED:
        hold = booking.retainage_hold_cents
        EscrowLedger.record_deposit(booking.id, hold, booking.stripe_payment_intent_id)
        EscrowLedger.record_settlement(
            booking.id,
            SettlementAmounts(
                funded_cents=hold,
                platform_fee_cents=0,
                retainage_bps=booking.retainage_bps,
                retainage_cents=hold,
                payout_cents=0,
            ),
        )
    elif booking.status == BookingStatus.PAID:
        EscrowLedger.record_checkout_charge(
            booking.id, booking.amount_funded_cents, booking.stripe_payment_intent_id
        )
    elif booking.amount_funded_cents > 0:
        EscrowLedger.record_deposit(
            booking.id, booking.amount_funded_cents, booking.stripe_payment_intent_id
        )


class BookingFactory(factory.django.DjangoModelFactory):
    """
    Booking between a homeowner and a READY provider.

    Traits:
        accepted, paid, funded, in_progress, final_proposed,
        final_approved, partial_released
    """

    class Meta:
        model = Booking
        skip_postgeneration_save = True

    buyer = factory.SubFactory(
        UserFactory,
        stripe_customer_id=factory.Sequence(lambda n: f"cus_test{n:06d}"),
    )
    seller = factory.SubFactory(ProviderFactory)
    status = BookingStatus.PENDING
    subtotal_cents = 47619
    platform_fee_cents = 2381
    total_cents = factory.LazyAttribute(lambda o: o.subtotal_cents + o.platform_fee_cents)

    class Params:
        accepted = factory.Trait(status=BookingStatus.ACCEPTED)
        paid = factory.Trait(
            status=BookingStatus.PAID,
            stripe_payment_intent_id="pi_checkout",
            amount_funded_cents=factory.SelfAttribute("total_cents"),
        )
        funded = factory.Trait(
            status=BookingStatus.FUNDED,
            amount_budgeted_cents=factory.SelfAttribute("total_cents"),
            amount_deposit_cents=DEPOSIT_CENTS,
            amount_funded_cents=factory.SelfAttribute("amount_deposit_cents"),
            homeowner_pm_saved=True,
            deposit_charge_id="ch_deposit",
            stripe_payment_intent_id="pi_deposit",
        )
        in_progress = factory.Trait(funded=True, status=BookingStatus.IN_PROGRESS)
        final_proposed = factory.Trait(
            funded=True,
            status=BookingStatus.FINAL_PROPOSED,
            amount_final_cents=DEPOSIT_CENTS,
            amount_delta_cents=factory.LazyAttribute(
                lambda o: o.amount_final_cents - o.amount_deposit_cents
            ),
        )
        final_approved = factory.Trait(
            funded=True,
            status=BookingStatus.FINAL_APPROVED,
            amount_final_cents=factory.SelfAttribute("amount_funded_cents"),
            amount_delta_cents=factory.LazyAttribute(
                lambda o: o.amount_final_cents - o.amount_deposit_cents
            ),
        )
        partial_released = factory.Trait(
            final_approved=True,
            status=BookingStatus.PARTIAL_RELEASED,
            retainage_bps=1000,
            retainage_hold_cents=500,
            amount_funded_cents=factory.SelfAttribute("retainage_hold_cents"),
            amount_final_cents=DEPOSIT_CENTS,
            stripe_transfer_id="tr_settlement",
        )

    @factory.post_generation
    def ledger(obj, create, extracted, **kwargs):
        """Pass ledger=False to skip seeding escrow balances."""
        if create and extracted is not False:
            _seed_ledger(obj)
