"""
Pytest fixtures for Stripe adapter tests.

Sections:
    - Mock Stripe Objects
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

import uuid
from typing import Any
from unittest.mock import patch

import pytest
import stripe


@pytest.fixture
def booking_id():
    """Generate a random booking UUID."""
    return uuid.uuid4()


# =============================================================================
# Mock Stripe Objects
# =============================================================================


class MockStripeObject(dict):
    """
    Mock Stripe API object.

    Supports attribute access, dict access (``.get``) and ``to_dict`` like
    the SDK's StripeObject.
    """

    def __getattr__(self, name: str) -> Any:
        return self.get(name)

    def to_dict(self) -> dict[str, Any]:
        return dict(self)


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response."""

    def _create(
        id: str = "pi_test123456",
        status: str = "succeeded",
        amount: int = 5000,
        currency: str = "usd",
        latest_charge: str | None = "ch_test123456",
        client_secret: str = "pi_test123456_secret_abc123",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            id=id,
            object="payment_intent",
            status=status,
            amount=amount,
            currency=currency,
            latest_charge=latest_charge,
            client_secret=client_secret,
            metadata=metadata or {},
        )

    return _create


@pytest.fixture
def mock_transfer():
    """Create a mock Transfer response."""

    def _create(
        id: str = "tr_test123456",
        amount: int = 5700,
        currency: str = "usd",
        destination: str = "acct_dest123",
        transfer_group: str | None = "booking_test",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            id=id,
            object="transfer",
            amount=amount,
            currency=currency,
            destination=destination,
            transfer_group=transfer_group,
            metadata=metadata or {},
        )

    return _create


@pytest.fixture
def mock_refund():
    """Create a mock Refund response."""

    def _create(
        id: str = "re_test123456",
        amount: int = 1000,
        currency: str = "usd",
        status: str = "succeeded",
        charge: str = "ch_test123456",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            id=id,
            object="refund",
            amount=amount,
            currency=currency,
            status=status,
            charge=charge,
            metadata=metadata or {},
        )

    return _create


@pytest.fixture
def mock_account():
    """Create a mock Connect Account response."""

    def _create(
        id: str = "acct_test123456",
        charges_enabled: bool = False,
        payouts_enabled: bool = False,
        currently_due: list | None = None,
        disabled_reason: str | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            id=id,
            object="account",
            charges_enabled=charges_enabled,
            payouts_enabled=payouts_enabled,
            requirements={
                "currently_due": currently_due or [],
                "disabled_reason": disabled_reason,
            },
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def card_error():
    """Create a Stripe CardError."""

    def _create(
        message: str = "Your card was declined.",
        code: str = "card_declined",
        decline_code: str | None = "generic_decline",
    ) -> stripe.CardError:
        error = stripe.CardError(message=message, param=None, code=code)
        error.decline_code = decline_code
        return error

    return _create


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such charge: 'ch_missing'",
        param: str | None = "charge",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message=message, param=param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError(message="Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError(message="Could not connect to Stripe.")


@pytest.fixture
def api_timeout_error():
    return stripe.APIConnectionError(
        message="Request to Stripe timed out. Request was retried 3 times."
    )


@pytest.fixture
def api_error():
    return stripe.APIError(message="Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError(message="Invalid API Key provided.")


@pytest.fixture
def signature_verification_error():
    return stripe.SignatureVerificationError(
        message="Unable to verify webhook signature.",
        sig_header="bad_signature",
    )


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_stripe_http_client():
    """Mock stripe.RequestsClient so no real HTTP client is built."""
    with patch("stripe.RequestsClient") as mock:
        yield mock


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    with patch("stripe.PaymentIntent") as mock:
        mock.create.return_value = mock_payment_intent()
        yield mock


@pytest.fixture
def mock_stripe_transfer(mock_transfer):
    with patch("stripe.Transfer") as mock:
        mock.create.return_value = mock_transfer()
        yield mock


@pytest.fixture
def mock_stripe_refund(mock_refund):
    with patch("stripe.Refund") as mock:
        mock.create.return_value = mock_refund()
        yield mock


@pytest.fixture
def mock_stripe_customer():
    with patch("stripe.Customer") as mock:
        mock.create.return_value = MockStripeObject(id="cus_new123", object="customer")
        mock.retrieve.return_value = MockStripeObject(
            id="cus_new123",
            object="customer",
            invoice_settings={"default_payment_method": "pm_saved123"},
        )
        mock.modify.return_value = MockStripeObject(id="cus_new123")
        yield mock


@pytest.fixture
def mock_stripe_payment_method():
    with patch("stripe.PaymentMethod") as mock:
        mock.attach.return_value = MockStripeObject(id="pm_card123", customer="cus_new123")
        yield mock


@pytest.fixture
def mock_stripe_account(mock_account):
    with patch("stripe.Account") as mock:
        mock.create.return_value = mock_account()
        mock.retrieve.return_value = mock_account()
        yield mock


@pytest.fixture
def mock_stripe_account_link():
    with patch("stripe.AccountLink") as mock:
        mock.create.return_value = MockStripeObject(
            object="account_link",
            url="https://connect.stripe.com/setup/e/acct_test123456/abc",
        )
        yield mock


@pytest.fixture
def mock_stripe_webhook():
    with patch("stripe.Webhook") as mock:
        mock.construct_event.return_value = MockStripeObject(
            id="evt_test123",
            type="charge.refunded",
            data={"object": {"id": "ch_test123", "object": "charge"}},
        )
        yield mock
