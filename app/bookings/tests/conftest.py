"""
Pytest fixtures for booking and escrow tests.

Sections:
    - Gateway: MockStripeAdapter and services wired to it
    - Users: homeowner, provider, admin
    - Clients: API clients authenticated as each party
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import AdminUserFactory, ProviderFactory, UserFactory
from bookings.services import BookingService, EscrowService
from bookings.views import BookingAPIView
from payments.state_machines import PayoutStatus
from payments.tests.mocks import MockStripeAdapter


# ==========================================================================
# Gateway
# ==========================================================================


@pytest.fixture
def mock_stripe_adapter():
    """Provide a clean MockStripeAdapter for each test."""
    MockStripeAdapter.reset()
    yield MockStripeAdapter
    MockStripeAdapter.reset()


@pytest.fixture
def escrow_service(mock_stripe_adapter):
    return EscrowService(stripe_adapter=mock_stripe_adapter)


@pytest.fixture
def booking_service(mock_stripe_adapter):
    return BookingService(stripe_adapter=mock_stripe_adapter)


@pytest.fixture
def mock_views_gateway(mock_stripe_adapter, monkeypatch):
    """Route every booking view's gateway calls to the mock."""
    monkeypatch.setattr(BookingAPIView, "stripe_adapter", mock_stripe_adapter)
    return mock_stripe_adapter


# ==========================================================================
# Users
# ==========================================================================


@pytest.fixture
def homeowner(db):
    return UserFactory(stripe_customer_id="cus_homeowner")


@pytest.fixture
def provider(db):
    """Provider whose Connect account is READY."""
    return ProviderFactory()


@pytest.fixture
def pending_provider(db):
    return ProviderFactory(
        payout_status=PayoutStatus.PENDING,
        stripe_requirements={"currently_due": ["external_account"], "disabled_reason": None},
    )


@pytest.fixture
def admin_user(db):
    return AdminUserFactory()


@pytest.fixture
def outsider(db):
    return UserFactory()


# ==========================================================================
# Clients
# ==========================================================================


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    """Factory fixture: client_for(user) returns an authenticated APIClient."""
    return _client_for
