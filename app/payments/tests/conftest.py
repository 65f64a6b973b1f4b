"""
Pytest fixtures for payment tests.

Users come from authentication.tests.factories; the gateway is replaced
by MockStripeAdapter.
"""

import pytest
from rest_framework.test import APIClient

from authentication.tests.factories import AdminUserFactory, ProviderFactory, UserFactory
from payments.state_machines import PayoutStatus
from payments.tests.mocks import MockStripeAdapter
from payments.views import ConnectAPIView


@pytest.fixture
def mock_stripe_adapter():
    """Provide a clean MockStripeAdapter for each test."""
    MockStripeAdapter.reset()
    yield MockStripeAdapter
    MockStripeAdapter.reset()


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
def api_client():
    return APIClient()


@pytest.fixture
def mock_connect_gateway(monkeypatch, mock_stripe_adapter):
    """Route the Connect views through MockStripeAdapter."""
    monkeypatch.setattr(ConnectAPIView, "stripe_adapter", mock_stripe_adapter)
    return mock_stripe_adapter
