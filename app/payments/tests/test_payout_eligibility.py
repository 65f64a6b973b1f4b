"""Tests for the payout eligibility gate and Connect onboarding."""

import pytest

from authentication.tests.factories import UserFactory
from payments.adapters import AccountStatus
from payments.exceptions import PaymentValidationError, PayoutNotReadyError
from payments.services import ConnectOnboardingService, PayoutEligibilityGate, derive_payout_status
from payments.state_machines import PayoutStatus


class TestDerivePayoutStatus:
    def test_no_account_is_unset(self):
        assert derive_payout_status(None) == PayoutStatus.UNSET

    def test_both_enabled_is_ready(self):
        account = AccountStatus(id="acct_1", charges_enabled=True, payouts_enabled=True)
        assert derive_payout_status(account) == PayoutStatus.READY

    def test_disabled_reason_is_restricted(self):
        account = AccountStatus(
            id="acct_1",
            charges_enabled=True,
            disabled_reason="requirements.past_due",
        )
        assert derive_payout_status(account) == PayoutStatus.RESTRICTED

    def test_enabled_wins_over_disabled_reason(self):
        account = AccountStatus(
            id="acct_1",
            charges_enabled=True,
            payouts_enabled=True,
            disabled_reason="under_review",
        )
        assert derive_payout_status(account) == PayoutStatus.READY

    def test_incomplete_onboarding_is_pending(self):
        account = AccountStatus(id="acct_1", charges_enabled=True, currently_due=["external_account"])
        assert derive_payout_status(account) == PayoutStatus.PENDING


class TestRefresh:
    def test_refresh_persists_status_and_requirements(self, pending_provider, mock_stripe_adapter):
        mock_stripe_adapter.account_status = AccountStatus(
            id=pending_provider.stripe_connect_account_id,
            disabled_reason="rejected.fraud",
            currently_due=["individual.verification.document"],
        )

        status, account = PayoutEligibilityGate(mock_stripe_adapter).refresh(pending_provider)

        pending_provider.refresh_from_db()
        assert status == PayoutStatus.RESTRICTED
        assert pending_provider.payout_status == PayoutStatus.RESTRICTED
        assert pending_provider.stripe_requirements == {
            "currently_due": ["individual.verification.document"],
            "disabled_reason": "rejected.fraud",
        }
        assert account.id == pending_provider.stripe_connect_account_id

    def test_refresh_without_account_is_unset(self, db, mock_stripe_adapter):
        user = UserFactory()

        status, account = PayoutEligibilityGate(mock_stripe_adapter).refresh(user)

        assert status == PayoutStatus.UNSET
        assert account is None
        assert mock_stripe_adapter.call_count("get_account_status") == 0


class TestEnsureReady:
    def test_ready_provider_passes(self, provider):
        PayoutEligibilityGate.ensure_ready(provider)

    def test_pending_provider_rejected_with_requirements(self, pending_provider):
        with pytest.raises(PayoutNotReadyError) as exc_info:
            PayoutEligibilityGate.ensure_ready(pending_provider)

        assert exc_info.value.http_status == 409
        assert exc_info.value.details["payout_status"] == PayoutStatus.PENDING
        assert exc_info.value.details["requirements"]["currently_due"] == ["external_account"]

    def test_provider_without_account_rejected(self, db):
        with pytest.raises(PayoutNotReadyError) as exc_info:
            PayoutEligibilityGate.ensure_ready(UserFactory())

        assert exc_info.value.payout_status == PayoutStatus.UNSET


class TestConnectOnboarding:
    def test_create_links_new_account(self, db, mock_stripe_adapter):
        user = UserFactory()

        account_id, created = ConnectOnboardingService(mock_stripe_adapter).create_or_link(user)

        user.refresh_from_db()
        assert created is True
        assert user.stripe_connect_account_id == account_id
        assert user.payout_status == PayoutStatus.PENDING
        call = mock_stripe_adapter.calls["create_connected_account"][0]
        assert call["email"] == user.email
        assert call["user_id"] == user.pk

    def test_existing_account_returned(self, provider, mock_stripe_adapter):
        account_id, created = ConnectOnboardingService(mock_stripe_adapter).create_or_link(provider)

        assert created is False
        assert account_id == provider.stripe_connect_account_id
        assert mock_stripe_adapter.call_count("create_connected_account") == 0

    def test_onboarding_link(self, pending_provider, mock_stripe_adapter):
        url = ConnectOnboardingService(mock_stripe_adapter).onboarding_link(pending_provider)
        assert pending_provider.stripe_connect_account_id in url

    def test_onboarding_link_requires_account(self, db, mock_stripe_adapter):
        with pytest.raises(PaymentValidationError) as exc_info:
            ConnectOnboardingService(mock_stripe_adapter).onboarding_link(UserFactory())

        assert exc_info.value.error_code == "NO_CONNECT_ACCOUNT"
