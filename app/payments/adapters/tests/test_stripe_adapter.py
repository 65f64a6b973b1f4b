"""
Tests for Stripe adapter.

Tests cover:
- Idempotency key generation
- Error translation for each exception type
- Payer-side operations (customer, payment method, charge, refund)
- Payee-side operations (Connect account, onboarding link, status, transfer)
- Webhook signature verification
"""

import uuid

import pytest
import stripe
from django.test import override_settings

from payments.adapters import (
    AccountStatus,
    ChargeParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    backoff_delay,
    is_retryable_stripe_error,
)
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)


def _deposit_params(**overrides):
    params = {
        "amount_cents": 5000,
        "currency": "usd",
        "idempotency_key": "escrow_deposit:b1:1:abcd1234",
        "customer_id": "cus_abc",
        "payment_method_id": "pm_card123",
        "transfer_group": "booking_b1",
        "metadata": {"bookingId": "b1", "type": "deposit", "userId": "7"},
    }
    params.update(overrides)
    return ChargeParams(**params)


# =============================================================================
# ChargeParams Tests
# =============================================================================


class TestChargeParams:
    def test_amount_must_be_positive(self):
        with pytest.raises(ValueError, match="amount_cents must be positive"):
            _deposit_params(amount_cents=0)

    def test_idempotency_key_required(self):
        with pytest.raises(ValueError, match="idempotency_key is required"):
            _deposit_params(idempotency_key="")

    def test_confirm_requires_payment_method(self):
        with pytest.raises(ValueError, match="payment_method_id"):
            _deposit_params(payment_method_id=None)

    def test_unconfirmed_intent_needs_no_payment_method(self):
        params = _deposit_params(payment_method_id=None, confirm=False)

        assert params.confirm is False


# =============================================================================
# IdempotencyKeyGenerator Tests
# =============================================================================


class TestIdempotencyKeyGenerator:
    def test_generate_key_format(self):
        entity_id = uuid.uuid4()

        key = IdempotencyKeyGenerator.generate("create_customer", entity_id, 2)

        parts = key.split(":")
        assert parts[0] == "create_customer"
        assert parts[1] == str(entity_id)
        assert parts[2] == "2"
        assert len(parts[3]) == 8

    def test_for_step_is_stable_per_booking_and_step(self):
        booking_id = uuid.uuid4()

        first = IdempotencyKeyGenerator.for_step(booking_id, "deposit")
        second = IdempotencyKeyGenerator.for_step(str(booking_id), "deposit")

        assert first == second
        assert first.startswith(f"escrow_deposit:{booking_id}:1:")

    def test_for_step_differs_between_steps(self):
        booking_id = uuid.uuid4()

        keys = {
            IdempotencyKeyGenerator.for_step(booking_id, step)
            for step in ("deposit", "delta_charge", "delta_refund", "final_payout")
        }

        assert len(keys) == 4

    def test_for_step_scoped_by_payment_method(self):
        booking_id = uuid.uuid4()

        visa = IdempotencyKeyGenerator.for_step(booking_id, "deposit", scope="pm_visa")

        assert visa == IdempotencyKeyGenerator.for_step(booking_id, "deposit", scope="pm_visa")
        assert visa != IdempotencyKeyGenerator.for_step(booking_id, "deposit", scope="pm_amex")
        assert visa != IdempotencyKeyGenerator.for_step(booking_id, "deposit")

    def test_for_step_differs_between_bookings(self):
        assert IdempotencyKeyGenerator.for_step(uuid.uuid4(), "deposit") != (
            IdempotencyKeyGenerator.for_step(uuid.uuid4(), "deposit")
        )


# =============================================================================
# Retry Helper Tests
# =============================================================================


class TestRetryHelpers:
    def test_transient_errors_are_retryable(self):
        assert is_retryable_stripe_error(StripeRateLimitError("x")) is True
        assert is_retryable_stripe_error(StripeAPIUnavailableError("x")) is True
        assert is_retryable_stripe_error(StripeTimeoutError("x")) is True

    def test_permanent_errors_are_not_retryable(self):
        assert is_retryable_stripe_error(StripeCardDeclinedError("x")) is False
        assert is_retryable_stripe_error(StripeInvalidRequestError("x")) is False
        assert is_retryable_stripe_error(ValueError("x")) is False

    def test_timeouts_have_unknown_outcome(self):
        assert StripeTimeoutError("x").outcome_unknown is True
        assert StripeAPIUnavailableError("x").outcome_unknown is True
        assert StripeCardDeclinedError("x").outcome_unknown is False

    def test_backoff_delay_grows_and_caps(self):
        assert 1.0 <= backoff_delay(0) <= 1.25
        assert 4.0 <= backoff_delay(2) <= 5.0
        assert backoff_delay(20, max_delay=60.0) <= 75.0


# =============================================================================
# Error Translation Tests
# =============================================================================


class TestStripeAdapterErrorTranslation:
    """Tests for Stripe error translation to domain exceptions."""

    def test_card_declined_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error()

        with pytest.raises(StripeCardDeclinedError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        assert exc_info.value.decline_code == "generic_decline"
        assert exc_info.value.http_status == 402

    def test_insufficient_funds_error(self, mock_stripe_payment_intent, card_error):
        mock_stripe_payment_intent.create.side_effect = card_error(
            message="Your card has insufficient funds.",
            decline_code="insufficient_funds",
        )

        with pytest.raises(StripeInsufficientFundsError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        assert exc_info.value.decline_code == "insufficient_funds"

    def test_invalid_request_error(self, mock_stripe_refund, invalid_request_error):
        mock_stripe_refund.create.side_effect = invalid_request_error()

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.refund("ch_missing", 1000, "key-1")

        assert exc_info.value.stripe_code == "resource_missing"

    def test_invalid_destination_account(self, mock_stripe_transfer, invalid_request_error):
        mock_stripe_transfer.create.side_effect = invalid_request_error(
            message="No such destination: 'acct_gone'",
            param="destination",
        )

        with pytest.raises(StripeInvalidAccountError):
            StripeAdapter.transfer(5700, "acct_gone", "key-1")

    def test_rate_limit_error(self, mock_stripe_payment_intent, rate_limit_error):
        mock_stripe_payment_intent.create.side_effect = rate_limit_error

        with pytest.raises(StripeRateLimitError):
            StripeAdapter.charge(_deposit_params())

    def test_connection_error_is_unavailable(
        self, mock_stripe_payment_intent, api_connection_error
    ):
        mock_stripe_payment_intent.create.side_effect = api_connection_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        assert exc_info.value.outcome_unknown is True

    def test_timeout_is_translated(self, mock_stripe_transfer, api_timeout_error):
        mock_stripe_transfer.create.side_effect = api_timeout_error

        with pytest.raises(StripeTimeoutError):
            StripeAdapter.transfer(5700, "acct_dest123", "key-1")

    def test_api_error(self, mock_stripe_payment_intent, api_error):
        mock_stripe_payment_intent.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError):
            StripeAdapter.charge(_deposit_params())

    def test_authentication_error(self, mock_stripe_payment_intent, authentication_error):
        mock_stripe_payment_intent.create.side_effect = authentication_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        assert exc_info.value.stripe_code == "authentication_error"

    def test_unknown_error(self, mock_stripe_payment_intent):
        mock_stripe_payment_intent.create.side_effect = RuntimeError("boom")

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        assert exc_info.value.stripe_code == "unknown_error"

    def test_gateway_error_response_hides_internals(
        self, mock_stripe_payment_intent, api_error
    ):
        mock_stripe_payment_intent.create.side_effect = api_error

        with pytest.raises(StripeAPIUnavailableError) as exc_info:
            StripeAdapter.charge(_deposit_params())

        body = exc_info.value.to_dict()
        assert body["error_code"] == "PAYMENT_PROCESSING_ERROR"
        assert "Stripe" not in body["error"]


# =============================================================================
# Payer Side
# =============================================================================


class TestCreateOrReuseCustomer:
    def test_reuses_existing_customer_without_api_call(self, mock_stripe_customer):
        result = StripeAdapter.create_or_reuse_customer(7, "h@example.com", "cus_existing")

        assert result.id == "cus_existing"
        assert result.created is False
        mock_stripe_customer.create.assert_not_called()

    def test_creates_customer_with_user_metadata(self, mock_stripe_customer):
        result = StripeAdapter.create_or_reuse_customer(7, "h@example.com")

        assert result.id == "cus_new123"
        assert result.created is True
        kwargs = mock_stripe_customer.create.call_args.kwargs
        assert kwargs["email"] == "h@example.com"
        assert kwargs["metadata"] == {"userId": "7"}
        assert kwargs["idempotency_key"].startswith("create_customer:7:1:")


class TestPaymentMethods:
    def test_attach_sets_default(self, mock_stripe_payment_method, mock_stripe_customer):
        StripeAdapter.attach_payment_method("pm_card123", "cus_new123")

        mock_stripe_payment_method.attach.assert_called_once_with(
            "pm_card123", customer="cus_new123"
        )
        mock_stripe_customer.modify.assert_called_once_with(
            "cus_new123",
            invoice_settings={"default_payment_method": "pm_card123"},
        )

    def test_attach_without_default(self, mock_stripe_payment_method, mock_stripe_customer):
        StripeAdapter.attach_payment_method("pm_card123", "cus_new123", set_default=False)

        mock_stripe_customer.modify.assert_not_called()

    def test_get_default_payment_method(self, mock_stripe_customer):
        assert StripeAdapter.get_default_payment_method("cus_new123") == "pm_saved123"

    def test_get_default_payment_method_none(self, mock_stripe_customer):
        mock_stripe_customer.retrieve.return_value = {
            "id": "cus_new123",
            "invoice_settings": {"default_payment_method": None},
        }

        assert StripeAdapter.get_default_payment_method("cus_new123") is None


class TestCharge:
    def test_confirmed_charge(self, mock_stripe_payment_intent):
        result = StripeAdapter.charge(_deposit_params())

        assert result.id == "pi_test123456"
        assert result.succeeded is True
        assert result.charge_id == "ch_test123456"
        kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert kwargs["amount"] == 5000
        assert kwargs["confirm"] is True
        assert kwargs["off_session"] is False
        assert kwargs["transfer_group"] == "booking_b1"
        assert kwargs["metadata"]["type"] == "deposit"
        assert kwargs["idempotency_key"] == "escrow_deposit:b1:1:abcd1234"

    def test_off_session_charge(self, mock_stripe_payment_intent):
        StripeAdapter.charge(_deposit_params(off_session=True))

        kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert kwargs["off_session"] is True
        assert "automatic_payment_methods" not in kwargs

    def test_save_for_future_usage(self, mock_stripe_payment_intent):
        StripeAdapter.charge(_deposit_params(setup_future_usage="off_session"))

        kwargs = mock_stripe_payment_intent.create.call_args.kwargs
        assert kwargs["setup_future_usage"] == "off_session"

    def test_unconfirmed_intent(self, mock_stripe_payment_intent, mock_payment_intent):
        mock_stripe_payment_intent.create.return_value = mock_payment_intent(
            status="requires_payment_method", latest_charge=None
        )

        result = StripeAdapter.charge(_deposit_params(confirm=False, payment_method_id=None))

        assert result.succeeded is False
        assert result.client_secret == "pi_test123456_secret_abc123"
        assert "confirm" not in mock_stripe_payment_intent.create.call_args.kwargs


class TestRefund:
    def test_refund_against_charge(self, mock_stripe_refund):
        result = StripeAdapter.refund(
            "ch_test123456",
            1000,
            "escrow_delta_refund:b1:1:abcd",
            metadata={"bookingId": "b1", "type": "delta_refund"},
        )

        assert result.amount_cents == 1000
        assert result.charge_id == "ch_test123456"
        mock_stripe_refund.create.assert_called_once_with(
            charge="ch_test123456",
            amount=1000,
            metadata={"bookingId": "b1", "type": "delta_refund"},
            idempotency_key="escrow_delta_refund:b1:1:abcd",
        )

    def test_refund_rejects_non_positive(self, mock_stripe_refund):
        with pytest.raises(ValueError):
            StripeAdapter.refund("ch_x", 0, "key")

        mock_stripe_refund.create.assert_not_called()


# =============================================================================
# Payee Side
# =============================================================================


class TestConnect:
    def test_create_connected_account(self, mock_stripe_account):
        result = StripeAdapter.create_connected_account("p@example.com", 9, country="US")

        assert result.id == "acct_test123456"
        kwargs = mock_stripe_account.create.call_args.kwargs
        assert kwargs["type"] == "express"
        assert kwargs["capabilities"] == {
            "card_payments": {"requested": True},
            "transfers": {"requested": True},
        }
        assert kwargs["metadata"] == {"userId": "9"}

    @override_settings(
        CONNECT_ONBOARDING_REFRESH_URL="https://app.test/refresh",
        CONNECT_ONBOARDING_RETURN_URL="https://app.test/return",
    )
    def test_create_onboarding_link(self, mock_stripe_account_link):
        url = StripeAdapter.create_onboarding_link("acct_test123456")

        assert url.startswith("https://connect.stripe.com/")
        mock_stripe_account_link.create.assert_called_once_with(
            account="acct_test123456",
            refresh_url="https://app.test/refresh",
            return_url="https://app.test/return",
            type="account_onboarding",
        )

    def test_get_account_status(self, mock_stripe_account, mock_account):
        mock_stripe_account.retrieve.return_value = mock_account(
            charges_enabled=True,
            payouts_enabled=False,
            currently_due=["external_account"],
        )

        status = StripeAdapter.get_account_status("acct_test123456")

        assert isinstance(status, AccountStatus)
        assert status.charges_enabled is True
        assert status.payouts_enabled is False
        assert status.requirements == {
            "currently_due": ["external_account"],
            "disabled_reason": None,
        }

    def test_transfer(self, mock_stripe_transfer):
        result = StripeAdapter.transfer(
            5700,
            "acct_dest123",
            "escrow_final_payout:b1:1:abcd",
            transfer_group="booking_test",
            metadata={"bookingId": "b1", "type": "final_payout"},
        )

        assert result.id == "tr_test123456"
        assert result.transfer_group == "booking_test"
        kwargs = mock_stripe_transfer.create.call_args.kwargs
        assert kwargs["destination"] == "acct_dest123"
        assert kwargs["transfer_group"] == "booking_test"
        assert kwargs["idempotency_key"] == "escrow_final_payout:b1:1:abcd"


class TestAccountStatusFromStripe:
    def test_from_webhook_payload_dict(self):
        status = AccountStatus.from_stripe(
            {
                "id": "acct_1",
                "charges_enabled": True,
                "payouts_enabled": True,
                "requirements": {"currently_due": [], "disabled_reason": None},
            }
        )

        assert status.id == "acct_1"
        assert status.charges_enabled and status.payouts_enabled

    def test_missing_requirements(self):
        status = AccountStatus.from_stripe({"id": "acct_2"})

        assert status.currently_due == []
        assert status.disabled_reason is None


# =============================================================================
# Webhook Verification
# =============================================================================


class TestVerifyWebhookSignature:
    def test_valid_signature_returns_event(self, mock_stripe_webhook):
        event = StripeAdapter.verify_webhook_signature(b'{"id": "evt"}', "t=1,v1=abc")

        assert event["id"] == "evt_test123"
        assert event["type"] == "charge.refunded"

    def test_invalid_signature(self, mock_stripe_webhook, signature_verification_error):
        mock_stripe_webhook.construct_event.side_effect = signature_verification_error

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"tampered", "bad_signature")

        assert exc_info.value.stripe_code == "signature_verification_failed"

    def test_malformed_payload(self, mock_stripe_webhook):
        mock_stripe_webhook.construct_event.side_effect = ValueError("bad json")

        with pytest.raises(StripeInvalidRequestError) as exc_info:
            StripeAdapter.verify_webhook_signature(b"not json", "t=1,v1=abc")

        assert exc_info.value.stripe_code == "invalid_payload"


# =============================================================================
# Configuration Tests
# =============================================================================


class TestStripeAdapterConfiguration:
    @override_settings(STRIPE_SECRET_KEY="sk_test_custom")
    def test_uses_settings_api_key(self, mock_stripe_payment_intent):
        StripeAdapter.charge(_deposit_params())

        assert stripe.api_key == "sk_test_custom"

    @override_settings(STRIPE_API_TIMEOUT_SECONDS=30)
    def test_uses_settings_timeout(self, mock_stripe_payment_intent, mock_stripe_http_client):
        StripeAdapter.charge(_deposit_params())

        mock_stripe_http_client.assert_called_with(timeout=30)
