"""
Stripe API adapter for escrow payment operations.

The only module allowed to call the Stripe SDK. Every call goes through
StripeAdapter so that timeouts, idempotency, error translation and
logging are handled the same way.

Features:
- Configurable timeouts and network retries on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on every call that moves money

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)
- STRIPE_MAX_RETRIES: Network retries inside the SDK (default: 3)

Usage:
    from payments.adapters import ChargeParams, IdempotencyKeyGenerator, StripeAdapter

    result = StripeAdapter.charge(
        ChargeParams(
            amount_cents=5000,
            currency="usd",
            customer_id="cus_xxx",
            payment_method_id="pm_xxx",
            transfer_group="booking_<id>",
            metadata={"bookingId": "<id>", "type": "deposit"},
            idempotency_key=IdempotencyKeyGenerator.for_step(booking.id, "deposit"),
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import random
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeVar

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeCardDeclinedError,
    StripeError,
    StripeInsufficientFundsError,
    StripeInvalidAccountError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
)

R = TypeVar("R")


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class ChargeParams:
    """
    Parameters for creating (and usually confirming) a PaymentIntent.

    Attributes:
        amount_cents: Amount to charge in cents
        currency: ISO 4217 currency code
        idempotency_key: Stable key for this booking step
        customer_id: Stripe Customer ID (cus_xxx)
        payment_method_id: PaymentMethod to charge (pm_xxx)
        confirm: Confirm immediately (False leaves the intent for the client)
        off_session: Charge a saved method without the cardholder present
        setup_future_usage: "off_session" to save the method for later charges
        transfer_group: Correlates every charge/refund/transfer of one booking
        metadata: bookingId, type and party ids
    """

    amount_cents: int
    currency: str
    idempotency_key: str
    customer_id: str | None = None
    payment_method_id: str | None = None
    confirm: bool = True
    off_session: bool = False
    setup_future_usage: str | None = None
    transfer_group: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if not self.currency:
            raise ValueError("currency is required")
        if self.confirm and not self.payment_method_id:
            raise ValueError("payment_method_id is required to confirm a charge")


@dataclass
class ChargeResult:
    """
    Result of a PaymentIntent creation.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: succeeded, processing, requires_action, ...
        amount_cents: Amount in cents
        currency: Currency code
        charge_id: Latest Charge ID (ch_xxx), target for refunds
        client_secret: Secret for client-side confirmation
        metadata: Attached metadata
        raw_response: Full Stripe response dict
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    charge_id: str | None = None
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


@dataclass
class RefundResult:
    """Result from Stripe Refund operations."""

    id: str
    amount_cents: int
    currency: str
    status: str
    charge_id: str
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class TransferResult:
    """Result from Stripe Transfer operations."""

    id: str
    amount_cents: int
    currency: str
    destination_account: str
    transfer_group: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class CustomerResult:
    """Payer billing identity."""

    id: str
    created: bool = False


@dataclass
class ConnectedAccountResult:
    """Newly created Connect account."""

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False


@dataclass
class AccountStatus:
    """
    Raw capability flags of a Connect account.

    Built from either an Account API object or the ``data.object`` of an
    ``account.updated`` webhook, so both call sites feed the same input to
    derive_payout_status().
    """

    id: str
    charges_enabled: bool = False
    payouts_enabled: bool = False
    currently_due: list[str] = field(default_factory=list)
    disabled_reason: str | None = None

    @classmethod
    def from_stripe(cls, account: Any) -> AccountStatus:
        requirements = account.get("requirements") or {}
        return cls(
            id=account.get("id", ""),
            charges_enabled=bool(account.get("charges_enabled")),
            payouts_enabled=bool(account.get("payouts_enabled")),
            currently_due=list(requirements.get("currently_due") or []),
            disabled_reason=requirements.get("disabled_reason") or None,
        )

    @property
    def requirements(self) -> dict[str, Any]:
        """Shape persisted on User.stripe_requirements."""
        return {
            "currently_due": self.currently_due,
            "disabled_reason": self.disabled_reason,
        }


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    Keys are deterministic: the same (operation, entity, attempt) always
    yields the same key, so a retried request after a timeout returns the
    original Stripe object instead of charging twice.

    Example:
        IdempotencyKeyGenerator.for_step(booking.id, "deposit")
        # "escrow_deposit:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str | int,
        attempt: int = 1,
    ) -> str:
        """
        Generate an idempotency key.

        Args:
            operation: The Stripe operation (escrow_deposit, create_customer, ...)
            entity_id: The domain entity ID
            attempt: Bump only when a new gateway object is intended
        """
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"

    @classmethod
    def for_step(
        cls,
        booking_id: uuid.UUID | str,
        step: str,
        attempt: int = 1,
        scope: str | None = None,
    ) -> str:
        """
        Key for one money movement of a booking (deposit, delta_charge, ...).

        Charges pass the payment method as scope. A retry with the same card
        reuses the key; a retry with another card after a decline gets a new one.
        """
        entity = f"{booking_id}:{scope}" if scope else booking_id
        return cls.generate(f"escrow_{step}", entity, attempt)


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def is_retryable_stripe_error(error: Exception) -> bool:
    """
    Check if a Stripe error is transient and may be retried with the
    same idempotency key.
    """
    if isinstance(error, StripeError):
        return getattr(error, "is_retryable", False)
    return False


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Exponential backoff delay with 0-25% jitter.

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from request threads and Celery workers.

    Services receive the class itself (``stripe_adapter=StripeAdapter``)
    so tests can inject a fake with the same interface.
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key, timeout and network retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 3)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _execute(
        cls,
        log_context: dict[str, Any],
        call: Callable[[], Any],
        completed: Callable[[Any], dict[str, Any]],
    ) -> Any:
        """
        Run one SDK call with timing, logging and error translation.

        Args:
            log_context: Structured context included in every log line
            call: Zero-argument callable performing the SDK request
            completed: Extracts extra log fields from the SDK response
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            response = call()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, **completed(response), "duration_ms": duration_ms},
        )
        return response

    # =========================================================================
    # Payer side
    # =========================================================================

    @classmethod
    def create_or_reuse_customer(
        cls,
        user_id: int | str,
        email: str,
        existing_customer_id: str | None = None,
    ) -> CustomerResult:
        """
        Return the payer's Stripe Customer, creating it on first use.

        Args:
            user_id: Local user id, stored as metadata.userId
            email: Customer email
            existing_customer_id: Stored customer id, reused without an API call

        Returns:
            CustomerResult with created=True when a Customer was created
        """
        if existing_customer_id:
            return CustomerResult(id=existing_customer_id, created=False)

        idempotency_key = IdempotencyKeyGenerator.generate("create_customer", user_id)
        customer = cls._execute(
            {
                "operation": "create_customer",
                "user_id": str(user_id),
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Customer.create(
                email=email,
                metadata={"userId": str(user_id)},
                idempotency_key=idempotency_key,
            ),
            lambda c: {"customer_id": c.id},
        )
        return CustomerResult(id=customer.id, created=True)

    @classmethod
    def attach_payment_method(
        cls,
        payment_method_id: str,
        customer_id: str,
        set_default: bool = True,
    ) -> None:
        """
        Attach a PaymentMethod to a Customer for future off-session use.

        Args:
            payment_method_id: PaymentMethod ID (pm_xxx)
            customer_id: Customer ID (cus_xxx)
            set_default: Also make it the invoice default payment method
        """
        log_context = {
            "operation": "attach_payment_method",
            "payment_method_id": payment_method_id,
            "customer_id": customer_id,
        }
        cls._execute(
            log_context,
            lambda: stripe.PaymentMethod.attach(payment_method_id, customer=customer_id),
            lambda pm: {},
        )
        if set_default:
            cls._execute(
                {**log_context, "operation": "set_default_payment_method"},
                lambda: stripe.Customer.modify(
                    customer_id,
                    invoice_settings={"default_payment_method": payment_method_id},
                ),
                lambda c: {},
            )

    @classmethod
    def get_default_payment_method(cls, customer_id: str) -> str | None:
        """Return the Customer's default PaymentMethod id, if any."""
        customer = cls._execute(
            {"operation": "retrieve_customer", "customer_id": customer_id},
            lambda: stripe.Customer.retrieve(customer_id),
            lambda c: {},
        )
        invoice_settings = customer.get("invoice_settings") or {}
        default_pm = invoice_settings.get("default_payment_method")
        if isinstance(default_pm, dict):
            # Expanded PaymentMethod object
            return default_pm.get("id")
        return default_pm or None

    @classmethod
    def charge(cls, params: ChargeParams) -> ChargeResult:
        """
        Create a PaymentIntent, confirmed unless ``params.confirm`` is False.

        Returns:
            ChargeResult; check ``succeeded`` before recording funds

        Raises:
            StripeCardDeclinedError: Card was declined
            StripeInsufficientFundsError: Insufficient funds
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError / StripeTimeoutError: Unknown outcome
        """
        create_params: dict[str, Any] = {
            "amount": params.amount_cents,
            "currency": params.currency,
            "metadata": params.metadata,
            "idempotency_key": params.idempotency_key,
        }
        if params.customer_id:
            create_params["customer"] = params.customer_id
        if params.payment_method_id:
            create_params["payment_method"] = params.payment_method_id
        if params.transfer_group:
            create_params["transfer_group"] = params.transfer_group
        if params.setup_future_usage:
            create_params["setup_future_usage"] = params.setup_future_usage
        if params.confirm:
            create_params["confirm"] = True
            create_params["off_session"] = params.off_session
            if not params.off_session:
                # Card-only confirmation; no redirect-based methods
                create_params["automatic_payment_methods"] = {
                    "enabled": True,
                    "allow_redirects": "never",
                }

        intent = cls._execute(
            {
                "operation": "charge",
                "amount_cents": params.amount_cents,
                "currency": params.currency,
                "off_session": params.off_session,
                "transfer_group": params.transfer_group,
                "idempotency_key": params.idempotency_key,
                "booking_id": params.metadata.get("bookingId"),
                "step": params.metadata.get("type"),
            },
            lambda: stripe.PaymentIntent.create(**create_params),
            lambda pi: {"payment_intent_id": pi.id, "status": pi.status},
        )

        latest_charge = intent.get("latest_charge")
        if isinstance(latest_charge, dict):
            latest_charge = latest_charge.get("id")

        return ChargeResult(
            id=intent.id,
            status=intent.status,
            amount_cents=intent.amount,
            currency=intent.currency,
            charge_id=latest_charge,
            client_secret=intent.get("client_secret"),
            metadata=dict(intent.get("metadata") or {}),
            raw_response=intent.to_dict(),
        )

    @classmethod
    def refund(
        cls,
        charge_id: str,
        amount_cents: int,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> RefundResult:
        """
        Refund part or all of a specific charge.

        Args:
            charge_id: Charge ID (ch_xxx) to refund against
            amount_cents: Amount to refund
            idempotency_key: Stable key for this booking step
            metadata: bookingId and type tags
        """
        if amount_cents <= 0:
            raise ValueError("amount_cents must be positive")

        refund = cls._execute(
            {
                "operation": "refund",
                "charge_id": charge_id,
                "amount_cents": amount_cents,
                "idempotency_key": idempotency_key,
                "booking_id": (metadata or {}).get("bookingId"),
            },
            lambda: stripe.Refund.create(
                charge=charge_id,
                amount=amount_cents,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
            lambda r: {"refund_id": r.id, "status": r.status},
        )

        return RefundResult(
            id=refund.id,
            amount_cents=refund.amount,
            currency=refund.currency,
            status=refund.status,
            charge_id=refund.get("charge") or charge_id,
            metadata=dict(refund.get("metadata") or {}),
            raw_response=refund.to_dict(),
        )

    # =========================================================================
    # Payee side (Connect)
    # =========================================================================

    @classmethod
    def create_connected_account(
        cls,
        email: str,
        user_id: int | str,
        country: str | None = None,
    ) -> ConnectedAccountResult:
        """
        Create an Express Connect account for a provider.

        Requests card_payments and transfers capabilities.
        """
        country = country or getattr(settings, "CONNECT_DEFAULT_COUNTRY", "US")
        idempotency_key = IdempotencyKeyGenerator.generate("create_account", user_id)

        account = cls._execute(
            {
                "operation": "create_connected_account",
                "user_id": str(user_id),
                "country": country,
                "idempotency_key": idempotency_key,
            },
            lambda: stripe.Account.create(
                type="express",
                country=country,
                email=email,
                capabilities={
                    "card_payments": {"requested": True},
                    "transfers": {"requested": True},
                },
                metadata={"userId": str(user_id)},
                idempotency_key=idempotency_key,
            ),
            lambda a: {"account_id": a.id},
        )
        return ConnectedAccountResult(
            id=account.id,
            charges_enabled=bool(account.get("charges_enabled")),
            payouts_enabled=bool(account.get("payouts_enabled")),
        )

    @classmethod
    def create_onboarding_link(
        cls,
        account_id: str,
        refresh_url: str | None = None,
        return_url: str | None = None,
    ) -> str:
        """Return a hosted onboarding URL for the Connect account."""
        refresh_url = refresh_url or settings.CONNECT_ONBOARDING_REFRESH_URL
        return_url = return_url or settings.CONNECT_ONBOARDING_RETURN_URL

        link = cls._execute(
            {"operation": "create_onboarding_link", "account_id": account_id},
            lambda: stripe.AccountLink.create(
                account=account_id,
                refresh_url=refresh_url,
                return_url=return_url,
                type="account_onboarding",
            ),
            lambda l: {},
        )
        return link.url

    @classmethod
    def get_account_status(cls, account_id: str) -> AccountStatus:
        """Retrieve the capability flags of a Connect account."""
        account = cls._execute(
            {"operation": "retrieve_account", "account_id": account_id},
            lambda: stripe.Account.retrieve(account_id),
            lambda a: {
                "charges_enabled": a.get("charges_enabled"),
                "payouts_enabled": a.get("payouts_enabled"),
            },
        )
        return AccountStatus.from_stripe(account)

    @classmethod
    def transfer(
        cls,
        amount_cents: int,
        destination_account: str,
        idempotency_key: str,
        transfer_group: str | None = None,
        currency: str = "usd",
        metadata: dict[str, str] | None = None,
    ) -> TransferResult:
        """
        Transfer funds from the platform balance to a Connect account.

        Raises:
            StripeInvalidAccountError: Invalid destination account
            StripeInvalidRequestError: Insufficient platform balance, bad params
        """
        if amount_cents <= 0:
            raise ValueError("amount_cents must be positive")

        transfer_params: dict[str, Any] = {
            "amount": amount_cents,
            "currency": currency,
            "destination": destination_account,
            "metadata": metadata or {},
        }
        if transfer_group:
            transfer_params["transfer_group"] = transfer_group

        transfer = cls._execute(
            {
                "operation": "transfer",
                "amount_cents": amount_cents,
                "destination_account": destination_account,
                "transfer_group": transfer_group,
                "idempotency_key": idempotency_key,
                "booking_id": (metadata or {}).get("bookingId"),
                "step": (metadata or {}).get("type"),
            },
            lambda: stripe.Transfer.create(idempotency_key=idempotency_key, **transfer_params),
            lambda t: {"transfer_id": t.id},
        )

        return TransferResult(
            id=transfer.id,
            amount_cents=transfer.amount,
            currency=transfer.currency,
            destination_account=transfer.destination,
            transfer_group=transfer.get("transfer_group"),
            metadata=dict(transfer.get("metadata") or {}),
            raw_response=transfer.to_dict(),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw, unparsed request body
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            StripeInvalidRequestError: Invalid signature or payload
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
        except stripe.SignatureVerificationError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook signature",
                stripe_code="signature_verification_failed",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise StripeInvalidRequestError(
                "Invalid webhook payload",
                stripe_code="invalid_payload",
                details={"error": str(e)},
            ) from e
        return event.to_dict()

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Connection failures and timeouts are "unknown outcome": the request
        may have been applied by Stripe, so callers retry with the same
        idempotency key instead of treating them as failures.
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None) or getattr(
                getattr(error, "error", None), "decline_code", None
            )
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code, "stripe_code": error.code},
            )

            if decline_code == "insufficient_funds":
                raise StripeInsufficientFundsError(
                    str(error.user_message or error),
                    stripe_code=error.code,
                    decline_code=decline_code,
                ) from error

            raise StripeCardDeclinedError(
                str(error.user_message or error),
                stripe_code=error.code,
                decline_code=decline_code,
            ) from error

        if isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code, "param": error.param},
            )

            if error.param in ("destination", "account") or error.code in (
                "account_invalid",
                "account_closed",
            ):
                raise StripeInvalidAccountError(
                    str(error),
                    stripe_code=error.code,
                ) from error

            raise StripeInvalidRequestError(
                str(error),
                stripe_code=error.code,
            ) from error

        if isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        if isinstance(error, stripe.APIConnectionError):
            logger.error(
                "Connection error to Stripe; outcome unknown",
                extra=log_context,
                exc_info=True,
            )
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                raise StripeTimeoutError(
                    "Stripe request timed out. Retry with the same idempotency key.",
                    stripe_code="timeout",
                ) from error
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        if isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeInvalidRequestError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        if isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        logger.error(
            f"Unexpected error from Stripe: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise StripeAPIUnavailableError(
            f"Unexpected Stripe error: {error}",
            stripe_code="unknown_error",
        ) from error
