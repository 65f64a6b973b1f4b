"""
Payment-specific exceptions for escrow operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Booking/payment entity lookup failures (404)
    ├── PaymentValidationError - Amount and percentage validation (400)
    ├── PaymentMethodRequiredError - Delta charge needs a payment method (402)
    ├── PaymentIncompleteError - Confirmed charge did not succeed (402)
    └── PaymentProcessingError - Payment processing failures (500)
        └── StripeError - Base for all Stripe errors
            ├── StripeCardDeclinedError - Card declined (402, permanent)
            ├── StripeInsufficientFundsError - Insufficient funds (402, permanent)
            ├── StripeInvalidAccountError - Invalid Connect account (permanent)
            ├── StripeInvalidRequestError - Invalid request params (permanent)
            ├── StripeRateLimitError - Rate limited (transient, retry)
            ├── StripeAPIUnavailableError - API unavailable (unknown outcome)
            └── StripeTimeoutError - Request timeout (unknown outcome)

    StaleRecordError - Concurrent modification of a booking (409)
    InvalidStateTransitionError - Booking not in the required status (409)
    PayoutNotReadyError - Provider's Connect account not READY (409)

Usage:
    from payments.exceptions import InvalidStateTransitionError

    raise InvalidStateTransitionError(
        "Booking must be accepted to pay the deposit",
        current_status="funded",
        expected_status=["accepted"],
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


GENERIC_PAYMENT_FAILURE_MESSAGE = "Payment processing failed. Please try again later."


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Inherits from BaseApplicationError so views render it through
    ApplicationErrorMixin like any other domain error.
    """

    default_error_code: str = "PAYMENT_ERROR"
    http_status: int = 400


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment entity cannot be found.

    Example:
        raise PaymentNotFoundError(
            f"Booking {booking_id} not found",
            details={"booking_id": str(booking_id)},
        )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    http_status: int = 404


class PaymentValidationError(PaymentError):
    """
    Raised when payment validation fails.

    Use for:
    - Negative or non-integer cent amounts
    - Basis points outside 0..10000
    - A proposed final amount above the allowed cap

    Example:
        raise PaymentValidationError(
            "Final amount exceeds 125% of the deposit",
            error_code="FINAL_AMOUNT_EXCEEDS_CAP",
            details={"final_cents": 7000, "max_allowed_cents": 6250},
        )
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PaymentMethodRequiredError(PaymentError):
    """
    Raised when approving a final amount requires an additional charge
    but the buyer has no saved payment method and supplied none.

    The client collects a payment method for exactly ``delta_cents`` and
    retries the approval with payment_method_id.
    """

    default_error_code: str = "PAYMENT_METHOD_REQUIRED"
    http_status: int = 402

    def __init__(self, delta_cents: int, message: str | None = None):
        self.delta_cents = delta_cents
        super().__init__(
            message or "A payment method is required to pay the additional amount",
            details={"delta_cents": delta_cents},
        )


class PaymentIncompleteError(PaymentError):
    """
    Raised when a confirmed charge did not reach ``succeeded``.

    Typically the card requires customer authentication. Nothing is
    recorded on the booking; the client completes the action and retries.
    """

    default_error_code: str = "PAYMENT_INCOMPLETE"
    http_status: int = 402

    def __init__(self, payment_intent_id: str, intent_status: str):
        self.payment_intent_id = payment_intent_id
        self.intent_status = intent_status
        super().__init__(
            "The payment could not be completed",
            details={
                "payment_intent_id": payment_intent_id,
                "payment_intent_status": intent_status,
            },
        )


class PaymentProcessingError(PaymentError):
    """
    Raised when payment processing fails.

    The message is logged server side; clients receive a generic message.
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"
    http_status: int = 500

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": GENERIC_PAYMENT_FAILURE_MESSAGE,
            "error_code": "PAYMENT_PROCESSING_ERROR",
        }


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried
        outcome_unknown: The request may have succeeded on Stripe's side.
            Retry only with the same idempotency key.

    Only the StripeAdapter raises these; it translates every SDK error.
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False
    outcome_unknown: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """
    Card was declined by the issuing bank.

    Client-actionable: the buyer can try another card, so the response
    carries the decline code rather than the generic failure message.
    """

    default_error_code: str = "CARD_DECLINED"
    http_status: int = 402

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "error": "Your card was declined.",
            "error_code": self.error_code,
        }
        if self.decline_code:
            result["details"] = {"decline_code": self.decline_code}
        return result


class StripeInsufficientFundsError(StripeCardDeclinedError):
    """Insufficient funds on the payment method."""

    default_error_code: str = "INSUFFICIENT_FUNDS"

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": "Your card has insufficient funds.",
            "error_code": self.error_code,
        }


class StripeInvalidAccountError(StripeError):
    """
    Invalid Stripe Connect account.

    Raised when the destination account for a transfer is missing,
    disabled, or cannot receive transfers.
    """

    default_error_code: str = "INVALID_STRIPE_ACCOUNT"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Also raised for webhook payloads failing signature verification.
    Usually indicates a bug in our code rather than a user error.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with the same idempotency key)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable or the connection dropped.

    The request may have reached Stripe before the connection failed, so
    the outcome is unknown. Resolve by retrying with the same idempotency
    key, never by assuming failure.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True
    outcome_unknown: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The request was sent but no response was received within
    STRIPE_API_TIMEOUT_SECONDS. The operation may have succeeded on
    Stripe's side; the idempotency key makes a retry return the
    original result instead of repeating the charge.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True
    outcome_unknown: bool = True


# =============================================================================
# State and Concurrency Exceptions
# =============================================================================


class StaleRecordError(ConflictError):
    """
    Raised when a booking changed between read and conditional write.

    The conditional UPDATE matched no row because another request moved
    the status first. The caller should re-read the booking and decide.
    """

    default_error_code: str = "STALE_RECORD"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a booking is not in a status that allows the operation.

    Carries the actual and the required statuses so the client can refresh
    and decide whether to retry.

    Example:
        raise InvalidStateTransitionError(
            "Cannot settle a booking in status 'funded'",
            current_status="funded",
            expected_status=["final_approved"],
        )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"

    def __init__(
        self,
        message: str,
        current_status: str,
        expected_status: list[str] | tuple[str, ...],
        details: dict[str, Any] | None = None,
    ):
        self.current_status = current_status
        self.expected_status = list(expected_status)
        merged = {
            "current_status": current_status,
            "expected_status": self.expected_status,
        }
        merged.update(details or {})
        super().__init__(message, details=merged)


class PayoutNotReadyError(ConflictError):
    """
    Raised when money would move to a provider whose Connect account is
    not READY.

    Carries payout_status and the outstanding requirements so the UI can
    direct the provider to finish onboarding.
    """

    default_error_code: str = "PAYOUT_NOT_READY"

    def __init__(
        self,
        payout_status: str,
        requirements: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.payout_status = payout_status
        self.requirements = requirements or {}
        super().__init__(
            message
            or f"Provider's payout account is {payout_status}. "
            "They must complete onboarding before funds can be released.",
            details={
                "payout_status": payout_status,
                "requirements": self.requirements,
            },
        )


__all__ = [
    "GENERIC_PAYMENT_FAILURE_MESSAGE",
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "PaymentMethodRequiredError",
    "PaymentIncompleteError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInsufficientFundsError",
    "StripeInvalidAccountError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # State and concurrency
    "StaleRecordError",
    "InvalidStateTransitionError",
    "PayoutNotReadyError",
]
