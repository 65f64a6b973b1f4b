"""
Payment adapters for external services.

All Stripe API calls go through StripeAdapter to ensure consistent error
handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter, IdempotencyKeyGenerator

    status = StripeAdapter.get_account_status("acct_xxx")
"""

from payments.adapters.stripe_adapter import (
    AccountStatus,
    ChargeParams,
    ChargeResult,
    ConnectedAccountResult,
    CustomerResult,
    IdempotencyKeyGenerator,
    RefundResult,
    StripeAdapter,
    TransferResult,
    backoff_delay,
    is_retryable_stripe_error,
)

__all__ = [
    "AccountStatus",
    "ChargeParams",
    "ChargeResult",
    "ConnectedAccountResult",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "RefundResult",
    "StripeAdapter",
    "TransferResult",
    "backoff_delay",
    "is_retryable_stripe_error",
]
