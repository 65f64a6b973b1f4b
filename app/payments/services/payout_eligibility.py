"""
Payout eligibility gate.

A provider can receive transfers only when their Stripe Connect account
reports both charges and payouts enabled. The tri-state derivation lives
in derive_payout_status() and is shared by the on-demand status endpoint
and the account.updated webhook handler.

Usage:
    from payments.services import PayoutEligibilityGate

    PayoutEligibilityGate().ensure_ready(booking.seller)  # raises PayoutNotReadyError
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from payments.adapters import AccountStatus, StripeAdapter
from payments.exceptions import PayoutNotReadyError
from payments.state_machines import PayoutStatus

if TYPE_CHECKING:
    from authentication.models import User


def derive_payout_status(account: AccountStatus | None) -> PayoutStatus:
    """
    Map raw Connect capability flags to a payout status.

    READY when charges and payouts are both enabled, RESTRICTED when the
    account reports a disabled reason, PENDING otherwise. No account at
    all is UNSET.
    """
    if account is None:
        return PayoutStatus.UNSET
    if account.charges_enabled and account.payouts_enabled:
        return PayoutStatus.READY
    if account.disabled_reason:
        return PayoutStatus.RESTRICTED
    return PayoutStatus.PENDING


class PayoutEligibilityGate(BaseService):
    """
    Reads and persists providers' payout readiness.

    Args:
        stripe_adapter: Gateway adapter (StripeAdapter or a test fake)
    """

    def __init__(self, stripe_adapter=StripeAdapter):
        self.stripe_adapter = stripe_adapter

    @classmethod
    def apply_account_status(cls, user: User, account: AccountStatus | None) -> PayoutStatus:
        """Derive the status from account flags and store it on the user."""
        status = derive_payout_status(account)
        previous = user.payout_status

        user.payout_status = status
        user.stripe_requirements = account.requirements if account is not None else {}
        user.save(update_fields=["payout_status", "stripe_requirements", "updated_at"])

        if previous != status:
            cls.get_logger().info(
                "Payout status changed",
                extra={
                    "user_id": user.pk,
                    "account_id": account.id if account is not None else None,
                    "previous_status": previous,
                    "payout_status": status,
                },
            )
        return status

    def refresh(self, user: User) -> tuple[PayoutStatus, AccountStatus | None]:
        """
        Re-read the user's Connect account from Stripe and persist the result.

        Returns:
            (payout_status, account flags or None when no account is linked)
        """
        if not user.stripe_connect_account_id:
            return self.apply_account_status(user, None), None

        account = self.stripe_adapter.get_account_status(user.stripe_connect_account_id)
        return self.apply_account_status(user, account), account

    @classmethod
    def ensure_ready(cls, provider: User) -> None:
        """
        Guard every transfer to a provider.

        Raises:
            PayoutNotReadyError: No Connect account, or status is not READY
        """
        if not provider.stripe_connect_account_id:
            raise PayoutNotReadyError(
                PayoutStatus.UNSET,
                message="Provider has not connected a payout account",
            )
        if provider.payout_status != PayoutStatus.READY:
            cls.get_logger().info(
                "Payout blocked, provider not ready",
                extra={"provider_id": provider.pk, "payout_status": provider.payout_status},
            )
            raise PayoutNotReadyError(
                provider.payout_status,
                requirements=provider.stripe_requirements,
            )
