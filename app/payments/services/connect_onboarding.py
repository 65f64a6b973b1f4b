"""
Stripe Connect onboarding for providers.

Providers link an Express account once, then complete Stripe's hosted
onboarding. Readiness is tracked by PayoutEligibilityGate.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService
from payments.adapters import StripeAdapter
from payments.exceptions import PaymentValidationError
from payments.state_machines import PayoutStatus

if TYPE_CHECKING:
    from authentication.models import User


class ConnectOnboardingService(BaseService):
    """
    Create-or-link and onboarding-link operations.

    Args:
        stripe_adapter: Gateway adapter (StripeAdapter or a test fake)
    """

    def __init__(self, stripe_adapter=StripeAdapter):
        self.stripe_adapter = stripe_adapter

    def create_or_link(self, user: User, country: str | None = None) -> tuple[str, bool]:
        """
        Return the user's Connect account id, creating the account if missing.

        A new account starts in PENDING until Stripe reports capabilities.

        Returns:
            (account_id, created)
        """
        if user.stripe_connect_account_id:
            return user.stripe_connect_account_id, False

        account = self.stripe_adapter.create_connected_account(
            email=user.email,
            user_id=user.pk,
            country=country,
        )
        user.stripe_connect_account_id = account.id
        user.payout_status = PayoutStatus.PENDING
        user.save(update_fields=["stripe_connect_account_id", "payout_status", "updated_at"])

        self.get_logger().info(
            "Connect account linked",
            extra={"user_id": user.pk, "account_id": account.id},
        )
        return account.id, True

    def onboarding_link(
        self,
        user: User,
        refresh_url: str | None = None,
        return_url: str | None = None,
    ) -> str:
        """
        Hosted onboarding URL for the user's Connect account.

        Raises:
            PaymentValidationError: The user has no Connect account yet
        """
        if not user.stripe_connect_account_id:
            raise PaymentValidationError(
                "Create a payout account before onboarding",
                error_code="NO_CONNECT_ACCOUNT",
            )
        return self.stripe_adapter.create_onboarding_link(
            user.stripe_connect_account_id,
            refresh_url=refresh_url,
            return_url=return_url,
        )
