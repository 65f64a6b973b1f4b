"""
DRF views for payments app.

This module provides API views for:
- Stripe Connect onboarding of providers
- Platform fee settings (public read, admin read/write)

The Stripe webhook endpoint lives in payments.webhooks.views.

Related files:
    - services/: ConnectOnboardingService, PayoutEligibilityGate, PlatformSettings
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/connect/create-or-link/   - Create or return Connect account
    POST /api/v1/payments/connect/onboarding-link/  - Hosted onboarding URL
    GET  /api/v1/payments/connect/status/           - Refresh payout readiness
    GET  /api/v1/payments/settings/fees/            - Current fee settings (public)
    GET  /api/v1/payments/admin/settings/fees/      - Current fee settings (admin)
    POST /api/v1/payments/admin/settings/fees/      - Update fee settings (admin)

Security:
    - Connect endpoints require authentication
    - Admin fee settings require is_staff
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from core.views import ApplicationErrorMixin
from payments.adapters import StripeAdapter
from payments.serializers import (
    ConnectAccountRequestSerializer,
    ConnectAccountResponseSerializer,
    ConnectStatusSerializer,
    FeeSettingsSerializer,
    OnboardingLinkRequestSerializer,
    OnboardingLinkResponseSerializer,
)
from payments.services import ConnectOnboardingService, PayoutEligibilityGate, PlatformSettings

logger = logging.getLogger(__name__)


class ConnectAPIView(ApplicationErrorMixin, APIView):
    """Authenticated Connect view with an injectable gateway."""

    permission_classes = [IsAuthenticated]
    stripe_adapter = StripeAdapter


# =============================================================================
# Stripe Connect
# =============================================================================


class ConnectCreateOrLinkView(ConnectAPIView):
    """
    Create the caller's Express account, or return the linked one.

    POST /api/v1/payments/connect/create-or-link/

    Request body:
        {"country": "US"}  (optional, defaults to CONNECT_DEFAULT_COUNTRY)
    """

    @extend_schema(
        operation_id="connect_create_or_link",
        summary="Create or link payout account",
        request=ConnectAccountRequestSerializer,
        responses={200: ConnectAccountResponseSerializer},
        tags=["Connect"],
    )
    def post(self, request):
        serializer = ConnectAccountRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = ConnectOnboardingService(stripe_adapter=self.stripe_adapter)
        account_id, created = service.create_or_link(
            request.user, country=serializer.validated_data.get("country")
        )
        return Response(
            ConnectAccountResponseSerializer(
                {
                    "account_id": account_id,
                    "created": created,
                    "payout_status": request.user.payout_status,
                }
            ).data
        )


class ConnectOnboardingLinkView(ConnectAPIView):
    """
    Hosted onboarding URL for the caller's Connect account.

    POST /api/v1/payments/connect/onboarding-link/
    """

    @extend_schema(
        operation_id="connect_onboarding_link",
        summary="Create onboarding link",
        request=OnboardingLinkRequestSerializer,
        responses={
            200: OnboardingLinkResponseSerializer,
            400: OpenApiResponse(description="No payout account linked"),
        },
        tags=["Connect"],
    )
    def post(self, request):
        serializer = OnboardingLinkRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = ConnectOnboardingService(stripe_adapter=self.stripe_adapter)
        url = service.onboarding_link(request.user, **serializer.validated_data)
        return Response({"url": url})


class ConnectStatusView(ConnectAPIView):
    """
    Re-read the caller's Connect account and persist payout readiness.

    GET /api/v1/payments/connect/status/

    Returns UNSET with all flags false when no account is linked.
    """

    @extend_schema(
        operation_id="connect_status",
        summary="Payout readiness",
        responses={200: ConnectStatusSerializer},
        tags=["Connect"],
    )
    def get(self, request):
        gate = PayoutEligibilityGate(stripe_adapter=self.stripe_adapter)
        payout_status, account = gate.refresh(request.user)
        return Response(
            ConnectStatusSerializer(
                {
                    "payout_status": payout_status,
                    "charges_enabled": bool(account and account.charges_enabled),
                    "payouts_enabled": bool(account and account.payouts_enabled),
                    "requirements": account.requirements if account is not None else {},
                }
            ).data
        )


# =============================================================================
# Fee settings
# =============================================================================


class FeeSettingsView(ApplicationErrorMixin, APIView):
    """
    Current fee settings, readable by anyone.

    GET /api/v1/payments/settings/fees/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="get_fee_settings",
        summary="Fee settings",
        responses={200: FeeSettingsSerializer},
        tags=["Settings"],
    )
    def get(self, request):
        return Response(FeeSettingsSerializer(PlatformSettings.get_fee_settings()).data)


class AdminFeeSettingsView(ApplicationErrorMixin, APIView):
    """
    Read and update fee settings.

    GET  /api/v1/payments/admin/settings/fees/
    POST /api/v1/payments/admin/settings/fees/

    Request body (any subset):
        {"platform_fee_percent": 5, "deposit_percentage": 10,
         "payment_fee_percent": 2.9, "final_cap_percent": 125}
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        operation_id="admin_get_fee_settings",
        summary="Fee settings (admin)",
        responses={200: FeeSettingsSerializer},
        tags=["Settings"],
    )
    def get(self, request):
        return Response(FeeSettingsSerializer(PlatformSettings.get_fee_settings()).data)

    @extend_schema(
        operation_id="admin_update_fee_settings",
        summary="Update fee settings (admin)",
        request=FeeSettingsSerializer,
        responses={
            200: FeeSettingsSerializer,
            400: OpenApiResponse(description="Value out of range"),
        },
        tags=["Settings"],
    )
    def post(self, request):
        serializer = FeeSettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        updated = PlatformSettings.update_fee_settings(
            serializer.validated_data, updated_by=request.user
        )
        return Response(FeeSettingsSerializer(updated).data)
