"""
API views for bookings and their escrow lifecycle.

Endpoints:
    GET  /api/v1/bookings/                       - List caller's bookings (?status=)
    POST /api/v1/bookings/                       - Provider creates a booking request
    GET  /api/v1/bookings/{id}/                  - Booking detail
    POST /api/v1/bookings/{id}/respond/          - Homeowner accepts or declines
    POST /api/v1/bookings/{id}/cancel/           - Either party cancels before funding
    POST /api/v1/bookings/{id}/flag/             - Admin marks disputed / no_show
    POST /api/v1/bookings/{id}/payment-intent/   - Flat-fee checkout intent
    POST /api/v1/bookings/{id}/complete/         - Flat-fee complete and payout

    POST /api/v1/escrow/{id}/deposit/            - Pay deposit
    POST /api/v1/escrow/{id}/start/              - Provider starts work
    POST /api/v1/escrow/{id}/propose-final/      - Provider proposes final amount
    POST /api/v1/escrow/{id}/approve-final/      - Homeowner approves final amount
    POST /api/v1/escrow/{id}/settle/             - Pay out net of fee and retainage
    POST /api/v1/escrow/{id}/release-retainage/  - Pay out held retainage
    GET  /api/v1/escrow/{id}/ledger/             - Ledger entries of the booking

Design Decisions:
    - Views validate request shape and delegate to BookingService/EscrowService
    - Domain errors are rendered by ApplicationErrorMixin with their own status
    - The gateway adapter is a class attribute so tests can swap it
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.serializers import (
    ApproveFinalSerializer,
    BookingCreateSerializer,
    BookingFlagSerializer,
    BookingRespondSerializer,
    BookingSerializer,
    CheckoutIntentSerializer,
    DepositSerializer,
    EscrowStateSerializer,
    ProposeFinalSerializer,
    SettleSerializer,
)
from bookings.services import BookingService, EscrowService
from core.views import ApplicationErrorMixin
from payments.adapters import StripeAdapter
from payments.ledger import EscrowLedger
from payments.serializers import LedgerEntrySerializer

ERROR_RESPONSES = {
    400: OpenApiResponse(description="Validation error"),
    402: OpenApiResponse(description="Payment method required or card declined"),
    403: OpenApiResponse(description="Caller may not perform this action"),
    404: OpenApiResponse(description="Booking not found"),
    409: OpenApiResponse(description="Invalid status, stale record or payout not ready"),
}


class BookingAPIView(ApplicationErrorMixin, APIView):
    """Authenticated view with domain error rendering and an injectable gateway."""

    permission_classes = [IsAuthenticated]
    stripe_adapter = StripeAdapter

    def get_escrow_service(self) -> EscrowService:
        return EscrowService(stripe_adapter=self.stripe_adapter)

    def get_booking_service(self) -> BookingService:
        return BookingService(stripe_adapter=self.stripe_adapter)


# =============================================================================
# Bookings
# =============================================================================


class BookingListCreateView(BookingAPIView):
    @extend_schema(
        operation_id="list_bookings",
        summary="List bookings",
        parameters=[
            OpenApiParameter("status", OpenApiTypes.STR, description="Filter by status"),
        ],
        responses={200: BookingSerializer(many=True)},
        tags=["Bookings"],
    )
    def get(self, request):
        bookings = BookingService.list_for_user(request.user, request.query_params.get("status"))
        return Response(BookingSerializer(bookings, many=True).data)

    @extend_schema(
        operation_id="create_booking",
        summary="Create booking request",
        description="Provider requests to work for a homeowner. The platform fee is added to the subtotal.",
        request=BookingCreateSerializer,
        responses={201: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = BookingService.create_booking(seller=request.user, **serializer.validated_data)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)


class BookingDetailView(BookingAPIView):
    @extend_schema(
        operation_id="get_booking",
        summary="Get booking",
        responses={200: BookingSerializer, 404: ERROR_RESPONSES[404]},
        tags=["Bookings"],
    )
    def get(self, request, booking_id):
        booking = BookingService.get_for_participant(booking_id, request.user)
        return Response(BookingSerializer(booking).data)


class BookingRespondView(BookingAPIView):
    @extend_schema(
        operation_id="respond_booking",
        summary="Accept or decline a request",
        request=BookingRespondSerializer,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        serializer = BookingRespondSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = BookingService.respond(
            booking_id, request.user, accept=serializer.validated_data["accept"]
        )
        return Response(BookingSerializer(booking).data)


class BookingCancelView(BookingAPIView):
    @extend_schema(
        operation_id="cancel_booking",
        summary="Cancel before funding",
        request=None,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        booking = BookingService.cancel(booking_id, request.user)
        return Response(BookingSerializer(booking).data)


class BookingFlagView(BookingAPIView):
    @extend_schema(
        operation_id="flag_booking",
        summary="Flag booking (admin)",
        request=BookingFlagSerializer,
        responses={200: BookingSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        serializer = BookingFlagSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = BookingService.flag(booking_id, request.user, serializer.validated_data["status"])
        return Response(BookingSerializer(booking).data)


class BookingPaymentIntentView(BookingAPIView):
    @extend_schema(
        operation_id="create_checkout_intent",
        summary="Create flat-fee checkout intent",
        description="Unconfirmed PaymentIntent for the booking total; "
        "the client confirms it and the webhook marks the booking paid.",
        request=None,
        responses={200: CheckoutIntentSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        result = self.get_booking_service().create_checkout_intent(booking_id, request.user)
        return Response(CheckoutIntentSerializer(result).data)


class BookingCompleteView(BookingAPIView):
    @extend_schema(
        operation_id="complete_booking",
        summary="Complete flat-fee booking and pay out",
        request=None,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Bookings"],
    )
    def post(self, request, booking_id):
        booking = self.get_escrow_service().complete_and_payout(booking_id, request.user)
        return Response(EscrowStateSerializer(booking).data)


# =============================================================================
# Escrow
# =============================================================================


class DepositView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_deposit",
        summary="Pay deposit",
        description="Charges deposit_percentage of the total (accepted -> funded).",
        request=DepositSerializer,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = DepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_escrow_service().pay_deposit(
            booking_id, request.user, **serializer.validated_data
        )
        return Response(EscrowStateSerializer(booking).data)


class StartWorkView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_start",
        summary="Start work",
        request=None,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        booking = self.get_escrow_service().start_work(booking_id, request.user)
        return Response(EscrowStateSerializer(booking).data)


class ProposeFinalView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_propose_final",
        summary="Propose final amount",
        description=(
            "Provider only. Capped at final_cap_percent of the deposit "
            "unless the provider is an admin."
        ),
        request=ProposeFinalSerializer,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = ProposeFinalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_escrow_service().propose_final(
            booking_id, request.user, **serializer.validated_data
        )
        return Response(EscrowStateSerializer(booking).data)


class ApproveFinalView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_approve_final",
        summary="Approve final amount",
        description="Charges or refunds the delta. 402 with delta_cents when a payment method is needed.",
        request=ApproveFinalSerializer,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = ApproveFinalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_escrow_service().approve_final(
            booking_id,
            request.user,
            agree=serializer.validated_data["agree"],
            payment_method_id=serializer.validated_data.get("payment_method_id") or None,
        )
        return Response(EscrowStateSerializer(booking).data)


class SettleView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_settle",
        summary="Settle",
        description="Transfers the funded amount net of platform fee and retainage.",
        request=SettleSerializer,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        serializer = SettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking = self.get_escrow_service().settle(
            booking_id,
            request.user,
            retainage_bps=serializer.validated_data.get("retainage_bps"),
        )
        return Response(EscrowStateSerializer(booking).data)


class ReleaseRetainageView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_release_retainage",
        summary="Release retainage",
        request=None,
        responses={200: EscrowStateSerializer, **ERROR_RESPONSES},
        tags=["Escrow"],
    )
    def post(self, request, booking_id):
        booking = self.get_escrow_service().release_retainage(booking_id, request.user)
        return Response(EscrowStateSerializer(booking).data)


class EscrowLedgerView(BookingAPIView):
    @extend_schema(
        operation_id="escrow_ledger",
        summary="Ledger entries",
        responses={200: LedgerEntrySerializer(many=True), 404: ERROR_RESPONSES[404]},
        tags=["Escrow"],
    )
    def get(self, request, booking_id):
        booking = BookingService.get_for_participant(booking_id, request.user)
        entries = EscrowLedger.entries_for_booking(booking.id)
        return Response(
            {
                "booking_id": str(booking.id),
                "escrow_balance_cents": booking.amount_funded_cents,
                "entries": LedgerEntrySerializer(entries, many=True).data,
            }
        )
