"""
Authentication views.

Token issuance is delegated to rest_framework_simplejwt; this module only
exposes the resolved caller identity the escrow endpoints act on.
"""

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.serializers import CurrentUserSerializer


class CurrentUserView(APIView):
    """GET /api/v1/auth/me/"""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="auth_me",
        summary="Current user",
        description="Return the authenticated user with payout readiness.",
        responses={200: OpenApiResponse(response=CurrentUserSerializer)},
        tags=["Authentication"],
    )
    def get(self, request):
        return Response(CurrentUserSerializer(request.user).data)
