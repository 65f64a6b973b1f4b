"""
Core views providing infrastructure endpoints and shared view behavior.

- health_check: Liveness/readiness probe
- ApplicationErrorMixin: Renders BaseApplicationError subclasses raised by
  services as JSON responses with the exception's HTTP status
"""

from __future__ import annotations

import logging

from django.db import connection
from django.http import JsonResponse
from rest_framework.response import Response

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: All systems operational
        503: Database unreachable
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    # Check database connectivity
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.exception("Health check database probe failed")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Cache failure is not critical - report it but stay healthy
    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") == "ok":
            health_status["cache"] = "connected"
        else:
            health_status["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check cache probe failed", exc_info=True)
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


class ApplicationErrorMixin:
    """
    APIView mixin translating domain exceptions into JSON responses.

    Services raise BaseApplicationError subclasses; each carries its own
    http_status, so views never map errors by hand. Anything that is not
    a domain error falls through to DRF's default handling.

    Usage:
        class DepositView(ApplicationErrorMixin, APIView):
            def post(self, request, booking_id):
                booking = EscrowService().pay_deposit(...)
                return Response(EscrowStateSerializer(booking).data)
    """

    def handle_exception(self, exc):
        if isinstance(exc, BaseApplicationError):
            log = logger.error if exc.http_status >= 500 else logger.info
            log(
                f"Request failed: {exc.error_code}",
                extra={
                    "error_code": exc.error_code,
                    "http_status": exc.http_status,
                    "view": self.__class__.__name__,
                },
            )
            return Response(self.error_payload(exc), status=exc.http_status)
        return super().handle_exception(exc)

    def error_payload(self, exc: BaseApplicationError) -> dict:
        """Response body for a domain error. Override to redact details."""
        return exc.to_dict()
