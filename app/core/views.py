"""
Core views and response helpers.

- health_check: infrastructure endpoint for load balancers and Docker
- service_response: translate a ServiceResult into the API envelope

Envelope:
    success: {"success": true, "data": ...}
    failure: {"success": false, "error": "...", "error_code": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.services import ServiceResult


# Explicit codes; anything else falls back to suffix rules, then 400
ERROR_STATUS_CODES: dict[str, int] = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "LOCK_NOT_ACQUIRED": status.HTTP_409_CONFLICT,
    "DUPLICATE_DISPUTE": status.HTTP_409_CONFLICT,
    "PENDING_PAYOUT_EXISTS": status.HTTP_409_CONFLICT,
}


def status_for_error_code(error_code: str | None) -> int:
    """Map a machine-readable error code to an HTTP status."""
    if not error_code:
        return status.HTTP_400_BAD_REQUEST
    if error_code in ERROR_STATUS_CODES:
        return ERROR_STATUS_CODES[error_code]
    if error_code.endswith("_NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    if error_code.startswith("NOT_") and error_code.endswith("_OWNER"):
        return status.HTTP_403_FORBIDDEN
    if error_code.endswith("_FORBIDDEN"):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_400_BAD_REQUEST


def service_response(
    result: ServiceResult,
    serializer_class=None,
    success_status: int = status.HTTP_200_OK,
    context: dict | None = None,
) -> Response:
    """
    Build a DRF Response from a ServiceResult.

    Args:
        result: The service outcome
        serializer_class: Optional serializer applied to result.data on success
        success_status: HTTP status for the success case
        context: Serializer context (request, view)
    """
    if not result.success:
        return Response(result.to_response(), status=status_for_error_code(result.error_code))

    data = result.data
    if serializer_class is not None and data is not None:
        data = serializer_class(data, context=context or {}).data
    return Response({"success": True, "data": data}, status=success_status)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        200 with {"status": "healthy", ...} when the database answers,
        503 otherwise. Cache failures degrade but do not fail the check.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        from django.core.cache import cache

        cache.set("health_check", "ok", timeout=1)
        health_status["cache"] = (
            "connected" if cache.get("health_check") == "ok" else "disconnected"
        )
    except Exception:
        health_status["cache"] = "disconnected"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
