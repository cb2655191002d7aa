"""
Core views providing infrastructure endpoints and API error rendering.

This module contains code that is not part of the billing domain but is
essential for running it: the health check and the DRF exception handler
that turns domain errors into HTTP responses.
"""

import logging

from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"

    HTTP Status Codes:
        200: Database reachable (cache is reported but not required)
        503: Database unreachable
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
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Cache failure degrades but does not fail the check
    cache.set("health_check", "ok", timeout=1)
    if cache.get("health_check") == "ok":
        health_status["cache"] = "connected"
    else:
        health_status["cache"] = "disconnected"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)


def api_exception_handler(exc, context):
    """
    DRF exception handler for domain errors.

    - DRF's own exceptions (serializer validation, parse errors) keep the
      default rendering.
    - BaseApplicationError subclasses render as {"error", "error_code"}
      with their status_code. Server-side errors (5xx) are logged with the
      full exception and the client only sees the sanitized message.
    - Anything else is logged and answered with a generic 500.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else None

    if isinstance(exc, BaseApplicationError):
        if exc.status_code >= 500:
            logger.error(
                "Request failed with server-side error",
                extra={"view": view_name, "error_code": exc.error_code},
                exc_info=exc,
            )
        body = {"error": exc.message, "error_code": exc.error_code}
        if exc.status_code < 500 and exc.details:
            body["details"] = exc.details
        return Response(body, status=exc.status_code)

    logger.error(
        "Unhandled exception in API view",
        extra={"view": view_name},
        exc_info=exc,
    )
    return Response(
        {"error": GENERIC_ERROR_MESSAGE, "error_code": "INTERNAL_ERROR"},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
