"""
DRF exception handler for application errors.

Registered in settings:

    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handlers.application_exception_handler",
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def application_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    Render BaseApplicationError subclasses with their own status and payload.

    Everything else (serializer validation, authentication, permissions)
    goes through DRF's default handler.
    """
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"API error {exc.error_code}: {exc.message}",
            extra={
                "error_code": exc.error_code,
                "view": view.__class__.__name__ if view else None,
            },
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
