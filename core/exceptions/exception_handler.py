"""
Global exception handler for the Waitly platform.

This module provides a custom exception handler for DRF that handles
custom exceptions and provides consistent error responses.
"""

import logging
from typing import Any, Dict

from django.core.exceptions import ObjectDoesNotExist
from django.db.utils import DatabaseError, IntegrityError
from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .custom_exceptions import APIException

logger = logging.getLogger(__name__)


def custom_exception_handler(exc: Exception, context: Dict[str, Any]) -> Response:
    """
    Custom exception handler for DRF views.

    Handles both DRF and custom exceptions, providing consistent response format.
    Storage failures still surface as errors; they are only reshaped here.
    """
    view = context.get("view")
    view_name = view.__class__.__name__ if view is not None else "unknown"

    if isinstance(exc, APIException):
        if exc.status_code >= 500:
            logger.error(f"{view_name}: {exc.__class__.__name__} - {exc.message}")
        else:
            logger.warning(f"{view_name}: {exc.__class__.__name__} - {exc.message}")
        return Response(exc.to_dict(), status=exc.status_code)

    if isinstance(exc, ObjectDoesNotExist):
        logger.warning(f"{view_name}: object not found - {exc}")
        return Response(
            {
                "message": str(_("The requested resource was not found.")),
                "status_code": status.HTTP_404_NOT_FOUND,
                "code": "ResourceNotFoundException",
            },
            status=status.HTTP_404_NOT_FOUND,
        )

    if isinstance(exc, IntegrityError):
        logger.error(f"{view_name}: integrity error - {exc}")
        return Response(
            {
                "message": str(_("A conflict occurred with existing data.")),
                "status_code": status.HTTP_409_CONFLICT,
                "code": "IntegrityError",
            },
            status=status.HTTP_409_CONFLICT,
        )

    response = drf_exception_handler(exc, context)

    if response is not None:
        if isinstance(response.data, dict):
            response.data["status_code"] = response.status_code
        logger.warning(f"{view_name}: {exc.__class__.__name__} - {exc}")
        return response

    if isinstance(exc, DatabaseError):
        logger.exception(f"{view_name}: database error", exc_info=exc)
        return Response(
            {
                "message": str(_("A database error occurred. Please try again later.")),
                "status_code": status.HTTP_503_SERVICE_UNAVAILABLE,
                "code": "DatabaseError",
            },
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    # Let Django's 500 handling take over for anything else
    return None
