"""
Project-wide DRF exception handler.

Every error leaves the API as {"error": "<message>"}; validation errors keep
the field breakdown under "details".
"""
import logging

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.utils.logging import safe_extra

logger = logging.getLogger(__name__)


def _first_message(data) -> str:
    if isinstance(data, dict):
        if "detail" in data:
            return _first_message(data["detail"])
        for key, value in data.items():
            message = _first_message(value)
            if key == "non_field_errors":
                return message
            return f"{key}: {message}"
        return ""
    if isinstance(data, (list, tuple)):
        return _first_message(data[0]) if data else ""
    return str(data)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception("api.unhandled_exception", extra=safe_extra({
            "view": view.__class__.__name__ if view is not None else None,
            "error": str(exc),
        }), exc_info=exc)
        return Response({"error": "Internal server error"}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    body = {"error": _first_message(response.data) or "Request failed"}
    if isinstance(exc, ValidationError) and isinstance(response.data, dict):
        body["details"] = response.data
    response.data = body
    return response
