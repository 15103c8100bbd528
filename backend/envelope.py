# backend/envelope.py
"""
PATH: backend/envelope.py

RESPONSE ENVELOPE

Every JSON response of the API has the same outer shape:

    {"success": bool, "data": ..., "error": str, "message": str}

- success_response(): 2xx payloads
- error_response(): domain failures mapped by views (400/404/500)
- envelope_exception_handler(): DRF framework errors (401/403/405/429, parse errors)
  and datastore failures that escape a view (500)
"""

from __future__ import annotations

import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler, set_rollback

logger = logging.getLogger("backend")


def success_response(data=None, *, message: str | None = None, http_status=status.HTTP_200_OK):
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return Response(body, status=http_status)


def error_response(error: str, *, http_status=status.HTTP_400_BAD_REQUEST, details=None):
    body = {"success": False, "error": error}
    if details:
        body["details"] = details
    return Response(body, status=http_status)


def first_error_message(errors) -> str:
    """
    Flatten DRF serializer errors into one readable line: "field: message".
    """
    if isinstance(errors, dict):
        for field, value in errors.items():
            inner = first_error_message(value)
            if field == "non_field_errors":
                return inner
            return f"{field}: {inner}"
        return "Invalid request"
    if isinstance(errors, (list, tuple)):
        return first_error_message(errors[0]) if errors else "Invalid request"
    return str(errors)


def envelope_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        if isinstance(exc, DatabaseError):
            set_rollback()
            view = context.get("view")
            logger.exception(
                "Datastore failure while handling request",
                extra={"view": type(view).__name__ if view else None},
            )
            return error_response(
                "Service temporarily unavailable",
                http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return None

    data = response.data
    if isinstance(data, dict) and "detail" in data and len(data) == 1:
        error = str(data["detail"])
        details = None
    else:
        error = first_error_message(data)
        details = data

    response.data = {"success": False, "error": error}
    if details:
        response.data["details"] = details
    return response
