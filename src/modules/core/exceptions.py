"""Error responses for domain failures caught in views.

DRF exceptions are rendered by ``drf-standardized-errors`` (registered as
``EXCEPTION_HANDLER``).  Views translating domain exceptions or pydantic
DTO failures use the helpers below, which emit the same envelope::

    {
        "type": "validation_error" | "client_error" | "server_error",
        "errors": [{"code": "...", "detail": "...", "attr": "..." | None}]
    }
"""

from __future__ import annotations

from typing import Optional

from drf_standardized_errors.types import ErrorType
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.response import Response


def error_response(
    detail: str,
    *,
    code: str,
    status_code: int,
    attr: Optional[str] = None,
) -> Response:
    """Build a single-error response in the standard envelope."""
    error_type = ErrorType.SERVER_ERROR if status_code >= 500 else ErrorType.CLIENT_ERROR
    return Response(
        {
            "type": error_type,
            "errors": [{"code": code, "detail": detail, "attr": attr}],
        },
        status=status_code,
    )


def pydantic_error_response(exc: PydanticValidationError) -> Response:
    """Render a pydantic DTO validation failure as a 400 envelope."""
    errors = [
        {
            "code": "invalid",
            "detail": error["msg"],
            "attr": ".".join(str(part) for part in error["loc"]) or None,
        }
        for error in exc.errors()
    ]
    return Response(
        {"type": ErrorType.VALIDATION_ERROR, "errors": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )
