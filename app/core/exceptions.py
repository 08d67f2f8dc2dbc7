"""
Base exception classes and the API exception handler.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input or payload validation failures
    │   └── InvalidRequestError - Malformed request shape (e.g. neither ids nor "all")
    ├── NotFoundError - Resource not found
    └── ExternalServiceError - Third-party service failures (push services)

Every class carries a default error code and the HTTP status that
api_exception_handler answers with.

Usage:
    from core.exceptions import ValidationError

    raise ValidationError(
        "Unknown payload keys for order_created",
        error_code="INVALID_PAYLOAD",
        details={"unexpected": ["foo"]},
    )

Note:
    DRF still owns serializer validation and authentication errors; the
    handler only normalises the 401 body so token internals never leak.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.utils.translation import gettext_lazy as _
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)

AUTHENTICATION_REQUIRED_MESSAGE = _("Unauthorized. Please sign in.")


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, metadata, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Unknown payload keys",
                "error_code": "INVALID_PAYLOAD",
                "details": {"unexpected": ["foo"]}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Raised when service-layer validation fails (payloads, target map files)."""

    default_error_code: str = "VALIDATION_ERROR"


class InvalidRequestError(ValidationError):
    """Raised when a request is well-typed but asks for nothing (or two things) at once."""

    default_error_code: str = "INVALID_REQUEST"


class NotFoundError(BaseApplicationError):
    default_error_code: str = "NOT_FOUND"
    http_status: int = status.HTTP_404_NOT_FOUND


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Note:
        Log the original error for debugging but don't expose
        internal details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = status.HTTP_502_BAD_GATEWAY


def api_exception_handler(exc, context):
    """
    DRF exception handler (REST_FRAMEWORK["EXCEPTION_HANDLER"]).

    - BaseApplicationError subclasses become ``exc.to_dict()`` with their status
    - NotAuthenticated / AuthenticationFailed become a generic, translatable 401
    - Everything else falls through to DRF's default handler
    """
    if isinstance(exc, BaseApplicationError):
        logger.info(f"Application error in {context.get('view').__class__.__name__}: {exc}")
        return Response(exc.to_dict(), status=exc.http_status)

    response = drf_exception_handler(exc, context)

    if response is not None and isinstance(
        exc, (drf_exceptions.NotAuthenticated, drf_exceptions.AuthenticationFailed)
    ):
        response.data = {
            "detail": str(AUTHENTICATION_REQUIRED_MESSAGE),
            "code": "not_authenticated",
        }

    return response
