"""
Tests for the application exception hierarchy, the API exception handler
and the health check.
"""

from django.db import DatabaseError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status

from core.exceptions import (
    ExternalServiceError,
    NotFoundError,
    ValidationError,
    api_exception_handler,
)


class _View:
    pass


CONTEXT = {"view": _View()}


class TestApplicationErrors:
    def test_to_dict(self):
        error = ValidationError("Bad", error_code="INVALID_PAYLOAD", details={"a": ["b"]})

        assert error.to_dict() == {
            "error": "Bad",
            "error_code": "INVALID_PAYLOAD",
            "details": {"a": ["b"]},
        }
        assert str(error) == "[INVALID_PAYLOAD] Bad"

    def test_defaults(self):
        assert NotFoundError("x").http_status == status.HTTP_404_NOT_FOUND
        assert ExternalServiceError("x").error_code == "EXTERNAL_SERVICE_ERROR"


class TestApiExceptionHandler:
    """
    Verifies:
    - Application errors answer with their own status and body
    - Authentication failures become a generic 401
    - Other DRF errors keep DRF's default handling
    """

    def test_application_error(self):
        response = api_exception_handler(NotFoundError("User 9 not found"), CONTEXT)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {"error": "User 9 not found", "error_code": "NOT_FOUND"}

    def test_authentication_failed_is_generic(self):
        exc = drf_exceptions.AuthenticationFailed("Token is expired, signature 0xdead")

        response = api_exception_handler(exc, CONTEXT)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data == {
            "detail": "Unauthorized. Please sign in.",
            "code": "not_authenticated",
        }

    def test_other_drf_errors_untouched(self):
        response = api_exception_handler(
            drf_exceptions.ValidationError({"endpoint": ["Required."]}), CONTEXT
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {"endpoint": ["Required."]}

    def test_unknown_exceptions_are_not_handled(self):
        assert api_exception_handler(RuntimeError("bug"), CONTEXT) is None


class TestHealthCheck:
    def test_healthy(self, client, db):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "database": "connected",
            "cache": "connected",
        }

    def test_database_down(self, client, db, mocker):
        mocker.patch(
            "core.views.connection.cursor", side_effect=DatabaseError("refused")
        )

        response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
