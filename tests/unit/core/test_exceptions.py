"""
Tests for custom exception hierarchy.

WHY: Comprehensive exception testing ensures:
1. Exceptions serialize correctly without leaking sensitive data
2. HTTP status codes map correctly
3. Authorization failures stay distinct from missing data
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from assetdesk.core.exceptions import (
    AppException,
    AuthorizationDenied,
    AuthorizationError,
    InsufficientPermissionsError,
    ValidationError,
    InvalidQueryError,
    InvalidRecordKindError,
    RecordNotFoundError,
    ResourceNotFoundError,
    StorageWriteError,
    RecordAlreadyExistsError,
    HierarchyConflictError,
    InvitationExpiredError,
    AIQuotaExceededError,
    AIServiceUnavailableError,
)
from assetdesk.core.exception_handlers import app_exception_handler


class TestAppException:
    """Test base AppException class."""

    def test_default_message(self):
        exc = AppException()
        assert exc.message == "An unexpected error occurred"
        assert exc.status_code == 500

    def test_custom_message_and_status(self):
        exc = AppException(message="Custom error message", status_code=418)
        assert exc.message == "Custom error message"
        assert exc.status_code == 418

    def test_to_dict_filters_sensitive_context(self):
        """Verify secrets never reach the response body."""
        exc = AppException(token="abc", api_key="xyz", path="organizations/o1/assets/a1")
        data = exc.to_dict()

        assert data["error"] == "AppException"
        assert data["details"] == {"path": "organizations/o1/assets/a1"}

    def test_to_dict_without_context(self):
        assert AppException().to_dict()["details"] is None


class TestStatusCodes:
    """Test HTTP status mapping for the domain exceptions."""

    @pytest.mark.parametrize(
        "exc_class,status",
        [
            (AuthorizationDenied, 403),
            (InsufficientPermissionsError, 403),
            (ValidationError, 400),
            (InvalidQueryError, 400),
            (InvalidRecordKindError, 400),
            (RecordNotFoundError, 404),
            (StorageWriteError, 500),
            (RecordAlreadyExistsError, 409),
            (HierarchyConflictError, 422),
            (InvitationExpiredError, 410),
            (AIQuotaExceededError, 429),
            (AIServiceUnavailableError, 503),
        ],
    )
    def test_status_code(self, exc_class, status):
        assert exc_class().status_code == status

    def test_authorization_denied_is_not_a_missing_resource(self):
        """Non-membership must never be confused with a missing record."""
        exc = AuthorizationDenied()
        assert isinstance(exc, AuthorizationError)
        assert not isinstance(exc, ResourceNotFoundError)

    def test_record_already_exists_is_a_write_failure(self):
        assert issubclass(RecordAlreadyExistsError, StorageWriteError)


class TestExceptionHandler:
    """Test the FastAPI handler produces the error envelope."""

    def test_handler_returns_json_envelope(self):
        app = FastAPI()
        app.add_exception_handler(AppException, app_exception_handler)

        @app.get("/boom")
        async def boom():
            raise RecordNotFoundError(message="Asset not found", asset_id="a1")

        response = TestClient(app).get("/boom")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "RecordNotFoundError"
        assert body["message"] == "Asset not found"
        assert body["details"] == {"asset_id": "a1"}
