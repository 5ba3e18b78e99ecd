"""
Tests for error classes and handlers.

Verifies:
- Each error class carries its status code and error code
- The error envelope shape and correlation header
- Unhandled exceptions never leak details to clients
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from access_core.platform.errors import (
    AppError,
    AuthenticationError,
    ConflictError,
    PermissionDeniedError,
    RateLimitError,
    ValidationError,
    register_error_handlers,
)


# ============================================================================
# ERROR CLASSES
# ============================================================================

class TestErrorClasses:

    @pytest.mark.parametrize("error,status_code,code", [
        (ValidationError("bad"), 400, "VALIDATION_ERROR"),
        (AuthenticationError(), 401, "UNAUTHORIZED"),
        (PermissionDeniedError(), 403, "FORBIDDEN"),
        (ConflictError("taken"), 409, "CONFLICT"),
        (RateLimitError(retry_after=7), 429, "RATE_LIMITED"),
    ])
    def test_status_and_code(self, error, status_code, code):
        assert isinstance(error, AppError)
        assert error.status_code == status_code
        assert error.code == code

    def test_rate_limit_error_sets_retry_after(self):
        error = RateLimitError(retry_after=7)

        assert error.headers == {"Retry-After": "7"}
        assert error.details == {"retry_after_seconds": 7}

    def test_envelope(self):
        error = PermissionDeniedError("nope", details={"reason": "FORBIDDEN"})

        assert error.to_dict() == {
            "error": {"code": "FORBIDDEN", "message": "nope", "details": {"reason": "FORBIDDEN"}},
        }


# ============================================================================
# HANDLERS
# ============================================================================

class TestErrorHandlers:

    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/forbidden")
        async def forbidden():
            raise PermissionDeniedError("No entitlement")

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internal detail")

        return TestClient(app, raise_server_exceptions=False)

    def test_app_error_response(self, client):
        response = client.get("/forbidden", headers={"X-Correlation-ID": "corr-123"})

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"
        assert response.headers["X-Correlation-ID"] == "corr-123"

    def test_unhandled_exception_is_opaque(self, client):
        response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "secret internal detail" not in response.text
