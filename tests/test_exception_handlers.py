"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel

from quickpaste.core.errors import (
    AppError,
    CapacityAppError,
    NotFoundAppError,
    RateLimitedAppError,
    StoreUnavailableAppError,
    ValidationAppError,
)
from quickpaste.core.exception_handlers import (
    general_exception_handler,
    setup_exception_handlers,
    status_code_for,
)


class _Payload(BaseModel):
    text: str | None = None


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        "error_type, status_code",
        [
            (ValidationAppError, 400),
            (NotFoundAppError, 404),
            (RateLimitedAppError, 429),
            (StoreUnavailableAppError, 503),
            (CapacityAppError, 507),
            (AppError, 400),
        ],
    )
    def test_status_code_mapping(self, error_type, status_code):
        assert status_code_for(error_type(code="x", message="x")) == status_code

    def test_validation_error_returns_400(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError returns HTTP 400 with details."""
        @app_with_handlers.get("/test-validation")
        async def test_endpoint():
            raise ValidationAppError(
                code="text_too_long",
                message="Text exceeds maximum length",
                details={"max_value": 100000, "actual_value": 100001},
            )

        response = client.get("/test-validation")

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "text_too_long"
        assert data["error"]["message"] == "Text exceeds maximum length"
        assert data["error"]["details"]["max_value"] == 100000
        assert "request_id" in data["error"]

    def test_not_found_omits_empty_details(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-not-found")
        async def test_endpoint():
            raise NotFoundAppError(code="paste_not_found", message="Paste not found or expired")

        response = client.get("/test-not-found")

        assert response.status_code == 404
        assert "details" not in response.json()["error"]

    def test_rate_limited_sets_retry_after_and_limit_headers(
        self, client: TestClient, app_with_handlers: FastAPI
    ):
        @app_with_handlers.get("/test-rate-limited")
        async def test_endpoint():
            raise RateLimitedAppError(
                code="rate_limited",
                message="Too many requests",
                details={
                    "scope": "client",
                    "retry_after": 42,
                    "context": {"limit": 300, "remaining": 0, "reset_at": 1700000000},
                },
                retry_after=42,
            )

        response = client.get("/test-rate-limited")

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Limit"] == "300"
        assert response.headers["X-RateLimit-Remaining"] == "0"
        assert response.headers["X-RateLimit-Reset"] == "1700000000"
        assert response.json()["error"]["details"]["scope"] == "client"

    def test_store_unavailable_returns_503(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-store")
        async def test_endpoint():
            raise StoreUnavailableAppError(
                code="store_unavailable",
                message="Paste storage is temporarily unavailable",
                details={"backend": "redis"},
            )

        response = client.get("/test-store")

        assert response.status_code == 503
        assert response.json()["error"]["details"] == {"backend": "redis"}

    def test_error_response_format_is_consistent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify error responses have consistent JSON structure."""
        @app_with_handlers.get("/test-format")
        async def test_endpoint():
            raise CapacityAppError(code="code_space_exhausted", message="test")

        response = client.get("/test-format")
        data = response.json()

        assert response.status_code == 507
        assert set(data) == {"error"}
        assert {"code", "message", "request_id"} <= set(data["error"])


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_returns_500(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.get("/test-crash")
        async def test_endpoint():
            raise RuntimeError("redis password is hunter2")

        response = client.get("/test-crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "hunter2" not in response.text

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Corrupt paste record: 'code'")
        response = asyncio.run(general_exception_handler(request, exc))

        response_body = response.body if isinstance(response.body, bytes) else bytes(response.body)
        response_text = response_body.decode()
        data = json.loads(response_text)
        assert response.status_code == 500
        assert "request_id" in data["error"]
        assert "Traceback" not in response_text
        assert "ValueError" not in response_text
        assert "Corrupt" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        assert AppError in app_with_handlers.exception_handlers
        assert RequestValidationError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers


class TestRequestValidationHandler:
    """Test handler for bodies FastAPI cannot parse into the route's model."""

    def test_wrong_field_type_returns_invalid_request(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/test")
        async def test_endpoint(payload: _Payload):
            return {"ok": True}

        response = client.post("/test", json={"text": 123})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "invalid_request"
        assert "request_id" in error
        problems = error["details"]["context"]["errors"]
        assert problems[0]["loc"] == ["body", "text"]
        assert "input" not in problems[0]

    def test_non_json_body_returns_invalid_request(self, client: TestClient, app_with_handlers: FastAPI):
        @app_with_handlers.post("/test")
        async def test_endpoint(payload: _Payload):
            return {"ok": True}

        response = client.post("/test", content=b"{not json", headers={"Content-Type": "application/json"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_request"
