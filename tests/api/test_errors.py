"""Tests for the exception -> status/code mapping."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.errors import register_error_handlers
from auth.exceptions import (
    InvalidCredentialError,
    InvalidCredentialsError,
    RateLimitedError,
    UnauthorizedError,
)
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    MissingTenantIdError,
    NotFoundError,
    TenantContextRequiredError,
    ValidationFailedError,
)


@pytest.fixture
def raising_client():
    """App with one route that raises whatever the test stores in `app.state.exc`."""
    app = FastAPI()
    register_error_handlers(app)

    @app.get("/boom")
    async def boom():
        raise app.state.exc

    def call(exc):
        app.state.exc = exc
        return TestClient(app, raise_server_exceptions=False).get("/boom")

    return call


@pytest.mark.parametrize(
    "exc, status, code",
    [
        (ValidationFailedError(), 400, "VALIDATION_ERROR"),
        (MissingTenantIdError(), 400, "VALIDATION_ERROR"),
        (UnauthorizedError("no token"), 401, "NOT_AUTHENTICATED"),
        (InvalidCredentialError("expired"), 401, "INVALID_TOKEN"),
        (InvalidCredentialsError("bad password"), 401, "INVALID_CREDENTIALS"),
        (ForbiddenError("nope"), 403, "FORBIDDEN"),
        (TenantContextRequiredError("no tenant"), 403, "TENANT_CONTEXT_REQUIRED"),
        (NotFoundError("Client not found"), 404, "NOT_FOUND"),
        (ConflictError("Email already in use"), 409, "CONFLICT"),
        (RateLimitedError(30), 429, "RATE_LIMITED"),
    ],
)
def test_status_and_code(raising_client, exc, status, code):
    response = raising_client(exc)

    assert response.status_code == status
    assert response.json()["code"] == code


def test_validation_details_included(raising_client):
    response = raising_client(ValidationFailedError.for_field("email", "Invalid email"))

    assert response.json() == {
        "error": "Validation failed",
        "code": "VALIDATION_ERROR",
        "details": [{"field": "email", "message": "Invalid email"}],
    }


def test_rate_limited_sets_retry_after(raising_client):
    response = raising_client(RateLimitedError(42))

    assert response.headers["Retry-After"] == "42"


def test_token_errors_do_not_leak_reason(raising_client):
    response = raising_client(InvalidCredentialError("signature mismatch for user 5"))

    assert response.json()["error"] == "Invalid or expired token"


def test_unexpected_error_is_generic_500(raising_client):
    response = raising_client(RuntimeError("connection string postgres://secret"))

    assert response.status_code == 500
    assert response.json() == {"error": "An internal error occurred", "code": "INTERNAL_ERROR"}
