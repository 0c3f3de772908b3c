"""Global exception handlers for FastAPI.

Every typed error maps to exactly one status code here; routers and
services just raise.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from api.base import error_response, ErrorCodes
from auth.exceptions import (
    InvalidCredentialError,
    InvalidCredentialsError,
    RateLimitedError,
    UnauthorizedError,
)
from core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    TenantContextRequiredError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors to [{field, message}], dropping the body/query prefix."""
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc) or None,
            "message": error.get("msg", "Invalid value"),
        })
    return jsonable_encoder(details)


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(ValidationFailedError)
    async def validation_failed_handler(request: Request, exc: ValidationFailedError):
        return error_response(
            400,
            ErrorCodes.VALIDATION_ERROR,
            str(exc),
            details=exc.details or None,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(
            400,
            ErrorCodes.VALIDATION_ERROR,
            "Validation failed",
            details=_validation_details(exc),
        )

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError):
        return error_response(401, ErrorCodes.NOT_AUTHENTICATED, str(exc))

    @app.exception_handler(InvalidCredentialError)
    async def invalid_token_handler(request: Request, exc: InvalidCredentialError):
        return error_response(401, ErrorCodes.INVALID_TOKEN, "Invalid or expired token")

    @app.exception_handler(InvalidCredentialsError)
    async def invalid_credentials_handler(request: Request, exc: InvalidCredentialsError):
        return error_response(401, ErrorCodes.INVALID_CREDENTIALS, "Invalid credentials")

    @app.exception_handler(ForbiddenError)
    async def forbidden_handler(request: Request, exc: ForbiddenError):
        code = (
            ErrorCodes.TENANT_CONTEXT_REQUIRED
            if isinstance(exc, TenantContextRequiredError)
            else ErrorCodes.FORBIDDEN
        )
        return error_response(403, code, str(exc) or "Forbidden")

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return error_response(404, ErrorCodes.NOT_FOUND, str(exc) or "Not found")

    @app.exception_handler(ConflictError)
    async def conflict_handler(request: Request, exc: ConflictError):
        return error_response(409, ErrorCodes.CONFLICT, str(exc))

    @app.exception_handler(RateLimitedError)
    async def rate_limited_handler(request: Request, exc: RateLimitedError):
        return error_response(
            429,
            ErrorCodes.RATE_LIMITED,
            f"Too many requests. Please wait {exc.retry_after_seconds} seconds.",
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return error_response(
            500,
            ErrorCodes.INTERNAL_ERROR,
            "An internal error occurred",
        )
