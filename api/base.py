"""Error response format shared by every endpoint."""

from typing import Any

from pydantic import BaseModel, Field
from starlette.responses import JSONResponse


class ErrorBody(BaseModel):
    """
    Body of every non-2xx response.

    Clients branch on `code`; `error` is for humans; `details` carries
    field-level validation problems when there are any.
    """

    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    details: Any | None = None


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Create a JSON error response."""
    body = ErrorBody(error=message, code=code, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


class ErrorCodes:
    """Standard error codes for consistent error handling."""

    # Authentication & Authorization
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    FORBIDDEN = "FORBIDDEN"
    TENANT_CONTEXT_REQUIRED = "TENANT_CONTEXT_REQUIRED"
    RATE_LIMITED = "RATE_LIMITED"

    # Resource Errors
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Infrastructure
    INTERNAL_ERROR = "INTERNAL_ERROR"
