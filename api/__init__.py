"""API modules for HTTP interface."""

from api.base import (
    ErrorBody,
    error_response,
    ErrorCodes,
)
