"""Typed exceptions for data-access failures.

Each maps to exactly one HTTP status in api/errors.py.
"""

from typing import Any


class InvoiceFlowError(Exception):
    """Base class for domain errors surfaced to API callers."""


class ValidationFailedError(InvoiceFlowError):
    """
    Payload is malformed or breaks a business rule.

    Recoverable by the caller correcting the payload. details is a list of
    field-level problems: [{"field": ..., "message": ...}].
    """

    def __init__(self, message: str = "Validation failed", details: list[dict[str, Any]] | None = None):
        self.details = details or []
        super().__init__(message)

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationFailedError":
        return cls("Validation failed", [{"field": field, "message": message}])


class NotFoundError(InvoiceFlowError):
    """
    Resource absent or outside the caller's tenant.

    The two cases are deliberately indistinguishable.
    """


class ConflictError(InvoiceFlowError):
    """Uniqueness violation or a delete blocked by dependents."""


class ForbiddenError(InvoiceFlowError):
    """Authenticated, but role or tenant membership is insufficient."""


class TenantContextRequiredError(ForbiddenError):
    """Non-admin caller has no tenant. A configuration error, not 'see everything'."""


class MissingTenantIdError(ValidationFailedError):
    """SYSTEM_ADMIN create request did not name a target tenant."""

    def __init__(self):
        super().__init__(
            "tenant_id is required when a SYSTEM_ADMIN creates tenant-owned data",
            [{"field": "tenant_id", "message": "required for SYSTEM_ADMIN callers"}],
        )
