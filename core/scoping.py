"""
Tenant scoping rule applied to every tenant-owned data access.

Filters are plain {column: value} dicts. Services scope them, then render
them with where_clause(). SYSTEM_ADMIN callers are never filtered implicitly;
every other caller is pinned to their own tenant, whatever the request says.
"""

from typing import Any

from core.exceptions import MissingTenantIdError, TenantContextRequiredError
from core.models import Identity

TENANT_COLUMN = "tenant_id"


def scope(filters: dict[str, Any], identity: Identity, enforce: bool = True) -> dict[str, Any]:
    """
    Apply tenant scoping to a filter predicate.

    Args:
        filters: Caller-built filters (may already contain tenant_id)
        identity: The authenticated caller
        enforce: Fail when a non-admin caller has no tenant

    Returns:
        New filter dict. Unchanged for SYSTEM_ADMIN; for everyone else the
        caller's tenant_id overrides any supplied tenant_id.

    Raises:
        TenantContextRequiredError: Non-admin caller without a tenant (enforce=True)
    """
    if identity.is_system_admin:
        return dict(filters)

    if identity.tenant_id is None:
        if enforce:
            raise TenantContextRequiredError("Forbidden - Tenant context required")
        return dict(filters)

    return {**filters, TENANT_COLUMN: identity.tenant_id}


def resolve_target_tenant(identity: Identity, requested_tenant_id: int | None) -> int:
    """
    Decide which tenant a create request writes into.

    Raises:
        MissingTenantIdError: SYSTEM_ADMIN did not name a tenant
        TenantContextRequiredError: Non-admin caller without a tenant
    """
    if identity.is_system_admin:
        if requested_tenant_id is None:
            raise MissingTenantIdError()
        return requested_tenant_id

    if identity.tenant_id is None:
        raise TenantContextRequiredError("Forbidden - Tenant context required")
    return identity.tenant_id


def where_clause(filters: dict[str, Any], alias: str | None = None) -> tuple[str, tuple]:
    """
    Render filters as a parameterized WHERE body joined with AND.

    Keys are column names chosen by service code, never by request input.
    None values render as IS NULL. An empty filter renders as TRUE.

    Example:
        where_clause({"id": x, "tenant_id": 7})
        -> ("id = %s AND tenant_id = %s", (x, 7))
    """
    if not filters:
        return "TRUE", ()

    prefix = f"{alias}." if alias else ""
    parts = []
    params = []
    for column, value in filters.items():
        if value is None:
            parts.append(f"{prefix}{column} IS NULL")
        else:
            parts.append(f"{prefix}{column} = %s")
            params.append(value)
    return " AND ".join(parts), tuple(params)
