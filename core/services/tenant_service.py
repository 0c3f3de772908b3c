"""
Tenant service for the system-admin console.

Tenants are created and renamed by SYSTEM_ADMIN callers only (enforced by
the router guard). Deletion is not supported.
"""

import logging

from clients.postgres_client import PostgresClient
from auth.security_logger import SecurityLogger, SecurityEvent
from core.audit import AuditLogger, AuditAction
from core.exceptions import NotFoundError
from core.models import Tenant, TenantCreate, TenantSummary, TenantUpdate
from utils.tenant_context import get_current_identity
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_SUMMARY_SQL = """
    SELECT t.id, t.name, t.created_at,
           (SELECT COUNT(*) FROM users u WHERE u.tenant_id = t.id) AS user_count,
           (SELECT COUNT(*) FROM clients c WHERE c.tenant_id = t.id) AS client_count,
           (SELECT COUNT(*) FROM invoices i WHERE i.tenant_id = t.id) AS invoice_count
    FROM tenants t
"""


class TenantService:
    """Service for tenant operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, security_logger: SecurityLogger):
        self.postgres = postgres
        self.audit = audit
        self.security_logger = security_logger

    def create(self, data: TenantCreate) -> Tenant:
        """Create a new tenant."""
        row = self.postgres.execute_returning(
            "INSERT INTO tenants (name, created_at) VALUES (%s, %s) RETURNING *",
            (data.name, now_utc())
        )[0]

        tenant = Tenant.model_validate(row)

        self.audit.log_change(
            entity_type="tenant",
            entity_id=tenant.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json")},
            tenant_id=tenant.id
        )
        identity = get_current_identity()
        self.security_logger.log(
            SecurityEvent.TENANT_CREATED,
            email=identity.email,
            user_id=identity.user_id,
            details={"tenant_id": tenant.id, "name": tenant.name},
        )

        return tenant

    def get(self, tenant_id: int) -> TenantSummary:
        """
        Get tenant with its user/client/invoice counts.

        Raises:
            NotFoundError: No such tenant
        """
        row = self.postgres.execute_single(f"{_SUMMARY_SQL} WHERE t.id = %s", (tenant_id,))
        if row is None:
            raise NotFoundError("Tenant not found")
        return TenantSummary.model_validate(row)

    def list_all(self) -> list[TenantSummary]:
        """All tenants with counts, newest first."""
        rows = self.postgres.execute(f"{_SUMMARY_SQL} ORDER BY t.created_at DESC")
        return [TenantSummary.model_validate(row) for row in rows]

    def update(self, tenant_id: int, data: TenantUpdate) -> TenantSummary:
        """
        Rename a tenant.

        Raises:
            NotFoundError: No such tenant
        """
        current = self.get(tenant_id)
        if current.name == data.name:
            return current

        self.postgres.execute_returning(
            "UPDATE tenants SET name = %s WHERE id = %s RETURNING id",
            (data.name, tenant_id)
        )

        self.audit.log_change(
            entity_type="tenant",
            entity_id=tenant_id,
            action=AuditAction.UPDATE,
            changes={"name": {"old": current.name, "new": data.name}},
            tenant_id=tenant_id
        )

        return current.model_copy(update={"name": data.name})
