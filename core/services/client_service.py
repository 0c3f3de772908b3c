"""
Client service for CRUD operations.

Handles client lifecycle: create (single and bulk), read, update, delete.
Every query goes through core.scoping, so non-admin callers only ever see
rows of their own tenant.
"""

import logging
from uuid import UUID, uuid4

from psycopg2 import errors

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import ConflictError, NotFoundError
from core.models import Client, ClientBulkCreate, ClientCreate, ClientUpdate
from core.scoping import resolve_target_tenant, scope, where_clause
from utils.tenant_context import get_current_identity
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

# Valid columns that can be updated
_UPDATABLE_COLUMNS = {"name", "email", "phone", "address", "company"}

# Columns a partial update may set back to NULL
_NULLABLE_COLUMNS = {"phone", "address", "company"}

_INSERT_SQL = """
    INSERT INTO clients (
        id, tenant_id, name, email, phone, address, company,
        created_at, updated_at
    ) VALUES (
        %s, %s, %s, %s, %s, %s, %s,
        %s, %s
    )
    RETURNING *
"""


class ClientService:
    """Service for client operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def create(self, data: ClientCreate) -> Client:
        """
        Create a new client.

        Args:
            data: Client creation data. tenant_id is only honored for
                SYSTEM_ADMIN callers, who must supply it.

        Returns:
            Created client

        Raises:
            MissingTenantIdError: SYSTEM_ADMIN did not name a tenant
            NotFoundError: Named tenant does not exist
        """
        identity = get_current_identity()
        tenant_id = resolve_target_tenant(identity, data.tenant_id)
        now = now_utc()

        try:
            row = self.postgres.execute_returning(
                _INSERT_SQL,
                (
                    uuid4(), tenant_id, data.name, data.email,
                    data.phone, data.address, data.company,
                    now, now
                )
            )[0]
        except errors.ForeignKeyViolation as e:
            raise NotFoundError("Tenant not found") from e

        client = Client.model_validate(row)

        self.audit.log_change(
            entity_type="client",
            entity_id=client.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)},
            tenant_id=client.tenant_id
        )

        return client

    def bulk_create(self, data: ClientBulkCreate) -> int:
        """
        Create many clients in one transaction.

        Either every row is inserted or none is.

        Returns:
            Number of clients created
        """
        identity = get_current_identity()
        rows = data.root
        tenant_ids = [resolve_target_tenant(identity, item.tenant_id) for item in rows]
        now = now_utc()

        created: list[Client] = []
        try:
            with self.postgres.transaction() as tx:
                for item, tenant_id in zip(rows, tenant_ids):
                    row = tx.execute_single(
                        _INSERT_SQL,
                        (
                            uuid4(), tenant_id, item.name, item.email,
                            item.phone, item.address, item.company,
                            now, now
                        )
                    )
                    created.append(Client.model_validate(row))
        except errors.ForeignKeyViolation as e:
            raise NotFoundError("Tenant not found") from e

        for client in created:
            self.audit.log_change(
                entity_type="client",
                entity_id=client.id,
                action=AuditAction.CREATE,
                changes={"created": client.model_dump(mode="json", include=_UPDATABLE_COLUMNS)},
                tenant_id=client.tenant_id
            )

        logger.info("Bulk created %d clients", len(created))
        return len(created)

    def get_by_id(self, client_id: UUID) -> Client | None:
        """
        Get client by ID.

        Returns:
            Client if found in a tenant the caller may see, None otherwise.
        """
        where, params = where_clause(scope({"id": client_id}, get_current_identity()))
        row = self.postgres.execute_single(
            f"SELECT * FROM clients WHERE {where}",
            params
        )

        if row is None:
            return None

        return Client.model_validate(row)

    def get(self, client_id: UUID) -> Client:
        """Get client by ID or raise NotFoundError."""
        client = self.get_by_id(client_id)
        if client is None:
            raise NotFoundError("Client not found")
        return client

    def update(self, client_id: UUID, data: ClientUpdate) -> Client:
        """
        Update client fields.

        Args:
            client_id: Client UUID
            data: Fields to update (only fields present in the payload change)

        Returns:
            Updated client

        Raises:
            NotFoundError: Client absent or in another tenant
        """
        current = self.get(client_id)

        updates = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in _NULLABLE_COLUMNS
        }
        valid_updates = {k: v for k, v in updates.items() if k in _UPDATABLE_COLUMNS}
        if not valid_updates:
            return current  # Nothing to update

        set_parts = []
        params = []
        for field, value in valid_updates.items():
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())

        where, where_params = where_clause({"id": client_id, "tenant_id": current.tenant_id})

        row = self.postgres.execute_returning(
            f"""
            UPDATE clients
            SET {', '.join(set_parts)}
            WHERE {where}
            RETURNING *
            """,
            tuple(params) + where_params
        )[0]

        updated = Client.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="client",
                entity_id=client_id,
                action=AuditAction.UPDATE,
                changes=changes,
                tenant_id=updated.tenant_id
            )

        return updated

    def delete(self, client_id: UUID) -> None:
        """
        Delete a client.

        Refused while any invoice references the client. The check runs
        before the delete; the foreign key catches an invoice created in
        between.

        Raises:
            NotFoundError: Client absent or in another tenant
            ConflictError: Client still has invoices
        """
        current = self.get(client_id)

        invoice_count = self.postgres.execute_scalar(
            "SELECT COUNT(*) FROM invoices WHERE client_id = %s",
            (client_id,)
        )
        if invoice_count:
            raise ConflictError(
                f"Cannot delete client with {invoice_count} existing invoice(s)"
            )

        try:
            self.postgres.execute_returning(
                "DELETE FROM clients WHERE id = %s AND tenant_id = %s RETURNING id",
                (client_id, current.tenant_id)
            )
        except errors.ForeignKeyViolation as e:
            raise ConflictError("Cannot delete client with existing invoices") from e

        self.audit.log_change(
            entity_type="client",
            entity_id=client_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")},
            tenant_id=current.tenant_id
        )

    def list_all(
        self,
        search: str | None = None,
        tenant_id: int | None = None,
        limit: int = 50,
        offset: int = 0
    ) -> list[Client]:
        """
        List clients with optional search and pagination.

        Args:
            search: Case-insensitive partial match on name, email or company
            tenant_id: Tenant filter; only effective for SYSTEM_ADMIN callers
            limit: Maximum results (default 50)
            offset: Offset for pagination

        Returns:
            List of clients, ordered by created_at DESC
        """
        filters = {"tenant_id": tenant_id} if tenant_id is not None else {}
        where, params = where_clause(scope(filters, get_current_identity()))

        if search:
            pattern = f"%{search}%"
            where += " AND (name ILIKE %s OR email ILIKE %s OR company ILIKE %s)"
            params += (pattern, pattern, pattern)

        rows = self.postgres.execute(
            f"""
            SELECT * FROM clients
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            params + (limit, offset)
        )

        return [Client.model_validate(row) for row in rows]
