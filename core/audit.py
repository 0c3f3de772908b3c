"""
Audit trail for entity changes.

Every mutation to a client, invoice, line item, tenant or user is logged here.
The audit log is:
- Append-only (entries never modified or deleted)
- Attributed (which user, acting in which tenant)
- Detailed (captures old and new values)

Unlike the SDK notification log this is the record of what happened; it is
written by the server in the same request as the change.
"""

from enum import Enum
from typing import Any
from uuid import uuid4

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.tenant_context import get_current_identity
from utils.timezone import now_utc


class AuditAction(Enum):
    """Type of change made to an entity."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two entity states.

    Args:
        old: Previous state of entity
        new: New state of entity
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or {"updated_at"}
    changes = {}

    for key in set(old.keys()) | set(new.keys()):
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


class AuditLogger:
    """
    Audit trail writer.

    Always pass model_dump(mode="json") output so UUIDs, Decimals and
    datetimes arrive JSON-serializable.

    Usage:
        audit.log_change(
            entity_type="client",
            entity_id=client.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude_none=True)},
            tenant_id=client.tenant_id,
        )
    """

    def __init__(self, postgres: PostgresClient):
        self.postgres = postgres

    def log_change(
        self,
        entity_type: str,
        entity_id: Any,
        action: AuditAction,
        changes: dict[str, Any],
        tenant_id: int | None = None,
    ) -> None:
        """
        Log an entity change made by the current caller.

        Args:
            entity_type: "client", "invoice", "line_item", "tenant" or "user"
            entity_id: UUID or integer id, stored as text
            action: CREATE, UPDATE or DELETE
            changes: {"created": {...}}, {"field": {"old", "new"}} or {"deleted": {...}}
            tenant_id: Tenant owning the entity (None for tenants/system admins)
        """
        identity = get_current_identity()

        self.postgres.execute(
            """
            INSERT INTO audit_log (id, tenant_id, user_id, entity_type, entity_id, action, changes, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (
                uuid4(),
                tenant_id,
                identity.user_id,
                entity_type,
                str(entity_id),
                action.value,
                Json(changes),
                now_utc()
            )
        )
