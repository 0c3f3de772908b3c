"""
Invoice service for billing.

Invoices carry their line items and derived amounts. subtotal, tax_amount,
total and every line total are computed here with core.totals on each write;
values submitted by callers are never stored.
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from psycopg2 import errors

from clients.postgres_client import PostgresClient, Transaction
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from core.models import (
    Invoice, InvoiceCreate, InvoiceStatus, InvoiceUpdate, LineItem, LineItemCreate,
)
from core.scoping import resolve_target_tenant, scope, where_clause
from core.totals import compute_totals
from utils.tenant_context import get_current_identity
from utils.timezone import now_utc, today_utc

logger = logging.getLogger(__name__)

# Scalar columns a partial update may change (line_items handled separately)
_UPDATABLE_COLUMNS = {
    "invoice_number", "client_id", "status", "date", "due_date",
    "tax_rate", "discount", "notes",
}

_NULLABLE_COLUMNS = {"due_date", "notes"}

_INSERT_LINE_ITEM_SQL = """
    INSERT INTO line_items (
        id, invoice_id, position, description, quantity, unit_price, total,
        created_at, updated_at
    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
    RETURNING *
"""

_DUPLICATE_NUMBER = "Invoice number already exists for this tenant"


class InvoiceService:
    """Service for invoice operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger):
        self.postgres = postgres
        self.audit = audit

    def _generate_invoice_number(self, tx: Transaction, tenant_id: int) -> str:
        """
        Generate the next invoice number for a tenant.

        Format: INV-YYYYMMDD-XXXX where XXXX is a per-day sequence number.
        """
        today = now_utc().strftime("%Y%m%d")
        prefix = f"INV-{today}-"

        # Find highest existing number for today
        result = tx.execute_single(
            """
            SELECT invoice_number FROM invoices
            WHERE tenant_id = %s AND invoice_number LIKE %s
            ORDER BY invoice_number DESC
            LIMIT 1
            """,
            (tenant_id, f"{prefix}%")
        )

        if result is None:
            sequence = 1
        else:
            existing = result["invoice_number"]
            try:
                sequence = int(existing.split("-")[-1]) + 1
            except (ValueError, IndexError):
                sequence = 1

        return f"{prefix}{sequence:04d}"

    def _require_client_in_tenant(self, client_id: UUID, tenant_id: int) -> None:
        """An invoice may only reference a client of its own tenant."""
        row = self.postgres.execute_single(
            "SELECT id FROM clients WHERE id = %s AND tenant_id = %s",
            (client_id, tenant_id)
        )
        if row is None:
            raise ValidationFailedError.for_field(
                "client_id", "Client not found in this tenant"
            )

    def _insert_line_items(
        self,
        tx: Transaction,
        invoice_id: UUID,
        items: list[LineItemCreate],
        line_totals: tuple,
    ) -> list[dict[str, Any]]:
        now = now_utc()
        rows = []
        for position, (item, total) in enumerate(zip(items, line_totals), start=1):
            rows.append(tx.execute_single(
                _INSERT_LINE_ITEM_SQL,
                (
                    uuid4(), invoice_id, position, item.description,
                    item.quantity, item.unit_price, total,
                    now, now
                )
            ))
        return rows

    def _load_line_items(self, invoice_ids: list) -> dict[str, list[LineItem]]:
        """Line items of several invoices, keyed by str(invoice_id), ordered by position."""
        grouped: dict[str, list[LineItem]] = {str(invoice_id): [] for invoice_id in invoice_ids}
        if not invoice_ids:
            return grouped

        rows = self.postgres.execute(
            """
            SELECT * FROM line_items
            WHERE invoice_id = ANY(%s::uuid[])
            ORDER BY invoice_id, position
            """,
            ([str(invoice_id) for invoice_id in invoice_ids],)
        )
        for row in rows:
            item = LineItem.model_validate(row)
            grouped.setdefault(str(item.invoice_id), []).append(item)
        return grouped

    def _to_invoice(self, row: dict[str, Any], line_items: list) -> Invoice:
        return Invoice.model_validate({**row, "line_items": line_items})

    def recalculate(self, tx: Transaction, invoice: Invoice) -> dict[str, Any]:
        """
        Recompute an invoice's stored amounts from its current line items.

        Runs inside the caller's transaction, after line items changed.

        Returns:
            The updated invoice row
        """
        items = tx.execute(
            "SELECT quantity, unit_price FROM line_items WHERE invoice_id = %s ORDER BY position",
            (invoice.id,)
        )
        totals = compute_totals(items, invoice.tax_rate, invoice.discount)
        return tx.execute_single(
            """
            UPDATE invoices
            SET subtotal = %s, tax_amount = %s, total = %s, updated_at = %s
            WHERE id = %s
            RETURNING *
            """,
            (totals.subtotal, totals.tax_amount, totals.total, now_utc(), invoice.id)
        )

    def create(self, data: InvoiceCreate) -> Invoice:
        """
        Create an invoice with its line items.

        The invoice number is generated when omitted. Totals are computed
        from the line items, tax rate and discount.

        Raises:
            MissingTenantIdError: SYSTEM_ADMIN did not name a tenant
            ValidationFailedError: Client not in the target tenant
            ConflictError: Invoice number already used in the tenant
        """
        identity = get_current_identity()
        tenant_id = resolve_target_tenant(identity, data.tenant_id)
        self._require_client_in_tenant(data.client_id, tenant_id)

        totals = compute_totals(data.line_items, data.tax_rate, data.discount)
        invoice_id = uuid4()
        now = now_utc()

        try:
            with self.postgres.transaction() as tx:
                invoice_number = data.invoice_number or self._generate_invoice_number(tx, tenant_id)
                row = tx.execute_single(
                    """
                    INSERT INTO invoices (
                        id, tenant_id, client_id, invoice_number, status,
                        date, due_date,
                        subtotal, tax_rate, tax_amount, discount, total,
                        notes, created_at, updated_at
                    ) VALUES (
                        %s, %s, %s, %s, %s,
                        %s, %s,
                        %s, %s, %s, %s, %s,
                        %s, %s, %s
                    )
                    RETURNING *
                    """,
                    (
                        invoice_id, tenant_id, data.client_id, invoice_number, data.status.value,
                        data.date or today_utc(), data.due_date,
                        totals.subtotal, data.tax_rate, totals.tax_amount, data.discount, totals.total,
                        data.notes, now, now
                    )
                )
                item_rows = self._insert_line_items(tx, invoice_id, data.line_items, totals.line_totals)
        except errors.UniqueViolation as e:
            raise ConflictError(_DUPLICATE_NUMBER) from e

        invoice = self._to_invoice(row, item_rows)

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice.id,
            action=AuditAction.CREATE,
            changes={
                "created": {
                    "invoice_number": invoice.invoice_number,
                    "client_id": str(invoice.client_id),
                    "line_items": len(invoice.line_items),
                    "total": str(invoice.total),
                }
            },
            tenant_id=tenant_id
        )

        return invoice

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        """
        Get invoice by ID, with ordered line items.

        Returns:
            Invoice if found in a tenant the caller may see, None otherwise.
        """
        where, params = where_clause(scope({"id": invoice_id}, get_current_identity()))
        row = self.postgres.execute_single(
            f"SELECT * FROM invoices WHERE {where}",
            params
        )

        if row is None:
            return None

        return self._to_invoice(row, self._load_line_items([row["id"]])[str(row["id"])])

    def get(self, invoice_id: UUID) -> Invoice:
        """Get invoice by ID or raise NotFoundError."""
        invoice = self.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice not found")
        return invoice

    def list_all(
        self,
        status: InvoiceStatus | None = None,
        client_id: UUID | None = None,
        tenant_id: int | None = None,
        limit: int = 50,
        offset: int = 0
    ) -> list[Invoice]:
        """
        List invoices with their line items.

        Args:
            status: Only invoices in this status
            client_id: Only invoices of this client
            tenant_id: Tenant filter; only effective for SYSTEM_ADMIN callers
            limit: Maximum results (default 50)
            offset: Offset for pagination

        Returns:
            Invoices ordered by created_at DESC
        """
        filters: dict[str, Any] = {}
        if status is not None:
            filters["status"] = status.value
        if client_id is not None:
            filters["client_id"] = client_id
        if tenant_id is not None:
            filters["tenant_id"] = tenant_id

        where, params = where_clause(scope(filters, get_current_identity()))
        rows = self.postgres.execute(
            f"""
            SELECT * FROM invoices
            WHERE {where}
            ORDER BY created_at DESC
            LIMIT %s OFFSET %s
            """,
            params + (limit, offset)
        )

        items = self._load_line_items([row["id"] for row in rows])
        return [self._to_invoice(row, items.get(str(row["id"]), [])) for row in rows]

    def update(self, invoice_id: UUID, data: InvoiceUpdate) -> Invoice:
        """
        Update invoice fields.

        A supplied line_items list replaces every existing item. Totals are
        recomputed from the resulting items, tax rate and discount.

        Raises:
            NotFoundError: Invoice absent or in another tenant
            ValidationFailedError: New client not in the invoice's tenant
            ConflictError: New invoice number already used in the tenant
        """
        current = self.get(invoice_id)

        updates = {
            field: value
            for field, value in data.model_dump(exclude_unset=True, exclude={"line_items"}).items()
            if field in _UPDATABLE_COLUMNS and (value is not None or field in _NULLABLE_COLUMNS)
        }
        if "status" in updates:
            updates["status"] = updates["status"].value

        if "client_id" in updates and updates["client_id"] != current.client_id:
            self._require_client_in_tenant(updates["client_id"], current.tenant_id)

        replace_items = data.line_items is not None
        items = data.line_items if replace_items else current.line_items
        totals = compute_totals(
            items,
            updates.get("tax_rate", current.tax_rate),
            updates.get("discount", current.discount),
        )
        updates["subtotal"] = totals.subtotal
        updates["tax_amount"] = totals.tax_amount
        updates["total"] = totals.total

        set_parts = []
        params = []
        for field, value in updates.items():
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend((invoice_id, current.tenant_id))

        try:
            with self.postgres.transaction() as tx:
                row = tx.execute_single(
                    f"""
                    UPDATE invoices
                    SET {', '.join(set_parts)}
                    WHERE id = %s AND tenant_id = %s
                    RETURNING *
                    """,
                    tuple(params)
                )
                if replace_items:
                    tx.execute("DELETE FROM line_items WHERE invoice_id = %s", (invoice_id,))
                    item_rows = self._insert_line_items(tx, invoice_id, data.line_items, totals.line_totals)
        except errors.UniqueViolation as e:
            raise ConflictError(_DUPLICATE_NUMBER) from e

        updated = self._to_invoice(row, item_rows if replace_items else current.line_items)

        changes = compute_changes(
            current.model_dump(mode="json", exclude={"line_items"}),
            updated.model_dump(mode="json", exclude={"line_items"})
        )
        if replace_items:
            changes["line_items"] = {
                "old": len(current.line_items),
                "new": len(updated.line_items),
            }
        if changes:
            self.audit.log_change(
                entity_type="invoice",
                entity_id=invoice_id,
                action=AuditAction.UPDATE,
                changes=changes,
                tenant_id=current.tenant_id
            )

        return updated

    def mark_status(self, invoice_id: UUID, status: InvoiceStatus) -> Invoice:
        """
        Set invoice status (paid / unpaid / overdue).

        Status only ever changes through this explicit action or an update.
        """
        current = self.get(invoice_id)
        if current.status == status:
            return current

        row = self.postgres.execute_returning(
            """
            UPDATE invoices
            SET status = %s, updated_at = %s
            WHERE id = %s AND tenant_id = %s
            RETURNING *
            """,
            (status.value, now_utc(), invoice_id, current.tenant_id)
        )[0]

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.UPDATE,
            changes={"status": {"old": current.status.value, "new": status.value}},
            tenant_id=current.tenant_id
        )

        return self._to_invoice(row, current.line_items)

    def delete(self, invoice_id: UUID) -> None:
        """
        Delete an invoice and its line items.

        Raises:
            NotFoundError: Invoice absent or in another tenant
        """
        current = self.get(invoice_id)

        self.postgres.execute_returning(
            "DELETE FROM invoices WHERE id = %s AND tenant_id = %s RETURNING id",
            (invoice_id, current.tenant_id)
        )

        self.audit.log_change(
            entity_type="invoice",
            entity_id=invoice_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json", exclude={"line_items"})},
            tenant_id=current.tenant_id
        )
