"""
Line item service for invoice line items.

Line items are reached through their invoice: the parent is fetched with
the caller's tenant scope first, so an item of another tenant's invoice is
simply not found. Every write recomputes the item total and the parent
invoice's amounts in the same transaction.
"""

import logging
from uuid import UUID, uuid4

from clients.postgres_client import PostgresClient
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import NotFoundError
from core.models import Invoice, LineItem, LineItemCreate, LineItemUpdate
from core.services.invoice_service import InvoiceService
from core.totals import line_total
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_UPDATABLE_COLUMNS = {"description", "quantity", "unit_price"}


class LineItemService:
    """Service for line item operations."""

    def __init__(self, postgres: PostgresClient, audit: AuditLogger, invoices: InvoiceService):
        self.postgres = postgres
        self.audit = audit
        self.invoices = invoices

    def _find(self, invoice: Invoice, line_item_id: UUID) -> LineItem:
        for item in invoice.line_items:
            if item.id == line_item_id:
                return item
        raise NotFoundError("Line item not found")

    def list_for_invoice(self, invoice_id: UUID) -> list[LineItem]:
        """Line items of an invoice, ordered by position."""
        return self.invoices.get(invoice_id).line_items

    def create(self, invoice_id: UUID, data: LineItemCreate) -> LineItem:
        """
        Append a line item to an invoice.

        Args:
            invoice_id: Parent invoice
            data: Line item data (a submitted total is ignored)

        Returns:
            Created line item

        Raises:
            NotFoundError: Invoice absent or in another tenant
        """
        invoice = self.invoices.get(invoice_id)
        now = now_utc()

        with self.postgres.transaction() as tx:
            position = tx.execute_single(
                "SELECT COALESCE(MAX(position), 0) + 1 AS next FROM line_items WHERE invoice_id = %s",
                (invoice_id,)
            )["next"]
            row = tx.execute_single(
                """
                INSERT INTO line_items (
                    id, invoice_id, position, description, quantity, unit_price, total,
                    created_at, updated_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    uuid4(), invoice_id, position, data.description,
                    data.quantity, data.unit_price, line_total(data.quantity, data.unit_price),
                    now, now
                )
            )
            self.invoices.recalculate(tx, invoice)

        line_item = LineItem.model_validate(row)

        self.audit.log_change(
            entity_type="line_item",
            entity_id=line_item.id,
            action=AuditAction.CREATE,
            changes={"created": line_item.model_dump(mode="json", include=_UPDATABLE_COLUMNS | {"invoice_id", "total"})},
            tenant_id=invoice.tenant_id
        )

        return line_item

    def update(self, invoice_id: UUID, line_item_id: UUID, data: LineItemUpdate) -> LineItem:
        """
        Update a line item. Its total is recomputed from the merged values.

        Raises:
            NotFoundError: Invoice or line item absent, or in another tenant
        """
        invoice = self.invoices.get(invoice_id)
        current = self._find(invoice, line_item_id)

        updates = {
            k: v for k, v in data.model_dump(exclude_none=True).items()
            if k in _UPDATABLE_COLUMNS
        }
        if not updates:
            return current

        quantity = updates.get("quantity", current.quantity)
        unit_price = updates.get("unit_price", current.unit_price)
        updates["total"] = line_total(quantity, unit_price)

        set_parts = []
        params = []
        for field, value in updates.items():
            set_parts.append(f"{field} = %s")
            params.append(value)

        set_parts.append("updated_at = %s")
        params.append(now_utc())
        params.extend((line_item_id, invoice_id))

        with self.postgres.transaction() as tx:
            row = tx.execute_single(
                f"""
                UPDATE line_items
                SET {', '.join(set_parts)}
                WHERE id = %s AND invoice_id = %s
                RETURNING *
                """,
                tuple(params)
            )
            self.invoices.recalculate(tx, invoice)

        updated = LineItem.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if changes:
            self.audit.log_change(
                entity_type="line_item",
                entity_id=line_item_id,
                action=AuditAction.UPDATE,
                changes=changes,
                tenant_id=invoice.tenant_id
            )

        return updated

    def delete(self, invoice_id: UUID, line_item_id: UUID) -> None:
        """
        Remove a line item and recompute the invoice amounts.

        Raises:
            NotFoundError: Invoice or line item absent, or in another tenant
        """
        invoice = self.invoices.get(invoice_id)
        current = self._find(invoice, line_item_id)

        with self.postgres.transaction() as tx:
            tx.execute(
                "DELETE FROM line_items WHERE id = %s AND invoice_id = %s",
                (line_item_id, invoice_id)
            )
            self.invoices.recalculate(tx, invoice)

        self.audit.log_change(
            entity_type="line_item",
            entity_id=line_item_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")},
            tenant_id=invoice.tenant_id
        )
