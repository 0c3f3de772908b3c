"""Invoice and line item routes: /api/invoices."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse

from auth.guards import require_tenant
from core.export import render_invoice_html
from core.models import (
    InvoiceCreate, InvoiceStatus, InvoiceStatusUpdate, InvoiceUpdate,
    LineItemCreate, LineItemUpdate,
)
from core.services.client_service import ClientService
from core.services.invoice_service import InvoiceService
from core.services.line_item_service import LineItemService


def create_invoices_router(
    invoice_service: InvoiceService,
    line_item_service: LineItemService,
    client_service: ClientService,
) -> APIRouter:
    """Create invoice router with injected services."""
    router = APIRouter(
        prefix="/invoices",
        tags=["invoices"],
        dependencies=[Depends(require_tenant)],
    )

    # -------------------------------------------------------------------------
    # Invoices
    # -------------------------------------------------------------------------

    @router.get("")
    async def list_invoices(
        status: InvoiceStatus | None = Query(None),
        client_id: UUID | None = Query(None),
        tenant_id: int | None = Query(None, ge=1),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        invoices = invoice_service.list_all(
            status=status,
            client_id=client_id,
            tenant_id=tenant_id,
            limit=limit,
            offset=offset,
        )
        return [i.model_dump(mode="json") for i in invoices]

    @router.post("", status_code=201)
    async def create_invoice(body: InvoiceCreate):
        return invoice_service.create(body).model_dump(mode="json")

    @router.get("/{invoice_id}")
    async def get_invoice(invoice_id: UUID):
        return invoice_service.get(invoice_id).model_dump(mode="json")

    @router.put("/{invoice_id}")
    async def update_invoice(invoice_id: UUID, body: InvoiceUpdate):
        return invoice_service.update(invoice_id, body).model_dump(mode="json")

    @router.delete("/{invoice_id}", status_code=204)
    async def delete_invoice(invoice_id: UUID):
        invoice_service.delete(invoice_id)
        return Response(status_code=204)

    @router.post("/{invoice_id}/mark")
    async def mark_invoice(invoice_id: UUID, body: InvoiceStatusUpdate):
        return invoice_service.mark_status(invoice_id, body.status).model_dump(mode="json")

    @router.get("/{invoice_id}/export", response_class=HTMLResponse)
    async def export_invoice(invoice_id: UUID):
        invoice = invoice_service.get(invoice_id)
        client = client_service.get(invoice.client_id)
        return HTMLResponse(render_invoice_html(invoice, client))

    # -------------------------------------------------------------------------
    # Line items
    # -------------------------------------------------------------------------

    @router.get("/{invoice_id}/line-items")
    async def list_line_items(invoice_id: UUID):
        items = line_item_service.list_for_invoice(invoice_id)
        return [li.model_dump(mode="json") for li in items]

    @router.post("/{invoice_id}/line-items", status_code=201)
    async def create_line_item(invoice_id: UUID, body: LineItemCreate):
        return line_item_service.create(invoice_id, body).model_dump(mode="json")

    @router.put("/{invoice_id}/line-items/{line_item_id}")
    async def update_line_item(invoice_id: UUID, line_item_id: UUID, body: LineItemUpdate):
        return line_item_service.update(invoice_id, line_item_id, body).model_dump(mode="json")

    @router.delete("/{invoice_id}/line-items/{line_item_id}", status_code=204)
    async def delete_line_item(invoice_id: UUID, line_item_id: UUID):
        line_item_service.delete(invoice_id, line_item_id)
        return Response(status_code=204)

    return router
