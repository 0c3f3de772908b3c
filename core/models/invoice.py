"""Invoice domain models.

Money is Decimal; tax_rate is a percentage (10 = 10%). subtotal, tax_amount
and total are derived by core.totals and never accepted from callers.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from core.models.line_item import LineItem, LineItemCreate


class InvoiceStatus(str, Enum):
    """Invoice status. Only changed by explicit user action."""

    UNPAID = "unpaid"
    PAID = "paid"
    OVERDUE = "overdue"


class InvoiceCreate(BaseModel):
    """Data required to create an invoice."""

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    client_id: UUID
    tenant_id: int | None = Field(None, ge=1)
    status: InvoiceStatus = InvoiceStatus.UNPAID
    date: dt.date | None = None
    due_date: dt.date | None = None
    tax_rate: Decimal = Field(Decimal("0"), ge=0, max_digits=7, decimal_places=3)
    discount: Decimal = Field(Decimal("0"), ge=0, max_digits=14, decimal_places=2)
    notes: str | None = Field(None, max_length=2000)
    line_items: list[LineItemCreate] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    """
    Data that can be updated on an invoice. All fields optional.

    A supplied line_items list replaces every existing line item.
    """

    invoice_number: str | None = Field(None, min_length=1, max_length=50)
    client_id: UUID | None = None
    status: InvoiceStatus | None = None
    date: dt.date | None = None
    due_date: dt.date | None = None
    tax_rate: Decimal | None = Field(None, ge=0, max_digits=7, decimal_places=3)
    discount: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    notes: str | None = Field(None, max_length=2000)
    line_items: list[LineItemCreate] | None = None


class InvoiceStatusUpdate(BaseModel):
    """Payload of the mark-status action."""

    status: InvoiceStatus


class Invoice(BaseModel):
    """Full invoice entity as stored, with its ordered line items."""

    id: UUID
    tenant_id: int
    client_id: UUID
    invoice_number: str
    status: InvoiceStatus
    date: dt.date
    due_date: dt.date | None
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    discount: Decimal
    total: Decimal
    notes: str | None
    created_at: dt.datetime
    updated_at: dt.datetime
    line_items: list[LineItem] = Field(default_factory=list)

    model_config = {"from_attributes": True}
