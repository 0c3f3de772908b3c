"""Line item domain models.

Amounts are Decimal to keep arithmetic exact. The stored total is always
quantity * unit_price as computed by core.totals; a submitted total is ignored.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

# Bounds mirror the NUMERIC columns in db/schema.sql so validated input always fits.
MAX_QUANTITY = 1_000_000


class LineItemCreate(BaseModel):
    """Data required to create a line item."""

    description: str = Field(..., min_length=1, max_length=500)
    quantity: int = Field(..., ge=1, le=MAX_QUANTITY)
    unit_price: Decimal = Field(..., ge=0, max_digits=14, decimal_places=2)
    total: Decimal | None = Field(None, ge=0)  # accepted for compatibility, recomputed


class LineItemUpdate(BaseModel):
    """Data that can be updated on a line item. All fields optional."""

    description: str | None = Field(None, min_length=1, max_length=500)
    quantity: int | None = Field(None, ge=1, le=MAX_QUANTITY)
    unit_price: Decimal | None = Field(None, ge=0, max_digits=14, decimal_places=2)
    total: Decimal | None = Field(None, ge=0)


class LineItem(BaseModel):
    """Full line item entity as stored."""

    id: UUID
    invoice_id: UUID
    position: int
    description: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
