"""Client (billed customer) domain models."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, RootModel


class ClientCreate(BaseModel):
    """Data required to create a client."""

    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    company: str | None = Field(None, max_length=255)
    # Only honored for SYSTEM_ADMIN callers; everyone else writes into their own tenant
    tenant_id: int | None = Field(None, ge=1)


class ClientBulkCreate(RootModel[list[ClientCreate]]):
    """Bulk import payload: 1 to 1000 clients."""

    root: list[ClientCreate] = Field(..., min_length=1, max_length=1000)


class ClientUpdate(BaseModel):
    """Data that can be updated on a client. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    address: str | None = Field(None, max_length=500)
    company: str | None = Field(None, max_length=255)


class Client(BaseModel):
    """Full client entity as stored."""

    id: UUID
    tenant_id: int
    name: str
    email: str
    phone: str | None
    address: str | None
    company: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
