"""Tenant (organization) domain models."""

from datetime import datetime

from pydantic import BaseModel, Field


class TenantCreate(BaseModel):
    """Data required to create a tenant."""

    name: str = Field(..., min_length=1, max_length=255)


class TenantUpdate(BaseModel):
    """Tenants can only be renamed."""

    name: str = Field(..., min_length=1, max_length=255)


class Tenant(BaseModel):
    """Full tenant entity as stored."""

    id: int
    name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TenantSummary(Tenant):
    """Tenant with ownership counts, for the admin listing."""

    user_count: int = 0
    client_count: int = 0
    invoice_count: int = 0
