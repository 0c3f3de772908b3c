"""User, role and caller identity models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, model_validator


class Role(str, Enum):
    """User roles. Only SYSTEM_ADMIN is exempt from tenant scoping."""

    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    COMPANY_ADMIN = "COMPANY_ADMIN"
    ACCOUNTANT = "ACCOUNTANT"


def check_role_tenant(role: Role, tenant_id: int | None) -> None:
    """
    Enforce the role/tenant invariant: SYSTEM_ADMIN <=> no tenant.

    Raises:
        ValueError: If the combination is not allowed.
    """
    if role == Role.SYSTEM_ADMIN and tenant_id is not None:
        raise ValueError(
            "SYSTEM_ADMIN users cannot be assigned to a tenant. Set tenant_id to null."
        )
    if role != Role.SYSTEM_ADMIN and tenant_id is None:
        raise ValueError(
            "Non-SYSTEM_ADMIN users must be assigned to a tenant. Provide tenant_id."
        )


class UserCreate(BaseModel):
    """Data required to create a user."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)  # bcrypt input limit
    role: Role
    tenant_id: int | None = Field(None, ge=1)

    @model_validator(mode="after")
    def check_tenant_assignment(self) -> "UserCreate":
        check_role_tenant(self.role, self.tenant_id)
        return self


class UserUpdate(BaseModel):
    """
    Data that can be updated on a user. All fields optional.

    tenant_id is tri-state: omitted (unchanged), null (detach), or an id.
    The role/tenant invariant is checked against the merged result by the service.
    """

    email: EmailStr | None = None
    password: str | None = Field(None, min_length=6, max_length=72)
    role: Role | None = None
    tenant_id: int | None = Field(None, ge=1)


class User(BaseModel):
    """User as exposed by the API (never carries the password hash)."""

    id: int
    email: str
    role: Role
    tenant_id: int | None
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class Identity(BaseModel):
    """The authenticated caller, as resolved by the authentication gate."""

    user_id: int
    email: str
    role: Role
    tenant_id: int | None

    model_config = {"frozen": True}

    @property
    def is_system_admin(self) -> bool:
        return self.role == Role.SYSTEM_ADMIN
