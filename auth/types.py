"""Pydantic models for auth domain."""

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from core.models import Identity, Role, Tenant, User


class LoginRequest(BaseModel):
    """Request payload for login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class UserRecord(BaseModel):
    """A user row as the auth layer sees it, password hash included."""

    id: int
    email: str
    password_hash: str
    role: Role
    tenant_id: int | None
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}

    def to_user(self) -> User:
        return User.model_validate(self.model_dump(exclude={"password_hash"}))

    def to_identity(self) -> Identity:
        return Identity(
            user_id=self.id,
            email=self.email,
            role=self.role,
            tenant_id=self.tenant_id,
        )


class IssuedToken(BaseModel):
    """A freshly signed session token."""

    token: str = Field(..., description="Signed JWT")
    expires_at: datetime
    max_age_seconds: int


class CurrentUser(BaseModel):
    """User info returned by login and /auth/me."""

    user: User
    tenant: Tenant | None = None
