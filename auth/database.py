"""Database operations for authentication.

Reads users and tenants before any caller identity is established, so
nothing here is tenant scoped.
"""

from clients.postgres_client import PostgresClient
from auth.types import UserRecord
from core.models import Tenant
from utils.timezone import now_utc

_USER_COLUMNS = "id, email, password_hash, role, tenant_id, created_at, last_login_at"


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Find user by email (case-insensitive)."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE email = lower(%s)",
            (email,),
        )
        if row is None:
            return None
        return UserRecord.model_validate(row)

    def get_user_by_id(self, user_id: int) -> UserRecord | None:
        """Find user by ID."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
        )
        if row is None:
            return None
        return UserRecord.model_validate(row)

    def get_tenant(self, tenant_id: int) -> Tenant | None:
        """Find tenant by ID."""
        row = self._db.execute_single(
            "SELECT id, name, created_at FROM tenants WHERE id = %s",
            (tenant_id,),
        )
        if row is None:
            return None
        return Tenant.model_validate(row)

    def update_last_login(self, user_id: int) -> None:
        """Update last_login_at to current time."""
        self._db.execute_returning(
            "UPDATE users SET last_login_at = %s WHERE id = %s RETURNING id",
            (now_utc(), user_id),
        )
