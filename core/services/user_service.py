"""
User service for the system-admin console.

Users are created only by SYSTEM_ADMIN callers (or the seed command). The
role/tenant invariant (SYSTEM_ADMIN <=> no tenant) is checked on create by
the payload model and on update against the merged result here.
"""

import logging

from psycopg2 import errors

from clients.postgres_client import PostgresClient
from auth.config import AuthConfig
from auth.passwords import hash_password
from auth.security_logger import SecurityLogger, SecurityEvent
from core.audit import AuditLogger, AuditAction, compute_changes
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from core.models import User, UserCreate, UserUpdate, check_role_tenant
from utils.tenant_context import get_current_identity
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

_PUBLIC_COLUMNS = "id, email, role, tenant_id, created_at, last_login_at"

_EMAIL_IN_USE = "Email already in use"


class UserService:
    """Service for user operations."""

    def __init__(
        self,
        postgres: PostgresClient,
        audit: AuditLogger,
        security_logger: SecurityLogger,
        config: AuthConfig,
    ):
        self.postgres = postgres
        self.audit = audit
        self.security_logger = security_logger
        self.config = config

    def _require_tenant(self, tenant_id: int | None) -> None:
        if tenant_id is None:
            return
        row = self.postgres.execute_single("SELECT id FROM tenants WHERE id = %s", (tenant_id,))
        if row is None:
            raise NotFoundError("Tenant not found")

    def create(self, data: UserCreate) -> User:
        """
        Create a user with a bcrypt-hashed password.

        Raises:
            NotFoundError: tenant_id names no tenant
            ConflictError: Email already in use
        """
        self._require_tenant(data.tenant_id)

        try:
            row = self.postgres.execute_returning(
                f"""
                INSERT INTO users (email, password_hash, role, tenant_id, created_at)
                VALUES (lower(%s), %s, %s, %s, %s)
                RETURNING {_PUBLIC_COLUMNS}
                """,
                (
                    data.email,
                    hash_password(data.password, self.config.bcrypt_rounds),
                    data.role.value,
                    data.tenant_id,
                    now_utc(),
                )
            )[0]
        except errors.UniqueViolation as e:
            raise ConflictError(_EMAIL_IN_USE) from e

        user = User.model_validate(row)

        self.audit.log_change(
            entity_type="user",
            entity_id=user.id,
            action=AuditAction.CREATE,
            changes={"created": data.model_dump(mode="json", exclude={"password"})},
            tenant_id=user.tenant_id
        )
        identity = get_current_identity()
        self.security_logger.log(
            SecurityEvent.USER_CREATED,
            email=user.email,
            user_id=user.id,
            details={"created_by": identity.user_id, "role": user.role.value},
        )

        return user

    def get(self, user_id: int) -> User:
        """
        Get user by ID.

        Raises:
            NotFoundError: No such user
        """
        row = self.postgres.execute_single(
            f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE id = %s",
            (user_id,)
        )
        if row is None:
            raise NotFoundError("User not found")
        return User.model_validate(row)

    def list_all(self, tenant_id: int | None = None) -> list[User]:
        """All users (optionally of one tenant), newest first."""
        if tenant_id is None:
            rows = self.postgres.execute(
                f"SELECT {_PUBLIC_COLUMNS} FROM users ORDER BY created_at DESC"
            )
        else:
            rows = self.postgres.execute(
                f"SELECT {_PUBLIC_COLUMNS} FROM users WHERE tenant_id = %s ORDER BY created_at DESC",
                (tenant_id,)
            )
        return [User.model_validate(row) for row in rows]

    def update(self, user_id: int, data: UserUpdate) -> User:
        """
        Update email, password, role or tenant.

        tenant_id may be set to null explicitly (detach, e.g. on promotion
        to SYSTEM_ADMIN); omitting it leaves it unchanged.

        Raises:
            NotFoundError: No such user or tenant
            ValidationFailedError: Merged role/tenant breaks the invariant
            ConflictError: Email already in use
        """
        current = self.get(user_id)
        supplied = data.model_fields_set

        role = data.role if data.role is not None else current.role
        tenant_id = data.tenant_id if "tenant_id" in supplied else current.tenant_id
        try:
            check_role_tenant(role, tenant_id)
        except ValueError as e:
            raise ValidationFailedError(str(e), [{"field": "tenant_id", "message": str(e)}]) from e

        if tenant_id != current.tenant_id:
            self._require_tenant(tenant_id)

        updates: dict = {}
        if data.email is not None:
            updates["email"] = data.email.lower()
        if role != current.role:
            updates["role"] = role.value
        if tenant_id != current.tenant_id:
            updates["tenant_id"] = tenant_id
        if data.password is not None:
            updates["password_hash"] = hash_password(data.password, self.config.bcrypt_rounds)

        if not updates:
            return current

        set_clause = ", ".join(f"{field} = %s" for field in updates)
        try:
            row = self.postgres.execute_returning(
                f"UPDATE users SET {set_clause} WHERE id = %s RETURNING {_PUBLIC_COLUMNS}",
                tuple(updates.values()) + (user_id,)
            )[0]
        except errors.UniqueViolation as e:
            raise ConflictError(_EMAIL_IN_USE) from e

        updated = User.model_validate(row)

        changes = compute_changes(
            current.model_dump(mode="json"),
            updated.model_dump(mode="json")
        )
        if "password_hash" in updates:
            changes["password"] = {"old": "***", "new": "***"}
        if changes:
            self.audit.log_change(
                entity_type="user",
                entity_id=user_id,
                action=AuditAction.UPDATE,
                changes=changes,
                tenant_id=updated.tenant_id
            )
            self.security_logger.log(
                SecurityEvent.USER_UPDATED,
                email=updated.email,
                user_id=user_id,
                details={"fields": sorted(changes)},
            )

        return updated

    def delete(self, user_id: int) -> None:
        """
        Delete a user. A caller cannot delete themselves.

        Raises:
            ForbiddenError: Caller targeted their own account
            NotFoundError: No such user
        """
        identity = get_current_identity()
        if identity.user_id == user_id:
            raise ForbiddenError("You cannot delete your own account")

        current = self.get(user_id)

        self.postgres.execute_returning(
            "DELETE FROM users WHERE id = %s RETURNING id",
            (user_id,)
        )

        self.audit.log_change(
            entity_type="user",
            entity_id=user_id,
            action=AuditAction.DELETE,
            changes={"deleted": current.model_dump(mode="json")},
            tenant_id=current.tenant_id
        )
        self.security_logger.log(
            SecurityEvent.USER_DELETED,
            email=current.email,
            user_id=user_id,
            details={"deleted_by": identity.user_id},
        )
