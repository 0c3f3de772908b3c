"""Security event logging for auth audit trail.

Append-only log to the security_events table. Written by the auth service
and by the admin services when users and tenants are created.
"""

import logging
from enum import Enum
from typing import Any

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)


class SecurityEvent(Enum):
    """Auth security event types."""

    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    RATE_LIMITED = "rate_limited"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    TENANT_CREATED = "tenant_created"


class SecurityLogger:
    """Append-only security event logger."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def log(
        self,
        event: SecurityEvent,
        email: str | None = None,
        user_id: int | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Log security event to database."""
        logger.info("Security event %s email=%s user_id=%s", event.value, email, user_id)
        self._db.execute_returning(
            """INSERT INTO security_events
               (event_type, email, user_id, ip_address, user_agent, details, created_at)
               VALUES (%s, %s, %s, %s, %s, %s, %s)
               RETURNING id""",
            (
                event.value,
                email,
                user_id,
                ip_address,
                user_agent,
                Json(details) if details else None,
                now_utc(),
            ),
        )
