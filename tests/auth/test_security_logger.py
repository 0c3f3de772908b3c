"""Tests for auth/security_logger.py."""

from unittest.mock import MagicMock

from auth.security_logger import SecurityEvent, SecurityLogger
from clients.postgres_client import PostgresClient


class TestSecurityLogger:
    def test_inserts_event(self):
        db = MagicMock(spec=PostgresClient)

        SecurityLogger(db).log(
            SecurityEvent.LOGIN_FAILED,
            email="a@example.com",
            ip_address="10.0.0.1",
            details={"reason": "wrong_password"},
        )

        query, params = db.execute_returning.call_args.args
        assert "INSERT INTO security_events" in query
        assert params[0] == "login_failed"
        assert params[1] == "a@example.com"
        assert params[3] == "10.0.0.1"
        assert params[5].adapted == {"reason": "wrong_password"}

    def test_no_details_stored_as_null(self):
        db = MagicMock(spec=PostgresClient)

        SecurityLogger(db).log(SecurityEvent.LOGOUT)

        assert db.execute_returning.call_args.args[1][5] is None
