"""Tests for UserService."""

from datetime import datetime, timezone
from unittest.mock import Mock

import bcrypt
import pytest
from psycopg2 import errors

from auth.config import AuthConfig
from auth.security_logger import SecurityEvent, SecurityLogger
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailedError
from core.models import Role, UserCreate, UserUpdate
from core.services.user_service import UserService

CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def user_service(db, audit, security_logger):
    # Minimum bcrypt cost keeps hashing fast
    return UserService(db, audit, security_logger, AuthConfig(bcrypt_rounds=4))


def _user(user_id=5, role="ACCOUNTANT", tenant_id=7, email="acc@example.com"):
    return {
        "id": user_id,
        "email": email,
        "role": role,
        "tenant_id": tenant_id,
        "created_at": CREATED,
        "last_login_at": None,
    }


class TestUserCreate:
    def test_hashes_password(self, db, security_logger, as_admin, user_service):
        db.execute_single.return_value = {"id": 7}
        db.execute_returning.return_value = [_user()]

        user = user_service.create(
            UserCreate(email="Acc@Example.com", password="secret1", role=Role.ACCOUNTANT, tenant_id=7)
        )

        params = db.execute_returning.call_args.args[1]
        assert params[1] != "secret1"
        assert bcrypt.checkpw(b"secret1", params[1].encode())
        assert params[2] == "ACCOUNTANT"
        assert user.role == Role.ACCOUNTANT
        assert security_logger.log.call_args.args[0] == SecurityEvent.USER_CREATED

    def test_unknown_tenant_not_found(self, db, as_admin, user_service):
        db.execute_single.return_value = None

        with pytest.raises(NotFoundError, match="Tenant not found"):
            user_service.create(UserCreate(email="a@example.com", password="secret1", role=Role.ACCOUNTANT, tenant_id=99))
        db.execute_returning.assert_not_called()

    def test_system_admin_skips_tenant_lookup(self, db, as_admin, user_service):
        db.execute_returning.return_value = [_user(role="SYSTEM_ADMIN", tenant_id=None)]

        user_service.create(UserCreate(email="root@example.com", password="secret1", role=Role.SYSTEM_ADMIN))

        db.execute_single.assert_not_called()

    def test_duplicate_email_conflict(self, db, as_admin, user_service):
        db.execute_single.return_value = {"id": 7}
        db.execute_returning.side_effect = errors.UniqueViolation()

        with pytest.raises(ConflictError, match="Email already in use"):
            user_service.create(UserCreate(email="a@example.com", password="secret1", role=Role.ACCOUNTANT, tenant_id=7))


class TestUserUpdate:
    def test_promotion_requires_tenant_detach(self, db, as_admin, user_service):
        """Role SYSTEM_ADMIN with the old tenant still attached breaks the invariant."""
        db.execute_single.return_value = _user()

        with pytest.raises(ValidationFailedError) as exc_info:
            user_service.update(5, UserUpdate(role=Role.SYSTEM_ADMIN))

        assert exc_info.value.details[0]["field"] == "tenant_id"
        db.execute_returning.assert_not_called()

    def test_promotion_with_explicit_null_tenant(self, db, as_admin, user_service):
        db.execute_single.return_value = _user()
        db.execute_returning.return_value = [_user(role="SYSTEM_ADMIN", tenant_id=None)]

        user = user_service.update(5, UserUpdate(role=Role.SYSTEM_ADMIN, tenant_id=None))

        query, params = db.execute_returning.call_args.args
        assert "role = %s" in query
        assert "tenant_id = %s" in query
        assert params == ("SYSTEM_ADMIN", None, 5)
        assert user.tenant_id is None

    def test_detaching_accountant_rejected(self, db, as_admin, user_service):
        db.execute_single.return_value = _user()

        with pytest.raises(ValidationFailedError):
            user_service.update(5, UserUpdate(tenant_id=None))

    def test_moving_to_unknown_tenant(self, db, as_admin, user_service):
        db.execute_single.side_effect = [_user(), None]

        with pytest.raises(NotFoundError, match="Tenant not found"):
            user_service.update(5, UserUpdate(tenant_id=99))

    def test_password_change_masked_in_audit(self, db, audit, security_logger, as_admin, user_service):
        db.execute_single.return_value = _user()
        db.execute_returning.return_value = [_user()]

        user_service.update(5, UserUpdate(password="newsecret"))

        query = db.execute_returning.call_args.args[0]
        assert "password_hash = %s" in query
        assert audit.log_change.call_args.kwargs["changes"] == {"password": {"old": "***", "new": "***"}}
        assert security_logger.log.call_args.args[0] == SecurityEvent.USER_UPDATED

    def test_email_lowercased(self, db, as_admin, user_service):
        db.execute_single.return_value = _user()
        db.execute_returning.return_value = [_user(email="new@example.com")]

        user_service.update(5, UserUpdate(email="New@Example.com"))

        assert db.execute_returning.call_args.args[1] == ("new@example.com", 5)


class TestUserDelete:
    def test_cannot_delete_self(self, db, as_admin, user_service):
        with pytest.raises(ForbiddenError):
            user_service.delete(as_admin.user_id)
        db.execute_returning.assert_not_called()

    def test_deletes_other_user(self, db, security_logger, as_admin, user_service):
        db.execute_single.return_value = _user()

        user_service.delete(5)

        assert db.execute_returning.call_args.args[1] == (5,)
        assert security_logger.log.call_args.args[0] == SecurityEvent.USER_DELETED

    def test_missing_user_not_found(self, db, as_admin, user_service):
        db.execute_single.return_value = None

        with pytest.raises(NotFoundError, match="User not found"):
            user_service.delete(5)
