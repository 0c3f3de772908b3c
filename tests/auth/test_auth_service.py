"""Tests for AuthService - password login and token checks."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialError, InvalidCredentialsError, RateLimitedError
from auth.passwords import hash_password
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.service import AuthService
from auth.tokens import TokenManager
from auth.types import UserRecord
from core.models import Identity, Role, Tenant

SECRET = "test-secret-key-with-enough-entropy-0123456789"
CREATED = datetime(2026, 1, 1, tzinfo=timezone.utc)
PASSWORD_HASH = hash_password("hunter22", rounds=4)


def _record(**overrides) -> UserRecord:
    data = {
        "id": 2,
        "email": "accountant@example.com",
        "password_hash": PASSWORD_HASH,
        "role": Role.ACCOUNTANT,
        "tenant_id": 7,
        "created_at": CREATED,
        "last_login_at": None,
    }
    data.update(overrides)
    return UserRecord(**data)


@pytest.fixture
def config():
    return AuthConfig()


@pytest.fixture
def auth_db():
    mock = Mock(spec=AuthDatabase)
    mock.get_user_by_email.return_value = _record()
    mock.get_user_by_id.return_value = _record()
    mock.get_tenant.return_value = Tenant(id=7, name="Acme Ltd", created_at=CREATED)
    return mock


@pytest.fixture
def rate_limiter():
    mock = Mock(spec=RateLimiter)
    mock.record_failure.return_value = 4
    return mock


@pytest.fixture
def security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def token_manager(config):
    return TokenManager(SECRET, config)


@pytest.fixture
def service(config, auth_db, token_manager, rate_limiter, security_logger):
    return AuthService(
        config=config,
        auth_db=auth_db,
        token_manager=token_manager,
        rate_limiter=rate_limiter,
        security_logger=security_logger,
    )


class TestLogin:
    def test_success_issues_token(self, service, auth_db, rate_limiter, security_logger, token_manager):
        result = service.login(" Accountant@Example.com ", "hunter22", "10.0.0.1", "pytest")

        rate_limiter.ensure_allowed.assert_called_once_with("accountant@example.com")
        identity = token_manager.verify(result.token.token)
        assert identity.tenant_id == 7
        assert result.current.user.email == "accountant@example.com"
        assert result.current.tenant.name == "Acme Ltd"
        auth_db.update_last_login.assert_called_once_with(2)
        rate_limiter.clear.assert_called_once_with("accountant@example.com")
        rate_limiter.record_failure.assert_not_called()
        assert security_logger.log.call_args.args[0] == SecurityEvent.LOGIN_SUCCEEDED

    def test_wrong_password(self, service, auth_db, rate_limiter, security_logger):
        with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
            service.login("accountant@example.com", "wrong", None, None)

        auth_db.update_last_login.assert_not_called()
        rate_limiter.clear.assert_not_called()
        rate_limiter.record_failure.assert_called_once_with("accountant@example.com")
        event = security_logger.log.call_args
        assert event.args[0] == SecurityEvent.LOGIN_FAILED
        assert event.kwargs["details"] == {"reason": "wrong_password", "remaining_attempts": 4}

    def test_unknown_email_same_error(self, service, auth_db, rate_limiter):
        """Unknown email and wrong password are indistinguishable."""
        auth_db.get_user_by_email.return_value = None

        with pytest.raises(InvalidCredentialsError, match="Invalid credentials"):
            service.login("nobody@example.com", "hunter22", None, None)

        rate_limiter.record_failure.assert_called_once_with("nobody@example.com")

    def test_rate_limited(self, service, auth_db, rate_limiter, security_logger):
        rate_limiter.ensure_allowed.side_effect = RateLimitedError(retry_after_seconds=60)

        with pytest.raises(RateLimitedError):
            service.login("accountant@example.com", "hunter22", None, None)

        auth_db.get_user_by_email.assert_not_called()
        assert security_logger.log.call_args.args[0] == SecurityEvent.RATE_LIMITED

    def test_system_admin_has_no_tenant(self, service, auth_db):
        admin = _record(id=1, role=Role.SYSTEM_ADMIN, tenant_id=None, email="admin@example.com")
        auth_db.get_user_by_email.return_value = admin
        auth_db.get_user_by_id.return_value = admin

        result = service.login("admin@example.com", "hunter22", None, None)

        assert result.current.tenant is None
        auth_db.get_tenant.assert_not_called()


class TestAuthenticate:
    def test_refreshes_role_and_tenant(self, service, auth_db, token_manager):
        """A role change applies to tokens issued before it."""
        stale = Identity(user_id=2, email="accountant@example.com", role=Role.ACCOUNTANT, tenant_id=7)
        token = token_manager.issue(stale).token
        auth_db.get_user_by_id.return_value = _record(role=Role.COMPANY_ADMIN, tenant_id=9)

        identity = service.authenticate(token)

        assert identity.role == Role.COMPANY_ADMIN
        assert identity.tenant_id == 9

    def test_deleted_user_rejected(self, service, auth_db, token_manager):
        token = token_manager.issue(_record().to_identity()).token
        auth_db.get_user_by_id.return_value = None

        with pytest.raises(InvalidCredentialError):
            service.authenticate(token)

    def test_claims_trusted_without_refresh(self, auth_db, token_manager, rate_limiter, security_logger):
        service = AuthService(
            config=AuthConfig(refresh_identity=False),
            auth_db=auth_db,
            token_manager=token_manager,
            rate_limiter=rate_limiter,
            security_logger=security_logger,
        )
        token = token_manager.issue(_record().to_identity()).token

        assert service.authenticate(token).tenant_id == 7
        auth_db.get_user_by_id.assert_not_called()

    def test_invalid_token(self, service):
        with pytest.raises(InvalidCredentialError):
            service.authenticate("garbage")


class TestLogout:
    def test_logs_identity_of_valid_token(self, service, security_logger, token_manager):
        token = token_manager.issue(_record().to_identity()).token

        service.logout(token, "10.0.0.1")

        call = security_logger.log.call_args
        assert call.args[0] == SecurityEvent.LOGOUT
        assert call.kwargs["user_id"] == 2

    def test_invalid_token_still_logs_out(self, service, security_logger):
        service.logout("garbage", None)
        assert security_logger.log.call_args.kwargs["user_id"] is None
