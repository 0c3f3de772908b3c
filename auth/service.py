"""Authentication service - orchestrates password login and token checks."""

import logging
from dataclasses import dataclass

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import InvalidCredentialError, InvalidCredentialsError, RateLimitedError
from auth.passwords import verify_password
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.tokens import TokenManager
from auth.types import CurrentUser, IssuedToken, UserRecord
from core.models import Identity

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    """Result of a successful login."""

    current: CurrentUser
    token: IssuedToken


class AuthService:
    """Orchestrates authentication.

    Handles:
    - Password login (rate limited per email)
    - Token verification with optional identity re-fetch
    - Logout logging
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        token_manager: TokenManager,
        rate_limiter: RateLimiter,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._token_manager = token_manager
        self._rate_limiter = rate_limiter
        self._security_logger = security_logger

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None,
        user_agent: str | None,
    ) -> LoginResult:
        """Check credentials and issue a session token.

        Flow:
        1. Refuse emails locked out by earlier failures
        2. Look up user by email
        3. Verify password (a failure counts toward the lockout)
        4. Issue token, update last_login, clear the failure count
        5. Log security event

        Raises:
            RateLimitedError: Too many failed attempts for this email.
            InvalidCredentialsError: Unknown email or wrong password.
        """
        email = email.lower().strip()

        try:
            self._rate_limiter.ensure_allowed(email)
        except RateLimitedError:
            self._security_logger.log(
                SecurityEvent.RATE_LIMITED,
                email=email,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise

        user = self._auth_db.get_user_by_email(email)

        if user is None or not verify_password(password, user.password_hash):
            remaining = self._rate_limiter.record_failure(email)
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email,
                user_id=user.id if user else None,
                ip_address=ip_address,
                user_agent=user_agent,
                details={
                    "reason": "user_not_found" if user is None else "wrong_password",
                    "remaining_attempts": remaining,
                },
            )
            raise InvalidCredentialsError("Invalid credentials")

        token = self._token_manager.issue(user.to_identity())

        self._auth_db.update_last_login(user.id)
        self._rate_limiter.clear(email)

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=user.email,
            user_id=user.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        # Refresh user to get updated last_login_at
        refreshed = self._auth_db.get_user_by_id(user.id) or user

        return LoginResult(current=self._current_user(refreshed), token=token)

    def authenticate(self, token: str) -> Identity:
        """Resolve a presented token to the caller's Identity.

        With refresh_identity on, the user row is re-read so role and tenant
        changes (and deletions) apply to tokens issued before them.

        Raises:
            InvalidCredentialError: Token invalid/expired, or user no longer exists.
        """
        identity = self._token_manager.verify(token)

        if not self._config.refresh_identity:
            return identity

        user = self._auth_db.get_user_by_id(identity.user_id)
        if user is None:
            logger.info("Token presented for deleted user %s", identity.user_id)
            raise InvalidCredentialError("Invalid or expired token")

        return user.to_identity()

    def current_user(self, identity: Identity) -> CurrentUser:
        """Re-read the caller's user row with their tenant.

        Raises:
            InvalidCredentialError: User no longer exists.
        """
        user = self._auth_db.get_user_by_id(identity.user_id)
        if user is None:
            raise InvalidCredentialError("Invalid or expired token")
        return self._current_user(user)

    def logout(self, token: str | None, ip_address: str | None) -> None:
        """Log the logout.

        Tokens are not revoked server-side; the caller clears the cookie.
        Safe to call with a missing or invalid token.
        """
        email = None
        user_id = None
        if token:
            try:
                identity = self._token_manager.verify(token)
                email = identity.email
                user_id = identity.user_id
            except InvalidCredentialError:
                pass

        self._security_logger.log(
            SecurityEvent.LOGOUT,
            email=email,
            user_id=user_id,
            ip_address=ip_address,
        )

    def _current_user(self, user: UserRecord) -> CurrentUser:
        tenant = self._auth_db.get_tenant(user.tenant_id) if user.tenant_id is not None else None
        return CurrentUser(user=user.to_user(), tenant=tenant)
