"""Login lockout after repeated wrong passwords.

Only failed logins count. Each failure pushes the window forward, so an
account under attack stays locked while guessing continues; a successful
login clears the count. Unknown emails are counted too, so the response to
a locked-out address never reveals whether it has an account.
"""

import logging

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Per-email failed-login counter in Valkey."""

    KEY_PREFIX = "login_failures:"

    def __init__(self, valkey: ValkeyClient, config: AuthConfig):
        self._valkey = valkey
        self._max_failures = config.rate_limit_attempts
        self._window_seconds = config.rate_limit_window_minutes * 60

    def _key(self, email: str) -> str:
        return f"{self.KEY_PREFIX}{email.strip().lower()}"

    def _failures(self, email: str) -> int:
        return int(self._valkey.get(self._key(email)) or 0)

    def ensure_allowed(self, email: str) -> None:
        """Refuse the attempt while the email is locked out.

        Checked before the password, so a locked account gets 429 even
        with the right password.

        Raises:
            RateLimitedError: max failures reached inside the window.
        """
        if self._failures(email) < self._max_failures:
            return
        retry_after = max(self._valkey.ttl(self._key(email)), 1)
        raise RateLimitedError(retry_after_seconds=retry_after)

    def record_failure(self, email: str) -> int:
        """Count a failed login. Returns attempts left before lockout."""
        key = self._key(email)
        failures = self._valkey.incr(key)
        self._valkey.expire(key, self._window_seconds)
        if failures == self._max_failures:
            logger.warning(f"Login locked for {email.strip().lower()} after {failures} failures")
        return max(self._max_failures - failures, 0)

    def clear(self, email: str) -> None:
        """Forget past failures after a successful login."""
        self._valkey.delete(self._key(email))
