"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class UnauthorizedError(AuthError):
    """No credential was presented on a protected route."""


class InvalidCredentialError(AuthError):
    """
    Token is invalid, expired, malformed, or belongs to a vanished user.

    The cases are not distinguished to the caller.
    """


class InvalidCredentialsError(AuthError):
    """
    Login email/password pair did not match.

    Note: In user-facing responses, don't reveal whether the email exists.
    """


class RateLimitedError(AuthError):
    """Too many attempts. Client should wait before retrying."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Rate limited. Retry after {retry_after_seconds} seconds.")
