"""Signed session tokens (JWT).

Tokens are self-contained: the claims carry the caller's identity and an
expiry. There is no server-side revocation list, so a token stays valid
until it expires even after logout.
"""

from datetime import timedelta

import jwt
from pydantic import ValidationError

from auth.config import AuthConfig
from auth.exceptions import InvalidCredentialError
from auth.types import IssuedToken
from core.models import Identity
from utils.timezone import now_utc


class TokenManager:
    """Issues and verifies HMAC-signed JWTs embedding an Identity."""

    def __init__(self, secret: str, config: AuthConfig):
        if not secret:
            raise ValueError("JWT secret must not be empty")
        self._secret = secret
        self._config = config

    def issue(self, identity: Identity) -> IssuedToken:
        """Sign a token for the identity, expiring after token_expiry_days."""
        now = now_utc()
        lifetime = timedelta(days=self._config.token_expiry_days)
        expires_at = now + lifetime

        claims = {
            "user_id": identity.user_id,
            "email": identity.email,
            "role": identity.role.value,
            "tenant_id": identity.tenant_id,
            "iat": now,
            "exp": expires_at,
        }
        token = jwt.encode(claims, self._secret, algorithm=self._config.jwt_algorithm)

        return IssuedToken(
            token=token,
            expires_at=expires_at,
            max_age_seconds=int(lifetime.total_seconds()),
        )

    def verify(self, token: str) -> Identity:
        """
        Verify signature and expiry, then rebuild the Identity from claims.

        Raises:
            InvalidCredentialError: Bad signature, expired, or malformed claims.
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._config.jwt_algorithm],
                options={"require": ["exp"]},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidCredentialError("Invalid or expired token") from e

        try:
            return Identity(
                user_id=claims["user_id"],
                email=claims["email"],
                role=claims["role"],
                tenant_id=claims.get("tenant_id"),
            )
        except (KeyError, ValidationError) as e:
            raise InvalidCredentialError("Invalid or expired token") from e
