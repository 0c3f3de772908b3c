"""Authentication configuration."""

from pydantic import BaseModel, Field


class AuthConfig(BaseModel):
    """
    Authentication configuration.

    All durations are in their natural units (days for token lifetime,
    minutes for rate limit windows) to make configuration intuitive.
    """

    # Token settings
    token_expiry_days: int = Field(
        default=7,
        description="Session token lifetime in days",
        ge=1,
        le=90,
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm (HMAC family)",
        pattern=r"^HS(256|384|512)$",
    )
    refresh_identity: bool = Field(
        default=True,
        description="Re-read the user row on every request instead of trusting token claims",
    )

    # Cookie settings
    cookie_name: str = Field(
        default="token",
        description="Name of the session cookie",
        min_length=1,
    )
    cookie_secure: bool = Field(
        default=False,
        description="Send the session cookie over HTTPS only",
    )

    # Password hashing
    bcrypt_rounds: int = Field(
        default=10,
        description="bcrypt cost factor for new password hashes",
        ge=4,
        le=15,
    )

    # Rate limiting
    rate_limit_attempts: int = Field(
        default=5,
        description="Max login attempts per email per window",
        ge=1,
        le=20,
    )
    rate_limit_window_minutes: int = Field(
        default=15,
        description="Rate limit window duration",
        ge=1,
        le=60,
    )
