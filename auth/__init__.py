"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    UnauthorizedError,
    InvalidCredentialError,
    InvalidCredentialsError,
    RateLimitedError,
)
from auth.types import (
    LoginRequest,
    UserRecord,
    IssuedToken,
    CurrentUser,
)
from auth.config import AuthConfig
from auth.passwords import hash_password, verify_password
from auth.tokens import TokenManager
from auth.database import AuthDatabase
from auth.rate_limiter import RateLimiter
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.service import AuthService, LoginResult
from auth.security_middleware import AuthMiddleware, extract_token
from auth.guards import get_identity, require_role, require_tenant
from auth.api import create_auth_router
