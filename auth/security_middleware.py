"""Security middleware for FastAPI - token validation and caller context."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from auth.exceptions import InvalidCredentialError
from auth.service import AuthService
from api.base import error_response, ErrorCodes
from utils.tenant_context import set_current_identity, clear_current_identity

logger = logging.getLogger(__name__)


def extract_token(request: Request, cookie_name: str) -> str | None:
    """Session cookie first, then an `Authorization: Bearer` header."""
    token = request.cookies.get(cookie_name)
    if token:
        return token

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session token and sets caller context.

    For protected routes:
    1. Extracts token from the session cookie (or Bearer header)
    2. Resolves it to an Identity via AuthService
    3. Sets identity in request.state and the tenant context
    4. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/auth/login",
        "/auth/logout",
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, auth_service: AuthService, cookie_name: str = "token"):
        super().__init__(app)
        self._auth_service = auth_service
        self._cookie_name = cookie_name

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path + "/"):
                return True
        return False

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        # Skip auth for public paths and CORS preflight
        if request.method == "OPTIONS" or self._is_public_path(path):
            return await call_next(request)

        token = extract_token(request, self._cookie_name)

        if not token:
            return error_response(
                401,
                ErrorCodes.NOT_AUTHENTICATED,
                "Unauthorized - No token provided",
            )

        try:
            identity = self._auth_service.authenticate(token)
        except InvalidCredentialError:
            logger.info("Rejected token on %s %s", request.method, path)
            return error_response(
                401,
                ErrorCodes.INVALID_TOKEN,
                "Invalid or expired token",
            )

        set_current_identity(identity)
        request.state.identity = identity

        try:
            response = await call_next(request)
            return response
        finally:
            # Always clear context
            clear_current_identity()
