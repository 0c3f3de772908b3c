"""HTTP routes for authentication."""

import ipaddress

from fastapi import APIRouter, Depends, Request, Response

from auth.config import AuthConfig
from auth.guards import get_identity
from auth.security_middleware import extract_token
from auth.service import AuthService
from auth.types import LoginRequest
from core.models import Identity


def _get_client_ip(request: Request) -> str | None:
    """Extract valid IP address from request, or None if invalid."""
    if not request.client:
        return None
    host = request.client.host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        return None


def create_auth_router(auth_service: AuthService, config: AuthConfig) -> APIRouter:
    """Create auth router with injected service."""
    router = APIRouter(tags=["auth"])

    @router.post("/login")
    async def login(request: Request, response: Response, body: LoginRequest):
        """Check email/password and set the session cookie.

        Failures (401 Invalid credentials, 429 rate limited) are raised and
        rendered by the global handlers, so no cookie is ever set on them.
        """
        result = auth_service.login(
            email=body.email,
            password=body.password,
            ip_address=_get_client_ip(request),
            user_agent=request.headers.get("User-Agent"),
        )

        response.set_cookie(
            key=config.cookie_name,
            value=result.token.token,
            httponly=True,
            secure=config.cookie_secure,
            samesite="lax",
            path="/",
            max_age=result.token.max_age_seconds,
        )

        return result.current.model_dump(mode="json")

    @router.get("/me")
    async def get_current_user(identity: Identity = Depends(get_identity)):
        """Get current authenticated user (re-read, with tenant)."""
        return auth_service.current_user(identity).model_dump(mode="json")

    @router.post("/logout")
    async def logout(request: Request, response: Response):
        """Logout - clear cookie. The token itself stays valid until expiry."""
        auth_service.logout(
            token=extract_token(request, config.cookie_name),
            ip_address=_get_client_ip(request),
        )

        response.delete_cookie(
            key=config.cookie_name,
            path="/",
            httponly=True,
            secure=config.cookie_secure,
            samesite="lax",
        )

        return {"message": "Logged out successfully"}

    return router
