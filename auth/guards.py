"""Route guards, used as FastAPI dependencies.

    @router.get("/admin/users", dependencies=[Depends(require_role(Role.SYSTEM_ADMIN))])
"""

from fastapi import Depends, Request

from auth.exceptions import UnauthorizedError
from core.exceptions import ForbiddenError, TenantContextRequiredError
from core.models import Identity, Role


def get_identity(request: Request) -> Identity:
    """The caller resolved by AuthMiddleware.

    Raises:
        UnauthorizedError: No identity on the request.
    """
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise UnauthorizedError("Unauthorized - No token provided")
    return identity


def require_role(*roles: Role):
    """Dependency factory: caller's role must be one of `roles`."""
    allowed = frozenset(roles)

    def dependency(identity: Identity = Depends(get_identity)) -> Identity:
        if identity.role not in allowed:
            raise ForbiddenError("Forbidden - Insufficient permissions")
        return identity

    return dependency


def require_tenant(identity: Identity = Depends(get_identity)) -> Identity:
    """SYSTEM_ADMIN passes; everyone else must belong to a tenant."""
    if identity.is_system_admin:
        return identity
    if identity.tenant_id is None:
        raise TenantContextRequiredError("Forbidden - Tenant context required")
    return identity
