"""System-admin routes: /admin/tenants and /admin/users."""

from fastapi import APIRouter, Depends, Query, Response

from auth.guards import require_role
from core.models import Role, TenantCreate, TenantUpdate, UserCreate, UserUpdate
from core.services.tenant_service import TenantService
from core.services.user_service import UserService


def create_admin_router(tenant_service: TenantService, user_service: UserService) -> APIRouter:
    """Create admin router; every route requires SYSTEM_ADMIN."""
    router = APIRouter(
        tags=["admin"],
        dependencies=[Depends(require_role(Role.SYSTEM_ADMIN))],
    )

    # -------------------------------------------------------------------------
    # Tenants
    # -------------------------------------------------------------------------

    @router.post("/tenants", status_code=201)
    async def create_tenant(body: TenantCreate):
        return {"tenant": tenant_service.create(body).model_dump(mode="json")}

    @router.get("/tenants")
    async def list_tenants():
        return {"tenants": [t.model_dump(mode="json") for t in tenant_service.list_all()]}

    @router.get("/tenants/{tenant_id}")
    async def get_tenant(tenant_id: int):
        return {"tenant": tenant_service.get(tenant_id).model_dump(mode="json")}

    @router.put("/tenants/{tenant_id}")
    async def update_tenant(tenant_id: int, body: TenantUpdate):
        return {"tenant": tenant_service.update(tenant_id, body).model_dump(mode="json")}

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    @router.post("/users", status_code=201)
    async def create_user(body: UserCreate):
        return {"user": user_service.create(body).model_dump(mode="json")}

    @router.get("/users")
    async def list_users(tenant_id: int | None = Query(None, ge=1)):
        return {"users": [u.model_dump(mode="json") for u in user_service.list_all(tenant_id)]}

    @router.get("/users/{user_id}")
    async def get_user(user_id: int):
        return {"user": user_service.get(user_id).model_dump(mode="json")}

    @router.put("/users/{user_id}")
    async def update_user(user_id: int, body: UserUpdate):
        return {"user": user_service.update(user_id, body).model_dump(mode="json")}

    @router.delete("/users/{user_id}", status_code=204)
    async def delete_user(user_id: int):
        user_service.delete(user_id)
        return Response(status_code=204)

    return router
