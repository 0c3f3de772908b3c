"""Client routes: /api/clients."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from auth.guards import require_tenant
from core.models import ClientBulkCreate, ClientCreate, ClientUpdate
from core.services.client_service import ClientService


def create_clients_router(client_service: ClientService) -> APIRouter:
    """Create client router with injected service."""
    router = APIRouter(
        prefix="/clients",
        tags=["clients"],
        dependencies=[Depends(require_tenant)],
    )

    @router.get("")
    async def list_clients(
        search: str | None = Query(None, max_length=255),
        tenant_id: int | None = Query(None, ge=1),
        limit: int = Query(50, ge=1, le=500),
        offset: int = Query(0, ge=0),
    ):
        clients = client_service.list_all(
            search=search, tenant_id=tenant_id, limit=limit, offset=offset
        )
        return [c.model_dump(mode="json") for c in clients]

    @router.post("", status_code=201)
    async def create_client(body: ClientCreate):
        return client_service.create(body).model_dump(mode="json")

    @router.post("/bulk", status_code=201)
    async def bulk_create_clients(body: ClientBulkCreate):
        return {"count": client_service.bulk_create(body)}

    @router.get("/{client_id}")
    async def get_client(client_id: UUID):
        return client_service.get(client_id).model_dump(mode="json")

    @router.put("/{client_id}")
    async def update_client(client_id: UUID, body: ClientUpdate):
        return client_service.update(client_id, body).model_dump(mode="json")

    @router.delete("/{client_id}", status_code=204)
    async def delete_client(client_id: UUID):
        client_service.delete(client_id)
        return Response(status_code=204)

    return router
