"""Client service.

All client reads and writes go through ``ClientService``; other services
that need a client (checklists, alerts, inactivity checks) call
``get_client`` so a missing or soft-deleted client is always a 404.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.core.pagination import PaginationParams
from app.domain.client import Client
from app.repositories.client import ClientRepository
from app.schemas.client import ClientCreate, ClientUpdate


class ClientService:
    def __init__(self, session: AsyncSession, organization_id: str):
        self._repo = ClientRepository(session, organization_id)

    async def list_clients(self, pagination: PaginationParams, status: str | None = None):
        filters = {"status": status} if status else None
        return await self._repo.list(**pagination.as_repo_kwargs(), filters=filters)

    async def get_client(self, client_id: str) -> Client:
        client = await self._repo.get_by_id(client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        return client

    async def create_client(self, data: ClientCreate) -> Client:
        return await self._repo.create(**data.model_dump(exclude_none=True))

    async def update_client(self, client_id: str, data: ClientUpdate) -> Client:
        await self.get_client(client_id)
        updated = await self._repo.update(
            client_id, **data.model_dump(exclude_none=True, exclude_unset=True)
        )
        return updated  # type: ignore[return-value]

    async def delete_client(self, client_id: str) -> None:
        deleted = await self._repo.soft_delete(client_id)
        if not deleted:
            raise NotFoundError("Client", client_id)
