"""Client repository."""

from sqlalchemy import func, select

from app.domain.checklist import ChecklistItem
from app.domain.client import Client
from app.domain.document import Document
from app.repositories.base import BaseRepository


class ClientRepository(BaseRepository[Client]):
    model = Client

    async def latest_document_upload(self, client_id: str):
        q = select(func.max(Document.created_at)).where(
            Document.organization_id == self._organization_id,
            Document.client_id == client_id,
            Document.deleted_at.is_(None),
        )
        return (await self._session.execute(q)).scalar_one_or_none()

    async def latest_checklist_update(self, client_id: str):
        q = select(func.max(ChecklistItem.updated_at)).where(
            ChecklistItem.organization_id == self._organization_id,
            ChecklistItem.client_id == client_id,
            ChecklistItem.deleted_at.is_(None),
        )
        return (await self._session.execute(q)).scalar_one_or_none()
