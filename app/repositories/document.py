"""Document and document-alert repositories."""

from __future__ import annotations

from sqlalchemy import func, select

from app.domain.document import Document, DocumentAlert
from app.repositories.base import BaseRepository


class DocumentRepository(BaseRepository[Document]):
    model = Document

    async def list_for_client(self, client_id: str) -> list[Document]:
        return await self.list_all(client_id=client_id)


class DocumentAlertRepository(BaseRepository[DocumentAlert]):
    model = DocumentAlert

    async def list_by_status(
        self, status: str, client_id: str | None = None
    ) -> list[DocumentAlert]:
        q = self._base_query().where(DocumentAlert.status == status)
        if client_id:
            q = q.where(DocumentAlert.client_id == client_id)
        return await self._all(q.order_by(DocumentAlert.created_at.desc()))

    async def find_pending(
        self, client_id: str, checklist_item_id: str | None, alert_type: str
    ) -> DocumentAlert | None:
        q = self._base_query().where(
            DocumentAlert.client_id == client_id,
            DocumentAlert.alert_type == alert_type,
            DocumentAlert.status == "pending",
        )
        if checklist_item_id is None:
            q = q.where(DocumentAlert.checklist_item_id.is_(None))
        else:
            q = q.where(DocumentAlert.checklist_item_id == checklist_item_id)
        return await self._first(q)

    async def counts_by_type_and_status(
        self, client_id: str | None = None
    ) -> list[tuple[str, str, int]]:
        q = (
            select(DocumentAlert.alert_type, DocumentAlert.status, func.count())
            .where(
                DocumentAlert.organization_id == self._organization_id,
                DocumentAlert.deleted_at.is_(None),
            )
            .group_by(DocumentAlert.alert_type, DocumentAlert.status)
        )
        if client_id:
            q = q.where(DocumentAlert.client_id == client_id)
        rows = (await self._session.execute(q)).all()
        return [(r[0], r[1], r[2]) for r in rows]
