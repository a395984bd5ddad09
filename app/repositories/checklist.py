"""Checklist template, checklist item and collection session repositories."""

from __future__ import annotations

from datetime import date

from sqlalchemy import case

from app.domain.checklist import ChecklistItem, ChecklistTemplate, CollectionSession
from app.repositories.base import BaseRepository

_PRIORITY_ORDER = case(
    {"critical": 4, "high": 3, "medium": 2, "low": 1},
    value=ChecklistItem.priority,
    else_=0,
)


class ChecklistTemplateRepository(BaseRepository[ChecklistTemplate]):
    model = ChecklistTemplate

    async def list_active(self, category: str | None = None) -> list[ChecklistTemplate]:
        q = self._base_query().where(ChecklistTemplate.is_active.is_(True))
        if category:
            q = q.where(ChecklistTemplate.category == category)
        return await self._all(q.order_by(ChecklistTemplate.name.asc()))


class ChecklistItemRepository(BaseRepository[ChecklistItem]):
    model = ChecklistItem

    async def list_for_client(self, client_id: str) -> list[ChecklistItem]:
        """Items ordered by priority (critical first), then creation."""
        q = (
            self._base_query()
            .where(ChecklistItem.client_id == client_id)
            .order_by(_PRIORITY_ORDER.desc(), ChecklistItem.created_at.asc())
        )
        return await self._all(q)

    async def get_for_client(self, client_id: str, item_id: str) -> ChecklistItem | None:
        q = self._base_query().where(
            ChecklistItem.client_id == client_id, ChecklistItem.id == item_id
        )
        return await self._first(q)

    async def first_open_of_type(self, client_id: str, document_type: str) -> ChecklistItem | None:
        q = (
            self._base_query()
            .where(
                ChecklistItem.client_id == client_id,
                ChecklistItem.document_type == document_type,
                ChecklistItem.status.in_(("pending", "in_progress")),
            )
            .order_by(_PRIORITY_ORDER.desc(), ChecklistItem.created_at.asc())
        )
        return await self._first(q)

    async def list_overdue(self, today: date, client_id: str | None = None) -> list[ChecklistItem]:
        q = self._base_query().where(
            ChecklistItem.due_date.is_not(None),
            ChecklistItem.due_date < today,
            ChecklistItem.status.not_in(("completed", "skipped")),
        )
        if client_id:
            q = q.where(ChecklistItem.client_id == client_id)
        return await self._all(q.order_by(ChecklistItem.due_date.asc()))

    async def list_due_between(
        self, start: date, end: date, client_id: str | None = None
    ) -> list[ChecklistItem]:
        q = self._base_query().where(
            ChecklistItem.due_date >= start,
            ChecklistItem.due_date <= end,
            ChecklistItem.status.not_in(("completed", "skipped")),
        )
        if client_id:
            q = q.where(ChecklistItem.client_id == client_id)
        return await self._all(q.order_by(ChecklistItem.due_date.asc()))


class CollectionSessionRepository(BaseRepository[CollectionSession]):
    model = CollectionSession

    async def get_for_client(self, client_id: str) -> CollectionSession | None:
        return await self._first(
            self._base_query().where(CollectionSession.client_id == client_id)
        )
