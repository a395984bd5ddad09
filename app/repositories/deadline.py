"""Tax deadline, reminder, compliance alert and escalation workflow repositories."""

from __future__ import annotations

from datetime import date

from app.domain.deadline import (
    ClientInactivityAlert,
    ComplianceAlert,
    EscalationWorkflow,
    ReminderSchedule,
    TaxDeadline,
)
from app.repositories.base import BaseRepository


class TaxDeadlineRepository(BaseRepository[TaxDeadline]):
    model = TaxDeadline

    async def list_due_between(self, start: date, end: date) -> list[TaxDeadline]:
        q = self._base_query().where(
            TaxDeadline.due_date >= start,
            TaxDeadline.due_date <= end,
            TaxDeadline.status.in_(("pending", "in_progress")),
        )
        return await self._all(q.order_by(TaxDeadline.due_date.asc()))

    async def list_overdue(self, today: date) -> list[TaxDeadline]:
        q = self._base_query().where(
            TaxDeadline.due_date < today,
            TaxDeadline.status.not_in(("completed", "extended")),
        )
        return await self._all(q.order_by(TaxDeadline.due_date.asc()))


class ReminderScheduleRepository(BaseRepository[ReminderSchedule]):
    model = ReminderSchedule

    async def list_for_deadline(self, deadline_id: str) -> list[ReminderSchedule]:
        q = self._base_query().where(ReminderSchedule.deadline_id == deadline_id)
        return await self._all(q.order_by(ReminderSchedule.reminder_date.asc()))

    async def list_for_deadlines(self, deadline_ids: list[str]) -> list[ReminderSchedule]:
        if not deadline_ids:
            return []
        q = self._base_query().where(ReminderSchedule.deadline_id.in_(deadline_ids))
        return await self._all(q.order_by(ReminderSchedule.reminder_date.asc()))

    async def list_due(self, today: date) -> list[ReminderSchedule]:
        q = self._base_query().where(
            ReminderSchedule.reminder_date <= today,
            ReminderSchedule.is_sent.is_(False),
        )
        return await self._all(q.order_by(ReminderSchedule.reminder_date.asc()))


class ComplianceAlertRepository(BaseRepository[ComplianceAlert]):
    model = ComplianceAlert

    async def find_unresolved(
        self,
        alert_type: str,
        *,
        client_id: str | None = None,
        deadline_id: str | None = None,
        vendor_id: str | None = None,
    ) -> ComplianceAlert | None:
        """An open alert of ``alert_type`` for the same subject, if one exists."""
        q = self._base_query().where(
            ComplianceAlert.alert_type == alert_type,
            ComplianceAlert.is_resolved.is_(False),
        )
        for col, value in (
            (ComplianceAlert.client_id, client_id),
            (ComplianceAlert.deadline_id, deadline_id),
            (ComplianceAlert.vendor_id, vendor_id),
        ):
            q = q.where(col.is_(None) if value is None else col == value)
        return await self._first(q)

    async def list_unresolved(
        self, alert_types: tuple[str, ...] | None = None, vendor_id: str | None = None
    ) -> list[ComplianceAlert]:
        q = self._base_query().where(ComplianceAlert.is_resolved.is_(False))
        if alert_types:
            q = q.where(ComplianceAlert.alert_type.in_(alert_types))
        if vendor_id:
            q = q.where(ComplianceAlert.vendor_id == vendor_id)
        return await self._all(q.order_by(ComplianceAlert.created_at.desc()))

    async def list_recent(self, limit: int = 50) -> list[ComplianceAlert]:
        q = self._base_query().order_by(ComplianceAlert.created_at.desc()).limit(limit)
        return await self._all(q)

    async def list_escalated(self) -> list[ComplianceAlert]:
        q = self._base_query().where(
            ComplianceAlert.escalation_level > 0,
            ComplianceAlert.is_resolved.is_(False),
        )
        return await self._all(q.order_by(ComplianceAlert.escalation_level.desc()))


class ClientInactivityAlertRepository(BaseRepository[ClientInactivityAlert]):
    model = ClientInactivityAlert

    async def list_unresolved(self) -> list[ClientInactivityAlert]:
        q = self._base_query().where(ClientInactivityAlert.is_resolved.is_(False))
        return await self._all(q.order_by(ClientInactivityAlert.inactive_days.desc()))

    async def find_unresolved_for_client(self, client_id: str) -> ClientInactivityAlert | None:
        q = self._base_query().where(
            ClientInactivityAlert.client_id == client_id,
            ClientInactivityAlert.is_resolved.is_(False),
        )
        return await self._first(q)


class EscalationWorkflowRepository(BaseRepository[EscalationWorkflow]):
    model = EscalationWorkflow

    async def list_active(self) -> list[EscalationWorkflow]:
        q = self._base_query().where(EscalationWorkflow.is_active.is_(True))
        return await self._all(q.order_by(EscalationWorkflow.priority.desc()))
