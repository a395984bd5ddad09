"""Deadline alert service.

Tax deadlines with automatic reminder schedules, the staff alert dashboard,
and :meth:`DeadlineAlertService.run_compliance_checks`, the scheduled sweep
that turns date thresholds into ``compliance_alerts`` rows:

1. pending deadlines due within ``UPCOMING_DEADLINE_DAYS``  -> deadline_approaching
2. deadlines past due and not completed / extended          -> deadline_overdue (level 1)
3. clients with no activity for ``INACTIVITY_THRESHOLD_DAYS`` -> client_inactive
4. required checklist items past due                        -> document_missing
5. active escalation workflows raise matching alerts one level
6. reminder rows whose date has arrived are emailed

An alert is never duplicated while an unresolved one exists for the same
type and subject.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError, NotFoundError
from app.core.pagination import PaginationParams
from app.domain.client import Client
from app.domain.deadline import (
    ClientInactivityAlert,
    ComplianceAlert,
    EscalationWorkflow,
    ReminderSchedule,
    TaxDeadline,
)
from app.domain.mixins import utcnow
from app.repositories.checklist import ChecklistItemRepository
from app.repositories.client import ClientRepository
from app.repositories.deadline import (
    ClientInactivityAlertRepository,
    ComplianceAlertRepository,
    EscalationWorkflowRepository,
    ReminderScheduleRepository,
    TaxDeadlineRepository,
)
from app.repositories.organization import UserRepository
from app.schemas.deadline import (
    AlertDashboard,
    AlertDashboardSummary,
    ComplianceAlertOut,
    ComplianceCheckResult,
    EscalationWorkflowCreate,
    InactivityAlertOut,
    ReminderOut,
    TaxDeadlineCreate,
    TaxDeadlineOut,
    TaxDeadlineUpdate,
)
from app.services.email_service import EmailService, get_email_service, render_notification

logger = logging.getLogger(__name__)

DASHBOARD_UPCOMING_DAYS = 30
RECENT_ALERT_LIMIT = 50
CRITICAL_REMINDER_DAYS = (30, 14, 7, 3, 1)
STANDARD_REMINDER_DAYS = (30, 7, 1)


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------

def reminder_offsets(priority: str) -> tuple[int, ...]:
    return CRITICAL_REMINDER_DAYS if priority == "critical" else STANDARD_REMINDER_DAYS


def reminder_dates(due_date: date, priority: str, today: date) -> list[tuple[int, date]]:
    """``(days_before, reminder_date)`` pairs, keeping only dates after today."""
    pairs = [(days, due_date - timedelta(days=days)) for days in reminder_offsets(priority)]
    return [(days, when) for days, when in pairs if when > today]


def risk_level(inactive_days: int) -> str:
    if inactive_days > 90:
        return "critical"
    if inactive_days > 60:
        return "high"
    if inactive_days > 45:
        return "medium"
    return "low"


def suggested_actions(inactive_days: int, risk: str) -> list[str]:
    actions = ["Send check-in email", "Schedule follow-up call"]
    if risk in ("high", "critical"):
        actions += ["Review client status", "Consider retention strategy"]
    if inactive_days > 90:
        actions += ["Escalate to manager", "Review contract terms"]
    return actions


def condition_matches(condition: dict[str, Any], metrics: dict[str, float]) -> bool:
    actual = metrics.get(condition.get("field", ""))
    if actual is None:
        return False
    expected = float(condition.get("value", 0))
    operator = condition.get("operator")
    if operator == "greater_than":
        return actual > expected
    if operator == "less_than":
        return actual < expected
    if operator == "equals":
        return actual == expected
    return False


class DeadlineAlertService:
    def __init__(
        self,
        session: AsyncSession,
        organization_id: str,
        email_service: EmailService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._deadlines = TaxDeadlineRepository(session, organization_id)
        self._reminders = ReminderScheduleRepository(session, organization_id)
        self._alerts = ComplianceAlertRepository(session, organization_id)
        self._inactivity = ClientInactivityAlertRepository(session, organization_id)
        self._workflows = EscalationWorkflowRepository(session, organization_id)
        self._clients = ClientRepository(session, organization_id)
        self._items = ChecklistItemRepository(session, organization_id)
        self._users = UserRepository(session, organization_id)
        self._email = email_service or get_email_service()
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    # ------------------------------------------------------------------
    # Deadlines
    # ------------------------------------------------------------------

    async def _to_out(self, deadlines: list[TaxDeadline]) -> list[TaxDeadlineOut]:
        reminders: dict[str, list[ReminderOut]] = defaultdict(list)
        for reminder in await self._reminders.list_for_deadlines([d.id for d in deadlines]):
            reminders[reminder.deadline_id].append(ReminderOut.model_validate(reminder))
        return [
            TaxDeadlineOut.model_validate(d).model_copy(update={"reminder_schedule": reminders[d.id]})
            for d in deadlines
        ]

    async def _get_deadline(self, deadline_id: str) -> TaxDeadline:
        deadline = await self._deadlines.get_by_id(deadline_id)
        if not deadline:
            raise NotFoundError("Tax deadline", deadline_id)
        return deadline

    async def _recipients(self, user_id: str | None) -> list[str]:
        if not user_id:
            return []
        user = await self._users.get_by_id(user_id)
        return [user.email] if user and user.is_active else []

    async def create_deadline(self, data: TaxDeadlineCreate) -> TaxDeadlineOut:
        """Insert a deadline plus its reminder rows (30/14/7/3/1 or 30/7/1 days before)."""
        if data.client_id and not await self._clients.get_by_id(data.client_id):
            raise NotFoundError("Client", data.client_id)

        deadline = await self._deadlines.create(**data.model_dump(exclude_none=True))
        recipients = await self._recipients(deadline.assigned_to)
        for days, when in reminder_dates(deadline.due_date, deadline.priority, self._today()):
            await self._reminders.create(
                deadline_id=deadline.id,
                reminder_date=when,
                days_before=days,
                reminder_type="email",
                recipients=recipients,
                message=f"Reminder: Tax deadline approaching in {days} days",
            )
        logger.info(
            "Tax deadline created id=%s form=%s due=%s priority=%s",
            deadline.id, deadline.form_type, deadline.due_date, deadline.priority,
        )
        return (await self._to_out([deadline]))[0]

    async def list_deadlines(self, pagination: PaginationParams, status: str | None = None):
        filters = {"status": status} if status else None
        items, total = await self._deadlines.list(**pagination.as_repo_kwargs(), filters=filters)
        return await self._to_out(items), total

    async def get_deadline(self, deadline_id: str) -> TaxDeadlineOut:
        return (await self._to_out([await self._get_deadline(deadline_id)]))[0]

    async def update_deadline(self, deadline_id: str, data: TaxDeadlineUpdate) -> TaxDeadlineOut:
        deadline = await self._get_deadline(deadline_id)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(deadline, field, value)
        await self._deadlines.save(deadline)
        return (await self._to_out([deadline]))[0]

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    async def dashboard(self) -> AlertDashboard:
        today = self._today()
        upcoming = await self._deadlines.list_due_between(
            today, today + timedelta(days=DASHBOARD_UPCOMING_DAYS)
        )
        overdue = await self._deadlines.list_overdue(today)
        inactive = await self._inactivity.list_unresolved()
        recent = await self._alerts.list_recent(RECENT_ALERT_LIMIT)
        escalated = await self._alerts.list_escalated()

        return AlertDashboard(
            summary=AlertDashboardSummary(
                total_alerts=len(recent),
                critical_alerts=sum(1 for a in recent if a.severity == "critical"),
                overdue_deadlines=len(overdue),
                inactive_clients=len(inactive),
                compliance_issues=sum(1 for a in recent if a.alert_type == "compliance_violation"),
            ),
            upcoming_deadlines=await self._to_out(upcoming),
            overdue_items=await self._to_out(overdue),
            inactive_clients=[InactivityAlertOut.model_validate(a) for a in inactive],
            recent_alerts=[ComplianceAlertOut.model_validate(a) for a in recent],
            escalated_items=[ComplianceAlertOut.model_validate(a) for a in escalated],
        )

    # ------------------------------------------------------------------
    # Alert lifecycle
    # ------------------------------------------------------------------

    async def _raise_alert(
        self,
        alert_type: str,
        *,
        severity: str,
        title: str,
        description: str,
        client_id: str | None = None,
        deadline_id: str | None = None,
        due_date: date | None = None,
        escalation_level: int = 0,
        assigned_to: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ComplianceAlert | None:
        """Create an alert unless an unresolved one exists for the same subject."""
        if await self._alerts.find_unresolved(
            alert_type, client_id=client_id, deadline_id=deadline_id
        ):
            return None
        return await self._alerts.create(
            alert_type=alert_type,
            severity=severity,
            title=title,
            description=description,
            client_id=client_id,
            deadline_id=deadline_id,
            due_date=due_date,
            escalation_level=escalation_level,
            assigned_to=assigned_to,
            details=details,
        )

    async def _get_alert(self, alert_id: str) -> ComplianceAlert:
        alert = await self._alerts.get_by_id(alert_id)
        if not alert:
            raise NotFoundError("Compliance alert", alert_id)
        return alert

    async def acknowledge_alert(self, alert_id: str, actor_id: str | None = None) -> ComplianceAlert:
        alert = await self._get_alert(alert_id)
        alert.is_acknowledged = True
        alert.acknowledged_by = actor_id
        alert.acknowledged_at = utcnow()
        return await self._alerts.save(alert)

    async def resolve_alert(
        self, alert_id: str, actor_id: str | None = None, resolution: str | None = None
    ) -> ComplianceAlert:
        alert = await self._get_alert(alert_id)
        alert.is_resolved = True
        alert.resolved_by = actor_id
        alert.resolved_at = utcnow()
        alert.details = {**(alert.details or {}), "resolution": resolution}
        return await self._alerts.save(alert)

    async def resolve_inactivity_alert(self, alert_id: str) -> ClientInactivityAlert:
        alert = await self._inactivity.get_by_id(alert_id)
        if not alert:
            raise NotFoundError("Inactivity alert", alert_id)
        alert.is_resolved = True
        alert.resolved_at = utcnow()
        return await self._inactivity.save(alert)

    # ------------------------------------------------------------------
    # Escalation workflows
    # ------------------------------------------------------------------

    async def create_workflow(self, data: EscalationWorkflowCreate) -> EscalationWorkflow:
        payload = data.model_dump(mode="json")
        return await self._workflows.create(**payload)

    async def list_workflows(self) -> list[EscalationWorkflow]:
        return await self._workflows.list_all()

    # ------------------------------------------------------------------
    # Compliance checks
    # ------------------------------------------------------------------

    async def check_upcoming_deadlines(self) -> int:
        today = self._today()
        created = 0
        horizon = today + timedelta(days=settings.upcoming_deadline_days)
        for deadline in await self._deadlines.list_due_between(today, horizon):
            if deadline.status != "pending":
                continue
            alert = await self._raise_alert(
                "deadline_approaching",
                severity="critical" if deadline.priority == "critical" else "warning",
                title="Tax Deadline Approaching",
                description=f"{deadline.form_type} deadline is approaching on {deadline.due_date.isoformat()}",
                client_id=deadline.client_id,
                deadline_id=deadline.id,
                due_date=deadline.due_date,
                assigned_to=deadline.assigned_to,
            )
            created += alert is not None
        return created

    async def check_overdue_deadlines(self) -> int:
        created = 0
        for deadline in await self._deadlines.list_overdue(self._today()):
            if deadline.status != "overdue":
                deadline.status = "overdue"
                await self._deadlines.save(deadline)
            alert = await self._raise_alert(
                "deadline_overdue",
                severity="critical",
                title="Tax Deadline Overdue",
                description=f"{deadline.form_type} deadline was due on {deadline.due_date.isoformat()}",
                client_id=deadline.client_id,
                deadline_id=deadline.id,
                due_date=deadline.due_date,
                escalation_level=1,
                assigned_to=deadline.assigned_to,
            )
            created += alert is not None
        return created

    async def _last_activity(self, client: Client) -> datetime:
        candidates = [
            client.created_at,
            await self._clients.latest_document_upload(client.id),
            await self._clients.latest_checklist_update(client.id),
        ]
        return max(c for c in candidates if c is not None)

    async def monitor_client_inactivity(self) -> tuple[list[ClientInactivityAlert], int]:
        """Refresh inactivity alerts; returns ``(open inactivity alerts, compliance alerts created)``."""
        now = self._clock()
        flagged: list[ClientInactivityAlert] = []
        created = 0

        for client in await self._clients.list_all():
            if client.status == "archived":
                continue
            last_activity = await self._last_activity(client)
            inactive_days = (now - last_activity).days
            existing = await self._inactivity.find_unresolved_for_client(client.id)

            if inactive_days <= settings.inactivity_threshold_days:
                if existing:
                    existing.is_resolved = True
                    existing.resolved_at = now
                    await self._inactivity.save(existing)
                continue

            risk = risk_level(inactive_days)
            actions = suggested_actions(inactive_days, risk)
            if existing:
                existing.last_activity = last_activity
                existing.inactive_days = inactive_days
                existing.risk_level = risk
                existing.suggested_actions = actions
                flagged.append(await self._inactivity.save(existing))
            else:
                flagged.append(await self._inactivity.create(
                    client_id=client.id,
                    client_name=client.name,
                    last_activity=last_activity,
                    inactive_days=inactive_days,
                    risk_level=risk,
                    suggested_actions=actions,
                    assigned_to=client.assigned_to,
                ))

            alert = await self._raise_alert(
                "client_inactive",
                severity="critical" if risk == "critical" else "warning",
                title="Client Inactivity Detected",
                description=f"Client {client.name} has been inactive for {inactive_days} days",
                client_id=client.id,
                assigned_to=client.assigned_to,
                details={"inactive_days": inactive_days, "risk_level": risk},
            )
            created += alert is not None
        return flagged, created

    async def check_missing_documents(self) -> int:
        """One ``document_missing`` alert per client with required items past due."""
        missing: dict[str, int] = defaultdict(int)
        for item in await self._items.list_overdue(self._today()):
            if item.is_required:
                missing[item.client_id] += 1

        created = 0
        for client_id, count in missing.items():
            client = await self._clients.get_by_id(client_id)
            if client is None:
                continue
            alert = await self._raise_alert(
                "document_missing",
                severity="error",
                title="Required Documents Missing",
                description=f"{count} required documents for client {client.name} are past due",
                client_id=client_id,
                assigned_to=client.assigned_to,
                details={"missing_documents": count},
            )
            created += alert is not None
        return created

    async def _alert_metrics(self, alert: ComplianceAlert, today: date) -> dict[str, float]:
        metrics: dict[str, float] = {
            "days_overdue": max((today - alert.due_date).days, 0) if alert.due_date else 0,
            "client_inactivity": 0,
            "missing_documents": 0,
            "compliance_score": 100,
        }
        if alert.client_id:
            inactivity = await self._inactivity.find_unresolved_for_client(alert.client_id)
            if inactivity:
                metrics["client_inactivity"] = inactivity.inactive_days
            overdue_items = await self._items.list_overdue(today, alert.client_id)
            metrics["missing_documents"] = sum(1 for i in overdue_items if i.is_required)
            client = await self._clients.get_by_id(alert.client_id)
            if client:
                metrics["compliance_score"] = client.progress
        return metrics

    async def process_escalation_workflows(self) -> int:
        """Raise each unresolved alert matching a workflow by one level (once per run)."""
        workflows = await self._workflows.list_active()
        if not workflows:
            return 0

        today = self._today()
        escalated = 0
        for alert in await self._alerts.list_unresolved():
            metrics = await self._alert_metrics(alert, today)
            for workflow in workflows:
                conditions = workflow.trigger_conditions or []
                if not conditions or not all(condition_matches(c, metrics) for c in conditions):
                    continue
                max_level = len(workflow.escalation_steps) or 1
                if alert.escalation_level >= max_level:
                    continue

                alert.escalation_level += 1
                alert.details = {
                    **(alert.details or {}),
                    "escalated_by": workflow.name,
                    "escalated_at": self._clock().isoformat(),
                }
                await self._alerts.save(alert)
                await self._run_escalation_step(workflow, alert)
                escalated += 1
                break
        return escalated

    async def _run_escalation_step(self, workflow: EscalationWorkflow, alert: ComplianceAlert) -> None:
        step = next(
            (s for s in workflow.escalation_steps if s.get("step_number") == alert.escalation_level),
            None,
        )
        if step is None:
            return
        logger.info(
            "Escalation workflow=%s alert=%s level=%d action=%s",
            workflow.name, alert.id, alert.escalation_level, step.get("action"),
        )
        if step.get("action") != "send_urgent_email":
            return
        body = step.get("message") or f"Escalated: {alert.title}. {alert.description or ''}".strip()
        for recipient in step.get("recipients") or []:
            try:
                await self._email.send(render_notification(
                    to=recipient, subject=f"URGENT: {alert.title}", body=body
                ))
            except EmailDeliveryError as exc:
                logger.warning("Escalation email to %s failed: %s", recipient, exc.message)

    async def send_scheduled_reminders(self) -> int:
        sent = 0
        now = self._clock()
        deadlines: dict[str, TaxDeadline | None] = {}

        for reminder in await self._reminders.list_due(now.date()):
            if reminder.deadline_id not in deadlines:
                deadlines[reminder.deadline_id] = await self._deadlines.get_by_id(reminder.deadline_id)
            deadline = deadlines[reminder.deadline_id]

            if deadline is None or deadline.status in ("completed", "extended"):
                await self._mark_sent(reminder, now)
                continue
            try:
                for recipient in reminder.recipients:
                    await self._email.send(render_notification(
                        to=recipient,
                        subject=f"{deadline.form_type} due {deadline.due_date.isoformat()}",
                        body=reminder.message,
                    ))
            except EmailDeliveryError as exc:
                logger.warning("Reminder %s not delivered, will retry: %s", reminder.id, exc.message)
                continue
            await self._mark_sent(reminder, now)
            sent += bool(reminder.recipients)
        return sent

    async def _mark_sent(self, reminder: ReminderSchedule, now: datetime) -> None:
        reminder.is_sent = True
        reminder.sent_at = now
        await self._reminders.save(reminder)

    async def run_compliance_checks(self) -> ComplianceCheckResult:
        created = await self.check_upcoming_deadlines()
        created += await self.check_overdue_deadlines()
        inactive, inactivity_alerts = await self.monitor_client_inactivity()
        created += inactivity_alerts
        created += await self.check_missing_documents()
        escalated = await self.process_escalation_workflows()
        reminders = await self.send_scheduled_reminders()

        result = ComplianceCheckResult(
            alerts_created=created,
            inactive_clients=len(inactive),
            escalated_alerts=escalated,
            reminders_sent=reminders,
        )
        logger.info(
            "Compliance checks org=%s alerts=%d inactive=%d escalated=%d reminders=%d",
            self._alerts.organization_id, created, len(inactive), escalated, reminders,
        )
        return result
