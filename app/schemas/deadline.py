"""Tax deadline, reminder, escalation workflow and compliance alert schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import Field

from app.schemas.common import CamelModel

Priority = Literal["low", "medium", "high", "critical"]


class ReminderOut(CamelModel):
    id: str
    deadline_id: str
    reminder_date: date
    days_before: int
    reminder_type: str
    recipients: list[str]
    message: str
    is_sent: bool
    sent_at: datetime | None = None


class TaxDeadlineCreate(CamelModel):
    deadline_type: Literal[
        "individual", "business", "quarterly", "annual", "extension", "amendment"
    ] = Field(alias="type")
    form_type: str = Field(min_length=1, max_length=50)
    description: str | None = None
    due_date: date
    client_id: str | None = None
    is_recurring: bool = False
    priority: Priority = "medium"
    status: Literal["pending", "in_progress", "completed", "overdue", "extended"] = "pending"
    assigned_to: str | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    compliance_requirements: list[str] = Field(default_factory=list)


class TaxDeadlineUpdate(CamelModel):
    description: str | None = None
    due_date: date | None = None
    priority: Priority | None = None
    status: Literal["pending", "in_progress", "completed", "overdue", "extended"] | None = None
    assigned_to: str | None = None
    estimated_hours: float | None = Field(default=None, ge=0)


class TaxDeadlineOut(CamelModel):
    id: str
    deadline_type: str
    form_type: str
    description: str | None = None
    due_date: date
    client_id: str | None = None
    is_recurring: bool
    priority: str
    status: str
    assigned_to: str | None = None
    estimated_hours: float | None = None
    compliance_requirements: list[str] | None = None
    reminder_schedule: list[ReminderOut] = Field(default_factory=list)
    created_at: datetime


class ComplianceAlertOut(CamelModel):
    id: str
    alert_type: str
    severity: str
    title: str
    description: str | None = None
    client_id: str | None = None
    deadline_id: str | None = None
    vendor_id: str | None = None
    due_date: date | None = None
    assigned_to: str | None = None
    escalation_level: int
    is_acknowledged: bool
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    is_resolved: bool
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class InactivityAlertOut(CamelModel):
    id: str
    client_id: str
    client_name: str
    last_activity: datetime
    inactive_days: int
    risk_level: str
    suggested_actions: list[str]
    assigned_to: str | None = None
    is_resolved: bool
    resolved_at: datetime | None = None


class EscalationCondition(CamelModel):
    field: Literal["days_overdue", "client_inactivity", "missing_documents", "compliance_score"]
    operator: Literal["greater_than", "less_than", "equals"]
    value: float


class EscalationStep(CamelModel):
    step_number: int = Field(ge=1)
    delay_hours: int = Field(default=0, ge=0)
    action: Literal[
        "notify_manager", "reassign_task", "send_urgent_email", "create_high_priority_task"
    ]
    recipients: list[str] = Field(default_factory=list)
    message: str | None = None


class EscalationWorkflowCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    trigger_conditions: list[EscalationCondition] = Field(min_length=1)
    escalation_steps: list[EscalationStep] = Field(default_factory=list)
    is_active: bool = True
    priority: int = 0


class EscalationWorkflowOut(CamelModel):
    id: str
    name: str
    trigger_conditions: list[EscalationCondition]
    escalation_steps: list[EscalationStep]
    is_active: bool
    priority: int
    created_at: datetime


class AlertDashboardSummary(CamelModel):
    total_alerts: int
    critical_alerts: int
    overdue_deadlines: int
    inactive_clients: int
    compliance_issues: int


class AlertDashboard(CamelModel):
    summary: AlertDashboardSummary
    upcoming_deadlines: list[TaxDeadlineOut]
    overdue_items: list[TaxDeadlineOut]
    inactive_clients: list[InactivityAlertOut]
    recent_alerts: list[ComplianceAlertOut]
    escalated_items: list[ComplianceAlertOut]


class ComplianceCheckResult(CamelModel):
    alerts_created: int
    inactive_clients: int
    escalated_alerts: int
    reminders_sent: int


class AlertResolve(CamelModel):
    resolution: str | None = None
