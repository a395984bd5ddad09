"""SQLAlchemy ORM models for tax deadlines, reminders, escalation workflows and compliance alerts."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, Date, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin


class TaxDeadline(Base, TenantMixin, TimestampMixin):
    __tablename__ = "tax_deadlines"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # "individual" | "business" | "quarterly" | "annual" | "extension" | "amendment"
    deadline_type: Mapped[str] = mapped_column(String(20), nullable=False)
    form_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    client_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # "low" | "medium" | "high" | "critical"
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    # "pending" | "in_progress" | "completed" | "overdue" | "extended"
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    compliance_requirements: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)


class ReminderSchedule(Base, TenantMixin, TimestampMixin):
    __tablename__ = "reminder_schedule"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    deadline_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("tax_deadlines.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reminder_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    days_before: Mapped[int] = mapped_column(Integer, nullable=False)
    # "email" | "sms" | "in_app" | "slack"
    reminder_type: Mapped[str] = mapped_column(String(20), default="email", nullable=False)
    recipients: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    is_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class ComplianceAlert(Base, TenantMixin, TimestampMixin):
    """Staff-facing alert raised by the deadline and vendor-compliance sweeps."""

    __tablename__ = "compliance_alerts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Deadlines: deadline_approaching | deadline_overdue | client_inactive | document_missing
    # Vendors:   w9_missing | w9_expired | w9_expiring | w9_reminder | threshold_exceeded
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # "info" | "warning" | "error" | "critical"
    severity: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    client_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    deadline_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    vendor_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    escalation_level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    resolved_by: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)


class ClientInactivityAlert(Base, TenantMixin, TimestampMixin):
    __tablename__ = "client_inactivity_alerts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_activity: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    inactive_days: Mapped[int] = mapped_column(Integer, nullable=False)
    # "low" | "medium" | "high" | "critical"
    risk_level: Mapped[str] = mapped_column(String(20), nullable=False)
    suggested_actions: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    is_resolved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class EscalationWorkflow(Base, TenantMixin, TimestampMixin):
    """Rules that raise the escalation level of matching unresolved alerts.

    ``trigger_conditions``: ``[{"field", "operator", "value"}]``
    ``escalation_steps``: ``[{"step_number", "delay_hours", "action", "recipients", "message"}]``
    """

    __tablename__ = "escalation_workflows"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    escalation_steps: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
