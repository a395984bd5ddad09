"""Document tracking dashboard schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import Field

from app.schemas.common import CamelModel

TrackingStatus = Literal["uploaded", "processing", "completed", "failed", "reviewed", "approved"]
Severity = Literal["info", "warning", "error", "critical"]


class TrackingAlertOut(CamelModel):
    id: str
    document_id: str
    type: Literal["deadline", "quality", "dependency", "compliance", "review"]
    severity: Severity
    message: str
    action_required: str
    created_at: datetime
    resolved_at: datetime | None = None
    deadline: date | None = None
    assigned_to: str | None = None


class TrackingEntryOut(CamelModel):
    id: str
    client_id: str
    document_id: str
    document_name: str
    document_type: str
    status: TrackingStatus
    priority: Literal["critical", "high", "medium", "low"]
    uploaded_at: datetime
    last_updated: datetime
    due_date: date | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    tags: list[str]
    notes: list[str]
    alerts: list[TrackingAlertOut]
    dependencies: list[str]
    estimated_completion_time: int  # minutes
    actual_completion_time: int | None = None  # minutes
    quality_score: float | None = None


class TrackingSummary(CamelModel):
    total_documents: int
    completed_documents: int
    pending_documents: int
    overdue_documents: int
    average_processing_time: float
    quality_score: int
    compliance_score: int
    estimated_completion: datetime
    critical_alerts: int


class Milestone(CamelModel):
    id: str
    title: str
    description: str
    target_date: date
    status: Literal["pending", "in_progress", "completed", "overdue"]
    dependencies: list[str]
    completion_percentage: float


class TimelineEvent(CamelModel):
    id: str
    timestamp: datetime
    type: Literal["upload", "processing", "completion", "review", "alert", "milestone"]
    description: str
    document_id: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class Recommendation(CamelModel):
    id: str
    type: Literal["workflow", "quality", "efficiency", "compliance"]
    title: str
    description: str
    impact: Literal["high", "medium", "low"]
    effort: Literal["low", "medium", "high"]
    action_steps: list[str]


class TrackingDashboard(CamelModel):
    client_id: str
    generated_at: datetime
    summary: TrackingSummary
    documents: list[TrackingEntryOut]
    alerts: list[TrackingAlertOut]
    milestones: list[Milestone]
    timeline: list[TimelineEvent]
    recommendations: list[Recommendation]


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TrackDocumentRequest(CamelModel):
    client_id: str
    document_id: str
    document_name: str
    document_type: str = "Unknown"
    priority: Literal["critical", "high", "medium", "low"] = "medium"
    due_date: date | None = None


class TrackingStatusUpdate(CamelModel):
    status: TrackingStatus
    notes: str | None = None
    quality_score: float | None = Field(default=None, ge=0, le=1)


class TrackingAlertCreate(CamelModel):
    type: Literal["deadline", "quality", "dependency", "compliance", "review"]
    severity: Severity
    message: str
    action_required: str
    deadline: date | None = None
