"""Document upload and document-alert schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from app.schemas.common import CamelModel

AlertType = Literal[
    "overdue",
    "deadline_approaching",
    "missing_document",
    "quality_issue",
    "review_needed",
    "client_action_required",
    "custom",
]


class DocumentOut(CamelModel):
    id: str
    client_id: str
    checklist_item_id: str | None = None
    name: str
    content_type: str | None = None
    file_size_bytes: int | None = None
    document_type: str | None = None
    classification_method: str | None = None
    classification_confidence: float | None = None
    status: str
    quality_score: float | None = None
    review_notes: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime


class DocumentReview(CamelModel):
    status: Literal["approved", "rejected", "needs_review"]
    quality_score: float | None = Field(default=None, ge=0, le=1)
    review_notes: str | None = None


class ClassificationResult(CamelModel):
    document_type: str
    confidence: float
    method: Literal["keyword", "ai", "expected", "none"]
    reasoning: str | None = None


class UploadResult(CamelModel):
    document: DocumentOut
    classification: ClassificationResult
    matched_item_id: str | None = None


class DocumentAlertOut(CamelModel):
    id: str
    client_id: str
    checklist_item_id: str | None = None
    alert_type: str
    status: str
    message: str
    delivery_method: str
    scheduled_for: datetime
    sent_at: datetime | None = None
    resolved_at: datetime | None = None
    resolution: str | None = None
    failure_reason: str | None = None
    details: dict[str, Any] | None = None
    created_at: datetime


class AlertStats(CamelModel):
    total: int
    by_type: dict[str, int]
    by_status: dict[str, int]


class AlertListOut(CamelModel):
    alerts: list[DocumentAlertOut]
    stats: AlertStats


class AlertCreate(CamelModel):
    client_id: str
    checklist_item_id: str | None = None
    alert_type: AlertType = "custom"
    message: str = Field(min_length=1)
    delivery_method: Literal["email", "sms", "in_app"] = "email"
    scheduled_for: datetime | None = None


class AlertAction(CamelModel):
    """Body of ``POST /document-collection/alerts`` (action dispatch)."""

    action: Literal["create_alert", "send_reminder", "dismiss_alert", "resolve_alert"]
    alert_id: str | None = None
    client_id: str | None = None
    alert: AlertCreate | None = None
    resolution: str | None = None
