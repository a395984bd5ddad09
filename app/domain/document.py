"""SQLAlchemy ORM models for uploaded client documents and document-collection alerts."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin, utcnow


class Document(Base, TenantMixin, TimestampMixin):
    """One uploaded file, optionally attached to a checklist item."""

    __tablename__ = "documents"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checklist_item_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("document_checklists.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    file_size_bytes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    storage_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Classification result
    document_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    classification_method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    classification_confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Review workflow: pending | processing | approved | rejected | needs_review
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    quality_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)


class DocumentAlert(Base, TenantMixin, TimestampMixin):
    """A client-facing reminder queued for delivery (email / sms / in-app)."""

    __tablename__ = "document_alerts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    checklist_item_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("document_checklists.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    # "overdue" | "deadline_approaching" | "missing_document" | "quality_issue"
    # | "review_needed" | "client_action_required" | "custom"
    alert_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    # "pending" | "sent" | "failed" | "dismissed" | "resolved"
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # "email" | "sms" | "in_app"
    delivery_method: Mapped[str] = mapped_column(String(20), default="email", nullable=False)

    scheduled_for: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    sent_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    resolution: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
