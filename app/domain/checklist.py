"""SQLAlchemy ORM models for checklist templates, per-client checklist items and collection sessions."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin

PRIORITY_RANK = {"critical": 4, "high": 3, "medium": 2, "low": 1}


class ChecklistTemplate(Base, TenantMixin, TimestampMixin):
    """Reusable list of required documents (items kept as a JSON array)."""

    __tablename__ = "checklist_templates"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # "individual" | "business" | "estate" | "nonprofit" | "custom"
    category: Mapped[str] = mapped_column(String(20), default="individual", nullable=False)
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)


class ChecklistItem(Base, TenantMixin, TimestampMixin):
    """One required document for one client."""

    __tablename__ = "document_checklists"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    template_item_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    document_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    document_category: Mapped[str] = mapped_column(String(100), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    instructions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    is_required: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # "critical" | "high" | "medium" | "low"
    priority: Mapped[str] = mapped_column(String(20), default="medium", nullable=False)
    # "pending" | "in_progress" | "completed" | "skipped" | "blocked"
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)

    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    document_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    estimated_minutes: Mapped[int] = mapped_column(Integer, default=15, nullable=False)
    accepted_formats: Mapped[Optional[list[str]]] = mapped_column(JSON, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_attempt_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    blocked_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    skip_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def priority_rank(self) -> int:
        return PRIORITY_RANK.get(self.priority, 2)


class CollectionSession(Base, TenantMixin, TimestampMixin):
    """Running document-collection progress for one client (one row per client)."""

    __tablename__ = "document_collection_sessions"
    __table_args__ = (
        UniqueConstraint("organization_id", "client_id", name="uq_collection_session_client"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    template_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    # "active" | "paused" | "completed" | "cancelled"
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    progress_percentage: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_required_documents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed_documents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
