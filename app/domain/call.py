"""SQLAlchemy ORM model for voice-agent call logs (fed by VAPI webhooks)."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin


class CallLog(Base, TenantMixin, TimestampMixin):
    __tablename__ = "call_logs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vapi_call_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    assistant_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # VAPI call status: queued | ringing | in-progress | forwarding | ended | completed
    status: Mapped[str] = mapped_column(String(30), nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    ended_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    duration_seconds: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    transcript: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    analysis: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    call_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
