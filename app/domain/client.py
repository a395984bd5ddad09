"""SQLAlchemy ORM model for practice clients.

Pattern for all domain models:
  - Inherit Base, TenantMixin, TimestampMixin
  - UUID primary key
  - organization_id for multi-tenancy (from TenantMixin)
  - created_at / updated_at / deleted_at (from TimestampMixin)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin


class Client(Base, TenantMixin, TimestampMixin):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # "individual" | "business" | "estate" | "nonprofit"
    client_type: Mapped[str] = mapped_column(String(20), default="individual", nullable=False)
    tax_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    assigned_to: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Answers used by template conditional rules (e.g. {"hasRentalProperty": true})
    profile: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)

    # Percentage of required checklist items completed (0-100)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # "onboarding" | "active" | "inactive" | "archived"
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False, index=True)
    last_activity: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
