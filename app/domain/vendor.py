"""SQLAlchemy ORM models for client vendors and their W-9 collection status."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.db.types import UTCDateTime
from app.domain.mixins import TenantMixin, TimestampMixin


class Vendor(Base, TenantMixin, TimestampMixin):
    """A payee of one of the practice's clients (1099 reporting subject)."""

    __tablename__ = "vendors"
    __table_args__ = (
        UniqueConstraint("organization_id", "client_id", "name", name="uq_vendor_client_name"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # "individual" | "corporation" | "partnership" | "llc" | "other"
    business_type: Mapped[str] = mapped_column(String(20), default="other", nullable=False)

    total_payments: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), default=Decimal("0"), nullable=False
    )
    requires_1099: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False, index=True)


class W9Status(Base, TenantMixin, TimestampMixin):
    """W-9 collection state for a vendor (one row per vendor)."""

    __tablename__ = "w9_status"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    vendor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vendors.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    client_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # "not_requested" | "requested" | "received" | "expired" | "invalid"
    status: Mapped[str] = mapped_column(String(20), default="not_requested", nullable=False, index=True)
    requested_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    received_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    document_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    reminder_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_reminder_date: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
