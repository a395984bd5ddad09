"""Vendor, W-9 status and 1099 compliance report schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import EmailStr, Field

from app.schemas.common import CamelModel
from app.schemas.deadline import ComplianceAlertOut

BusinessType = Literal["individual", "corporation", "partnership", "llc", "other"]


class VendorCreate(CamelModel):
    client_id: str
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    tax_id: str | None = Field(default=None, max_length=20)
    business_type: BusinessType = "other"


class PaymentRecord(CamelModel):
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)


class W9Request(CamelModel):
    send_email: bool = True


class W9Received(CamelModel):
    document_id: str


class W9StatusOut(CamelModel):
    id: str
    vendor_id: str
    client_id: str
    status: str
    requested_date: datetime | None = None
    received_date: datetime | None = None
    expiration_date: date | None = None
    document_id: str | None = None
    reminder_count: int
    last_reminder_date: datetime | None = None
    notes: str | None = None


class VendorOut(CamelModel):
    id: str
    client_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    tax_id: str | None = None
    business_type: str
    total_payments: Decimal
    requires_1099: bool
    w9_status: W9StatusOut | None = None
    created_at: datetime
    updated_at: datetime


class ComplianceReport(CamelModel):
    total_vendors: int
    requires_1099_count: int
    w9_status_breakdown: dict[str, int]
    upcoming_deadlines: list[ComplianceAlertOut]
    critical_issues: list[ComplianceAlertOut]
    compliance_score: int


class DailyCheckResult(CamelModel):
    expired: int
    missing: int
    expiring: int
    reminders: int
