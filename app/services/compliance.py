"""Vendor 1099 / W-9 compliance tracking.

A vendor needs a 1099 once its payment total reaches the IRS threshold
(``FORM_1099_THRESHOLD``, $600). From then on the practice must hold a
current W-9 for it; a received W-9 is treated as valid for
``W9_VALIDITY_YEARS``.

Alerts go to the shared ``compliance_alerts`` table with ``vendor_id`` set.
Vendor alerts carry a priority (low/medium/high/critical) that is mapped
onto the table's severity scale; the original priority is kept in
``details``.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError, NotFoundError
from app.domain.deadline import ComplianceAlert
from app.domain.mixins import utcnow
from app.domain.vendor import Vendor, W9Status
from app.repositories.client import ClientRepository
from app.repositories.deadline import ComplianceAlertRepository
from app.repositories.vendor import VendorRepository, W9StatusRepository
from app.schemas.deadline import ComplianceAlertOut
from app.schemas.vendor import (
    ComplianceReport,
    DailyCheckResult,
    VendorCreate,
    VendorOut,
    W9StatusOut,
)
from app.services.email_service import EmailService, get_email_service, render_notification

logger = logging.getLogger(__name__)

PRIORITY_SEVERITY = {"low": "info", "medium": "warning", "high": "error", "critical": "critical"}
ATTENTION_STATUSES = ("not_requested", "expired", "invalid")
EXPIRING_WINDOW_DAYS = 30
REPORT_DEADLINE_WINDOW_DAYS = 30


def add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:  # Feb 29
        return day.replace(year=day.year + years, day=28)


def compliance_score(received: int, requiring_1099: int) -> int:
    if requiring_1099 == 0:
        return 100
    return round(received / requiring_1099 * 100)


class ComplianceService:
    def __init__(
        self,
        session: AsyncSession,
        organization_id: str,
        email_service: EmailService | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._vendors = VendorRepository(session, organization_id)
        self._w9 = W9StatusRepository(session, organization_id)
        self._alerts = ComplianceAlertRepository(session, organization_id)
        self._clients = ClientRepository(session, organization_id)
        self._email = email_service or get_email_service()
        self._clock = clock

    @property
    def threshold(self) -> Decimal:
        return settings.form_1099_threshold

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    async def _vendor_out(self, vendor: Vendor) -> VendorOut:
        w9 = await self._w9.get_for_vendor(vendor.id)
        return VendorOut.model_validate(vendor).model_copy(
            update={"w9_status": W9StatusOut.model_validate(w9) if w9 else None}
        )

    async def _get_vendor(self, vendor_id: str) -> Vendor:
        vendor = await self._vendors.get_by_id(vendor_id)
        if not vendor:
            raise NotFoundError("Vendor", vendor_id)
        return vendor

    async def add_vendor(self, data: VendorCreate) -> VendorOut:
        """Create a vendor, or update contact details if the client already has one by that name."""
        if not await self._clients.get_by_id(data.client_id):
            raise NotFoundError("Client", data.client_id)

        vendor = await self._vendors.get_by_name(data.client_id, data.name)
        if vendor:
            for field, value in data.model_dump(exclude={"client_id", "name"}, exclude_none=True).items():
                setattr(vendor, field, value)
            await self._vendors.save(vendor)
        else:
            vendor = await self._vendors.create(**data.model_dump())
            await self._w9.create(vendor_id=vendor.id, client_id=vendor.client_id, status="not_requested")
            logger.info("Vendor added id=%s client=%s name=%r", vendor.id, vendor.client_id, vendor.name)
        return await self._vendor_out(vendor)

    async def list_vendors(self, client_id: str | None = None) -> list[VendorOut]:
        return [await self._vendor_out(v) for v in await self._vendors.list_for_client(client_id)]

    async def get_vendor(self, vendor_id: str) -> VendorOut:
        return await self._vendor_out(await self._get_vendor(vendor_id))

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def _raise_alert(
        self,
        alert_type: str,
        vendor: Vendor,
        *,
        priority: str,
        title: str,
        description: str,
        due_date: date | None = None,
    ) -> ComplianceAlert | None:
        if await self._alerts.find_unresolved(alert_type, client_id=vendor.client_id, vendor_id=vendor.id):
            return None
        return await self._alerts.create(
            alert_type=alert_type,
            severity=PRIORITY_SEVERITY[priority],
            title=title,
            description=description,
            client_id=vendor.client_id,
            vendor_id=vendor.id,
            due_date=due_date,
            details={"priority": priority},
        )

    async def _resolve_alerts(self, vendor_id: str, alert_type: str) -> int:
        resolved = 0
        for alert in await self._alerts.list_unresolved((alert_type,), vendor_id=vendor_id):
            alert.is_resolved = True
            alert.resolved_at = self._clock()
            await self._alerts.save(alert)
            resolved += 1
        return resolved

    # ------------------------------------------------------------------
    # Payments and W-9 lifecycle
    # ------------------------------------------------------------------

    async def record_payment(self, vendor_id: str, amount: Decimal) -> VendorOut:
        vendor = await self._get_vendor(vendor_id)
        previous = Decimal(vendor.total_payments or 0)
        vendor.total_payments = previous + amount
        vendor.requires_1099 = vendor.total_payments >= self.threshold
        await self._vendors.save(vendor)

        if vendor.requires_1099:
            w9 = await self._w9.get_for_vendor(vendor.id)
            if w9 is None or w9.status == "not_requested":
                await self._raise_alert(
                    "w9_missing",
                    vendor,
                    priority="high",
                    title="W-9 Required",
                    description=(
                        f"W-9 form is required for vendor {vendor.name} "
                        "who has exceeded the 1099 reporting threshold."
                    ),
                )

        if previous < self.threshold <= vendor.total_payments:
            await self._raise_alert(
                "threshold_exceeded",
                vendor,
                priority="medium",
                title="1099 Threshold Exceeded",
                description=(
                    f"Vendor {vendor.name} has exceeded ${self.threshold} in payments "
                    "and now requires 1099 reporting."
                ),
                due_date=date(self._clock().year + 1, 1, 31),
            )
            logger.info("Vendor %s crossed the 1099 threshold total=%s", vendor.id, vendor.total_payments)
        return await self._vendor_out(vendor)

    async def _get_w9(self, vendor: Vendor) -> W9Status:
        w9 = await self._w9.get_for_vendor(vendor.id)
        if w9 is None:
            w9 = await self._w9.create(vendor_id=vendor.id, client_id=vendor.client_id)
        return w9

    async def request_w9(self, vendor_id: str, send_email: bool = True) -> VendorOut:
        vendor = await self._get_vendor(vendor_id)
        w9 = await self._get_w9(vendor)
        now = self._clock()
        w9.status = "requested"
        w9.requested_date = now
        w9.reminder_count += 1
        w9.last_reminder_date = now
        await self._w9.save(w9)

        if send_email and vendor.email:
            try:
                await self._email.send(render_notification(
                    to=vendor.email,
                    subject="W-9 form requested",
                    body=(
                        f"Hello {vendor.name}, please complete and return a Form W-9 "
                        "so we can prepare your 1099 for this tax year."
                    ),
                ))
            except EmailDeliveryError as exc:
                logger.warning("W-9 request email to vendor %s failed: %s", vendor.id, exc.message)
        return await self._vendor_out(vendor)

    async def mark_w9_received(self, vendor_id: str, document_id: str) -> VendorOut:
        vendor = await self._get_vendor(vendor_id)
        w9 = await self._get_w9(vendor)
        now = self._clock()
        w9.status = "received"
        w9.received_date = now
        w9.expiration_date = add_years(now.date(), settings.w9_validity_years)
        w9.document_id = document_id
        await self._w9.save(w9)
        await self._resolve_alerts(vendor.id, "w9_missing")
        return await self._vendor_out(vendor)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def report(self, client_id: str | None = None) -> ComplianceReport:
        vendors = await self._vendors.list_for_client(client_id)
        statuses = {w.vendor_id: w.status for w in await self._w9.list_for_client(client_id)}
        alerts = await self._alerts.list_unresolved()
        alerts = [a for a in alerts if a.vendor_id and (client_id is None or a.client_id == client_id)]

        horizon = self._clock().date() + timedelta(days=REPORT_DEADLINE_WINDOW_DAYS)
        requiring = sum(1 for v in vendors if v.requires_1099)
        received = sum(1 for v in vendors if statuses.get(v.id) == "received")

        return ComplianceReport(
            total_vendors=len(vendors),
            requires_1099_count=requiring,
            w9_status_breakdown=dict(Counter(statuses.get(v.id, "not_requested") for v in vendors)),
            upcoming_deadlines=[
                ComplianceAlertOut.model_validate(a) for a in alerts if a.due_date and a.due_date <= horizon
            ],
            critical_issues=[ComplianceAlertOut.model_validate(a) for a in alerts if a.severity == "critical"],
            compliance_score=compliance_score(received, requiring),
        )

    async def vendors_requiring_attention(self) -> list[VendorOut]:
        flagged = []
        for vendor in await self._vendors.list_requiring_1099():
            w9 = await self._w9.get_for_vendor(vendor.id)
            if w9 is None or w9.status in ATTENTION_STATUSES:
                flagged.append(await self._vendor_out(vendor))
        return flagged

    # ------------------------------------------------------------------
    # Daily sweep
    # ------------------------------------------------------------------

    async def daily_check(self) -> DailyCheckResult:
        now = self._clock()
        today = now.date()
        result = DailyCheckResult(expired=0, missing=0, expiring=0, reminders=0)

        for w9 in await self._w9.list_expired(today):
            w9.status = "expired"
            await self._w9.save(w9)
            vendor = await self._vendors.get_by_id(w9.vendor_id)
            if vendor and await self._raise_alert(
                "w9_expired",
                vendor,
                priority="high",
                title="W-9 Expired",
                description=f"W-9 form for vendor {vendor.name} has expired and needs to be renewed.",
            ):
                result.expired += 1

        for vendor in await self._vendors.list_requiring_1099():
            if await self._w9.get_for_vendor(vendor.id) is None and await self._raise_alert(
                "w9_missing",
                vendor,
                priority="medium",
                title="Missing W-9 Form",
                description=f"W-9 form required for vendor {vendor.name} but not yet requested.",
            ):
                result.missing += 1

        horizon = today + timedelta(days=EXPIRING_WINDOW_DAYS)
        for w9 in await self._w9.list_expiring_between(today + timedelta(days=1), horizon):
            vendor = await self._vendors.get_by_id(w9.vendor_id)
            if vendor and await self._raise_alert(
                "w9_expiring",
                vendor,
                priority="medium",
                title="W-9 Expiring Soon",
                description=f"W-9 form for vendor {vendor.name} expires on {w9.expiration_date.isoformat()}.",
                due_date=w9.expiration_date,
            ):
                result.expiring += 1

        for w9 in await self._w9.list_by_status("not_requested"):
            if w9.reminder_count >= settings.w9_max_reminders:
                continue
            since_last = (now - w9.last_reminder_date).days if w9.last_reminder_date else 999
            if since_last < settings.w9_reminder_interval_days:
                continue
            vendor = await self._vendors.get_by_id(w9.vendor_id)
            if vendor is None:
                continue
            w9.reminder_count += 1
            w9.last_reminder_date = now
            await self._w9.save(w9)
            await self._alerts.create(
                alert_type="w9_reminder",
                severity=PRIORITY_SEVERITY["low"],
                title="W-9 Reminder Needed",
                description=f"Send reminder #{w9.reminder_count} to vendor {vendor.name} for W-9 form.",
                client_id=vendor.client_id,
                vendor_id=vendor.id,
                details={"priority": "low", "reminder_number": w9.reminder_count},
            )
            result.reminders += 1

        logger.info(
            "W-9 daily check expired=%d missing=%d expiring=%d reminders=%d",
            result.expired, result.missing, result.expiring, result.reminders,
        )
        return result
