"""Vendor 1099 / W-9 compliance router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.response import DataResponse
from app.core.tenancy import get_organization_id, require_cron_secret
from app.db.base import get_db
from app.schemas.vendor import (
    ComplianceReport,
    DailyCheckResult,
    PaymentRecord,
    VendorCreate,
    VendorOut,
    W9Received,
    W9Request,
)
from app.services.compliance import ComplianceService

router = APIRouter(prefix="/compliance", tags=["Vendor Compliance"])


def _svc(session: AsyncSession, organization_id: str) -> ComplianceService:
    return ComplianceService(session, organization_id)


@router.get("/vendors", response_model=DataResponse[list[VendorOut]])
async def list_vendors(
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).list_vendors(client_id)}


@router.post("/vendors", response_model=DataResponse[VendorOut], status_code=status.HTTP_201_CREATED)
async def add_vendor(
    body: VendorCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Add a vendor for a client; an existing vendor of the same name is updated instead."""
    return {"data": await _svc(session, organization_id).add_vendor(body)}


@router.get("/vendors/attention", response_model=DataResponse[list[VendorOut]])
async def vendors_requiring_attention(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).vendors_requiring_attention()}


@router.get("/vendors/{vendor_id}", response_model=DataResponse[VendorOut])
async def get_vendor(
    vendor_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).get_vendor(vendor_id)}


@router.post("/vendors/{vendor_id}/payments", response_model=DataResponse[VendorOut])
async def record_payment(
    vendor_id: str,
    body: PaymentRecord,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).record_payment(vendor_id, body.amount)}


@router.post("/vendors/{vendor_id}/w9/request", response_model=DataResponse[VendorOut])
async def request_w9(
    vendor_id: str,
    body: W9Request,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).request_w9(vendor_id, body.send_email)}


@router.post("/vendors/{vendor_id}/w9/received", response_model=DataResponse[VendorOut])
async def mark_w9_received(
    vendor_id: str,
    body: W9Received,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).mark_w9_received(vendor_id, body.document_id)}


@router.get("/report", response_model=DataResponse[ComplianceReport])
async def compliance_report(
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).report(client_id)}


@router.post(
    "/cron/daily-check",
    response_model=DataResponse[DailyCheckResult],
    dependencies=[Depends(require_cron_secret)],
)
async def daily_check(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Expire old W-9s and raise missing / expiring / reminder alerts."""
    return {"data": await _svc(session, organization_id).daily_check()}
