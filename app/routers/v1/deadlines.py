"""Tax deadline, alert dashboard and escalation workflow router."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.pagination import PaginationParams
from app.core.response import DataResponse, ListResponse, paginated
from app.core.tenancy import get_actor_id, get_organization_id, require_cron_secret
from app.db.base import get_db
from app.schemas.deadline import (
    AlertDashboard,
    AlertResolve,
    ComplianceAlertOut,
    ComplianceCheckResult,
    EscalationWorkflowCreate,
    EscalationWorkflowOut,
    InactivityAlertOut,
    TaxDeadlineCreate,
    TaxDeadlineOut,
    TaxDeadlineUpdate,
)
from app.services.deadline_alerts import DeadlineAlertService

router = APIRouter(prefix="/deadlines", tags=["Deadlines & Alerts"])


def _svc(session: AsyncSession, organization_id: str) -> DeadlineAlertService:
    return DeadlineAlertService(session, organization_id)


# ------------------------------------------------------------------
# Deadlines
# ------------------------------------------------------------------

@router.get("", response_model=ListResponse[TaxDeadlineOut])
async def list_deadlines(
    filter_status: Optional[str] = Query(default=None, alias="status"),
    pagination: PaginationParams = Depends(),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    items, total = await _svc(session, organization_id).list_deadlines(pagination, status=filter_status)
    return paginated(items, total, pagination.page, pagination.limit)


@router.post("", response_model=DataResponse[TaxDeadlineOut], status_code=status.HTTP_201_CREATED)
async def create_deadline(
    body: TaxDeadlineCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Create a deadline; reminder rows are scheduled from its priority."""
    return {"data": await _svc(session, organization_id).create_deadline(body)}


@router.get("/dashboard", response_model=DataResponse[AlertDashboard])
async def get_dashboard(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).dashboard()}


# ------------------------------------------------------------------
# Escalation workflows
# ------------------------------------------------------------------

@router.get("/workflows", response_model=DataResponse[list[EscalationWorkflowOut]])
async def list_workflows(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    workflows = await _svc(session, organization_id).list_workflows()
    return {"data": [EscalationWorkflowOut.model_validate(w) for w in workflows]}


@router.post(
    "/workflows",
    response_model=DataResponse[EscalationWorkflowOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_workflow(
    body: EscalationWorkflowCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    workflow = await _svc(session, organization_id).create_workflow(body)
    return {"data": EscalationWorkflowOut.model_validate(workflow)}


@router.get("/{deadline_id}", response_model=DataResponse[TaxDeadlineOut])
async def get_deadline(
    deadline_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).get_deadline(deadline_id)}


@router.put("/{deadline_id}", response_model=DataResponse[TaxDeadlineOut])
async def update_deadline(
    deadline_id: str,
    body: TaxDeadlineUpdate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).update_deadline(deadline_id, body)}


# ------------------------------------------------------------------
# Alerts
# ------------------------------------------------------------------

@router.post("/alerts/{alert_id}/acknowledge", response_model=DataResponse[ComplianceAlertOut])
async def acknowledge_alert(
    alert_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    alert = await _svc(session, organization_id).acknowledge_alert(alert_id, actor_id)
    return {"data": ComplianceAlertOut.model_validate(alert)}


@router.post("/alerts/{alert_id}/resolve", response_model=DataResponse[ComplianceAlertOut])
async def resolve_alert(
    alert_id: str,
    body: AlertResolve,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    alert = await _svc(session, organization_id).resolve_alert(alert_id, actor_id, body.resolution)
    return {"data": ComplianceAlertOut.model_validate(alert)}


@router.post("/inactivity/{alert_id}/resolve", response_model=DataResponse[InactivityAlertOut])
async def resolve_inactivity_alert(
    alert_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    alert = await _svc(session, organization_id).resolve_inactivity_alert(alert_id)
    return {"data": InactivityAlertOut.model_validate(alert)}


@router.post(
    "/cron/compliance-checks",
    response_model=DataResponse[ComplianceCheckResult],
    dependencies=[Depends(require_cron_secret)],
)
async def run_compliance_checks(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Scheduled sweep: deadlines, inactivity, missing documents, escalations, reminders."""
    return {"data": await _svc(session, organization_id).run_compliance_checks()}
