"""Document collection router: templates, client checklists, progress, alerts."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.response import ActionResponse, DataResponse
from app.core.tenancy import get_organization_id, require_cron_secret
from app.db.base import get_db
from app.schemas.checklist import (
    ChecklistFromProfile,
    ChecklistFromTemplate,
    ChecklistItemOut,
    ChecklistSave,
    ClientChecklistOut,
    ItemCompletionUpdate,
    ItemReason,
    ProfileChecklistOut,
    ProgressReport,
    TemplateCreate,
    TemplateOut,
    TemplateUpdate,
    UploadMetrics,
)
from app.schemas.document import AlertAction, AlertListOut, DocumentAlertOut
from app.services.document_collection import DocumentCollectionService

router = APIRouter(prefix="/document-collection", tags=["Document Collection"])


def _svc(session: AsyncSession, organization_id: str) -> DocumentCollectionService:
    return DocumentCollectionService(session, organization_id)


# ------------------------------------------------------------------
# Templates
# ------------------------------------------------------------------

@router.get("/templates", response_model=DataResponse[list[TemplateOut]])
async def list_templates(
    category: Optional[str] = Query(default=None),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    templates = await _svc(session, organization_id).list_templates(category)
    return {"data": [TemplateOut.model_validate(t) for t in templates]}


@router.post("/templates", response_model=DataResponse[TemplateOut], status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    template = await _svc(session, organization_id).create_template(body)
    return {"data": TemplateOut.model_validate(template)}


@router.get("/templates/{template_id}", response_model=DataResponse[TemplateOut])
async def get_template(
    template_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    template = await _svc(session, organization_id).get_template(template_id)
    return {"data": TemplateOut.model_validate(template)}


@router.put("/templates/{template_id}", response_model=DataResponse[TemplateOut])
async def update_template(
    template_id: str,
    body: TemplateUpdate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    template = await _svc(session, organization_id).update_template(template_id, body)
    return {"data": TemplateOut.model_validate(template)}


# ------------------------------------------------------------------
# Client checklists
# ------------------------------------------------------------------

@router.get("/clients/{client_id}/checklist", response_model=DataResponse[ClientChecklistOut])
async def get_checklist(
    client_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).get_checklist(client_id)}


@router.put("/clients/{client_id}/checklist", response_model=DataResponse[ClientChecklistOut])
async def save_checklist(
    client_id: str,
    body: ChecklistSave,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Bulk upsert checklist items (by id) and the collection session."""
    return {"data": await _svc(session, organization_id).save_checklist(client_id, body)}


@router.post(
    "/clients/{client_id}/checklist/from-template",
    response_model=DataResponse[ClientChecklistOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_checklist_from_template(
    client_id: str,
    body: ChecklistFromTemplate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).create_from_template(client_id, body)}


@router.post(
    "/clients/{client_id}/checklist/from-profile",
    response_model=DataResponse[ProfileChecklistOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_checklist_from_profile(
    client_id: str,
    body: ChecklistFromProfile,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).create_from_profile(client_id, body)}


@router.get("/clients/{client_id}/progress", response_model=DataResponse[ProgressReport])
async def get_progress(
    client_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).progress_report(client_id)}


@router.post("/clients/{client_id}/items/completion", response_model=ActionResponse)
async def update_item_completion(
    client_id: str,
    body: ItemCompletionUpdate,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    item, progress = await _svc(session, organization_id).update_item_completion(client_id, body)
    return ActionResponse(
        message="Checklist item updated",
        data={
            "item": ChecklistItemOut.model_validate(item).model_dump(mode="json", by_alias=True),
            "progress": progress.model_dump(mode="json", by_alias=True),
        },
    )


@router.post("/clients/{client_id}/items/{item_id}/skip", response_model=DataResponse[ChecklistItemOut])
async def skip_item(
    client_id: str,
    item_id: str,
    body: ItemReason,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    item = await _svc(session, organization_id).skip_item(client_id, item_id, body.reason)
    return {"data": ChecklistItemOut.model_validate(item)}


@router.post("/clients/{client_id}/items/{item_id}/block", response_model=DataResponse[ChecklistItemOut])
async def block_item(
    client_id: str,
    item_id: str,
    body: ItemReason,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    item = await _svc(session, organization_id).block_item(client_id, item_id, body.reason)
    return {"data": ChecklistItemOut.model_validate(item)}


@router.get("/metrics", response_model=DataResponse[UploadMetrics])
async def get_upload_metrics(
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).upload_metrics(client_id)}


# ------------------------------------------------------------------
# Alerts
# ------------------------------------------------------------------

@router.get("/alerts", response_model=DataResponse[AlertListOut])
async def list_alerts(
    filter_status: str = Query(default="pending", alias="status"),
    client_id: Optional[str] = Query(default=None, alias="clientId"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    return {"data": await _svc(session, organization_id).list_alerts(filter_status, client_id)}


@router.post("/alerts", response_model=ActionResponse)
async def alert_action(
    body: AlertAction,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Dispatch ``create_alert`` / ``send_reminder`` / ``dismiss_alert`` / ``resolve_alert``."""
    svc = _svc(session, organization_id)

    if body.action == "create_alert":
        if body.alert is None:
            raise ValidationError("alert is required for create_alert")
        alert = await svc.create_alert(body.alert)
        return ActionResponse(
            message="Alert created",
            data=DocumentAlertOut.model_validate(alert).model_dump(mode="json", by_alias=True),
        )

    if body.action == "send_reminder":
        if not body.client_id:
            raise ValidationError("clientId is required for send_reminder")
        created = await svc.send_reminder(body.client_id)
        return ActionResponse(message=f"{created} reminder(s) queued", data={"created": created})

    if not body.alert_id:
        raise ValidationError(f"alertId is required for {body.action}")
    if body.action == "dismiss_alert":
        await svc.dismiss_alert(body.alert_id)
        return ActionResponse(message="Alert dismissed")
    await svc.resolve_alert(body.alert_id, body.resolution)
    return ActionResponse(message="Alert resolved")


@router.post("/cron/generate-alerts", response_model=ActionResponse, dependencies=[Depends(require_cron_secret)])
async def generate_alerts(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    counts = await _svc(session, organization_id).generate_alerts()
    return ActionResponse(message="Alert sweep complete", data=counts)


@router.post("/cron/send-alerts", response_model=ActionResponse, dependencies=[Depends(require_cron_secret)])
async def send_alerts(
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    counts = await _svc(session, organization_id).send_pending_alerts()
    return ActionResponse(message="Pending alerts delivered", data=counts)
