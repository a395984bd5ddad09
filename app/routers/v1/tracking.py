"""Document tracking router (in-memory tracker per organization)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.core.response import DataResponse
from app.core.tenancy import get_organization_id
from app.schemas.tracking import (
    TrackDocumentRequest,
    TrackingAlertCreate,
    TrackingAlertOut,
    TrackingDashboard,
    TrackingEntryOut,
    TrackingStatusUpdate,
)
from app.services.tracking import DocumentTrackingSystem, tracking_registry

router = APIRouter(prefix="/tracking", tags=["Document Tracking"])


def _tracker(organization_id: str = Depends(get_organization_id)) -> DocumentTrackingSystem:
    return tracking_registry.get(organization_id)


@router.post("/documents", response_model=DataResponse[TrackingEntryOut], status_code=status.HTTP_201_CREATED)
async def track_document(
    body: TrackDocumentRequest,
    tracker: DocumentTrackingSystem = Depends(_tracker),
):
    entry = tracker.add_document(
        body.client_id,
        body.document_id,
        body.document_name,
        body.document_type,
        priority=body.priority,
        due_date=body.due_date,
    )
    return {"data": TrackingEntryOut.model_validate(entry)}


@router.get("/documents/{document_id}", response_model=DataResponse[TrackingEntryOut])
async def get_tracked_document(
    document_id: str,
    tracker: DocumentTrackingSystem = Depends(_tracker),
):
    return {"data": TrackingEntryOut.model_validate(tracker.get_entry(document_id))}


@router.patch("/documents/{document_id}/status", response_model=DataResponse[TrackingEntryOut])
async def update_tracking_status(
    document_id: str,
    body: TrackingStatusUpdate,
    tracker: DocumentTrackingSystem = Depends(_tracker),
):
    entry = tracker.update_document_status(
        document_id, body.status, notes=body.notes, quality_score=body.quality_score
    )
    return {"data": TrackingEntryOut.model_validate(entry)}


@router.post(
    "/documents/{document_id}/alerts",
    response_model=DataResponse[TrackingAlertOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_tracking_alert(
    document_id: str,
    body: TrackingAlertCreate,
    tracker: DocumentTrackingSystem = Depends(_tracker),
):
    alert = tracker.add_alert(
        document_id,
        body.type,
        body.severity,
        body.message,
        body.action_required,
        deadline=body.deadline,
    )
    return {"data": TrackingAlertOut.model_validate(alert)}


@router.get("/clients/{client_id}/dashboard", response_model=DataResponse[TrackingDashboard])
async def get_tracking_dashboard(
    client_id: str,
    tracker: DocumentTrackingSystem = Depends(_tracker),
):
    """Summary, milestones, timeline and recommendations for one client's documents."""
    return {"data": tracker.generate_tracking_dashboard(client_id)}
