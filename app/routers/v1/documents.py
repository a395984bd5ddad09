"""Document upload and review endpoints.

File-type and size checks are HTTP concerns and stay here; classification,
storage and checklist matching live in :mod:`app.services.documents`.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.response import DataResponse
from app.core.tenancy import get_organization_id
from app.db.base import get_db
from app.schemas.document import DocumentOut, DocumentReview, UploadResult
from app.services.documents import DocumentService
from app.services.tracking import tracking_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])

_ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/jpeg",
    "image/png",
    "text/plain",
    "text/csv",
}
_ALLOWED_EXTENSIONS = (".pdf", ".jpg", ".jpeg", ".png", ".txt", ".csv")


def _svc(session: AsyncSession, organization_id: str) -> DocumentService:
    return DocumentService(session, organization_id, tracker=tracking_registry.get(organization_id))


async def _validate_and_read_file(file: UploadFile) -> bytes:
    """Return the upload's bytes, or raise 415 / 400 / 413."""
    filename = (file.filename or "").lower()
    if file.content_type not in _ALLOWED_CONTENT_TYPES and not filename.endswith(_ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=415,
            detail=(
                f"Unsupported file type '{file.content_type}'. "
                f"Accepted formats: {', '.join(_ALLOWED_EXTENSIONS)}"
            ),
        )

    contents = await file.read()
    if len(contents) == 0:
        raise HTTPException(status_code=400, detail="Uploaded file is empty.")
    if len(contents) > settings.max_upload_size_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File size exceeds the {settings.max_upload_size_mb}MB limit.",
        )
    return contents


@router.post("/upload", response_model=DataResponse[UploadResult], status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    client_id: str = Form(..., alias="clientId"),
    expected_document_type: Optional[str] = Form(default=None, alias="expectedDocumentType"),
    checklist_item_id: Optional[str] = Form(default=None, alias="checklistItemId"),
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Upload a client document; it is classified and attached to the matching checklist item."""
    contents = await _validate_and_read_file(file)
    result = await _svc(session, organization_id).upload(
        client_id=client_id,
        filename=file.filename or "upload",
        content_type=file.content_type,
        contents=contents,
        expected_document_type=expected_document_type,
        checklist_item_id=checklist_item_id,
    )
    return {"data": result}


@router.get("/client/{client_id}", response_model=DataResponse[list[DocumentOut]])
async def list_client_documents(
    client_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    documents = await _svc(session, organization_id).list_documents(client_id)
    return {"data": [DocumentOut.model_validate(d) for d in documents]}


@router.get("/{document_id}", response_model=DataResponse[DocumentOut])
async def get_document(
    document_id: str,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    document = await _svc(session, organization_id).get_document(document_id)
    return {"data": DocumentOut.model_validate(document)}


@router.post("/{document_id}/review", response_model=DataResponse[DocumentOut])
async def review_document(
    document_id: str,
    body: DocumentReview,
    session: AsyncSession = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Approve, reject or flag a document. Approval completes its checklist item."""
    document = await _svc(session, organization_id).review_document(document_id, body)
    return {"data": DocumentOut.model_validate(document)}
