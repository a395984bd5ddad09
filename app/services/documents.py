"""Document intake: store, classify, match to a checklist item, track.

File-type and size validation happen in the router (HTTP concern); this
service assumes the bytes are acceptable.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.domain.checklist import ChecklistItem
from app.domain.document import Document
from app.domain.mixins import utcnow
from app.repositories.checklist import ChecklistItemRepository
from app.repositories.client import ClientRepository
from app.repositories.document import DocumentRepository
from app.schemas.checklist import ItemCompletionUpdate
from app.schemas.document import DocumentOut, DocumentReview, UploadResult
from app.services.classification import UNKNOWN, classify_document
from app.services.document_collection import DocumentCollectionService
from app.services.text_extraction import extract_text
from app.services.tracking import DocumentTrackingSystem

logger = logging.getLogger(__name__)

# Review outcome -> tracker status
_TRACKING_STATUS = {"approved": "approved", "rejected": "failed", "needs_review": "processing"}


class DocumentService:
    def __init__(
        self,
        session: AsyncSession,
        organization_id: str,
        tracker: DocumentTrackingSystem | None = None,
    ):
        self._organization_id = organization_id
        self._clients = ClientRepository(session, organization_id)
        self._documents = DocumentRepository(session, organization_id)
        self._items = ChecklistItemRepository(session, organization_id)
        self._collection = DocumentCollectionService(session, organization_id)
        self._tracker = tracker

    async def get_document(self, document_id: str) -> Document:
        document = await self._documents.get_by_id(document_id)
        if not document:
            raise NotFoundError("Document", document_id)
        return document

    async def list_documents(self, client_id: str) -> list[Document]:
        return await self._documents.list_for_client(client_id)

    def _store(self, client_id: str, filename: str, contents: bytes) -> str:
        directory = Path(settings.upload_dir) / self._organization_id / client_id
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{uuid.uuid4().hex}{Path(filename).suffix.lower()}"
        path.write_bytes(contents)
        return str(path)

    async def _explicit_item(self, client_id: str, checklist_item_id: str) -> ChecklistItem:
        item = await self._items.get_for_client(client_id, checklist_item_id)
        if not item:
            raise NotFoundError("Checklist item", checklist_item_id)
        return item

    async def _match_item(self, client_id: str, document_type: str) -> ChecklistItem | None:
        if document_type == UNKNOWN:
            return None
        return await self._items.first_open_of_type(client_id, document_type)

    async def upload(
        self,
        *,
        client_id: str,
        filename: str,
        content_type: str | None,
        contents: bytes,
        expected_document_type: str | None = None,
        checklist_item_id: str | None = None,
    ) -> UploadResult:
        """Persist an upload and attach it to the matching open checklist item.

        A classification that disagrees with ``expected_document_type`` (or
        finds nothing) leaves the document in ``needs_review``.
        """
        if not await self._clients.get_by_id(client_id):
            raise NotFoundError("Client", client_id)
        explicit = await self._explicit_item(client_id, checklist_item_id) if checklist_item_id else None

        storage_path = self._store(client_id, filename, contents)
        try:
            return await self._ingest(
                client_id=client_id,
                filename=filename,
                content_type=content_type,
                contents=contents,
                storage_path=storage_path,
                expected_document_type=expected_document_type,
                explicit=explicit,
            )
        except Exception:
            # the documents row rolls back with the request, the file must go too
            Path(storage_path).unlink(missing_ok=True)
            raise

    async def _ingest(
        self,
        *,
        client_id: str,
        filename: str,
        content_type: str | None,
        contents: bytes,
        storage_path: str,
        expected_document_type: str | None,
        explicit: ChecklistItem | None,
    ) -> UploadResult:
        text = extract_text(contents, content_type)
        classification = await classify_document(text, filename, expected_document_type)

        mismatch = bool(
            expected_document_type and classification.document_type != expected_document_type
        )
        status = "needs_review" if mismatch or classification.document_type == UNKNOWN else "pending"

        document = await self._documents.create(
            client_id=client_id,
            name=filename,
            content_type=content_type,
            file_size_bytes=len(contents),
            storage_path=storage_path,
            document_type=classification.document_type,
            classification_method=classification.method,
            classification_confidence=classification.confidence,
            status=status,
        )
        logger.info(
            "Document uploaded id=%s client=%s type=%s method=%s confidence=%.2f status=%s",
            document.id, client_id, classification.document_type,
            classification.method, classification.confidence, status,
        )

        match_type = expected_document_type if mismatch else classification.document_type
        item = explicit or await self._match_item(client_id, match_type)
        if item is not None:
            document.checklist_item_id = item.id
            await self._documents.save(document)
            await self._collection.track_upload(client_id, item.id, document.id)

        if self._tracker is not None:
            self._tracker.add_document(
                client_id,
                document.id,
                filename,
                classification.document_type,
                priority=item.priority if item else "medium",
                due_date=item.due_date if item else None,
            )

        return UploadResult(
            document=DocumentOut.model_validate(document),
            classification=classification,
            matched_item_id=item.id if item else None,
        )

    async def review_document(self, document_id: str, data: DocumentReview) -> Document:
        """Record a staff review; approval completes the linked checklist item."""
        document = await self.get_document(document_id)
        document.status = data.status
        document.quality_score = data.quality_score
        document.review_notes = data.review_notes
        document.reviewed_at = utcnow()
        await self._documents.save(document)

        if document.checklist_item_id and data.status in ("approved", "rejected"):
            await self._collection.update_item_completion(
                document.client_id,
                ItemCompletionUpdate(
                    item_id=document.checklist_item_id,
                    is_completed=data.status == "approved",
                    document_id=document.id if data.status == "approved" else None,
                ),
            )

        if self._tracker is not None and self._tracker.is_tracked(document.id):
            self._tracker.update_document_status(
                document.id,
                _TRACKING_STATUS[data.status],
                notes=data.review_notes,
                quality_score=data.quality_score,
            )
        return document
