"""Tests for document classification and intake."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import settings
from app.core.exceptions import ClassificationError, NotFoundError
from app.schemas.checklist import ChecklistItemUpsert, ChecklistSave
from app.schemas.document import ClassificationResult, DocumentReview
from app.services import classification, documents
from app.services.classification import DocumentClassifier, classify_by_keywords, classify_document
from app.services.document_collection import DocumentCollectionService
from app.services.documents import DocumentService
from app.services.tracking import DocumentTrackingSystem


def _openai_reply(content: str) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestKeywordClassification:
    def test_text_hits_raise_confidence(self) -> None:
        result = classify_by_keywords("Form W-2 Wage and Tax Statement 2024")
        assert result.document_type == "W-2"
        assert result.confidence == 0.9
        assert result.method == "keyword"

    def test_filename_only_match(self) -> None:
        result = classify_by_keywords("", "acme_1099-int_2024.pdf")
        assert result.document_type == "1099-INT"
        assert result.confidence == 0.5

    def test_no_match(self) -> None:
        assert classify_by_keywords("grocery list: eggs, milk", "notes.txt") is None


class TestClassificationPipeline:
    """Keyword first, AI for weak matches, then the uploader's expectation."""

    @pytest.mark.asyncio
    async def test_confident_keyword_skips_ai(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        factory = MagicMock()
        monkeypatch.setattr(classification, "get_classifier", factory)

        result = await classify_document("Form 1099-NEC Nonemployee compensation")

        assert result.document_type == "1099-NEC"
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_ai_used_for_weak_match(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        classifier = MagicMock()
        classifier.classify = AsyncMock(return_value=ClassificationResult(
            document_type="K-1", confidence=0.88, method="ai", reasoning="Schedule K-1 layout",
        ))
        monkeypatch.setattr(classification, "get_classifier", lambda: classifier)

        result = await classify_document("Partnership statement, box 14", "scan.pdf")

        assert result.method == "ai"
        assert result.document_type == "K-1"

    @pytest.mark.asyncio
    async def test_ai_failure_falls_back_to_expected(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        classifier = MagicMock()
        classifier.classify = AsyncMock(side_effect=ClassificationError("OpenAI service error: timeout"))
        monkeypatch.setattr(classification, "get_classifier", lambda: classifier)

        result = await classify_document("some unreadable text", "scan.pdf", expected_type="1098")

        assert result.method == "expected"
        assert result.document_type == "1098"
        assert result.confidence == 0.5

    @pytest.mark.asyncio
    async def test_nothing_known(self) -> None:
        result = await classify_document("", "photo.jpg")
        assert result.document_type == "Unknown"
        assert result.method == "none"


class TestDocumentClassifier:
    @pytest.mark.asyncio
    async def test_parses_and_clamps_reply(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        classifier = DocumentClassifier()
        classifier.client = MagicMock()
        classifier.client.chat.completions.create = AsyncMock(
            return_value=_openai_reply('{"document_type": "1099-DIV", "confidence": 1.4, "reasoning": "Box 1a"}')
        )

        result = await classifier.classify("text", "div.pdf")

        assert result.document_type == "1099-DIV"
        assert result.confidence == 1.0
        assert result.reasoning == "Box 1a"

    @pytest.mark.asyncio
    async def test_unknown_type_normalized(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        classifier = DocumentClassifier()
        classifier.client = MagicMock()
        classifier.client.chat.completions.create = AsyncMock(
            return_value=_openai_reply('{"document_type": "Passport", "confidence": 0.9}')
        )

        assert (await classifier.classify("text")).document_type == "Unknown"

    @pytest.mark.asyncio
    async def test_invalid_json(self, monkeypatch) -> None:
        monkeypatch.setattr(settings, "openai_api_key", "sk-test")
        classifier = DocumentClassifier()
        classifier.client = MagicMock()
        classifier.client.chat.completions.create = AsyncMock(return_value=_openai_reply("not json"))

        with pytest.raises(ClassificationError):
            await classifier.classify("text")


@pytest.fixture
def upload_dir(tmp_path, monkeypatch) -> Path:
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture
def tracker() -> DocumentTrackingSystem:
    return DocumentTrackingSystem()


@pytest.fixture
def service(session, org_id, tracker, upload_dir) -> DocumentService:
    return DocumentService(session, org_id, tracker=tracker)


async def _checklist(session, org_id, client_id: str, *doc_types: str):
    collection = DocumentCollectionService(session, org_id)
    saved = await collection.save_checklist(client_id, ChecklistSave(items=[
        ChecklistItemUpsert(document_type=t, document_category="Income", title=t) for t in doc_types
    ]))
    return {i.document_type: i for i in saved.checklist}


class TestUpload:
    """Uploads are stored, classified and attached to the open checklist item."""

    @pytest.mark.asyncio
    async def test_upload_matches_open_item(self, service, session, org_id, client_factory, tracker, upload_dir) -> None:
        client = await client_factory()
        items = await _checklist(session, org_id, client.id, "W-2", "1099-INT")

        result = await service.upload(
            client_id=client.id,
            filename="w2.txt",
            content_type="text/plain",
            contents=b"Form W-2 Wage and Tax Statement",
        )

        assert result.classification.document_type == "W-2"
        assert result.document.status == "pending"
        assert result.matched_item_id == items["W-2"].id
        assert result.document.checklist_item_id == items["W-2"].id
        stored = list((upload_dir / org_id / client.id).iterdir())
        assert len(stored) == 1 and stored[0].suffix == ".txt"
        assert tracker.get_entry(result.document.id).document_type == "W-2"

        checklist = await DocumentCollectionService(session, org_id).get_checklist(client.id)
        w2 = next(i for i in checklist.checklist if i.document_type == "W-2")
        assert w2.status == "in_progress"
        assert w2.attempts == 1

    @pytest.mark.asyncio
    async def test_mismatch_needs_review_and_matches_expected(self, service, session, org_id, client_factory) -> None:
        client = await client_factory()
        items = await _checklist(session, org_id, client.id, "1099-INT")

        result = await service.upload(
            client_id=client.id,
            filename="statement.txt",
            content_type="text/plain",
            contents=b"Form W-2 Wage and Tax Statement",
            expected_document_type="1099-INT",
        )

        assert result.document.status == "needs_review"
        assert result.matched_item_id == items["1099-INT"].id

    @pytest.mark.asyncio
    async def test_unknown_document_not_matched(self, service, client_factory) -> None:
        client = await client_factory()

        result = await service.upload(
            client_id=client.id, filename="photo.jpg", content_type="image/jpeg", contents=b"\xff\xd8",
        )

        assert result.document.status == "needs_review"
        assert result.matched_item_id is None

    @pytest.mark.asyncio
    async def test_explicit_item_must_exist(self, service, client_factory) -> None:
        client = await client_factory()
        with pytest.raises(NotFoundError):
            await service.upload(
                client_id=client.id, filename="w2.txt", content_type="text/plain",
                contents=b"W-2", checklist_item_id="missing",
            )

    @pytest.mark.asyncio
    async def test_missing_item_leaves_no_file(self, service, client_factory, upload_dir, org_id) -> None:
        client = await client_factory()
        with pytest.raises(NotFoundError):
            await service.upload(
                client_id=client.id, filename="w2.txt", content_type="text/plain",
                contents=b"W-2", checklist_item_id="missing",
            )

        client_dir = upload_dir / org_id / client.id
        assert not client_dir.exists() or list(client_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_failed_ingest_removes_stored_file(
        self, service, client_factory, upload_dir, org_id, monkeypatch
    ) -> None:
        client = await client_factory()
        monkeypatch.setattr(
            documents, "classify_document",
            AsyncMock(side_effect=ClassificationError("OpenAI service error: timeout")),
        )

        with pytest.raises(ClassificationError):
            await service.upload(
                client_id=client.id, filename="w2.txt", content_type="text/plain", contents=b"W-2",
            )

        assert list((upload_dir / org_id / client.id).iterdir()) == []

    @pytest.mark.asyncio
    async def test_unknown_client(self, service) -> None:
        with pytest.raises(NotFoundError):
            await service.upload(client_id="missing", filename="a.txt", content_type="text/plain", contents=b"x")


class TestReview:
    @pytest.mark.asyncio
    async def test_approval_completes_item_and_tracker(self, service, session, org_id, client_factory, tracker) -> None:
        client = await client_factory()
        await _checklist(session, org_id, client.id, "W-2")
        uploaded = await service.upload(
            client_id=client.id, filename="w2.txt", content_type="text/plain",
            contents=b"Form W-2 Wage and Tax Statement",
        )

        document = await service.review_document(
            uploaded.document.id, DocumentReview(status="approved", quality_score=0.95)
        )

        assert document.status == "approved"
        assert document.reviewed_at is not None
        assert client.progress == 100
        entry = tracker.get_entry(document.id)
        assert entry.status == "approved"
        assert entry.quality_score == 0.95

    @pytest.mark.asyncio
    async def test_rejection_reopens_item(self, service, session, org_id, client_factory, tracker) -> None:
        client = await client_factory()
        items = await _checklist(session, org_id, client.id, "W-2")
        uploaded = await service.upload(
            client_id=client.id, filename="w2.txt", content_type="text/plain",
            contents=b"Form W-2 Wage and Tax Statement",
        )

        await service.review_document(
            uploaded.document.id, DocumentReview(status="rejected", review_notes="Blurry scan")
        )

        checklist = await DocumentCollectionService(session, org_id).get_checklist(client.id)
        item = checklist.checklist[0]
        assert item.id == items["W-2"].id
        assert item.status == "pending"
        assert item.document_id is None
        assert tracker.get_entry(uploaded.document.id).status == "failed"
