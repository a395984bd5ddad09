"""Document collection service.

Owns everything between "this client needs these documents" and "the
documents are in":

* checklist templates (items stored as a JSON array on the template row)
* per-client checklists created from a template or a tax profile
* item state changes (complete, skip, block, upload attempts) and the
  progress figures written back to the client and its collection session
* document alerts: manual reminders, the automatic overdue / approaching
  sweep, and delivery of pending alerts by email

Progress always uses :func:`checklist_engine.calculate_progress` so the
client row, the session row and every response agree.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import EmailDeliveryError, NotFoundError, ValidationError
from app.domain.checklist import ChecklistItem, ChecklistTemplate, CollectionSession
from app.domain.client import Client
from app.domain.document import DocumentAlert
from app.domain.mixins import utcnow
from app.repositories.checklist import (
    ChecklistItemRepository,
    ChecklistTemplateRepository,
    CollectionSessionRepository,
)
from app.repositories.client import ClientRepository
from app.repositories.document import DocumentAlertRepository, DocumentRepository
from app.schemas.checklist import (
    BreakdownEntry,
    ChecklistFromProfile,
    ChecklistFromTemplate,
    ChecklistItemOut,
    ChecklistProgress,
    ChecklistSave,
    ClientChecklistOut,
    CollectionSessionOut,
    ItemCompletionUpdate,
    ProfileChecklistOut,
    ProgressReport,
    TemplateCreate,
    TemplateItem,
    TemplateUpdate,
    UploadMetrics,
)
from app.schemas.client import ClientOut
from app.schemas.document import AlertCreate, AlertListOut, AlertStats, DocumentAlertOut
from app.services import checklist_engine
from app.services.email_service import EmailService, get_email_service, render_notification

logger = logging.getLogger(__name__)

UPCOMING_WINDOW_DAYS = 7
CLOSED_ITEM_STATUSES = ("completed", "skipped")


def _pct(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


class DocumentCollectionService:
    def __init__(
        self,
        session: AsyncSession,
        organization_id: str,
        email_service: EmailService | None = None,
    ):
        self._clients = ClientRepository(session, organization_id)
        self._templates = ChecklistTemplateRepository(session, organization_id)
        self._items = ChecklistItemRepository(session, organization_id)
        self._sessions = CollectionSessionRepository(session, organization_id)
        self._documents = DocumentRepository(session, organization_id)
        self._alerts = DocumentAlertRepository(session, organization_id)
        self._email = email_service or get_email_service()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_client(self, client_id: str) -> Client:
        client = await self._clients.get_by_id(client_id)
        if not client:
            raise NotFoundError("Client", client_id)
        return client

    async def _get_item(self, client_id: str, item_id: str) -> ChecklistItem:
        item = await self._items.get_for_client(client_id, item_id)
        if not item:
            raise NotFoundError("Checklist item", item_id)
        return item

    async def _get_alert(self, alert_id: str) -> DocumentAlert:
        alert = await self._alerts.get_by_id(alert_id)
        if not alert:
            raise NotFoundError("Alert", alert_id)
        return alert

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def list_templates(self, category: str | None = None) -> list[ChecklistTemplate]:
        return await self._templates.list_active(category)

    async def get_template(self, template_id: str) -> ChecklistTemplate:
        template = await self._templates.get_by_id(template_id)
        if not template:
            raise NotFoundError("Checklist template", template_id)
        return template

    async def create_template(self, data: TemplateCreate) -> ChecklistTemplate:
        payload = data.model_dump(exclude={"items"})
        items = [item.model_dump(mode="json") for item in data.items]
        return await self._templates.create(**payload, items=items)

    async def update_template(self, template_id: str, data: TemplateUpdate) -> ChecklistTemplate:
        template = await self.get_template(template_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"items"})
        for field, value in changes.items():
            setattr(template, field, value)
        if data.items is not None:
            template.items = [item.model_dump(mode="json") for item in data.items]
        return await self._templates.save(template)

    # ------------------------------------------------------------------
    # Client checklists
    # ------------------------------------------------------------------

    async def create_from_template(
        self, client_id: str, data: ChecklistFromTemplate
    ) -> ClientChecklistOut:
        """Materialize a template for a client.

        Conditional rules are evaluated against ``data.answers`` (or the
        answers stored on the client). Items already created from the same
        template are left untouched, so re-running only adds what is new.
        """
        client = await self._get_client(client_id)
        template = await self.get_template(template_id=data.template_id)
        if not template.is_active:
            raise ValidationError(f"Checklist template '{template.id}' is inactive")

        answers = data.answers if data.answers is not None else (client.profile or {})
        existing = {
            item.template_item_id
            for item in await self._items.list_for_client(client_id)
            if item.template_id == template.id
        }
        today = date.today()

        created = 0
        for raw in template.items:
            template_item = TemplateItem.model_validate(raw)
            if template_item.id in existing:
                continue
            visible, required = checklist_engine.apply_rules(template_item, answers)
            if not visible:
                continue

            due_date = data.due_date
            if due_date is None and template_item.due_in_days is not None:
                due_date = today + timedelta(days=template_item.due_in_days)

            await self._items.create(
                client_id=client_id,
                template_id=template.id,
                template_item_id=template_item.id,
                document_type=template_item.document_type,
                document_category=template_item.document_category,
                title=template_item.title,
                description=template_item.description or None,
                instructions=template_item.instructions or None,
                is_required=required,
                is_visible=True,
                priority=template_item.priority,
                due_date=due_date,
                estimated_minutes=template_item.estimated_time,
                accepted_formats=template_item.accepted_formats,
            )
            created += 1

        logger.info(
            "Checklist from template=%s client=%s items_created=%d",
            template.id, client_id, created,
        )
        await self._upsert_session(client_id, template_id=template.id, status="active")
        await self._refresh_progress(client)
        return await self.get_checklist(client_id)

    async def create_from_profile(
        self, client_id: str, data: ChecklistFromProfile
    ) -> ProfileChecklistOut:
        """Generate a personalized checklist and persist one row per item."""
        client = await self._get_client(client_id)
        personalized = checklist_engine.generate_checklist(data.profile, data.tax_year)

        existing = {
            item.template_item_id
            for item in await self._items.list_for_client(client_id)
            if item.template_id is None
        }
        for category in personalized.categories:
            for item in category.items:
                if item.id in existing:
                    continue
                await self._items.create(
                    client_id=client_id,
                    template_item_id=item.id,
                    document_type=item.document_types[0] if item.document_types else item.title,
                    document_category=category.name,
                    title=item.title,
                    description=item.description,
                    instructions="\n".join(item.completion_criteria) or None,
                    is_required=True,
                    priority=item.priority,
                    due_date=item.due_date,
                    estimated_minutes=checklist_engine.remaining_minutes(item.automation_level),
                )

        if client.tax_year is None:
            client.tax_year = data.tax_year
        await self._upsert_session(client_id, status="active")
        await self._refresh_progress(client)
        return ProfileChecklistOut(
            personalized=personalized,
            summary=checklist_engine.progress_summary(personalized),
            checklist=await self.get_checklist(client_id),
        )

    async def get_checklist(self, client_id: str) -> ClientChecklistOut:
        client = await self._get_client(client_id)
        items = await self._items.list_for_client(client_id)
        collection = await self._sessions.get_for_client(client_id)
        return ClientChecklistOut(
            client=ClientOut.model_validate(client),
            checklist=[ChecklistItemOut.model_validate(i) for i in items],
            session=CollectionSessionOut.model_validate(collection) if collection else None,
            progress=checklist_engine.calculate_progress(items),
        )

    async def save_checklist(self, client_id: str, data: ChecklistSave) -> ClientChecklistOut:
        """Bulk upsert items (matched by id) and the client's session."""
        client = await self._get_client(client_id)
        now = utcnow()

        for upsert in data.items:
            fields = upsert.model_dump(exclude={"id"})
            item = await self._items.get_for_client(client_id, upsert.id) if upsert.id else None
            if item is None:
                if fields["status"] == "completed":
                    fields["completed_at"] = now
                await self._items.create(client_id=client_id, **fields)
                continue

            for field, value in fields.items():
                setattr(item, field, value)
            if item.status == "completed" and item.completed_at is None:
                item.completed_at = now
            elif item.status != "completed":
                item.completed_at = None
            await self._items.save(item)

        if data.session is not None:
            await self._upsert_session(
                client_id, template_id=data.session.template_id, status=data.session.status
            )
        await self._refresh_progress(client)
        return await self.get_checklist(client_id)

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    async def progress_report(self, client_id: str) -> ProgressReport:
        await self._get_client(client_id)
        items = await self._items.list_for_client(client_id)
        today = date.today()
        horizon = today + timedelta(days=UPCOMING_WINDOW_DAYS)

        def breakdown(key) -> dict[str, BreakdownEntry]:
            totals: Counter[str] = Counter()
            done: Counter[str] = Counter()
            for item in items:
                totals[key(item)] += 1
                if item.is_completed:
                    done[key(item)] += 1
            return {
                name: BreakdownEntry(
                    total=total, completed=done[name], percentage=_pct(done[name], total)
                )
                for name, total in totals.items()
            }

        open_items = [i for i in items if i.status not in CLOSED_ITEM_STATUSES and i.due_date]
        overdue = sorted((i for i in open_items if i.due_date < today), key=lambda i: i.due_date)
        upcoming = sorted(
            (i for i in open_items if today <= i.due_date <= horizon), key=lambda i: i.due_date
        )
        required = [i for i in items if i.is_required]

        return ProgressReport(
            client_id=client_id,
            overall_progress=checklist_engine.calculate_progress(items).percentage,
            total_items=len(items),
            completed_items=sum(1 for i in items if i.is_completed),
            required_items=len(required),
            completed_required_items=sum(1 for i in required if i.is_completed),
            category_breakdown=breakdown(lambda i: i.document_category),
            priority_breakdown=breakdown(lambda i: i.priority),
            overdue_items=[ChecklistItemOut.model_validate(i) for i in overdue],
            upcoming_deadlines=[ChecklistItemOut.model_validate(i) for i in upcoming],
            last_updated=max((i.updated_at for i in items), default=None),
        )

    async def _upsert_session(
        self,
        client_id: str,
        *,
        template_id: str | None = None,
        status: str | None = None,
    ) -> CollectionSession:
        collection = await self._sessions.get_for_client(client_id)
        if collection is None:
            return await self._sessions.create(
                client_id=client_id,
                template_id=template_id,
                status=status or "active",
                last_activity=utcnow(),
            )
        if template_id is not None:
            collection.template_id = template_id
        if status is not None:
            collection.status = status
        collection.last_activity = utcnow()
        return await self._sessions.save(collection)

    async def _refresh_progress(self, client: Client) -> ChecklistProgress:
        """Recompute progress and write it to the client and its session."""
        items = await self._items.list_for_client(client.id)
        progress = checklist_engine.calculate_progress(items)
        now = utcnow()

        client.progress = progress.percentage
        client.last_activity = now
        await self._clients.save(client)

        collection = await self._upsert_session(client.id)
        collection.progress_percentage = progress.percentage
        collection.total_required_documents = progress.total_required
        collection.completed_documents = progress.completed
        if progress.total_required and progress.percentage == 100:
            collection.status = "completed"
        elif collection.status == "completed":
            collection.status = "active"
        await self._sessions.save(collection)
        return progress

    # ------------------------------------------------------------------
    # Item state changes
    # ------------------------------------------------------------------

    async def update_item_completion(
        self, client_id: str, data: ItemCompletionUpdate
    ) -> tuple[ChecklistItem, ChecklistProgress]:
        client = await self._get_client(client_id)
        item = await self._get_item(client_id, data.item_id)

        if data.is_completed:
            item.status = "completed"
            item.completed_at = utcnow()
            if data.document_id:
                item.document_id = data.document_id
        else:
            item.status = "pending"
            item.completed_at = None
            item.document_id = data.document_id
        await self._items.save(item)

        progress = await self._refresh_progress(client)
        logger.info(
            "Checklist item %s completed=%s client=%s progress=%d%%",
            item.id, data.is_completed, client_id, progress.percentage,
        )
        return item, progress

    async def skip_item(self, client_id: str, item_id: str, reason: str) -> ChecklistItem:
        """Mark an item as not needed; it no longer counts towards progress."""
        client = await self._get_client(client_id)
        item = await self._get_item(client_id, item_id)
        item.status = "skipped"
        item.skip_reason = reason
        item.is_required = False
        await self._items.save(item)
        await self._refresh_progress(client)
        return item

    async def block_item(self, client_id: str, item_id: str, reason: str) -> ChecklistItem:
        await self._get_client(client_id)
        item = await self._get_item(client_id, item_id)
        item.status = "blocked"
        item.blocked_reason = reason
        return await self._items.save(item)

    async def track_upload(
        self, client_id: str, item_id: str, document_id: str
    ) -> ChecklistItem:
        """Attach an uploaded document to an item and count the attempt."""
        client = await self._get_client(client_id)
        item = await self._get_item(client_id, item_id)
        now = utcnow()

        item.document_id = document_id
        item.attempts += 1
        item.last_attempt_at = now
        if item.status in ("pending", "blocked"):
            item.status = "in_progress"
            item.blocked_reason = None
        await self._items.save(item)

        client.last_activity = now
        await self._clients.save(client)
        await self._upsert_session(client_id)
        return item

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    async def upload_metrics(self, client_id: str | None = None) -> UploadMetrics:
        filters = {"client_id": client_id} if client_id else {}
        documents = await self._documents.list_all(**filters)
        items = await self._items.list_all(**filters)

        statuses = Counter(d.status for d in documents)
        review_minutes = [
            (d.reviewed_at - d.created_at).total_seconds() / 60
            for d in documents
            if d.reviewed_at and d.created_at
        ]

        completed_items = [i for i in items if i.is_completed]
        uploaded_completed = [i for i in completed_items if i.attempts > 0]
        first_time = sum(1 for i in uploaded_completed if i.attempts == 1)
        dated = [i for i in completed_items if i.due_date and i.completed_at]
        on_time = sum(1 for i in dated if i.completed_at.date() <= i.due_date)

        return UploadMetrics(
            total_documents=len(documents),
            completed_documents=statuses["approved"],
            pending_documents=statuses["pending"] + statuses["processing"] + statuses["needs_review"],
            rejected_documents=statuses["rejected"],
            average_review_time=(
                round(sum(review_minutes) / len(review_minutes), 1) if review_minutes else 0.0
            ),
            first_time_acceptance_rate=_rate(first_time, len(uploaded_completed)),
            on_time_completion_rate=_rate(on_time, len(dated)),
        )

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    async def list_alerts(self, status: str = "pending", client_id: str | None = None) -> AlertListOut:
        alerts = await self._alerts.list_by_status(status, client_id)
        by_type: dict[str, int] = defaultdict(int)
        by_status: dict[str, int] = defaultdict(int)
        total = 0
        for alert_type, alert_status, count in await self._alerts.counts_by_type_and_status(client_id):
            by_type[alert_type] += count
            by_status[alert_status] += count
            total += count
        return AlertListOut(
            alerts=[DocumentAlertOut.model_validate(a) for a in alerts],
            stats=AlertStats(total=total, by_type=dict(by_type), by_status=dict(by_status)),
        )

    async def create_alert(self, data: AlertCreate) -> DocumentAlert:
        await self._get_client(data.client_id)
        if data.checklist_item_id:
            await self._get_item(data.client_id, data.checklist_item_id)
        payload = data.model_dump(exclude_none=True)
        return await self._alerts.create(**payload)

    async def _queue_item_alert(
        self, item: ChecklistItem, alert_type: str, message: str, today: date
    ) -> bool:
        """Insert an alert for an item unless an identical one is still pending."""
        if await self._alerts.find_pending(item.client_id, item.id, alert_type):
            return False
        details = {
            "document_type": item.document_type,
            "due_date": item.due_date.isoformat() if item.due_date else None,
        }
        if alert_type == "overdue" and item.due_date:
            details["days_overdue"] = (today - item.due_date).days
        await self._alerts.create(
            client_id=item.client_id,
            checklist_item_id=item.id,
            alert_type=alert_type,
            message=message,
            delivery_method="email",
            details=details,
        )
        return True

    async def send_reminder(self, client_id: str) -> int:
        """Queue one ``overdue`` alert per overdue, incomplete item of the client."""
        await self._get_client(client_id)
        today = date.today()
        created = 0
        for item in await self._items.list_overdue(today, client_id):
            if await self._queue_item_alert(
                item, "overdue", f'Document "{item.document_type}" is overdue', today
            ):
                created += 1
        logger.info("Reminder alerts created client=%s count=%d", client_id, created)
        return created

    async def dismiss_alert(self, alert_id: str) -> DocumentAlert:
        alert = await self._get_alert(alert_id)
        alert.status = "dismissed"
        return await self._alerts.save(alert)

    async def resolve_alert(self, alert_id: str, resolution: str | None = None) -> DocumentAlert:
        alert = await self._get_alert(alert_id)
        alert.status = "resolved"
        alert.resolved_at = utcnow()
        alert.resolution = resolution
        return await self._alerts.save(alert)

    async def generate_alerts(self) -> dict[str, int]:
        """Sweep every client of the organization for overdue and approaching items."""
        today = date.today()
        live_clients = {c.id for c in await self._clients.list_all()}
        counts = {"overdue": 0, "deadline_approaching": 0}

        for item in await self._items.list_overdue(today):
            if item.client_id not in live_clients:
                continue
            if await self._queue_item_alert(
                item, "overdue", f'Document "{item.document_type}" is overdue', today
            ):
                counts["overdue"] += 1

        horizon = today + timedelta(days=settings.deadline_warning_days)
        for item in await self._items.list_due_between(today, horizon):
            if item.client_id not in live_clients:
                continue
            message = f'Document "{item.document_type}" is due on {item.due_date.isoformat()}'
            if await self._queue_item_alert(item, "deadline_approaching", message, today):
                counts["deadline_approaching"] += 1

        logger.info(
            "Alert sweep org=%s overdue=%d approaching=%d",
            self._alerts.organization_id, counts["overdue"], counts["deadline_approaching"],
        )
        return counts

    async def send_pending_alerts(self) -> dict[str, int]:
        """Deliver due pending alerts; each ends ``sent`` or ``failed``."""
        now = utcnow()
        counts = {"sent": 0, "failed": 0}
        clients: dict[str, Client | None] = {}

        for alert in await self._alerts.list_by_status("pending"):
            if alert.scheduled_for > now:
                continue
            if alert.client_id not in clients:
                clients[alert.client_id] = await self._clients.get_by_id(alert.client_id)
            client = clients[alert.client_id]

            if alert.delivery_method == "email":
                if client is None or not client.email:
                    alert.status = "failed"
                    alert.failure_reason = "Client has no email address"
                    counts["failed"] += 1
                    await self._alerts.save(alert)
                    continue
                try:
                    await self._email.send(render_notification(
                        to=client.email,
                        subject=f"Document reminder for {client.name}",
                        body=alert.message,
                    ))
                except EmailDeliveryError as exc:
                    alert.status = "failed"
                    alert.failure_reason = exc.message
                    counts["failed"] += 1
                    await self._alerts.save(alert)
                    continue

            alert.status = "sent"
            alert.sent_at = now
            counts["sent"] += 1
            await self._alerts.save(alert)

        logger.info("Pending alerts delivered sent=%d failed=%d", counts["sent"], counts["failed"])
        return counts
