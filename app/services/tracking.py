"""In-memory document tracking.

A :class:`DocumentTrackingSystem` follows uploaded documents through
``uploaded -> processing -> completed / failed -> reviewed -> approved`` and
derives a per-client dashboard (summary, alerts, milestones, timeline and
workflow recommendations) from that state.

State lives in process memory only; one tracker per organization is handed
out by :data:`tracking_registry`. The clock is injectable so date rules can
be tested deterministically.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.domain.mixins import utcnow
from app.schemas.tracking import (
    Milestone,
    Recommendation,
    TimelineEvent,
    TrackingAlertOut,
    TrackingDashboard,
    TrackingEntryOut,
    TrackingSummary,
)

logger = logging.getLogger(__name__)

# Minutes of processing expected per document type
PROCESSING_TIME_ESTIMATES = {
    "W-2": 15,
    "1099-INT": 10,
    "1099-DIV": 10,
    "1099-NEC": 20,
    "K-1": 45,
    "Brokerage Statement": 30,
    "Business Receipt": 5,
    "Bank Statement": 25,
    "Unknown": 20,
}
DEFAULT_PROCESSING_MINUTES = 20

DONE_STATUSES = ("completed", "approved")
PROCESSED_STATUSES = ("completed", "reviewed", "approved")
REVIEWED_STATUSES = ("reviewed", "approved")
SEVERITY_ORDER = {"critical": 4, "error": 3, "warning": 2, "info": 1}

STUCK_PROCESSING_HOURS = 24
MAX_TIMELINE_EVENTS = 50
DEFAULT_QUALITY_SCORE = 85
BOTTLENECK_THRESHOLD = 5
LOW_QUALITY_THRESHOLD = 0.8
SLOW_PROCESSING_MINUTES = 60

# Days from now to each milestone's target date
MILESTONE_OFFSETS = {"collection": 7, "processing": 14, "review": 21}


@dataclass
class TrackingAlert:
    id: str
    document_id: str
    type: str
    severity: str
    message: str
    action_required: str
    created_at: datetime
    resolved_at: datetime | None = None
    deadline: date | None = None
    assigned_to: str | None = None


@dataclass
class TrackingEntry:
    id: str
    client_id: str
    document_id: str
    document_name: str
    document_type: str
    status: str
    priority: str
    uploaded_at: datetime
    last_updated: datetime
    estimated_completion_time: int
    due_date: date | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    actual_completion_time: int | None = None
    quality_score: float | None = None
    tags: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)
    alerts: list[TrackingAlert] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)

    @property
    def is_done(self) -> bool:
        return self.status in DONE_STATUSES


@dataclass
class TimelineEntry:
    id: str
    timestamp: datetime
    type: str
    description: str
    document_id: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def estimate_processing_time(document_type: str) -> int:
    return PROCESSING_TIME_ESTIMATES.get(document_type, DEFAULT_PROCESSING_MINUTES)


class DocumentTrackingSystem:
    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: dict[str, TrackingEntry] = {}  # keyed by document id
        # newest MAX_TIMELINE_EVENTS per client
        self._timelines: defaultdict[str, deque[TimelineEntry]] = defaultdict(
            lambda: deque(maxlen=MAX_TIMELINE_EVENTS)
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_document(
        self,
        client_id: str,
        document_id: str,
        document_name: str,
        document_type: str = "Unknown",
        priority: str = "medium",
        due_date: date | None = None,
    ) -> TrackingEntry:
        now = self._clock()
        replaced = self._entries.get(document_id)
        if replaced is not None:
            timeline = self._timelines[replaced.client_id]
            kept = [e for e in timeline if e.document_id != document_id]
            timeline.clear()
            timeline.extend(kept)
        entry = TrackingEntry(
            id=f"track_{document_id}",
            client_id=client_id,
            document_id=document_id,
            document_name=document_name,
            document_type=document_type,
            status="uploaded",
            priority=priority,
            uploaded_at=now,
            last_updated=now,
            due_date=due_date,
            estimated_completion_time=estimate_processing_time(document_type),
        )
        self._entries[document_id] = entry
        self._add_event("upload", f"Document uploaded: {document_name}", document_id)
        self._check_for_alerts(entry)
        return entry

    def get_entry(self, document_id: str) -> TrackingEntry:
        entry = self._entries.get(document_id)
        if entry is None:
            raise NotFoundError("Tracked document", document_id)
        return entry

    def is_tracked(self, document_id: str) -> bool:
        return document_id in self._entries

    def update_document_status(
        self,
        document_id: str,
        status: str,
        notes: str | None = None,
        quality_score: float | None = None,
    ) -> TrackingEntry:
        entry = self.get_entry(document_id)
        now = self._clock()
        previous = entry.status

        entry.status = status
        entry.last_updated = now
        if notes:
            entry.notes.append(f"{now.isoformat()}: {notes}")
        if quality_score is not None:
            entry.quality_score = quality_score

        if status in DONE_STATUSES and entry.completed_at is None:
            entry.completed_at = now
            entry.actual_completion_time = round(
                (now - entry.uploaded_at).total_seconds() / 60
            )
            self._resolve_alerts(entry)

        self._add_event(
            "processing", f"Status changed from {previous} to {status}", document_id
        )
        self._check_for_alerts(entry)
        return entry

    def add_alert(
        self,
        document_id: str,
        type: str,
        severity: str,
        message: str,
        action_required: str,
        deadline: date | None = None,
    ) -> TrackingAlert:
        entry = self.get_entry(document_id)
        for existing in entry.alerts:
            if (
                existing.resolved_at is None
                and existing.type == type
                and existing.severity == severity
                and existing.message == message
            ):
                return existing

        alert = TrackingAlert(
            id=f"alert_{uuid.uuid4().hex[:12]}",
            document_id=document_id,
            type=type,
            severity=severity,
            message=message,
            action_required=action_required,
            created_at=self._clock(),
            deadline=deadline,
        )
        entry.alerts.append(alert)
        self._add_event("alert", f"Alert created: {message}", document_id)
        return alert

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def _check_for_alerts(self, entry: TrackingEntry) -> None:
        now = self._clock()
        if entry.due_date and not entry.is_done:
            days_until_due = (entry.due_date - now.date()).days
            if days_until_due < 0:
                self.add_alert(
                    entry.document_id, "deadline", "critical",
                    f"Document {entry.document_name} is overdue",
                    "Complete processing immediately",
                )
            elif days_until_due <= settings.deadline_warning_days:
                self.add_alert(
                    entry.document_id, "deadline", "warning",
                    f"Document {entry.document_name} due in {days_until_due} days",
                    "Prioritize processing",
                    deadline=entry.due_date,
                )

        processing_hours = (now - entry.uploaded_at).total_seconds() / 3600
        if entry.status == "processing" and processing_hours > STUCK_PROCESSING_HOURS:
            self.add_alert(
                entry.document_id, "quality", "warning",
                f"Document {entry.document_name} has been processing for over 24 hours",
                "Review processing status",
            )

    def _resolve_alerts(self, entry: TrackingEntry) -> None:
        now = self._clock()
        for alert in entry.alerts:
            if alert.resolved_at is None:
                alert.resolved_at = now

    def _add_event(self, type: str, description: str, document_id: str) -> None:
        client_id = self._entries[document_id].client_id
        self._timelines[client_id].append(TimelineEntry(
            id=f"event_{uuid.uuid4().hex[:12]}",
            timestamp=self._clock(),
            type=type,
            description=description,
            document_id=document_id,
        ))

    def _is_overdue(self, entry: TrackingEntry) -> bool:
        return bool(entry.due_date and entry.due_date < self._clock().date() and not entry.is_done)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def entries_for_client(self, client_id: str) -> list[TrackingEntry]:
        return [e for e in self._entries.values() if e.client_id == client_id]

    def active_alerts(self, client_id: str) -> list[TrackingAlert]:
        alerts = [
            alert
            for entry in self.entries_for_client(client_id)
            for alert in entry.alerts
            if alert.resolved_at is None
        ]
        return sorted(alerts, key=lambda a: SEVERITY_ORDER.get(a.severity, 0), reverse=True)

    def generate_tracking_dashboard(self, client_id: str) -> TrackingDashboard:
        entries = self.entries_for_client(client_id)
        alerts = self.active_alerts(client_id)
        return TrackingDashboard(
            client_id=client_id,
            generated_at=self._clock(),
            summary=self._summary(entries, alerts),
            documents=[TrackingEntryOut.model_validate(e) for e in entries],
            alerts=[TrackingAlertOut.model_validate(a) for a in alerts],
            milestones=self._milestones(entries),
            timeline=self._client_timeline(client_id),
            recommendations=self._recommendations(entries),
        )

    @staticmethod
    def _average_processing_time(entries: list[TrackingEntry]) -> float:
        times = [e.actual_completion_time for e in entries if e.actual_completion_time is not None]
        return round(sum(times) / len(times), 1) if times else 0.0

    def _summary(self, entries: list[TrackingEntry], alerts: list[TrackingAlert]) -> TrackingSummary:
        overdue = sum(1 for e in entries if self._is_overdue(e))
        remaining_minutes = sum(e.estimated_completion_time for e in entries if not e.is_done)

        if not entries:
            quality, compliance = 100, 100
        else:
            scores = [e.quality_score for e in entries if e.quality_score is not None]
            quality = round(sum(scores) / len(scores) * 100) if scores else DEFAULT_QUALITY_SCORE
            compliance = round((1 - overdue / len(entries)) * 100)

        return TrackingSummary(
            total_documents=len(entries),
            completed_documents=sum(1 for e in entries if e.is_done),
            pending_documents=sum(1 for e in entries if e.status in ("uploaded", "processing")),
            overdue_documents=overdue,
            average_processing_time=self._average_processing_time(entries),
            quality_score=quality,
            compliance_score=compliance,
            estimated_completion=self._clock() + timedelta(minutes=remaining_minutes),
            critical_alerts=sum(1 for a in alerts if a.severity == "critical"),
        )

    def _milestones(self, entries: list[TrackingEntry]) -> list[Milestone]:
        total = len(entries)
        today = self._clock().date()
        specs = [
            ("document_collection", "Document Collection", "All required documents uploaded",
             "collection", [], sum(1 for e in entries if e.status != "uploaded")),
            ("document_processing", "Document Processing", "All documents processed and analyzed",
             "processing", ["document_collection"],
             sum(1 for e in entries if e.status in PROCESSED_STATUSES)),
            ("document_review", "Document Review", "All documents reviewed and approved",
             "review", ["document_processing"],
             sum(1 for e in entries if e.status in REVIEWED_STATUSES)),
        ]
        return [
            Milestone(
                id=milestone_id,
                title=title,
                description=description,
                target_date=today + timedelta(days=MILESTONE_OFFSETS[kind]),
                status="completed" if done == total else "in_progress",
                dependencies=dependencies,
                completion_percentage=round(done / total * 100, 1) if total else 100.0,
            )
            for milestone_id, title, description, kind, dependencies, done in specs
        ]

    def _client_timeline(self, client_id: str) -> list[TimelineEvent]:
        events = sorted(self._timelines.get(client_id, ()), key=lambda e: e.timestamp, reverse=True)
        return [TimelineEvent.model_validate(e) for e in events]

    def _recommendations(self, entries: list[TrackingEntry]) -> list[Recommendation]:
        recommendations: list[Recommendation] = []

        if sum(1 for e in entries if e.status == "processing") > BOTTLENECK_THRESHOLD:
            recommendations.append(Recommendation(
                id="processing_bottleneck",
                type="workflow",
                title="Processing Bottleneck Detected",
                description="Multiple documents are stuck in processing stage",
                impact="high",
                effort="medium",
                action_steps=[
                    "Review processing queue",
                    "Allocate additional resources",
                    "Identify automation opportunities",
                ],
            ))

        overdue = sum(1 for e in entries if self._is_overdue(e))
        if overdue:
            recommendations.append(Recommendation(
                id="overdue_documents",
                type="compliance",
                title="Overdue Documents Require Attention",
                description=f"{overdue} documents are past their due date",
                impact="high",
                effort="low",
                action_steps=[
                    "Prioritize overdue documents",
                    "Contact client for missing information",
                    "Expedite processing",
                ],
            ))

        if any(e.quality_score is not None and e.quality_score < LOW_QUALITY_THRESHOLD for e in entries):
            recommendations.append(Recommendation(
                id="quality_improvement",
                type="quality",
                title="Document Quality Issues",
                description="Some documents have low quality scores",
                impact="medium",
                effort="medium",
                action_steps=[
                    "Review document quality criteria",
                    "Provide client guidance on document submission",
                    "Implement quality checks",
                ],
            ))

        if self._average_processing_time(entries) > SLOW_PROCESSING_MINUTES:
            recommendations.append(Recommendation(
                id="efficiency_improvement",
                type="efficiency",
                title="Processing Time Optimization",
                description="Average processing time is higher than expected",
                impact="medium",
                effort="high",
                action_steps=[
                    "Analyze processing workflows",
                    "Identify automation opportunities",
                    "Streamline review processes",
                ],
            ))

        return recommendations


class TrackingRegistry:
    """One tracker per organization, created on first use."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._trackers: dict[str, DocumentTrackingSystem] = {}

    def get(self, organization_id: str) -> DocumentTrackingSystem:
        tracker = self._trackers.get(organization_id)
        if tracker is None:
            tracker = DocumentTrackingSystem(clock=self._clock)
            self._trackers[organization_id] = tracker
            logger.debug("Created document tracker for org=%s", organization_id)
        return tracker

    def clear(self) -> None:
        self._trackers.clear()


tracking_registry = TrackingRegistry()
