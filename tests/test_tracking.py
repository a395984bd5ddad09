"""Tests for the in-memory document tracking system."""

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.services.tracking import (
    MAX_TIMELINE_EVENTS,
    DocumentTrackingSystem,
    TrackingRegistry,
    estimate_processing_time,
)


class MutableClock:
    """Clock that tests can move forward."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current += timedelta(**delta)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def tracker(clock: MutableClock) -> DocumentTrackingSystem:
    return DocumentTrackingSystem(clock=clock)


class TestTrackingLifecycle:
    """Status transitions, completion time and alert resolution."""

    def test_add_document_uses_type_estimate(self, tracker: DocumentTrackingSystem) -> None:
        entry = tracker.add_document("c1", "d1", "w2.pdf", "W-2")

        assert entry.id == "track_d1"
        assert entry.status == "uploaded"
        assert entry.estimated_completion_time == 15
        assert estimate_processing_time("Something Else") == 20

    def test_completion_records_minutes_and_resolves_alerts(
        self, tracker: DocumentTrackingSystem, clock: MutableClock
    ) -> None:
        """A done document stamps its completion time and closes every open alert."""
        tracker.add_document("c1", "d1", "k1.pdf", "K-1", due_date=date(2025, 3, 11))
        assert len(tracker.active_alerts("c1")) == 1

        clock.advance(minutes=90)
        entry = tracker.update_document_status("d1", "completed", notes="done", quality_score=0.9)

        assert entry.completed_at == clock.current
        assert entry.actual_completion_time == 90
        assert entry.quality_score == 0.9
        assert entry.notes[0].endswith(": done")
        assert tracker.active_alerts("c1") == []

    def test_approved_counts_as_done(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "a.pdf")
        entry = tracker.update_document_status("d1", "approved")
        assert entry.is_done
        assert entry.completed_at is not None

    def test_unknown_document_raises(self, tracker: DocumentTrackingSystem) -> None:
        with pytest.raises(NotFoundError):
            tracker.update_document_status("missing", "processing")


class TestTrackingAlerts:
    """Deadline and stuck-processing rules."""

    def test_overdue_document_gets_critical_alert(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "late.pdf", due_date=date(2025, 3, 1))
        alerts = tracker.active_alerts("c1")

        assert len(alerts) == 1
        assert alerts[0].severity == "critical"
        assert alerts[0].message == "Document late.pdf is overdue"

    def test_due_soon_document_gets_warning(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "soon.pdf", due_date=date(2025, 3, 12))
        alert = tracker.active_alerts("c1")[0]

        assert alert.severity == "warning"
        assert alert.message == "Document soon.pdf due in 2 days"
        assert alert.deadline == date(2025, 3, 12)

    def test_far_due_date_has_no_alert(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "later.pdf", due_date=date(2025, 4, 1))
        assert tracker.active_alerts("c1") == []

    def test_warning_window_is_configurable(self, tracker: DocumentTrackingSystem, monkeypatch) -> None:
        monkeypatch.setattr(settings, "deadline_warning_days", 10)
        tracker.add_document("c1", "d1", "week.pdf", due_date=date(2025, 3, 17))

        alerts = tracker.active_alerts("c1")
        assert len(alerts) == 1
        assert alerts[0].message == "Document week.pdf due in 7 days"

    def test_identical_open_alert_is_not_duplicated(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "late.pdf", due_date=date(2025, 3, 1))
        tracker.update_document_status("d1", "processing")
        tracker.update_document_status("d1", "processing")

        assert len(tracker.get_entry("d1").alerts) == 1

    def test_processing_over_a_day_raises_quality_alert(
        self, tracker: DocumentTrackingSystem, clock: MutableClock
    ) -> None:
        tracker.add_document("c1", "d1", "slow.pdf")
        clock.advance(hours=25)
        tracker.update_document_status("d1", "processing")

        alert = tracker.active_alerts("c1")[0]
        assert alert.type == "quality"
        assert "over 24 hours" in alert.message

    def test_alerts_sorted_by_severity(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "a.pdf")
        tracker.add_alert("d1", "review", "info", "look", "Review")
        tracker.add_alert("d1", "compliance", "critical", "bad", "Fix")
        tracker.add_alert("d1", "quality", "warning", "meh", "Check")

        assert [a.severity for a in tracker.active_alerts("c1")] == ["critical", "warning", "info"]


class TestTrackingDashboard:
    """Per-client dashboard aggregation."""

    def test_empty_client(self, tracker: DocumentTrackingSystem, clock: MutableClock) -> None:
        dashboard = tracker.generate_tracking_dashboard("nobody")

        assert dashboard.summary.total_documents == 0
        assert dashboard.summary.quality_score == 100
        assert dashboard.summary.compliance_score == 100
        assert dashboard.summary.estimated_completion == clock.current
        assert [m.completion_percentage for m in dashboard.milestones] == [100.0, 100.0, 100.0]
        assert dashboard.recommendations == []

    def test_summary_and_milestones(self, tracker: DocumentTrackingSystem, clock: MutableClock) -> None:
        tracker.add_document("c1", "d1", "w2.pdf", "W-2")
        tracker.add_document("c1", "d2", "int.pdf", "1099-INT", due_date=date(2025, 3, 1))
        tracker.add_document("c1", "d3", "div.pdf", "1099-DIV")
        tracker.add_document("c2", "other", "x.pdf")
        clock.advance(minutes=30)
        tracker.update_document_status("d1", "approved", quality_score=0.9)
        tracker.update_document_status("d3", "processing")

        dashboard = tracker.generate_tracking_dashboard("c1")
        summary = dashboard.summary

        assert summary.total_documents == 3
        assert summary.completed_documents == 1
        assert summary.pending_documents == 2
        assert summary.overdue_documents == 1
        assert summary.average_processing_time == 30.0
        assert summary.quality_score == 90
        assert summary.compliance_score == 67
        assert summary.critical_alerts == 1
        # 1099-INT and 1099-DIV still open: 10 + 10 minutes
        assert summary.estimated_completion == clock.current + timedelta(minutes=20)

        collection, processing, review = dashboard.milestones
        assert collection.completion_percentage == pytest.approx(66.7)
        assert processing.completion_percentage == pytest.approx(33.3)
        assert review.completion_percentage == pytest.approx(33.3)
        assert collection.target_date == date(2025, 3, 17)
        assert processing.dependencies == ["document_collection"]

        assert {d.document_id for d in dashboard.documents} == {"d1", "d2", "d3"}
        assert all(e.document_id != "other" for e in dashboard.timeline)
        assert [r.id for r in dashboard.recommendations] == ["overdue_documents"]

    def test_default_quality_score_without_scores(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "a.pdf")
        assert tracker.generate_tracking_dashboard("c1").summary.quality_score == 85

    def test_recommendations(self, tracker: DocumentTrackingSystem, clock: MutableClock) -> None:
        for n in range(6):
            tracker.add_document("c1", f"p{n}", f"p{n}.pdf")
            tracker.update_document_status(f"p{n}", "processing")
        tracker.add_document("c1", "done", "done.pdf")
        clock.advance(minutes=120)
        tracker.update_document_status("done", "completed", quality_score=0.5)

        ids = [r.id for r in tracker.generate_tracking_dashboard("c1").recommendations]
        assert ids == ["processing_bottleneck", "quality_improvement", "efficiency_improvement"]

    def test_timeline_keeps_newest_events(self, tracker: DocumentTrackingSystem, clock: MutableClock) -> None:
        tracker.add_document("c1", "d1", "busy.pdf")
        for _ in range(60):
            clock.advance(minutes=1)
            tracker.update_document_status("d1", "processing")

        timeline = tracker.generate_tracking_dashboard("c1").timeline

        assert len(timeline) == MAX_TIMELINE_EVENTS
        assert timeline[0].timestamp == clock.current
        assert all(e.type == "processing" for e in timeline)

    def test_timelines_are_per_client(self, tracker: DocumentTrackingSystem) -> None:
        for n in range(MAX_TIMELINE_EVENTS):
            tracker.add_document("noisy", f"n{n}", f"n{n}.pdf")
        tracker.add_document("quiet", "q1", "q1.pdf")

        assert len(tracker.generate_tracking_dashboard("noisy").timeline) == MAX_TIMELINE_EVENTS
        assert [e.document_id for e in tracker.generate_tracking_dashboard("quiet").timeline] == ["q1"]

    def test_readded_document_moves_its_events(self, tracker: DocumentTrackingSystem) -> None:
        tracker.add_document("c1", "d1", "a.pdf")
        tracker.update_document_status("d1", "processing")

        tracker.add_document("c2", "d1", "a.pdf")

        assert tracker.generate_tracking_dashboard("c1").timeline == []
        assert [e.type for e in tracker.generate_tracking_dashboard("c2").timeline] == ["upload"]


class TestTrackingRegistry:
    def test_one_tracker_per_organization(self) -> None:
        registry = TrackingRegistry()
        assert registry.get("a") is registry.get("a")
        assert registry.get("a") is not registry.get("b")

        registry.clear()
        assert not registry.get("a").is_tracked("anything")
