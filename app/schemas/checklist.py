"""Checklist template, checklist item and collection progress schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal, Optional

from pydantic import Field

from app.schemas.client import ClientOut
from app.schemas.common import CamelModel
from app.schemas.profile import ClientProfile, PersonalizedChecklist, ProgressSummary

Priority = Literal["critical", "high", "medium", "low"]
ItemStatus = Literal["pending", "in_progress", "completed", "skipped", "blocked"]


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

class ConditionalRule(CamelModel):
    """Show/hide or require/relax an item based on one client answer."""

    condition: str  # answer key, e.g. "hasRentalProperty"
    operator: Literal["equals", "not_equals", "greater_than", "less_than", "contains"]
    value: Any = None
    action: Literal["show", "hide", "require", "optional"]


class TemplateItem(CamelModel):
    id: str
    document_type: str
    document_category: str
    title: str
    description: str = ""
    instructions: str = ""
    is_required: bool = True
    priority: Priority = "medium"
    estimated_time: int = Field(default=15, ge=0)  # minutes
    dependencies: list[str] = Field(default_factory=list)
    conditional_logic: list[ConditionalRule] = Field(default_factory=list)
    accepted_formats: list[str] = Field(default_factory=lambda: ["pdf", "jpg", "png"])
    max_file_size: int = 10  # MB
    due_in_days: Optional[int] = Field(default=None, ge=0)


class TemplateCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    category: Literal["individual", "business", "estate", "nonprofit", "custom"] = "individual"
    tax_year: int
    is_active: bool = True
    items: list[TemplateItem] = Field(default_factory=list)


class TemplateUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    category: Literal["individual", "business", "estate", "nonprofit", "custom"] | None = None
    tax_year: int | None = None
    is_active: bool | None = None
    items: list[TemplateItem] | None = None


class TemplateOut(CamelModel):
    id: str
    name: str
    description: str | None = None
    category: str
    tax_year: int
    is_active: bool
    items: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Client checklists
# ---------------------------------------------------------------------------

class ChecklistFromTemplate(CamelModel):
    template_id: str
    answers: dict[str, Any] | None = None  # falls back to the stored client profile
    due_date: date | None = None


class ChecklistFromProfile(CamelModel):
    profile: ClientProfile
    tax_year: int


class ChecklistItemOut(CamelModel):
    id: str
    client_id: str
    template_id: str | None = None
    template_item_id: str | None = None
    document_type: str
    document_category: str
    title: str
    description: str | None = None
    instructions: str | None = None
    is_required: bool
    is_visible: bool
    priority: str
    status: str
    due_date: date | None = None
    completed_at: datetime | None = None
    document_id: str | None = None
    estimated_minutes: int
    accepted_formats: list[str] | None = None
    attempts: int
    last_attempt_at: datetime | None = None
    blocked_reason: str | None = None
    skip_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class ChecklistItemUpsert(CamelModel):
    id: str | None = None
    document_type: str
    document_category: str
    title: str
    description: str | None = None
    instructions: str | None = None
    is_required: bool = True
    priority: Priority = "medium"
    status: ItemStatus = "pending"
    due_date: date | None = None
    estimated_minutes: int = 15


class SessionUpsert(CamelModel):
    template_id: str | None = None
    status: Literal["active", "paused", "completed", "cancelled"] = "active"


class ChecklistSave(CamelModel):
    items: list[ChecklistItemUpsert] = Field(default_factory=list)
    session: SessionUpsert | None = None


class CollectionSessionOut(CamelModel):
    id: str
    client_id: str
    template_id: str | None = None
    status: str
    progress_percentage: int
    total_required_documents: int
    completed_documents: int
    last_activity: datetime | None = None


class ChecklistProgress(CamelModel):
    total_required: int
    completed: int
    percentage: int


class ClientChecklistOut(CamelModel):
    client: ClientOut
    checklist: list[ChecklistItemOut]
    session: CollectionSessionOut | None = None
    progress: ChecklistProgress


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

class BreakdownEntry(CamelModel):
    total: int
    completed: int
    percentage: int


class ProgressReport(CamelModel):
    client_id: str
    overall_progress: int
    total_items: int
    completed_items: int
    required_items: int
    completed_required_items: int
    category_breakdown: dict[str, BreakdownEntry]
    priority_breakdown: dict[str, BreakdownEntry]
    overdue_items: list[ChecklistItemOut]
    upcoming_deadlines: list[ChecklistItemOut]
    last_updated: datetime | None = None


class ItemCompletionUpdate(CamelModel):
    item_id: str
    is_completed: bool
    document_id: str | None = None


class ItemReason(CamelModel):
    reason: str = Field(min_length=1)


class UploadMetrics(CamelModel):
    total_documents: int
    completed_documents: int
    pending_documents: int
    rejected_documents: int
    average_review_time: float  # minutes
    first_time_acceptance_rate: float  # percentage
    on_time_completion_rate: float  # percentage


class ProfileChecklistOut(CamelModel):
    """Result of generating a client's checklist from their tax profile."""

    personalized: PersonalizedChecklist
    summary: ProgressSummary
    checklist: ClientChecklistOut
