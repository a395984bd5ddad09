"""Checklist engine — pure functions, no database access.

* :func:`generate_checklist` turns a client tax profile into a personalized
  checklist grouped by category, with due dates, time estimates, critical
  deadlines and the next actions to take.
* :func:`evaluate_rule` / :func:`apply_rules` decide whether a template item
  is shown and whether it is required for a given set of client answers.
* :func:`calculate_progress` is the single progress formula used everywhere
  a checklist percentage is reported.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timezone
from typing import Any, Protocol

from app.schemas.checklist import ChecklistProgress, ConditionalRule, TemplateItem
from app.schemas.profile import (
    ChecklistCategory,
    ClientProfile,
    HelpResource,
    ItemReminder,
    NextAction,
    PersonalizedChecklist,
    PersonalizedItem,
    ProgressSummary,
)

# Estimated payments are only collected above this AGI
ESTIMATED_PAYMENTS_AGI_THRESHOLD = 50_000
W2_TAX_RATE = 0.22
MAX_NEXT_ACTIONS = 5

# Minutes of work remaining per item, by automation level
_REMAINING_MINUTES = {"full": 5, "partial": 15, "manual": 30}


class _ProgressItem(Protocol):
    is_required: bool
    status: str


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------

def information_return_deadline(tax_year: int) -> date:
    """W-2 / 1099 / 1098 furnishing deadline: January 31 of the following year."""
    return date(tax_year + 1, 1, 31)


def brokerage_deadline(tax_year: int) -> date:
    return date(tax_year + 1, 2, 15)


def prior_year_deadline(tax_year: int) -> date:
    return date(tax_year + 1, 3, 1)


def filing_deadline(tax_year: int) -> date:
    return date(tax_year + 1, 4, 15)


# ---------------------------------------------------------------------------
# Category builders
# ---------------------------------------------------------------------------

def _income_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    income = profile.income_profile
    items: list[PersonalizedItem] = []

    if income.has_w2_income:
        items.append(PersonalizedItem(
            id="w2-documents",
            category="Income Documents",
            title="W-2 Forms",
            description="Collect W-2 forms from all employers for the tax year",
            priority="critical",
            due_date=information_return_deadline(tax_year),
            estimated_tax_impact=round(income.estimated_agi * W2_TAX_RATE, 2),
            document_types=["W-2"],
            automation_level="full",
            reminder_schedule=[
                ItemReminder(days_before=30, message="W-2 forms should be available soon"),
                ItemReminder(days_before=7, message="W-2 deadline approaching"),
            ],
            completion_criteria=["All W-2 forms received", "Forms reviewed for accuracy"],
            help_resources=[
                HelpResource(
                    type="article",
                    title="Understanding Your W-2",
                    description="Guide to W-2 form fields",
                )
            ],
        ))

    if income.has_self_employment_income:
        items.append(PersonalizedItem(
            id="1099-nec-documents",
            category="Income Documents",
            title="1099-NEC Forms",
            description="Collect 1099-NEC forms for non-employee compensation",
            priority="critical",
            due_date=information_return_deadline(tax_year),
            document_types=["1099-NEC"],
            automation_level="partial",
            reminder_schedule=[
                ItemReminder(days_before=30, message="1099-NEC forms should be available"),
            ],
            completion_criteria=["All 1099-NEC forms received"],
        ))

    if income.has_investment_income:
        items.append(PersonalizedItem(
            id="investment-income-documents",
            category="Income Documents",
            title="Investment Income Forms",
            description="Collect 1099-INT, 1099-DIV, and other investment income documents",
            priority="high",
            due_date=information_return_deadline(tax_year),
            document_types=["1099-INT", "1099-DIV", "1099-B"],
            automation_level="full",
            reminder_schedule=[
                ItemReminder(days_before=30, message="Investment income forms should be available"),
            ],
            completion_criteria=["All investment forms received"],
        ))

    return ChecklistCategory(
        name="Income Documents",
        description="Essential income documentation for tax preparation",
        items=items,
        estimated_time=len(items) * 15,
        priority=1,
    )


def _deduction_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    deductions = profile.deduction_profile
    items: list[PersonalizedItem] = []

    if deductions.has_mortgage_interest:
        items.append(PersonalizedItem(
            id="mortgage-interest-1098",
            category="Deduction Documents",
            title="Mortgage Interest Statement (1098)",
            description="Collect Form 1098 from mortgage lender",
            priority="high",
            due_date=information_return_deadline(tax_year),
            estimated_tax_impact=5000,
            document_types=["1098"],
            automation_level="full",
            reminder_schedule=[
                ItemReminder(days_before=30, message="Form 1098 should be available from your lender"),
            ],
            completion_criteria=["Form 1098 received", "Amounts verified"],
        ))

    if deductions.has_charitable_contributions:
        items.append(PersonalizedItem(
            id="charitable-contributions",
            category="Deduction Documents",
            title="Charitable Contribution Records",
            description="Gather receipts and acknowledgments for charitable donations",
            priority="medium",
            due_date=filing_deadline(tax_year),
            estimated_tax_impact=2000,
            document_types=["Charitable Receipt"],
            automation_level="manual",
            reminder_schedule=[
                ItemReminder(days_before=60, message="Start gathering charitable contribution records"),
            ],
            completion_criteria=["All donation receipts collected", "Amounts totaled"],
        ))

    if deductions.has_education_expenses:
        items.append(PersonalizedItem(
            id="education-expenses-1098t",
            category="Deduction Documents",
            title="Education Expenses (1098-T)",
            description="Collect Form 1098-T from educational institutions",
            priority="high",
            due_date=information_return_deadline(tax_year),
            estimated_tax_impact=2500,
            document_types=["1098-T"],
            automation_level="full",
            reminder_schedule=[
                ItemReminder(days_before=30, message="Form 1098-T should be available from school"),
            ],
            completion_criteria=["Form 1098-T received"],
        ))

    return ChecklistCategory(
        name="Deduction Documents",
        description="Documents needed to maximize your tax deductions",
        items=items,
        estimated_time=len(items) * 20,
        priority=2,
    )


def _business_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    items = [PersonalizedItem(
        id="business-income-expenses",
        category="Business Documents",
        title="Business Income and Expense Records",
        description="Compile all business income and expense documentation",
        priority="critical",
        due_date=filing_deadline(tax_year),
        document_types=["Business Receipt", "Invoice", "Bank Statement"],
        automation_level="partial",
        reminder_schedule=[
            ItemReminder(days_before=90, message="Start organizing business records"),
        ],
        completion_criteria=["All receipts organized", "Expenses categorized"],
    )]

    if profile.business_profile and profile.business_profile.has_business_vehicle:
        items.append(PersonalizedItem(
            id="vehicle-mileage-log",
            category="Business Documents",
            title="Vehicle Mileage Log",
            description="Maintain detailed mileage log for business vehicle use",
            priority="high",
            due_date=filing_deadline(tax_year),
            estimated_tax_impact=3000,
            document_types=["Mileage Log"],
            automation_level="manual",
            reminder_schedule=[
                ItemReminder(days_before=120, message="Ensure mileage log is up to date"),
            ],
            completion_criteria=["Complete mileage log", "Business purpose documented"],
        ))

    return ChecklistCategory(
        name="Business Documents",
        description="Business-related documentation for Schedule C",
        items=items,
        estimated_time=len(items) * 45,
        priority=1,
    )


def _investment_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    items = [PersonalizedItem(
        id="brokerage-statements",
        category="Investment Documents",
        title="Brokerage Statements and 1099-B Forms",
        description="Collect year-end statements and 1099-B forms from all brokerages",
        priority="high",
        due_date=brokerage_deadline(tax_year),
        document_types=["Brokerage Statement", "1099-B"],
        automation_level="partial",
        reminder_schedule=[
            ItemReminder(days_before=45, message="Brokerage statements should be available"),
        ],
        completion_criteria=["All brokerage statements received", "Cost basis verified"],
    )]
    return ChecklistCategory(
        name="Investment Documents",
        description="Investment and capital gains documentation",
        items=items,
        estimated_time=len(items) * 30,
        priority=2,
    )


def _prior_year_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    items = [PersonalizedItem(
        id="prior-year-return",
        category="Prior Year Items",
        title="Prior Year Tax Return",
        description="Provide copy of prior year tax return for carryover items",
        priority="high",
        due_date=prior_year_deadline(tax_year),
        document_types=["Tax Return"],
        automation_level="manual",
        completion_criteria=["Prior year return provided"],
    )]
    return ChecklistCategory(
        name="Prior Year Items",
        description="Items carried over from previous tax years",
        items=items,
        estimated_time=15,
        priority=3,
    )


def _estimated_payments_category(profile: ClientProfile, tax_year: int) -> ChecklistCategory:
    items = [PersonalizedItem(
        id="estimated-payment-records",
        category="Estimated Payments",
        title="Estimated Tax Payment Records",
        description="Compile records of quarterly estimated tax payments made",
        priority="medium",
        due_date=filing_deadline(tax_year),
        document_types=["Payment Receipt"],
        automation_level="manual",
        completion_criteria=["All payment records collected"],
    )]
    return ChecklistCategory(
        name="Estimated Payments",
        description="Quarterly estimated tax payment documentation",
        items=items,
        estimated_time=15,
        priority=4,
    )


def build_categories(profile: ClientProfile, tax_year: int) -> list[ChecklistCategory]:
    income = profile.income_profile
    categories = [
        _income_category(profile, tax_year),
        _deduction_category(profile, tax_year),
    ]
    if income.has_business_income or income.has_self_employment_income:
        categories.append(_business_category(profile, tax_year))
    if income.has_investment_income:
        categories.append(_investment_category(profile, tax_year))
    if profile.prior_year_info.carryover_items:
        categories.append(_prior_year_category(profile, tax_year))
    if income.estimated_agi > ESTIMATED_PAYMENTS_AGI_THRESHOLD:
        categories.append(_estimated_payments_category(profile, tax_year))
    return categories


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def remaining_minutes(automation_level: str) -> int:
    return _REMAINING_MINUTES.get(automation_level, 30)


def critical_deadlines(tax_year: int) -> list[date]:
    return [information_return_deadline(tax_year), filing_deadline(tax_year)]


def next_actions(categories: Iterable[ChecklistCategory]) -> list[NextAction]:
    """Critical items not yet started, soonest due first (at most five)."""
    actions = [
        NextAction(
            action=f"Complete: {item.title}",
            priority="urgent",
            due_date=item.due_date,
            estimated_time=30,
            category=category.name,
        )
        for category in categories
        for item in category.items
        if item.status == "not_started" and item.priority == "critical"
    ]
    actions.sort(key=lambda a: a.due_date)
    return actions[:MAX_NEXT_ACTIONS]


def generate_checklist(
    profile: ClientProfile, tax_year: int, now: datetime | None = None
) -> PersonalizedChecklist:
    categories = build_categories(profile, tax_year)
    return PersonalizedChecklist(
        client_id=profile.id,
        tax_year=tax_year,
        generated_at=now or datetime.now(timezone.utc),
        estimated_time_to_complete=sum(c.estimated_time for c in categories),
        critical_deadlines=critical_deadlines(tax_year),
        categories=categories,
        next_actions=next_actions(categories),
    )


def progress_summary(checklist: PersonalizedChecklist) -> ProgressSummary:
    items = [item for category in checklist.categories for item in category.items]
    remaining = [item for item in items if item.status != "completed"]
    return ProgressSummary(
        total_items=len(items),
        completed_items=len(items) - len(remaining),
        critical_items_remaining=sum(1 for item in remaining if item.priority == "critical"),
        estimated_time_remaining=sum(remaining_minutes(item.automation_level) for item in remaining),
    )


# ---------------------------------------------------------------------------
# Template conditional rules
# ---------------------------------------------------------------------------

def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def evaluate_rule(rule: ConditionalRule, answers: Mapping[str, Any]) -> bool:
    """True when the client's answer satisfies the rule's condition.

    Missing answers never satisfy numeric or ``contains`` comparisons.
    """
    actual = answers.get(rule.condition)
    op = rule.operator

    if op == "equals":
        return actual == rule.value
    if op == "not_equals":
        return actual != rule.value
    if op in ("greater_than", "less_than"):
        left, right = _as_number(actual), _as_number(rule.value)
        if left is None or right is None:
            return False
        return left > right if op == "greater_than" else left < right
    if op == "contains":
        if isinstance(actual, str):
            return isinstance(rule.value, str) and rule.value.lower() in actual.lower()
        if isinstance(actual, (list, tuple, set)):
            return rule.value in actual
        return False
    return False


def apply_rules(item: TemplateItem, answers: Mapping[str, Any]) -> tuple[bool, bool]:
    """Return ``(is_visible, is_required)`` for a template item.

    An item carrying any ``show`` rule is hidden unless one of them matches.
    Matching rules are applied in order, so a later rule wins.
    """
    rules = item.conditional_logic
    visible = not any(rule.action == "show" for rule in rules)
    required = item.is_required

    for rule in rules:
        if not evaluate_rule(rule, answers):
            continue
        if rule.action == "show":
            visible = True
        elif rule.action == "hide":
            visible = False
        elif rule.action == "require":
            required = True
        elif rule.action == "optional":
            required = False
    return visible, required


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def calculate_progress(items: Iterable[_ProgressItem]) -> ChecklistProgress:
    """Share of required items that are completed, as a rounded percentage."""
    required = [item for item in items if item.is_required]
    completed = sum(1 for item in required if item.status == "completed")
    percentage = round(completed / len(required) * 100) if required else 0
    return ChecklistProgress(
        total_required=len(required), completed=completed, percentage=percentage
    )
