"""Client tax profile and personalized checklist schemas (checklist engine input/output)."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel

Priority = Literal["critical", "high", "medium", "low"]
AutomationLevel = Literal["full", "partial", "manual"]
ItemStatus = Literal["not_started", "in_progress", "completed", "not_applicable"]


# ---------------------------------------------------------------------------
# Input — client tax profile
# ---------------------------------------------------------------------------

class PersonalInfo(CamelModel):
    filing_status: Literal[
        "single", "married_joint", "married_separate", "head_of_household"
    ] = "single"
    has_spouse: bool = False
    dependents: int = Field(default=0, ge=0)
    age: Optional[int] = None
    spouse_age: Optional[int] = None


class IncomeProfile(CamelModel):
    has_w2_income: bool = False
    has_self_employment_income: bool = False
    has_business_income: bool = False
    has_rental_income: bool = False
    has_investment_income: bool = False
    has_foreign_income: bool = False
    has_retirement_income: bool = False
    has_unemployment_income: bool = False
    has_social_security_income: bool = False
    estimated_agi: float = 0.0


class DeductionProfile(CamelModel):
    itemizes_deductions: bool = False
    has_mortgage_interest: bool = False
    has_charitable_contributions: bool = False
    has_state_local_taxes: bool = False
    has_medical_expenses: bool = False
    has_education_expenses: bool = False
    has_childcare_expenses: bool = False


class BusinessProfile(CamelModel):
    business_type: Literal["sole_prop", "partnership", "llc", "s_corp", "c_corp"] = "sole_prop"
    has_employees: bool = False
    has_equipment_purchases: bool = False
    has_business_vehicle: bool = False
    has_home_office: bool = False
    industry_code: Optional[str] = None


class InvestmentProfile(CamelModel):
    brokerage_accounts: list[str] = Field(default_factory=list)
    has_cryptocurrency: bool = False
    has_real_estate: bool = False
    has_retirement_accounts: bool = False
    has_education_savings: bool = False


class CarryoverItem(CamelModel):
    type: Literal["capital_loss", "charitable", "net_operating_loss", "foreign_tax_credit"]
    amount: float
    expiration_year: Optional[int] = None


class PriorYearInfo(CamelModel):
    filed_last_year: bool = True
    had_refund: bool = False
    had_balance: bool = False
    prior_year_agi: float = 0.0
    carryover_items: list[CarryoverItem] = Field(default_factory=list)


class ClientProfile(CamelModel):
    id: str
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    income_profile: IncomeProfile = Field(default_factory=IncomeProfile)
    deduction_profile: DeductionProfile = Field(default_factory=DeductionProfile)
    business_profile: Optional[BusinessProfile] = None
    investment_profile: Optional[InvestmentProfile] = None
    prior_year_info: PriorYearInfo = Field(default_factory=PriorYearInfo)


# ---------------------------------------------------------------------------
# Output — personalized checklist
# ---------------------------------------------------------------------------

class ItemReminder(CamelModel):
    type: Literal["email", "sms", "portal"] = "email"
    days_before: int
    message: str


class HelpResource(CamelModel):
    type: Literal["video", "article", "faq", "contact"]
    title: str
    url: Optional[str] = None
    description: str


class PersonalizedItem(CamelModel):
    id: str
    category: str
    title: str
    description: str
    priority: Priority
    due_date: date
    estimated_tax_impact: float = 0.0
    status: ItemStatus = "not_started"
    document_types: list[str]
    automation_level: AutomationLevel
    dependencies: list[str] = Field(default_factory=list)
    reminder_schedule: list[ItemReminder] = Field(default_factory=list)
    completion_criteria: list[str] = Field(default_factory=list)
    help_resources: list[HelpResource] = Field(default_factory=list)


class ChecklistCategory(CamelModel):
    name: str
    description: str
    items: list[PersonalizedItem]
    completion_percentage: int = 0
    estimated_time: int
    priority: int


class NextAction(CamelModel):
    action: str
    priority: Literal["urgent", "high", "medium", "low"]
    due_date: date
    estimated_time: int
    category: str


class PersonalizedChecklist(CamelModel):
    client_id: str
    tax_year: int
    generated_at: datetime
    completion_percentage: int = 0
    estimated_time_to_complete: int
    critical_deadlines: list[date]
    categories: list[ChecklistCategory]
    overall_status: Literal["not_started", "in_progress", "review_ready", "completed"] = "not_started"
    next_actions: list[NextAction]


class ProgressSummary(CamelModel):
    total_items: int
    completed_items: int
    critical_items_remaining: int
    estimated_time_remaining: int
