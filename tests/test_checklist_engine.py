"""Tests for the checklist engine (profile checklists, conditional rules, progress)."""

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest

from app.schemas.checklist import ConditionalRule, TemplateItem
from app.schemas.profile import ClientProfile
from app.services import checklist_engine


def _profile(**overrides) -> ClientProfile:
    data = {
        "id": "client-1",
        "incomeProfile": {
            "hasW2Income": True,
            "hasSelfEmploymentIncome": True,
            "hasInvestmentIncome": True,
            "estimatedAgi": 80000,
        },
        "deductionProfile": {"hasMortgageInterest": True},
        "priorYearInfo": {"carryoverItems": [{"type": "capital_loss", "amount": 3000}]},
    }
    data.update(overrides)
    return ClientProfile.model_validate(data)


def _item(rules: list[dict], is_required: bool = True) -> TemplateItem:
    return TemplateItem(
        id="rental",
        document_type="Rental Statement",
        document_category="Income",
        title="Rental income records",
        is_required=is_required,
        conditional_logic=[ConditionalRule.model_validate(r) for r in rules],
    )


class TestGenerateChecklist:
    """Personalized checklist generation from a tax profile."""

    def test_categories_follow_profile(self) -> None:
        """Only categories the profile calls for are produced, in a stable order."""
        checklist = checklist_engine.generate_checklist(_profile(), 2024)

        assert [c.name for c in checklist.categories] == [
            "Income Documents",
            "Deduction Documents",
            "Business Documents",
            "Investment Documents",
            "Prior Year Items",
            "Estimated Payments",
        ]

    def test_minimal_profile_has_only_base_categories(self) -> None:
        checklist = checklist_engine.generate_checklist(ClientProfile(id="c-2"), 2024)

        assert [c.name for c in checklist.categories] == ["Income Documents", "Deduction Documents"]
        assert all(not c.items for c in checklist.categories)
        assert checklist.estimated_time_to_complete == 0
        assert checklist.next_actions == []

    def test_w2_item_due_date_and_tax_impact(self) -> None:
        """W-2 forms are due January 31 and carry 22% of the estimated AGI."""
        checklist = checklist_engine.generate_checklist(_profile(), 2024)
        w2 = checklist.categories[0].items[0]

        assert w2.id == "w2-documents"
        assert w2.due_date == date(2025, 1, 31)
        assert w2.estimated_tax_impact == pytest.approx(17600.0)
        assert w2.document_types == ["W-2"]

    def test_estimated_time_is_sum_of_categories(self) -> None:
        checklist = checklist_engine.generate_checklist(_profile(), 2024)

        # income 3x15, deductions 1x20, business 1x45, investment 30, prior year 15, payments 15
        assert checklist.estimated_time_to_complete == 45 + 20 + 45 + 30 + 15 + 15

    def test_critical_deadlines(self) -> None:
        checklist = checklist_engine.generate_checklist(_profile(), 2024)
        assert checklist.critical_deadlines == [date(2025, 1, 31), date(2025, 4, 15)]

    def test_next_actions_are_critical_items_soonest_first(self) -> None:
        checklist = checklist_engine.generate_checklist(_profile(), 2024)
        actions = checklist.next_actions

        assert [a.action for a in actions] == [
            "Complete: W-2 Forms",
            "Complete: 1099-NEC Forms",
            "Complete: Business Income and Expense Records",
        ]
        assert all(a.priority == "urgent" for a in actions)
        assert [a.due_date for a in actions] == sorted(a.due_date for a in actions)

    def test_business_vehicle_adds_mileage_log(self) -> None:
        profile = _profile(businessProfile={"hasBusinessVehicle": True})
        checklist = checklist_engine.generate_checklist(profile, 2024)
        business = next(c for c in checklist.categories if c.name == "Business Documents")

        assert [i.id for i in business.items] == ["business-income-expenses", "vehicle-mileage-log"]
        assert business.estimated_time == 90

    def test_agi_at_threshold_skips_estimated_payments(self) -> None:
        profile = _profile(incomeProfile={"hasW2Income": True, "estimatedAgi": 50000})
        checklist = checklist_engine.generate_checklist(profile, 2024)
        assert "Estimated Payments" not in [c.name for c in checklist.categories]

    def test_generated_at_uses_given_moment(self) -> None:
        moment = datetime(2025, 1, 2, 9, 30, tzinfo=timezone.utc)
        checklist = checklist_engine.generate_checklist(_profile(), 2024, now=moment)
        assert checklist.generated_at == moment

    def test_progress_summary(self) -> None:
        checklist = checklist_engine.generate_checklist(_profile(), 2024)
        summary = checklist_engine.progress_summary(checklist)

        assert summary.total_items == 8
        assert summary.completed_items == 0
        assert summary.critical_items_remaining == 3
        # full: w2, investment, 1098 -> 3x5; partial: 1099-NEC, business, brokerage -> 3x15;
        # manual: prior year, estimated payments -> 2x30
        assert summary.estimated_time_remaining == 15 + 45 + 60


class TestConditionalRules:
    """Template item show/hide/require rules."""

    def test_show_rule_hides_item_until_matched(self) -> None:
        item = _item([{"condition": "hasRentalProperty", "operator": "equals", "value": True, "action": "show"}])

        assert checklist_engine.apply_rules(item, {}) == (False, True)
        assert checklist_engine.apply_rules(item, {"hasRentalProperty": True}) == (True, True)

    def test_hide_rule(self) -> None:
        item = _item([{"condition": "filingStatus", "operator": "equals", "value": "single", "action": "hide"}])

        assert checklist_engine.apply_rules(item, {"filingStatus": "single"}) == (False, True)
        assert checklist_engine.apply_rules(item, {"filingStatus": "married_joint"}) == (True, True)

    def test_require_and_optional_rules(self) -> None:
        item = _item(
            [
                {"condition": "income", "operator": "greater_than", "value": 100000, "action": "require"},
                {"condition": "income", "operator": "less_than", "value": 20000, "action": "optional"},
            ],
            is_required=False,
        )

        assert checklist_engine.apply_rules(item, {"income": 150000}) == (True, True)
        assert checklist_engine.apply_rules(item, {"income": 50000}) == (True, False)

    def test_later_matching_rule_wins(self) -> None:
        item = _item([
            {"condition": "state", "operator": "equals", "value": "CA", "action": "hide"},
            {"condition": "state", "operator": "equals", "value": "CA", "action": "show"},
        ])
        assert checklist_engine.apply_rules(item, {"state": "CA"}) == (True, True)

    @pytest.mark.parametrize(
        "operator,value,answer,expected",
        [
            ("equals", "yes", "yes", True),
            ("not_equals", "yes", "no", True),
            ("greater_than", 10, "12", True),
            ("greater_than", 10, None, False),
            ("less_than", 10, "abc", False),
            ("contains", "rent", "Rental Property", True),
            ("contains", "crypto", ["stocks", "crypto"], True),
            ("contains", "crypto", 5, False),
        ],
    )
    def test_evaluate_rule_operators(self, operator, value, answer, expected) -> None:
        rule = ConditionalRule(condition="answer", operator=operator, value=value, action="show")
        answers = {} if answer is None else {"answer": answer}
        assert checklist_engine.evaluate_rule(rule, answers) is expected

    def test_boolean_answers_are_not_numbers(self) -> None:
        rule = ConditionalRule(condition="flag", operator="greater_than", value=0, action="require")
        assert checklist_engine.evaluate_rule(rule, {"flag": True}) is False


class TestCalculateProgress:
    """Single progress formula shared by every checklist response."""

    def test_counts_required_items_only(self) -> None:
        items = [
            SimpleNamespace(is_required=True, status="completed"),
            SimpleNamespace(is_required=True, status="pending"),
            SimpleNamespace(is_required=True, status="completed"),
            SimpleNamespace(is_required=False, status="completed"),
        ]
        progress = checklist_engine.calculate_progress(items)

        assert progress.total_required == 3
        assert progress.completed == 2
        assert progress.percentage == 67

    def test_no_required_items_is_zero_percent(self) -> None:
        progress = checklist_engine.calculate_progress([SimpleNamespace(is_required=False, status="completed")])
        assert progress.percentage == 0
        assert progress.total_required == 0
