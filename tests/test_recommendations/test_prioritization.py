"""
Tests for supply_planner/recommendations/prioritization.py.

What we test
------------
determine_urgency():
  - Only Q1 can be immediate; engines and failure-prone parts are immediate.

determine_impact():
  - Standard and high-value threshold bands, both dimensions.

determine_priority():
  - All nine cells of the urgency × impact matrix.

calculate_opportunity_score():
  - Weighted, capped cost and risk, scaled by urgency and component.

Headline helpers:
  - determine_recommendation_status() / adjust_status_for_quarter().
  - format_number() / format_cost_impact().
  - enhance_rationale_with_impact() sentence order.
  - calculate_total_cost_impact() / calculate_risk_reduction_percentage().
"""

from __future__ import annotations

import pytest

from supply_planner.models.catalog import Component
from supply_planner.recommendations.prioritization import (
    adjust_status_for_quarter,
    calculate_opportunity_score,
    calculate_risk_reduction_percentage,
    calculate_total_cost_impact,
    determine_impact,
    determine_priority,
    determine_recommendation_status,
    determine_urgency,
    enhance_rationale_with_impact,
    format_cost_impact,
    format_number,
    impact_thresholds,
)
from supply_planner.taxonomy.recommendation_taxonomy import (
    ImpactLevel,
    Priority,
    RecommendationStatus,
    RecommendationUrgency,
)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _component(component_id: str = "CHASSIS-BASIC", name: str = "Basic Chassis",
               failure_rate: float = 0.02) -> Component:
    return Component(component_id=component_id, name=name, baseline_failure_rate=failure_rate)


ENGINE = _component("ENGINE-A", "Basic Engine", 0.03)
PREMIUM = _component("CAB-PREMIUM", "Premium Cab", 0.01)
CHASSIS = _component()


# ── Urgency ───────────────────────────────────────────────────────────────────

class TestUrgency:
    def test_engine_in_q1_is_immediate(self):
        assert determine_urgency(1, ENGINE) == RecommendationUrgency.IMMEDIATE

    def test_failure_prone_part_is_immediate(self):
        assert determine_urgency(1, _component(failure_rate=0.031)) == RecommendationUrgency.IMMEDIATE

    def test_failure_rate_at_threshold_is_upcoming(self):
        assert determine_urgency(1, _component(failure_rate=0.03)) == RecommendationUrgency.UPCOMING

    def test_later_quarters_are_future(self):
        assert determine_urgency(2, ENGINE) == RecommendationUrgency.FUTURE

    def test_engine_matched_on_name(self):
        part = _component("PWR-1", "Diesel Engine", 0.0)
        assert determine_urgency(1, part) == RecommendationUrgency.IMMEDIATE


# ── Impact ────────────────────────────────────────────────────────────────────

class TestImpact:
    def test_standard_thresholds(self):
        assert impact_thresholds(CHASSIS) == (-500_000, -100_000, 0.5, 0.2)

    def test_high_value_thresholds(self):
        assert impact_thresholds(ENGINE) == pytest.approx((-1_000_000, -200_000, 0.75, 0.3))
        assert impact_thresholds(PREMIUM) == impact_thresholds(ENGINE)

    @pytest.mark.parametrize("cost,risk,expected", [
        (-500_000, 0.0, ImpactLevel.HIGH),
        (0.0, 0.5, ImpactLevel.HIGH),
        (-100_000, 0.0, ImpactLevel.MODERATE),
        (0.0, 0.2, ImpactLevel.MODERATE),
        (-99_999, 0.19, ImpactLevel.LOW),
        (250_000, -3.0, ImpactLevel.LOW),
    ])
    def test_standard_part(self, cost, risk, expected):
        assert determine_impact(cost, risk, CHASSIS) == expected

    def test_engine_scaled_bands(self):
        assert determine_impact(-600_000, 0.6, ENGINE) == ImpactLevel.MODERATE
        assert determine_impact(-600_000, 0.6, CHASSIS) == ImpactLevel.HIGH
        assert determine_impact(-150_000, 0.0, ENGINE) == ImpactLevel.LOW

    def test_engine_example_is_important(self):
        urgency = determine_urgency(1, ENGINE)
        impact = determine_impact(-600_000, 0.6, ENGINE)
        assert (urgency, impact, determine_priority(urgency, impact)) == (
            RecommendationUrgency.IMMEDIATE, ImpactLevel.MODERATE, Priority.IMPORTANT,
        )


# ── Priority ──────────────────────────────────────────────────────────────────

class TestPriority:
    @pytest.mark.parametrize("urgency,impact,expected", [
        (RecommendationUrgency.IMMEDIATE, ImpactLevel.HIGH, Priority.CRITICAL),
        (RecommendationUrgency.IMMEDIATE, ImpactLevel.MODERATE, Priority.IMPORTANT),
        (RecommendationUrgency.IMMEDIATE, ImpactLevel.LOW, Priority.STANDARD),
        (RecommendationUrgency.UPCOMING, ImpactLevel.HIGH, Priority.IMPORTANT),
        (RecommendationUrgency.UPCOMING, ImpactLevel.MODERATE, Priority.STANDARD),
        (RecommendationUrgency.UPCOMING, ImpactLevel.LOW, Priority.OPTIONAL),
        (RecommendationUrgency.FUTURE, ImpactLevel.HIGH, Priority.STANDARD),
        (RecommendationUrgency.FUTURE, ImpactLevel.MODERATE, Priority.OPTIONAL),
        (RecommendationUrgency.FUTURE, ImpactLevel.LOW, Priority.OPTIONAL),
    ])
    def test_matrix(self, urgency, impact, expected):
        assert determine_priority(urgency, impact) == expected


# ── Opportunity score ─────────────────────────────────────────────────────────

class TestOpportunityScore:
    def test_cost_only(self):
        score = calculate_opportunity_score(
            -500_000, 0.0, RecommendationUrgency.IMMEDIATE, CHASSIS
        )
        assert score == pytest.approx(35.0)

    def test_cost_and_risk_capped(self):
        score = calculate_opportunity_score(
            -5_000_000, 7.0, RecommendationUrgency.IMMEDIATE, CHASSIS
        )
        assert score == pytest.approx(100.0)

    def test_cost_increase_counts_by_magnitude(self):
        up = calculate_opportunity_score(200_000, 0.0, RecommendationUrgency.UPCOMING, CHASSIS)
        down = calculate_opportunity_score(-200_000, 0.0, RecommendationUrgency.UPCOMING, CHASSIS)
        assert up == pytest.approx(down)

    def test_negative_risk_contributes_nothing(self):
        score = calculate_opportunity_score(0.0, -2.0, RecommendationUrgency.IMMEDIATE, CHASSIS)
        assert score == 0.0

    def test_multipliers(self):
        base = calculate_opportunity_score(-1_000_000, 1.0, RecommendationUrgency.FUTURE, CHASSIS)
        assert base == pytest.approx(30.0)
        assert calculate_opportunity_score(
            -1_000_000, 1.0, RecommendationUrgency.FUTURE, ENGINE
        ) == pytest.approx(36.0)
        assert calculate_opportunity_score(
            -1_000_000, 1.0, RecommendationUrgency.UPCOMING, PREMIUM
        ) == pytest.approx(66.0)


# ── Headline status ───────────────────────────────────────────────────────────

class TestRecommendationStatus:
    def test_standard_bands(self):
        assert determine_recommendation_status(-500_000, 0, CHASSIS) == RecommendationStatus.HIGH_IMPACT
        assert determine_recommendation_status(-100_000, 0, CHASSIS) == RecommendationStatus.OPPORTUNITY
        assert determine_recommendation_status(0, 0.7, CHASSIS) == RecommendationStatus.HIGH_IMPACT
        assert determine_recommendation_status(0, 0.3, CHASSIS) == RecommendationStatus.OPPORTUNITY
        assert determine_recommendation_status(-50_000, 0.1, CHASSIS) == RecommendationStatus.OPTIMAL

    def test_high_value_bands(self):
        assert determine_recommendation_status(-500_000, 0, ENGINE) == RecommendationStatus.OPPORTUNITY
        assert determine_recommendation_status(-2_000_000, 0, ENGINE) == RecommendationStatus.HIGH_IMPACT
        assert determine_recommendation_status(0, 0.9, ENGINE) == RecommendationStatus.OPPORTUNITY

    def test_second_quarter_steps_down(self):
        assert adjust_status_for_quarter(
            RecommendationStatus.HIGH_IMPACT, 2
        ) == RecommendationStatus.OPPORTUNITY
        assert adjust_status_for_quarter(
            RecommendationStatus.OPPORTUNITY, 2
        ) == RecommendationStatus.OPTIMAL
        assert adjust_status_for_quarter(
            RecommendationStatus.OPTIMAL, 2
        ) == RecommendationStatus.OPTIMAL

    def test_other_quarters_unchanged(self):
        for quarter in (1, 3, 4):
            assert adjust_status_for_quarter(
                RecommendationStatus.HIGH_IMPACT, quarter
            ) == RecommendationStatus.HIGH_IMPACT


# ── Formatting ────────────────────────────────────────────────────────────────

class TestFormatting:
    def test_format_number(self):
        assert format_number(1234.5) == "1,234.5"
        assert format_number(2_000_000) == "2,000,000"
        assert format_number(0.1239) == "0.124"
        assert format_number(12.0) == "12"

    def test_format_cost_impact(self):
        assert format_cost_impact(-5) == "-$5"
        assert format_cost_impact(150_000) == "+$150,000"
        assert format_cost_impact(0) == "+$0"


class TestEnhanceRationale:
    def test_priority_sentence_first(self):
        result = enhance_rationale_with_impact(["Core reason."], 0, 0.0, 0.0, Priority.CRITICAL)
        assert result == [
            "This is a high-priority opportunity that requires immediate attention.",
            "Core reason.",
        ]

    def test_unit_cost_and_risk_sentences(self):
        result = enhance_rationale_with_impact(
            ["Core reason."], -40, -12_500.0, 0.25, Priority.OPTIONAL
        )
        assert result[1] == "Core reason."
        assert result[2] == (
            "Opportunity to reduce inventory by 40 units while maintaining service levels."
        )
        assert result[3] == "Potential savings of $12,500 with this allocation strategy."
        assert result[4].endswith("by approximately 25%.")

    def test_investment_and_added_units(self):
        result = enhance_rationale_with_impact([], 15, 900.0, -1.0, Priority.STANDARD)
        assert result == [
            "This represents a standard optimization opportunity.",
            "Opportunity to optimize inventory by adding 15 units.",
            "Investment of $900 to improve reliability and service levels.",
        ]

    def test_input_list_not_mutated(self):
        rationale = ["Core reason."]
        enhance_rationale_with_impact(rationale, 5, -1.0, 1.0, Priority.IMPORTANT)
        assert rationale == ["Core reason."]


class TestAggregateImpact:
    def test_total_cost_impact(self):
        deltas = {"heartland": {"ENGINE-A": -100.0, "CHASSIS-BASIC": 40.0}, "west": {"ENGINE-A": -5.0}}
        assert calculate_total_cost_impact(deltas) == pytest.approx(-65.0)

    def test_risk_reduction_percentage(self):
        deltas = {"heartland": {"A": 0.4, "B": -0.1}, "west": {"A": 0.0, "B": 2.0}}
        assert calculate_risk_reduction_percentage(deltas) == pytest.approx(50.0)

    def test_risk_reduction_empty(self):
        assert calculate_risk_reduction_percentage({}) == 0.0
