"""
Prioritization: urgency, impact, priority and opportunity score.

All functions are pure and take the ``Component`` they classify.

Impact thresholds (deltas are recommended − current; negative cost = savings)::

                       cost high   cost moderate   risk high   risk moderate
    standard part       −500 000       −100 000        0.5          0.2
    engine / premium  −1 000 000       −200 000        0.75         0.3

Priority lookup::

                  high        moderate    low
    immediate     critical    important   standard
    upcoming      important   standard    optional
    future        standard    optional    optional

Opportunity score::

    (min(|cost| / 1e6, 1) × 0.7 + clamp(risk, 0, 1) × 0.3)
        × urgency multiplier (immediate 1.0, upcoming 0.6, future 0.3)
        × component multiplier (engine 1.2, premium 1.1, else 1.0)
        × 100
"""

from __future__ import annotations

from supply_planner.models.catalog import Component
from supply_planner.taxonomy.recommendation_taxonomy import (
    ImpactLevel,
    Priority,
    RecommendationStatus,
    RecommendationUrgency,
)
from supply_planner.utils.numeric import clamp, round_half_up

COST_WEIGHT = 0.7
RISK_WEIGHT = 0.3

COST_HIGH_THRESHOLD = -500_000
COST_MODERATE_THRESHOLD = -100_000
RISK_HIGH_THRESHOLD = 0.5
RISK_MODERATE_THRESHOLD = 0.2

HIGH_VALUE_COST_FACTOR = 2
HIGH_VALUE_RISK_FACTOR = 1.5

URGENT_FAILURE_RATE = 0.03

PRIORITY_MATRIX: dict[RecommendationUrgency, dict[ImpactLevel, Priority]] = {
    RecommendationUrgency.IMMEDIATE: {
        ImpactLevel.HIGH: Priority.CRITICAL,
        ImpactLevel.MODERATE: Priority.IMPORTANT,
        ImpactLevel.LOW: Priority.STANDARD,
    },
    RecommendationUrgency.UPCOMING: {
        ImpactLevel.HIGH: Priority.IMPORTANT,
        ImpactLevel.MODERATE: Priority.STANDARD,
        ImpactLevel.LOW: Priority.OPTIONAL,
    },
    RecommendationUrgency.FUTURE: {
        ImpactLevel.HIGH: Priority.STANDARD,
        ImpactLevel.MODERATE: Priority.OPTIONAL,
        ImpactLevel.LOW: Priority.OPTIONAL,
    },
}

URGENCY_MULTIPLIERS: dict[RecommendationUrgency, float] = {
    RecommendationUrgency.IMMEDIATE: 1.0,
    RecommendationUrgency.UPCOMING: 0.6,
    RecommendationUrgency.FUTURE: 0.3,
}

_PRIORITY_CONTEXT: dict[Priority, str] = {
    Priority.CRITICAL: "This is a high-priority opportunity that requires immediate attention.",
    Priority.IMPORTANT: "This is an important opportunity to improve your supply chain.",
    Priority.STANDARD: "This represents a standard optimization opportunity.",
    Priority.OPTIONAL: "This is an optional improvement that can be considered when time permits.",
}


def determine_urgency(quarter: int, component: Component) -> RecommendationUrgency:
    if quarter != 1:
        return RecommendationUrgency.FUTURE
    if component.is_engine or component.baseline_failure_rate > URGENT_FAILURE_RATE:
        return RecommendationUrgency.IMMEDIATE
    return RecommendationUrgency.UPCOMING


def impact_thresholds(component: Component) -> tuple[float, float, float, float]:
    """``(cost_high, cost_moderate, risk_high, risk_moderate)`` for a component."""
    if component.is_high_value:
        return (
            COST_HIGH_THRESHOLD * HIGH_VALUE_COST_FACTOR,
            COST_MODERATE_THRESHOLD * HIGH_VALUE_COST_FACTOR,
            RISK_HIGH_THRESHOLD * HIGH_VALUE_RISK_FACTOR,
            RISK_MODERATE_THRESHOLD * HIGH_VALUE_RISK_FACTOR,
        )
    return (
        COST_HIGH_THRESHOLD,
        COST_MODERATE_THRESHOLD,
        RISK_HIGH_THRESHOLD,
        RISK_MODERATE_THRESHOLD,
    )


def determine_impact(cost_delta: float, risk_delta: float, component: Component) -> ImpactLevel:
    cost_high, cost_moderate, risk_high, risk_moderate = impact_thresholds(component)
    if cost_delta <= cost_high or risk_delta >= risk_high:
        return ImpactLevel.HIGH
    if cost_delta <= cost_moderate or risk_delta >= risk_moderate:
        return ImpactLevel.MODERATE
    return ImpactLevel.LOW


def determine_priority(urgency: RecommendationUrgency, impact: ImpactLevel) -> Priority:
    return PRIORITY_MATRIX[urgency][impact]


def component_multiplier(component: Component) -> float:
    if component.is_engine:
        return 1.2
    if component.is_premium:
        return 1.1
    return 1.0


def calculate_opportunity_score(
    cost_delta: float,
    risk_delta: float,
    urgency: RecommendationUrgency,
    component: Component,
) -> float:
    normalized_cost = min(abs(cost_delta) / 1_000_000, 1.0)
    normalized_risk = clamp(risk_delta, 0.0, 1.0)
    return (
        (normalized_cost * COST_WEIGHT + normalized_risk * RISK_WEIGHT)
        * URGENCY_MULTIPLIERS[urgency]
        * component_multiplier(component)
        * 100
    )


def determine_recommendation_status(
    cost_delta: float,
    risk_delta: float,
    component: Component,
) -> RecommendationStatus:
    """Headline status with its own, wider threshold bands."""
    if component.is_high_value:
        cost_warning, cost_critical = -500_000, -2_000_000
        risk_warning, risk_critical = 0.5, 1.0
    else:
        cost_warning, cost_critical = -100_000, -500_000
        risk_warning, risk_critical = 0.3, 0.7

    if cost_delta <= cost_critical or risk_delta >= risk_critical:
        return RecommendationStatus.HIGH_IMPACT
    if cost_delta <= cost_warning or risk_delta >= risk_warning:
        return RecommendationStatus.OPPORTUNITY
    return RecommendationStatus.OPTIMAL


def adjust_status_for_quarter(status: RecommendationStatus, quarter: int) -> RecommendationStatus:
    """Second-quarter cards are one step less pressing."""
    if quarter == 2:
        if status == RecommendationStatus.HIGH_IMPACT:
            return RecommendationStatus.OPPORTUNITY
        if status == RecommendationStatus.OPPORTUNITY:
            return RecommendationStatus.OPTIMAL
    return status


def format_number(value: float) -> str:
    """Thousands-separated number with at most three decimals, e.g. ``1,234.5``."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def format_cost_impact(cost_delta: float) -> str:
    if cost_delta < 0:
        return f"-${format_number(abs(cost_delta))}"
    return f"+${format_number(cost_delta)}"


def enhance_rationale_with_impact(
    rationale: list[str],
    unit_delta: int,
    cost_delta: float,
    risk_delta: float,
    priority: Priority,
) -> list[str]:
    """Prefix a priority sentence and append unit, cost and risk sentences."""
    enhanced = [_PRIORITY_CONTEXT[priority], *rationale]
    if unit_delta > 0:
        enhanced.append(f"Opportunity to optimize inventory by adding {unit_delta} units.")
    elif unit_delta < 0:
        enhanced.append(
            f"Opportunity to reduce inventory by {abs(unit_delta)} units while "
            "maintaining service levels."
        )
    if cost_delta < 0:
        enhanced.append(
            f"Potential savings of ${format_number(abs(cost_delta))} with this allocation strategy."
        )
    elif cost_delta > 0:
        enhanced.append(
            f"Investment of ${format_number(cost_delta)} to improve reliability and service levels."
        )
    if risk_delta > 0:
        enhanced.append(
            "Opportunity to improve supply chain reliability by approximately "
            f"{round_half_up(risk_delta * 100)}%."
        )
    return enhanced


def calculate_total_cost_impact(cost_deltas: dict[str, dict[str, float]]) -> float:
    """Sum of cost deltas over location → component."""
    return sum(delta for by_component in cost_deltas.values() for delta in by_component.values())


def calculate_risk_reduction_percentage(risk_deltas: dict[str, dict[str, float]]) -> float:
    """Share (0–100) of pairs whose recommendation lowers risk."""
    deltas = [d for by_component in risk_deltas.values() for d in by_component.values()]
    if not deltas:
        return 0.0
    return sum(1 for d in deltas if d > 0) / len(deltas) * 100
