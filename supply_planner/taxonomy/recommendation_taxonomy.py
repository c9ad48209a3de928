"""
Closed tag sets used by the recommendation pipeline.

Four dimensions classify every recommendation:
  - ``AllocationReason``       — why a supplier holds its share.
  - ``RecommendationUrgency``  — how soon the purchase decision matters.
  - ``ImpactLevel``            — magnitude of cost savings / risk reduction.
  - ``Priority``               — urgency × impact lookup result.

Supporting tags used inside the reasoning payload:
  - ``RiskImpact``             — severity of one identified risk factor.
  - ``DiversificationLevel``   — benefit of spreading volume across suppliers.
  - ``RecommendationStatus``   — coarse headline status for a pair.

Reason overwrite policy
-----------------------
Every supplier starts as ``QUALITY``. Each diversification rule that moves
percentage points *to* a supplier overwrites that supplier's reason with its
own tag, so after the rule chain the reason reflects the **last** rule that
touched the supplier.

This module has NO imports from any other ``supply_planner`` package.
"""

from enum import StrEnum


class AllocationReason(StrEnum):
    """Why a supplier received its allocation share."""

    QUALITY = "quality"
    """Base allocation proportional to total score (default)."""

    COST = "cost"
    """Received points from the leader because quality was near-equal and it is cheaper."""

    DIVERSITY = "diversity"
    """Received redistributed excess from a leader above the concentration cap."""

    SAFETY = "safety"
    """Carries the safety-stock portion of demand as the cheapest acceptable supplier."""

    Q2_COST = "q2-cost"
    """Received points as cost leader because second-quarter demand is planned."""


class RecommendationUrgency(StrEnum):
    """How soon a purchase decision needs to be acted on."""

    IMMEDIATE = "immediate"
    UPCOMING = "upcoming"
    FUTURE = "future"


class ImpactLevel(StrEnum):
    """Magnitude of the combined cost / risk effect of a recommendation."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class Priority(StrEnum):
    """Card priority, ordered from most to least pressing."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    STANDARD = "standard"
    OPTIONAL = "optional"


PRIORITY_RANK: dict[Priority, int] = {
    Priority.CRITICAL:  0,
    Priority.IMPORTANT: 1,
    Priority.STANDARD:  2,
    Priority.OPTIONAL:  3,
}


class RecommendationStatus(StrEnum):
    """Headline status derived from cost and risk deltas."""

    HIGH_IMPACT = "high-impact"
    OPPORTUNITY = "opportunity"
    OPTIMAL = "optimal"


class RiskImpact(StrEnum):
    """Severity of a single risk factor in the reasoning payload."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DiversificationLevel(StrEnum):
    """Risk reduction obtained by splitting volume across suppliers."""

    MINIMAL = "minimal"
    LOW = "low"
    MODERATE = "moderate"
    APPRECIABLE = "appreciable"
    HIGH = "high"
