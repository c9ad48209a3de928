"""
Impact results and quarterly recommendation cards.

``PairImpact`` is the Impact Calculator's output for one (location,
component): per-quarter deltas plus the pair-level classification.

``QuarterlyCard`` is the terminal output record, one per (location,
component, quarter, year). Both quarters of a pair share ``urgency``,
``impact_level``, ``priority`` and ``opportunity_score``; only the unit/cost
figures and the quarter-filtered strategy differ.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from supply_planner.models.strategy import ReasonedAllocationStrategy
from supply_planner.taxonomy.recommendation_taxonomy import (
    ImpactLevel,
    Priority,
    RecommendationUrgency,
)


class QuarterImpact(BaseModel):
    """Recommended-vs-current figures for one quarter."""

    model_config = ConfigDict(frozen=True)

    quarter: int
    year: int
    current_units: int
    current_cost: float
    recommended_units: int
    recommended_cost: float

    @property
    def unit_delta(self) -> int:
        return self.recommended_units - self.current_units

    @property
    def cost_delta(self) -> float:
        return self.recommended_cost - self.current_cost


class PairImpact(BaseModel):
    """Impact and prioritisation for one (location, component).

    Attributes:
        quarters: Per-quarter figures, in planning order (Q1 first).
        risk_delta: ``(current_risk − recommended_risk) × 1000``.
        total_cost_delta: Sum of the per-quarter cost deltas.
    """

    model_config = ConfigDict(frozen=True)

    location_id: str
    component_id: str
    quarters: list[QuarterImpact]
    risk_delta: float
    total_cost_delta: float
    urgency: RecommendationUrgency
    impact_level: ImpactLevel
    priority: Priority
    opportunity_score: float

    def for_quarter(self, quarter: int, year: int) -> Optional[QuarterImpact]:
        for qi in self.quarters:
            if qi.quarter == quarter and qi.year == year:
                return qi
        return None


class QuarterlyCard(BaseModel):
    """One persisted recommendation card.

    ``unit_delta`` / ``cost_delta`` are recommended − current for this
    card's own quarter, never cumulative.
    """

    model_config = ConfigDict(frozen=True)

    card_id: Optional[int] = None
    location_id: str
    component_id: str
    quarter: int
    year: int
    current_units: int
    current_cost: float
    recommended_units: int
    recommended_cost: float
    unit_delta: int
    cost_delta: float
    urgency: RecommendationUrgency
    impact_level: ImpactLevel
    priority: Priority
    opportunity_score: float
    strategy: ReasonedAllocationStrategy
    created_at: Optional[datetime] = None

    @model_validator(mode="after")
    def validate_deltas(self) -> "QuarterlyCard":
        if self.unit_delta != self.recommended_units - self.current_units:
            raise ValueError(
                f"unit_delta ({self.unit_delta}) must equal recommended_units - "
                f"current_units ({self.recommended_units - self.current_units})."
            )
        if abs(self.cost_delta - (self.recommended_cost - self.current_cost)) > 1e-6:
            raise ValueError(
                f"cost_delta ({self.cost_delta}) must equal recommended_cost - current_cost."
            )
        return self
