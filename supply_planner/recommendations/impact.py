"""
Impact calculator: recommended strategy vs. status quo, per pair.

For every (location, component) with a recommended strategy and a baseline:

  - per quarter (Q1, Q2 of the planning year, computed independently)::

        unit_delta = recommended total_required − baseline need
        cost_delta = recommended quarterly cost − baseline quarterly cost

  - ``risk_delta = (baseline_risk − recommended_risk) × 1000`` (positive
    means the recommendation is safer);
  - urgency from Q1; impact, priority and opportunity score from the summed
    cost delta and the risk delta.
"""

from __future__ import annotations

import logging

from supply_planner.config import RecommendationConfig
from supply_planner.models.card import PairImpact, QuarterImpact
from supply_planner.models.catalog import Catalog
from supply_planner.models.strategy import (
    AllocationStrategy,
    CurrentComponentStrategy,
    CurrentStrategy,
)
from supply_planner.recommendations.current_strategy import calculate_allocation_risk
from supply_planner.recommendations.performance import SupplierPerformance
from supply_planner.recommendations.prioritization import (
    calculate_opportunity_score,
    determine_impact,
    determine_priority,
    determine_urgency,
)
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector

logger = logging.getLogger(__name__)

RISK_SCALE = 1000

PairKey = tuple[str, str]


def _recommended_cost(strategy: AllocationStrategy, quarter: int, year: int) -> float:
    for cost in strategy.quarterly_costs:
        if cost.quarter == quarter and cost.year == year:
            return cost.total_cost
    return 0.0


def _recommended_units(strategy: AllocationStrategy, quarter: int, year: int) -> int:
    for qd in strategy.demand_forecast:
        if qd.quarter == quarter and qd.year == year:
            return qd.total_required
    return 0


class ImpactCalculator:
    """Compares recommended strategies against the status-quo baseline."""

    def __init__(
        self,
        catalog: Catalog,
        performance: SupplierPerformance,
        config: RecommendationConfig,
        trace: TraceCollector | None = None,
    ) -> None:
        self.catalog = catalog
        self.performance = performance
        self.config = config
        self.trace = trace or NullTraceCollector()

    def calculate_pair_impact(
        self,
        strategy: AllocationStrategy,
        baseline: CurrentComponentStrategy,
    ) -> PairImpact:
        year = self.config.planning_year
        component = self.catalog.components[strategy.component_id]

        quarters = [
            QuarterImpact(
                quarter=q,
                year=year,
                current_units=baseline.need_for(q, year),
                current_cost=baseline.cost_for(q, year),
                recommended_units=_recommended_units(strategy, q, year),
                recommended_cost=_recommended_cost(strategy, q, year),
            )
            for q in self.config.card_quarters
        ]
        total_cost_delta = sum(qi.cost_delta for qi in quarters)

        recommended_risk = calculate_allocation_risk(
            self.catalog,
            self.performance,
            strategy.component_id,
            {a.supplier_id: a.allocation_percentage for a in strategy.supplier_allocations},
        )
        current_risk = calculate_allocation_risk(
            self.catalog, self.performance, strategy.component_id, baseline.supplier_allocations
        )
        risk_delta = (current_risk - recommended_risk) * RISK_SCALE

        urgency = determine_urgency(1, component)
        impact = determine_impact(total_cost_delta, risk_delta, component)
        result = PairImpact(
            location_id=strategy.location_id,
            component_id=strategy.component_id,
            quarters=quarters,
            risk_delta=risk_delta,
            total_cost_delta=total_cost_delta,
            urgency=urgency,
            impact_level=impact,
            priority=determine_priority(urgency, impact),
            opportunity_score=calculate_opportunity_score(
                total_cost_delta, risk_delta, urgency, component
            ),
        )
        self.trace.record("pair_impact", result)
        return result

    def calculate_recommendation_impact(
        self,
        current: CurrentStrategy,
        recommended: dict[PairKey, AllocationStrategy],
    ) -> dict[PairKey, PairImpact]:
        """Impact for every pair present in both inputs."""
        impacts: dict[PairKey, PairImpact] = {}
        for (location_id, component_id), strategy in recommended.items():
            baseline = current.get(location_id, component_id)
            if baseline is None:
                logger.warning(
                    "No baseline for %s at %s; impact skipped.", component_id, location_id,
                    extra={"location_id": location_id, "component_id": component_id},
                )
                continue
            impacts[(location_id, component_id)] = self.calculate_pair_impact(strategy, baseline)
        logger.info("Impact calculated for %d pairs.", len(impacts))
        return impacts
