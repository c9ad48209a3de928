"""
Card builder: one card per (location, component, quarter).

Every pair with a reasoned strategy and an impact yields one card per
planning quarter. The cards of a pair share urgency, impact, priority and
opportunity score; each carries its own quarter's units and costs and a
copy of the strategy filtered to that quarter.

Sort order: quarter ascending, then priority (critical first), then
opportunity score descending.
"""

from __future__ import annotations

import logging

from supply_planner.models.card import PairImpact, QuarterlyCard
from supply_planner.models.strategy import ReasonedAllocationStrategy
from supply_planner.taxonomy.recommendation_taxonomy import PRIORITY_RANK

logger = logging.getLogger(__name__)

PairKey = tuple[str, str]


def create_quarterly_strategy(
    strategy: ReasonedAllocationStrategy,
    quarter: int,
    year: int,
) -> ReasonedAllocationStrategy:
    """Copy of ``strategy`` keeping only the given quarter's figures."""

    def keep(item) -> bool:
        return item.quarter == quarter and item.year == year

    return strategy.model_copy(update={
        "demand_forecast": [qd for qd in strategy.demand_forecast if keep(qd)],
        "original_demand": [qd for qd in strategy.original_demand if keep(qd)],
        "quarterly_costs": [qc for qc in strategy.quarterly_costs if keep(qc)],
        "supplier_allocations": [
            a.model_copy(update={
                "quarterly_quantities": [qq for qq in a.quarterly_quantities if keep(qq)],
            })
            for a in strategy.supplier_allocations
        ],
    })


def create_pair_cards(
    strategy: ReasonedAllocationStrategy,
    impact: PairImpact,
) -> list[QuarterlyCard]:
    cards: list[QuarterlyCard] = []
    for qi in impact.quarters:
        cards.append(QuarterlyCard(
            location_id=impact.location_id,
            component_id=impact.component_id,
            quarter=qi.quarter,
            year=qi.year,
            current_units=qi.current_units,
            current_cost=qi.current_cost,
            recommended_units=qi.recommended_units,
            recommended_cost=qi.recommended_cost,
            unit_delta=qi.unit_delta,
            cost_delta=qi.cost_delta,
            urgency=impact.urgency,
            impact_level=impact.impact_level,
            priority=impact.priority,
            opportunity_score=impact.opportunity_score,
            strategy=create_quarterly_strategy(strategy, qi.quarter, qi.year),
        ))
    return cards


def create_quarterly_cards(
    strategies: dict[PairKey, ReasonedAllocationStrategy],
    impacts: dict[PairKey, PairImpact],
) -> list[QuarterlyCard]:
    """Cards for every pair present in both maps, sorted by priority."""
    cards: list[QuarterlyCard] = []
    for key, strategy in strategies.items():
        impact = impacts.get(key)
        if impact is None:
            logger.warning("No impact for %s at %s; no cards built.", key[1], key[0])
            continue
        cards.extend(create_pair_cards(strategy, impact))
    return sort_cards_by_priority(cards)


def sort_cards_by_priority(cards: list[QuarterlyCard]) -> list[QuarterlyCard]:
    return sorted(
        cards,
        key=lambda c: (c.quarter, PRIORITY_RANK[c.priority], -c.opportunity_score),
    )
