"""
Supplier allocation engine: scores → percentage split → unit quantities.

Pipeline for one (location, component)::

    scores  ──► base split (∝ total_score, reason "quality")
            ──► DIVERSIFICATION_RULES, in order (≥ 2 suppliers only)
            ──► finalize: floor at 0, residual to top-scored, sort by share
            ──► quarterly quantities and costs (when demand is given)

Every rule is a pure function ``(allocations, context) -> allocations`` over
an immutable tuple ordered by total score. A rule that moves points *to* a
supplier overwrites that supplier's ``allocation_reason``; the last rule to
touch a supplier wins.

Rules
-----
  cap_concentration         top share > 90 → cap at 90, excess to the rest
                            in proportion to total score ("diversity").
  prefer_cheaper_near_equal top two within 10 quality points and the
                            second is cheaper → shift up to 20 points
                            ("cost").
  route_safety_stock        cheapest supplier with quality > 50 takes the
                            first quarter's safety-stock share from the
                            leader when that share exceeds 5 % ("safety").
  lean_on_cost_for_q2       Q2 of the planning year is in the demand → the
                            cost leader among suppliers with quality > 60
                            takes up to 15 points from the leader
                            ("q2-cost").

All percentage arithmetic rounds halves up (``utils.numeric.round_half_up``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from supply_planner.config import RecommendationConfig
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import ComponentDemand
from supply_planner.models.strategy import (
    AllocationStrategy,
    QuarterlyCost,
    QuarterlyQuantity,
    SupplierAllocation,
    SupplierUnits,
    TopLevelSuggestionPieces,
)
from supply_planner.recommendations.performance import SupplierPerformance
from supply_planner.recommendations.supplier_scoring import SupplierScore, SupplierScorer
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector
from supply_planner.taxonomy.recommendation_taxonomy import AllocationReason
from supply_planner.utils.numeric import round_half_up

logger = logging.getLogger(__name__)

Allocations = tuple[SupplierAllocation, ...]

CONCENTRATION_CAP = 90
NEAR_EQUAL_QUALITY_GAP = 10
MAX_COST_SHIFT = 20
SAFETY_MIN_QUALITY = 50
SAFETY_MIN_SHARE = 5
Q2_MIN_QUALITY = 60
MAX_Q2_SHIFT = 15


@dataclass(frozen=True)
class RuleContext:
    """Inputs the diversification rules may consult besides the allocations."""

    demand: Optional[ComponentDemand]
    planning_year: int = 2025


DiversificationRule = Callable[[Allocations, RuleContext], Allocations]


# ── Rule helpers ──────────────────────────────────────────────────────────────

def _replace(allocs: Allocations, index: int, **update) -> Allocations:
    items = list(allocs)
    items[index] = items[index].model_copy(update=update)
    return tuple(items)


def _shift(
    allocs: Allocations,
    to_index: int,
    points: int,
    reason: AllocationReason,
) -> Allocations:
    """Move ``points`` from the top supplier to ``to_index``, tagging the receiver."""
    top = allocs[0]
    allocs = _replace(allocs, 0, allocation_percentage=top.allocation_percentage - points)
    receiver = allocs[to_index]
    return _replace(
        allocs,
        to_index,
        allocation_percentage=receiver.allocation_percentage + points,
        allocation_reason=reason,
    )


def _index_of(allocs: Allocations, supplier_id: str) -> int:
    for i, a in enumerate(allocs):
        if a.supplier_id == supplier_id:
            return i
    return -1


def _cost_leader(allocs: Allocations, min_quality: float) -> Optional[SupplierAllocation]:
    candidates = [a for a in allocs if a.quality_score > min_quality]
    if not candidates:
        return None
    # sorted() is stable, so equal cost scores keep total-score order
    return sorted(candidates, key=lambda a: a.cost_score, reverse=True)[0]


# ── Diversification rules ─────────────────────────────────────────────────────

def cap_concentration(allocs: Allocations, ctx: RuleContext) -> Allocations:
    top = allocs[0]
    if top.allocation_percentage <= CONCENTRATION_CAP:
        return allocs

    excess = top.allocation_percentage - CONCENTRATION_CAP
    allocs = _replace(allocs, 0, allocation_percentage=CONCENTRATION_CAP)
    others_total = sum(a.total_score for a in allocs[1:])
    for i in range(1, len(allocs)):
        share = allocs[i].total_score / others_total * excess if others_total > 0 else 0.0
        allocs = _replace(
            allocs,
            i,
            allocation_percentage=allocs[i].allocation_percentage + round_half_up(share),
            allocation_reason=AllocationReason.DIVERSITY,
        )
    return allocs


def prefer_cheaper_near_equal(allocs: Allocations, ctx: RuleContext) -> Allocations:
    first, second = allocs[0], allocs[1]
    if abs(first.quality_score - second.quality_score) >= NEAR_EQUAL_QUALITY_GAP:
        return allocs
    if second.cost_score <= first.cost_score:
        return allocs

    adjustment = min(MAX_COST_SHIFT, round_half_up((second.cost_score - first.cost_score) / 2))
    return _shift(allocs, 1, adjustment, AllocationReason.COST)


def route_safety_stock(allocs: Allocations, ctx: RuleContext) -> Allocations:
    if ctx.demand is None or not ctx.demand.quarterly_demand:
        return allocs
    first_quarter = ctx.demand.quarterly_demand[0]
    if first_quarter.safety_stock <= 0 or first_quarter.total_required <= 0:
        return allocs

    cheapest = _cost_leader(allocs, SAFETY_MIN_QUALITY)
    if cheapest is None or cheapest.supplier_id == allocs[0].supplier_id:
        return allocs

    share = round_half_up(first_quarter.safety_stock / first_quarter.total_required * 100)
    if share <= SAFETY_MIN_SHARE:
        return allocs
    return _shift(allocs, _index_of(allocs, cheapest.supplier_id), share, AllocationReason.SAFETY)


def lean_on_cost_for_q2(allocs: Allocations, ctx: RuleContext) -> Allocations:
    if ctx.demand is None or ctx.demand.for_quarter(2, ctx.planning_year) is None:
        return allocs

    candidates = [a for a in allocs if a.quality_score > Q2_MIN_QUALITY]
    if len(candidates) < 2:
        return allocs
    leader = _cost_leader(allocs, Q2_MIN_QUALITY)
    index = _index_of(allocs, leader.supplier_id)
    if index <= 0:
        return allocs

    adjustment = min(MAX_Q2_SHIFT, round_half_up(leader.cost_score / 5))
    return _shift(allocs, index, adjustment, AllocationReason.Q2_COST)


DIVERSIFICATION_RULES: tuple[DiversificationRule, ...] = (
    cap_concentration,
    prefer_cheaper_near_equal,
    route_safety_stock,
    lean_on_cost_for_q2,
)


# ── Split pipeline ────────────────────────────────────────────────────────────

def build_base_allocations(
    scores: list[SupplierScore],
    location_id: str,
    catalog: Catalog,
    performance: SupplierPerformance,
) -> Allocations:
    """Split 100 % in proportion to total score; every reason is ``quality``."""
    score_sum = sum(s.total_score for s in scores)
    allocs: list[SupplierAllocation] = []
    for s in scores:
        if score_sum > 0:
            pct = round_half_up(s.total_score / score_sum * 100)
        else:
            pct = round_half_up(100 / len(scores))
        allocs.append(SupplierAllocation(
            supplier_id=s.supplier_id,
            component_id=s.component_id,
            location_id=location_id,
            allocation_percentage=pct,
            quality_score=s.quality_score,
            cost_score=s.cost_score,
            total_score=s.total_score,
            price_per_unit=catalog.suppliers[s.supplier_id].price_for(s.component_id) or 0.0,
            component_failure_rate=performance.failure_rate(s.supplier_id, s.component_id),
            allocation_reason=AllocationReason.QUALITY,
        ))
    return tuple(allocs)


def apply_diversification_rules(
    allocs: Allocations,
    ctx: RuleContext,
    trace: TraceCollector | None = None,
) -> Allocations:
    """Run every rule in order on allocations sorted by total score."""
    if len(allocs) <= 1:
        return allocs
    trace = trace or NullTraceCollector()
    allocs = tuple(sorted(allocs, key=lambda a: a.total_score, reverse=True))
    for rule in DIVERSIFICATION_RULES:
        allocs = rule(allocs, ctx)
        trace.record("diversification_rule", {
            "rule": rule.__name__,
            "allocations": [
                {
                    "supplier_id": a.supplier_id,
                    "percentage": a.allocation_percentage,
                    "reason": a.allocation_reason,
                }
                for a in allocs
            ],
        })
    return allocs


def finalize_percentages(allocs: Allocations) -> Allocations:
    """Floor shares at 0, force the sum to 100, order by share descending.

    The residual goes to the highest-scored supplier; a negative residual
    larger than its share spills over to the next supplier by score.
    """
    if not allocs:
        return allocs
    by_score = sorted(
        (a.model_copy(update={"allocation_percentage": max(0, a.allocation_percentage)})
         for a in allocs),
        key=lambda a: a.total_score,
        reverse=True,
    )
    residual = 100 - sum(a.allocation_percentage for a in by_score)
    for i, alloc in enumerate(by_score):
        if residual == 0:
            break
        new_pct = max(0, alloc.allocation_percentage + residual)
        residual -= new_pct - alloc.allocation_percentage
        by_score[i] = alloc.model_copy(update={"allocation_percentage": new_pct})
    return tuple(sorted(by_score, key=lambda a: a.allocation_percentage, reverse=True))


def assign_quantities(allocs: Allocations, demand: ComponentDemand) -> Allocations:
    """Attach per-quarter quantities and costs.

    With a ``safety`` supplier present, it buys each quarter's safety stock
    and the others split the remainder by their renormalised shares.
    """
    has_safety = any(a.allocation_reason == AllocationReason.SAFETY for a in allocs)
    non_safety_total = sum(
        a.allocation_percentage for a in allocs
        if a.allocation_reason != AllocationReason.SAFETY
    )

    result: list[SupplierAllocation] = []
    for alloc in allocs:
        quantities: list[QuarterlyQuantity] = []
        for qd in demand.quarterly_demand:
            if not has_safety:
                qty = round_half_up(qd.total_required * alloc.allocation_percentage / 100)
            elif alloc.allocation_reason == AllocationReason.SAFETY:
                qty = round_half_up(qd.safety_stock)
            else:
                share = alloc.allocation_percentage / non_safety_total if non_safety_total else 0.0
                qty = round_half_up(max(0, qd.total_required - qd.safety_stock) * share)
            quantities.append(QuarterlyQuantity(
                quarter=qd.quarter,
                year=qd.year,
                quantity=qty,
                cost=qty * alloc.price_per_unit,
            ))
        result.append(alloc.model_copy(update={
            "quarterly_quantities": quantities,
            "total_cost": sum(q.cost for q in quantities),
        }))
    return tuple(result)


# ── Inventory-aware strategy helpers ──────────────────────────────────────────

def adjust_for_inventory(demand: ComponentDemand, current_inventory: float) -> ComponentDemand:
    """Consume on-hand inventory quarter by quarter, earliest first.

    A fully covered quarter drops to 0 required; the first uncovered quarter
    is reduced by whatever stock remains, after which stock is exhausted.
    Only ``total_required`` changes.
    """
    remaining = current_inventory
    adjusted = []
    for qd in demand.quarterly_demand:
        if remaining >= qd.total_required:
            remaining -= qd.total_required
            adjusted.append(qd.model_copy(update={"total_required": 0}))
        else:
            adjusted.append(qd.model_copy(
                update={"total_required": round_half_up(qd.total_required - remaining)}
            ))
            remaining = 0
        logger.debug(
            "Q%d %d: required %d → %d (inventory left %s)",
            qd.quarter, qd.year, qd.total_required, adjusted[-1].total_required, remaining,
        )
    return demand.model_copy(update={"quarterly_demand": adjusted})


def describe_overall_strategy(
    allocs: list[SupplierAllocation],
    adjusted: ComponentDemand,
    current_inventory: int,
) -> str:
    if all(qd.total_required == 0 for qd in adjusted.quarterly_demand):
        return (
            f"Current inventory of {current_inventory} units is sufficient to cover "
            "projected demand. No additional purchases required."
        )
    if len(allocs) == 1:
        return f"Allocate 100% to {allocs[0].supplier_id} based on superior overall performance."
    if len(allocs) == 2:
        a, b = allocs
        return (
            f"Split allocation between {a.supplier_id} ({a.allocation_percentage}%) and "
            f"{b.supplier_id} ({b.allocation_percentage}%) based on their relative "
            "performance scores."
        )
    top = ", ".join(f"{a.supplier_id} ({a.allocation_percentage}%)" for a in allocs[:2])
    return (
        "Distribute allocation across multiple suppliers with the majority going to "
        f"{top} based on performance scores."
    )


def summarize_quarterly_costs(allocs: list[SupplierAllocation]) -> list[QuarterlyCost]:
    """Spend per quarter, in the first allocation's quarter order."""
    if not allocs:
        return []
    costs: list[QuarterlyCost] = []
    for q in allocs[0].quarterly_quantities:
        total = sum(
            qq.cost
            for a in allocs
            for qq in a.quarterly_quantities
            if qq.quarter == q.quarter and qq.year == q.year
        )
        costs.append(QuarterlyCost(quarter=q.quarter, year=q.year, total_cost=total))
    return costs


def build_top_level_suggestion_pieces(
    strategy: AllocationStrategy,
    component_name: str,
) -> TopLevelSuggestionPieces:
    """Headline numbers: first-quarter purchase, single-supplier cost, savings."""
    first = strategy.original_demand[0] if strategy.original_demand else None
    quarter = first.quarter if first else 1
    year = first.year if first else 2025
    total_required = first.total_required if first else 0
    purchase_units = max(0, total_required - strategy.current_inventory)

    best_quality = max(
        strategy.supplier_allocations, key=lambda a: a.quality_score, default=None
    )
    single_cost = purchase_units * best_quality.price_per_unit if best_quality else 0.0

    return TopLevelSuggestionPieces(
        savings_amount=max(0.0, single_cost - strategy.total_cost),
        purchase_units=purchase_units,
        component_name=component_name,
        location_name=strategy.location_id[:1].upper() + strategy.location_id[1:],
        quarter=quarter,
        year=year,
        supplier_allocations=[
            SupplierUnits(
                supplier_id=a.supplier_id,
                units=round_half_up(purchase_units * a.allocation_percentage / 100),
                percentage=a.allocation_percentage,
            )
            for a in strategy.supplier_allocations
        ],
        single_supplier_cost=single_cost,
    )


# ── Allocator ─────────────────────────────────────────────────────────────────

class SupplierAllocator:
    """Builds allocations and inventory-aware strategies.

    Attributes:
        catalog: Reference data (prices, component names).
        scorer: Produces supplier scores for a (location, component).
        performance: Observed failure rates attached to each allocation.
        config: Supplies the planning year for the Q2 rule.
        trace: Receives allocation and strategy payloads.
    """

    def __init__(
        self,
        catalog: Catalog,
        scorer: SupplierScorer,
        performance: SupplierPerformance,
        config: RecommendationConfig,
        trace: TraceCollector | None = None,
    ) -> None:
        self.catalog = catalog
        self.scorer = scorer
        self.performance = performance
        self.config = config
        self.trace = trace or NullTraceCollector()

    def calculate_supplier_allocation(
        self,
        component_id: str,
        location_id: str,
        demand: Optional[ComponentDemand] = None,
    ) -> list[SupplierAllocation]:
        """Percentage split (and quantities, when ``demand`` is given).

        Raises:
            MissingReferenceError: Propagated from scoring.
        """
        scores = self.scorer.score_all_suppliers(component_id, location_id)
        allocs = build_base_allocations(scores, location_id, self.catalog, self.performance)
        self.trace.record("base_allocations", list(allocs))

        ctx = RuleContext(demand=demand, planning_year=self.config.planning_year)
        allocs = finalize_percentages(apply_diversification_rules(allocs, ctx, self.trace))
        if demand is not None:
            allocs = assign_quantities(allocs, demand)
        self.trace.record("final_allocations", list(allocs))
        return list(allocs)

    def calculate_enhanced_supplier_allocation(
        self,
        component_id: str,
        location_id: str,
        demand: ComponentDemand,
        current_inventory: int,
    ) -> AllocationStrategy:
        """Allocation strategy on demand net of current inventory."""
        adjusted = adjust_for_inventory(demand, current_inventory)
        allocs = self.calculate_supplier_allocation(component_id, location_id, adjusted)

        strategy = AllocationStrategy(
            component_id=component_id,
            location_id=location_id,
            overall_strategy=describe_overall_strategy(allocs, adjusted, current_inventory),
            current_inventory=current_inventory,
            demand_forecast=adjusted.quarterly_demand,
            original_demand=demand.quarterly_demand,
            supplier_allocations=allocs,
            quarterly_costs=summarize_quarterly_costs(allocs),
            total_cost=sum(a.total_cost for a in allocs),
        )
        strategy = strategy.model_copy(update={
            "top_level_suggestion_pieces": build_top_level_suggestion_pieces(
                strategy, self.catalog.component_name(component_id)
            ),
        })
        self.trace.record("allocation_strategy", strategy)
        return strategy
