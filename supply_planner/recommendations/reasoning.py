"""
Reasoning generator: explanation text for an allocation strategy.

Produces the blocks stored alongside each card:

  - top-level recommendation   one sentence: buy N units, or stock suffices;
  - quantity reasoning         demand summary, recommended purchase and the
                               safety-stock factors;
  - allocation reasoning       split summary plus one line per supplier,
                               keyed by its allocation reason;
  - risk considerations        concentration, low quality, high failure rate
                               and seasonal variability checks;
  - rationale blocks           primary reason, savings, quality impact and
                               diversification benefit;
  - comparison blocks          per-supplier total cost of ownership,
                               trade-offs and selection reasons.

Total cost of ownership per unit::

    tco = price × (1 + failure_rate × 1.2)
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Optional

from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import QuarterlyDemand
from supply_planner.models.strategy import (
    AllocationRationaleBlocks,
    AllocationReasoning,
    AllocationStrategy,
    KeyTradeoff,
    QualityImpact,
    QuantityReasoning,
    ReasonedAllocationStrategy,
    RiskConsiderations,
    RiskFactor,
    RiskReduction,
    SafetyFactors,
    SeasonalFactors,
    SelectionReason,
    SupplierAllocation,
    SupplierComparisonBlocks,
    SupplierMetric,
    SupplierReasoning,
)
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector
from supply_planner.taxonomy.recommendation_taxonomy import (
    AllocationReason,
    DiversificationLevel,
    RiskImpact,
)

logger = logging.getLogger(__name__)

REPLACEMENT_COST_FACTOR = 1.2
CONCENTRATION_WARNING_PCT = 80
LOW_QUALITY_SCORE = 60
HIGH_FAILURE_RATE = 0.05
HIGH_SEASONAL_STRENGTH = 0.8
SEASONAL_ALLOCATION_PCT = 70

# Planning assumptions shown next to the computed safety-stock share.
BASE_FAILURE_RATE_PCT = 2.5
SUPPLIER_FAILURE_RATE_PCT = 1.0
LEAD_TIME_BUFFER_DAYS = 3
DEMAND_VARIABILITY_PCT = 5.0

_SUPPLIER_REASON_TEXT: dict[AllocationReason, str] = {
    AllocationReason.QUALITY: "allocation due to superior quality metrics.",
    AllocationReason.COST: "allocation due to cost efficiency.",
    AllocationReason.DIVERSITY: "allocation to maintain supply chain diversity.",
    AllocationReason.SAFETY: "allocation for safety stock due to cost efficiency.",
    AllocationReason.Q2_COST: "allocation for Q2 due to cost advantages.",
}


# ── Small helpers ─────────────────────────────────────────────────────────────

def _location_name(location_id: str) -> str:
    return location_id[:1].upper() + location_id[1:]


def _weighted(allocs: list[SupplierAllocation], attr: str) -> float:
    total = sum(a.allocation_percentage for a in allocs)
    if total <= 0:
        return 0.0
    return sum(getattr(a, attr) * a.allocation_percentage / total for a in allocs)


def weighted_failure_rate(allocs: list[SupplierAllocation]) -> float:
    return _weighted(allocs, "component_failure_rate")


def weighted_quality_score(allocs: list[SupplierAllocation]) -> float:
    return _weighted(allocs, "quality_score")


def total_cost_of_ownership(alloc: SupplierAllocation) -> float:
    return alloc.price_per_unit * (1 + alloc.component_failure_rate * REPLACEMENT_COST_FACTOR)


def _first(quarters: list[QuarterlyDemand], index: int) -> Optional[QuarterlyDemand]:
    return quarters[index] if len(quarters) > index else None


# ── Text blocks ───────────────────────────────────────────────────────────────

def generate_top_level_recommendation(strategy: AllocationStrategy, component_name: str) -> str:
    pieces = strategy.top_level_suggestion_pieces
    first = _first(strategy.original_demand, 0)
    quarter = first.quarter if first else 1
    year = first.year if first else 2025
    purchase = (
        pieces.purchase_units if pieces is not None
        else max(0, (first.total_required if first else 0) - strategy.current_inventory)
    )
    location = _location_name(strategy.location_id)
    if purchase <= 0:
        return (
            f"Current inventory of {component_name} at {location} is sufficient for "
            f"Q{quarter} {year}."
        )
    return f"Purchase {purchase} units of {component_name} for {location} for Q{quarter} {year}."


def calculate_safety_factors(original_q1: QuarterlyDemand) -> SafetyFactors:
    share = (
        original_q1.safety_stock / original_q1.total_demand * 100
        if original_q1.total_demand > 0 else 0.0
    )
    return SafetyFactors(
        base_failure_rate=BASE_FAILURE_RATE_PCT,
        supplier_failure_rate=SUPPLIER_FAILURE_RATE_PCT,
        lead_time_buffer=LEAD_TIME_BUFFER_DAYS,
        demand_variability=DEMAND_VARIABILITY_PCT,
        safety_stock_percentage=share,
    )


def generate_quantity_reasoning(
    strategy: AllocationStrategy,
    component_name: str,
) -> QuantityReasoning:
    location = _location_name(strategy.location_id)
    q1 = _first(strategy.demand_forecast, 0)
    q2 = _first(strategy.demand_forecast, 1)
    original_q1 = _first(strategy.original_demand, 0)

    if q1 is None or q2 is None or original_q1 is None:
        return QuantityReasoning(
            summary=(
                f"Quantity recommendation based on projected demand for {component_name} "
                f"at {location}."
            ),
        )

    q1_label = f"Q{original_q1.quarter} {original_q1.year}"
    q2_label = f"Q{q2.quarter} {q2.year}"
    if q1.total_required == 0 and strategy.current_inventory > 0:
        summary = (
            f"Current inventory of {strategy.current_inventory} units covers the projected "
            f"{q1_label} demand of {original_q1.total_required} units for {component_name} "
            f"at {location}. {q2_label} requires {q2.total_required} units."
        )
    else:
        summary = (
            f"Projected demand for {component_name} at {location} is "
            f"{original_q1.total_required} units for {q1_label} (with "
            f"{original_q1.safety_stock} safety stock) and {q2.total_required} units "
            f"for {q2_label}."
        )
    return QuantityReasoning(
        summary=summary,
        recommended_purchase=max(0, original_q1.total_required - strategy.current_inventory),
        safety_factors=calculate_safety_factors(original_q1),
    )


def supplier_reasoning_summary(alloc: SupplierAllocation) -> str:
    tail = _SUPPLIER_REASON_TEXT.get(
        alloc.allocation_reason, "allocation based on overall performance."
    )
    return f"{alloc.supplier_id} receives {alloc.allocation_percentage}% {tail}"


def generate_allocation_reasoning(strategy: AllocationStrategy) -> AllocationReasoning:
    allocs = strategy.supplier_allocations
    if len(allocs) == 1:
        summary = f"Allocate 100% to {allocs[0].supplier_id} based on overall performance."
    elif len(allocs) == 2:
        a, b = allocs
        summary = (
            f"Split allocation between {a.supplier_id} ({a.allocation_percentage}%) and "
            f"{b.supplier_id} ({b.allocation_percentage}%)."
        )
    else:
        summary = f"Distribute allocation across {len(allocs)} suppliers based on performance metrics."
    return AllocationReasoning(
        summary=summary,
        supplier_reasonings=[
            SupplierReasoning(supplier_id=a.supplier_id, summary=supplier_reasoning_summary(a))
            for a in allocs
        ],
    )


def generate_risk_considerations(
    strategy: AllocationStrategy,
    catalog: Catalog,
) -> RiskConsiderations:
    allocs = strategy.supplier_allocations
    factors: list[RiskFactor] = []

    highest = max((a.allocation_percentage for a in allocs), default=0)
    if highest > CONCENTRATION_WARNING_PCT and len(allocs) > 1:
        factors.append(RiskFactor(
            factor="Supplier concentration",
            impact=RiskImpact.MEDIUM,
            mitigation=(
                "Consider increasing allocation to secondary suppliers to reduce "
                "dependency risk."
            ),
        ))

    if any(a.quality_score < LOW_QUALITY_SCORE for a in allocs):
        factors.append(RiskFactor(
            factor="Quality concerns",
            impact=RiskImpact.HIGH,
            mitigation=(
                "Implement additional quality checks for components from suppliers with "
                "lower quality scores."
            ),
        ))

    if any(a.component_failure_rate > HIGH_FAILURE_RATE for a in allocs):
        rate = weighted_failure_rate(allocs)
        first = _first(strategy.demand_forecast, 0)
        replacement_units = rate * (first.total_required if first else 0) * REPLACEMENT_COST_FACTOR
        factors.append(RiskFactor(
            factor="Component failure risk",
            impact=RiskImpact.HIGH,
            mitigation=(
                "Our allocation strategy already accounts for component failure rates in "
                "the total cost of ownership analysis. The weighted average failure rate "
                f"across all suppliers is {rate * 100:.2f}%, which has been factored into "
                "our safety stock calculations. The economic impact of these failures is "
                f"estimated at {replacement_units:.0f} units, which is covered by our "
                "safety stock and contingency planning."
            ),
        ))

    seasonal = [
        a for a in allocs
        if a.supplier_id in catalog.suppliers
        and catalog.suppliers[a.supplier_id].seasonal_strength > HIGH_SEASONAL_STRENGTH
    ]
    if seasonal and seasonal[0].allocation_percentage > SEASONAL_ALLOCATION_PCT:
        factors.append(RiskFactor(
            factor="Seasonal performance variability",
            impact=RiskImpact.MEDIUM,
            mitigation=(
                "Consider adjusting allocation percentages by quarter to account for "
                "seasonal performance patterns."
            ),
        ))

    if not factors:
        summary = (
            f"The allocation strategy for {strategy.component_id} has no significant risk "
            "factors identified."
        )
    else:
        plural = "s" if len(factors) > 1 else ""
        summary = (
            f"The allocation strategy for {strategy.component_id} has {len(factors)} "
            f"identified risk factor{plural} that should be monitored."
        )
    return RiskConsiderations(summary=summary, factors=factors)


def diversification_benefit(allocs: list[SupplierAllocation]) -> DiversificationLevel:
    if len(allocs) <= 1:
        return DiversificationLevel.MINIMAL
    if len(allocs) > 2:
        return DiversificationLevel.HIGH
    top = max(a.allocation_percentage for a in allocs)
    if top > 80:
        return DiversificationLevel.LOW
    if top > 60:
        return DiversificationLevel.MODERATE
    return DiversificationLevel.APPRECIABLE


def generate_allocation_rationale_blocks(strategy: AllocationStrategy) -> AllocationRationaleBlocks:
    allocs = strategy.supplier_allocations
    counts = Counter(a.allocation_reason for a in allocs)
    quality = counts[AllocationReason.QUALITY]
    cost = counts[AllocationReason.COST]
    diversity = counts[AllocationReason.DIVERSITY]
    if quality > cost and quality > diversity:
        primary = "quality"
    elif cost > quality and cost > diversity:
        primary = "cost"
    elif diversity > 0:
        primary = "diversity"
    else:
        primary = "balance"

    pieces = strategy.top_level_suggestion_pieces
    savings = pieces.savings_amount if pieces is not None else 0.0

    weighted_rate = weighted_failure_rate(allocs)
    best_rate = min((a.component_failure_rate for a in allocs), default=0.0)
    reduction = (
        max(0.0, (best_rate - weighted_rate) / best_rate * 100) if best_rate > 0 else 0.0
    )

    if len(allocs) == 1:
        single_risk = (
            f"Relying solely on {allocs[0].supplier_id} introduces supply chain vulnerability."
        )
    else:
        single_risk = "Relying on a single supplier would increase risk of supply chain disruptions."

    seasonal = None
    if counts[AllocationReason.Q2_COST] > 0:
        seasonal = SeasonalFactors(
            relevant_quarter=2,
            seasonal_adjustment="Adjusted allocation for Q2 to optimize for cost efficiency.",
        )

    return AllocationRationaleBlocks(
        primary_reason=primary,
        cost_savings=savings,
        quality_impact=QualityImpact(
            failure_rate_reduction=reduction,
            reliability_score=weighted_quality_score(allocs),
        ),
        risk_reduction=RiskReduction(
            diversification_benefit=diversification_benefit(allocs),
            single_supplier_risk=single_risk,
        ),
        seasonal_factors=seasonal,
    )


def _key_tradeoffs(allocs: list[SupplierAllocation]) -> list[KeyTradeoff]:
    if len(allocs) <= 1:
        return []
    tradeoffs: list[KeyTradeoff] = []
    best_quality = sorted(allocs, key=lambda a: a.quality_score, reverse=True)[0]
    cheapest = sorted(allocs, key=lambda a: a.price_per_unit)[0]

    if best_quality.supplier_id != cheapest.supplier_id:
        quality_diff = best_quality.quality_score - cheapest.quality_score
        cost_diff = (
            (best_quality.price_per_unit - cheapest.price_per_unit) / cheapest.price_per_unit * 100
            if cheapest.price_per_unit > 0 else 0.0
        )
        tradeoffs.append(KeyTradeoff(
            description=(
                f"Quality vs. Cost: {best_quality.supplier_id} offers {quality_diff:.1f} points "
                f"higher quality at {cost_diff:.1f}% higher cost than {cheapest.supplier_id}"
            ),
            suppliers=[best_quality.supplier_id, cheapest.supplier_id],
            impact="significant",
        ))

    most_reliable = sorted(allocs, key=lambda a: a.component_failure_rate)[0]
    if (
        most_reliable.supplier_id != cheapest.supplier_id
        and most_reliable.component_failure_rate < cheapest.component_failure_rate / 2
    ):
        failure_diff = (
            (cheapest.component_failure_rate - most_reliable.component_failure_rate)
            / cheapest.component_failure_rate * 100
        )
        tradeoffs.append(KeyTradeoff(
            description=(
                f"Reliability vs. Cost: {most_reliable.supplier_id} has {failure_diff:.1f}% "
                f"lower failure rate than {cheapest.supplier_id}"
            ),
            suppliers=[most_reliable.supplier_id, cheapest.supplier_id],
            impact="moderate",
        ))
    return tradeoffs


def _selection_reason(alloc: SupplierAllocation, allocs: list[SupplierAllocation]) -> SelectionReason:
    disadvantage: Optional[str] = None
    reason = alloc.allocation_reason
    if reason == AllocationReason.QUALITY:
        advantage = (
            f"Superior quality metrics ({alloc.quality_score:.1f}) and low failure rate "
            f"({alloc.component_failure_rate * 100:.2f}%)"
        )
        if alloc.price_per_unit > min(a.price_per_unit for a in allocs):
            disadvantage = (
                f"Higher price point ({alloc.price_per_unit:.2f}) compared to budget options"
            )
    elif reason == AllocationReason.COST:
        advantage = (
            f"Cost-effective pricing ({alloc.price_per_unit:.2f}) with acceptable quality "
            f"({alloc.quality_score:.1f})"
        )
        if alloc.component_failure_rate > min(a.component_failure_rate for a in allocs):
            disadvantage = (
                f"Higher failure rate ({alloc.component_failure_rate * 100:.2f}%) than "
                "premium options"
            )
    elif reason == AllocationReason.DIVERSITY:
        advantage = "Provides supply chain diversification while maintaining balanced metrics"
    elif reason == AllocationReason.SAFETY:
        advantage = f"Cost-effective option ({alloc.price_per_unit:.2f}) for safety stock allocation"
    else:
        advantage = f"Optimized for Q2 cost efficiency ({alloc.price_per_unit:.2f})"

    return SelectionReason(
        primary_reason=reason,
        compared_to=[a.supplier_id for a in allocs if a.supplier_id != alloc.supplier_id],
        advantage_description=advantage,
        disadvantage_description=disadvantage,
    )


def generate_supplier_comparison_blocks(strategy: AllocationStrategy) -> SupplierComparisonBlocks:
    allocs = strategy.supplier_allocations
    return SupplierComparisonBlocks(
        supplier_metrics=[
            SupplierMetric(
                supplier_id=a.supplier_id,
                price=a.price_per_unit,
                quality_score=a.quality_score,
                failure_rate=a.component_failure_rate,
                total_cost_of_ownership=total_cost_of_ownership(a),
                selected=True,
            )
            for a in allocs
        ],
        key_tradeoffs=_key_tradeoffs(allocs),
        selection_reasons={a.supplier_id: _selection_reason(a, allocs) for a in allocs},
    )


# ── Generator ─────────────────────────────────────────────────────────────────

class ReasoningGenerator:
    """Attaches explanation blocks to allocation strategies."""

    def __init__(self, catalog: Catalog, trace: TraceCollector | None = None) -> None:
        self.catalog = catalog
        self.trace = trace or NullTraceCollector()

    def generate_reasoned_strategy(self, strategy: AllocationStrategy) -> ReasonedAllocationStrategy:
        component_name = self.catalog.component_name(strategy.component_id)
        reasoned = ReasonedAllocationStrategy(
            **strategy.model_dump(
                exclude={"allocation_rationale_blocks", "supplier_comparison_blocks"}
            ),
            allocation_rationale_blocks=generate_allocation_rationale_blocks(strategy),
            supplier_comparison_blocks=generate_supplier_comparison_blocks(strategy),
            top_level_recommendation=generate_top_level_recommendation(strategy, component_name),
            quantity_reasoning=generate_quantity_reasoning(strategy, component_name),
            allocation_reasoning=generate_allocation_reasoning(strategy),
            risk_considerations=generate_risk_considerations(strategy, self.catalog),
        )
        self.trace.record("reasoned_strategy", reasoned)
        logger.debug(
            "Reasoning generated for %s at %s: %s",
            strategy.component_id, strategy.location_id, reasoned.top_level_recommendation,
        )
        return reasoned
