"""
Allocation strategies: the recommended plan and the status-quo baseline.

``SupplierAllocation``        — one supplier's share of a (location, component).
``AllocationStrategy``        — all allocations plus demand, costs and the
                                narrative building blocks.
``ReasonedAllocationStrategy``— strategy plus generated explanation text.
                                This is the payload stored on each card; it
                                carries ``schema_version`` so stored blobs can
                                be validated on read.
``CurrentComponentStrategy``  — status-quo inventory, supplier split and
                                projected quarterly needs/costs.

All models are frozen. Rule transforms in the allocation engine produce new
``SupplierAllocation`` instances via ``model_copy(update=...)``.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from supply_planner.models.demand import QuarterlyDemand
from supply_planner.taxonomy.recommendation_taxonomy import (
    AllocationReason,
    DiversificationLevel,
    RiskImpact,
)

STRATEGY_SCHEMA_VERSION = "1.0"
SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({"1.0"})

PrimaryReason = Literal["quality", "cost", "balance", "diversity"]


# ── Allocation ────────────────────────────────────────────────────────────────


class QuarterlyQuantity(BaseModel):
    """Units (and their cost) bought from one supplier in one quarter."""

    model_config = ConfigDict(frozen=True)

    quarter: int
    year: int
    quantity: int
    cost: float = 0.0


class QuarterlyCost(BaseModel):
    """Total spend for one quarter."""

    model_config = ConfigDict(frozen=True)

    quarter: int
    year: int
    total_cost: float


class SupplierAllocation(BaseModel):
    """One supplier's share of purchases for a (location, component).

    Attributes:
        supplier_id: Supplier receiving the share.
        component_id: Component purchased.
        location_id: Location purchasing.
        allocation_percentage: Integer share 0–100.
        quality_score: 0–100, from the supplier's quality forecast.
        cost_score: 0–100, normalised price across all suppliers of the part.
        total_score: ``0.7 × quality + 0.3 × cost``.
        price_per_unit: Supplier's unit price for the component.
        component_failure_rate: Observed failure rate (fraction, 0 if unseen).
        allocation_reason: Tag of the last rule that touched this supplier.
        quarterly_quantities: Units and cost per demand quarter.
        total_cost: Sum of quarterly costs.
    """

    model_config = ConfigDict(frozen=True)

    supplier_id: str
    component_id: str
    location_id: str
    allocation_percentage: int
    quality_score: float
    cost_score: float
    total_score: float
    price_per_unit: float = 0.0
    component_failure_rate: float = 0.0
    allocation_reason: AllocationReason = AllocationReason.QUALITY
    quarterly_quantities: list[QuarterlyQuantity] = []
    total_cost: float = 0.0


# ── Narrative building blocks ─────────────────────────────────────────────────


class SupplierUnits(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    units: int
    percentage: int


class TopLevelSuggestionPieces(BaseModel):
    """Numbers behind the headline purchase suggestion."""

    model_config = ConfigDict(frozen=True)

    savings_amount: float
    purchase_units: int
    component_name: str
    location_name: str
    quarter: int
    year: int
    supplier_allocations: list[SupplierUnits] = []
    single_supplier_cost: float = 0.0


class QualityImpact(BaseModel):
    model_config = ConfigDict(frozen=True)

    failure_rate_reduction: float
    reliability_score: float


class RiskReduction(BaseModel):
    model_config = ConfigDict(frozen=True)

    diversification_benefit: DiversificationLevel
    single_supplier_risk: str


class SeasonalFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    relevant_quarter: int
    seasonal_adjustment: str


class AllocationRationaleBlocks(BaseModel):
    """Why the split looks the way it does."""

    model_config = ConfigDict(frozen=True)

    primary_reason: PrimaryReason
    cost_savings: float
    quality_impact: QualityImpact
    risk_reduction: Optional[RiskReduction] = None
    seasonal_factors: Optional[SeasonalFactors] = None


class SupplierMetric(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    price: float
    quality_score: float
    failure_rate: float
    total_cost_of_ownership: float
    selected: bool = True


class KeyTradeoff(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    suppliers: list[str]
    impact: str


class SelectionReason(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_reason: AllocationReason
    compared_to: list[str]
    advantage_description: str
    disadvantage_description: Optional[str] = None


class SupplierComparisonBlocks(BaseModel):
    """Side-by-side supplier metrics, trade-offs and per-supplier reasons."""

    model_config = ConfigDict(frozen=True)

    supplier_metrics: list[SupplierMetric] = []
    key_tradeoffs: list[KeyTradeoff] = []
    selection_reasons: dict[str, SelectionReason] = {}


# ── Strategies ────────────────────────────────────────────────────────────────


class AllocationStrategy(BaseModel):
    """Recommended purchasing plan for one (location, component).

    ``demand_forecast`` is net of current inventory; ``original_demand`` is
    the gross demand before inventory was applied.
    """

    model_config = ConfigDict(frozen=True)

    component_id: str
    location_id: str
    overall_strategy: str
    current_inventory: int
    demand_forecast: list[QuarterlyDemand]
    original_demand: list[QuarterlyDemand]
    supplier_allocations: list[SupplierAllocation]
    quarterly_costs: list[QuarterlyCost] = []
    total_cost: float = 0.0
    top_level_suggestion_pieces: Optional[TopLevelSuggestionPieces] = None
    allocation_rationale_blocks: Optional[AllocationRationaleBlocks] = None
    supplier_comparison_blocks: Optional[SupplierComparisonBlocks] = None


class SafetyFactors(BaseModel):
    model_config = ConfigDict(frozen=True)

    base_failure_rate: float
    supplier_failure_rate: float
    lead_time_buffer: float
    demand_variability: float
    safety_stock_percentage: float


class QuantityReasoning(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    recommended_purchase: Optional[int] = None
    safety_factors: Optional[SafetyFactors] = None


class SupplierReasoning(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_id: str
    summary: str


class AllocationReasoning(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    supplier_reasonings: list[SupplierReasoning] = []


class RiskFactor(BaseModel):
    model_config = ConfigDict(frozen=True)

    factor: str
    impact: RiskImpact
    mitigation: Optional[str] = None


class RiskConsiderations(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    factors: list[RiskFactor] = []


class ReasonedAllocationStrategy(AllocationStrategy):
    """Allocation strategy plus generated explanation text.

    Serialised with ``model_dump_json()`` into the card's ``strategy`` column.
    """

    schema_version: str = STRATEGY_SCHEMA_VERSION
    top_level_recommendation: str
    quantity_reasoning: QuantityReasoning
    allocation_reasoning: AllocationReasoning
    risk_considerations: RiskConsiderations

    @field_validator("schema_version")
    @classmethod
    def validate_schema_version(cls, v: str) -> str:
        if v not in SUPPORTED_SCHEMA_VERSIONS:
            raise ValueError(
                f"Unsupported strategy schema_version '{v}'. "
                f"Supported: {sorted(SUPPORTED_SCHEMA_VERSIONS)}."
            )
        return v


# ── Status quo ────────────────────────────────────────────────────────────────


class QuarterlyNeed(BaseModel):
    model_config = ConfigDict(frozen=True)

    quarter: int
    year: int
    total_required: int


class CurrentComponentStrategy(BaseModel):
    """Status-quo baseline for one (location, component).

    Attributes:
        current_inventory: Units on hand in the latest report.
        supplier_allocations: supplier_id → share of inventory, in percent (0–100).
        quarterly_needs: Units the status-quo policy would purchase per quarter.
        quarterly_costs: Spend for those purchases at the current split.
    """

    model_config = ConfigDict(frozen=True)

    location_id: str
    component_id: str
    current_inventory: int
    supplier_allocations: dict[str, float] = {}
    quarterly_needs: list[QuarterlyNeed] = []
    quarterly_costs: list[QuarterlyCost] = []

    def need_for(self, quarter: int, year: int) -> int:
        for need in self.quarterly_needs:
            if need.quarter == quarter and need.year == year:
                return need.total_required
        return 0

    def cost_for(self, quarter: int, year: int) -> float:
        for cost in self.quarterly_costs:
            if cost.quarter == quarter and cost.year == year:
                return cost.total_cost
        return 0.0

    @property
    def projected_need(self) -> int:
        return sum(n.total_required for n in self.quarterly_needs)

    @property
    def projected_cost(self) -> float:
        return sum(c.total_cost for c in self.quarterly_costs)


class CurrentStrategy(BaseModel):
    """Status-quo baselines for every (location, component) with history."""

    model_config = ConfigDict(frozen=True)

    entries: dict[str, dict[str, CurrentComponentStrategy]] = {}

    def get(self, location_id: str, component_id: str) -> Optional[CurrentComponentStrategy]:
        return self.entries.get(location_id, {}).get(component_id)
