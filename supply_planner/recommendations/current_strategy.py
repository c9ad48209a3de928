"""
Status-quo baseline: what each location would buy if nothing changed.

Derived from the latest historical report of every location:

  - current inventory per component = Σ units on hand across suppliers;
  - current supplier split = each supplier's share of that inventory, in
    percent; suppliers that serve the location and offer the component but
    hold no stock appear with 0;
  - quarterly needs = a daily simulation of the target-level policy::

        level = max(inventory, target)
        for each forecast day in the quarter:
            level -= demand
            if level < target:
                need  += target − level
                level  = target

    Quarters run in order and each one starts from the previous level.
  - quarterly cost = Σ suppliers ceil(need × pct / 100) × price, rounded.

Risk of a split (0–1 scale, before the ×1000 used for deltas)::

    risk = Σ (failure_rate × 0.7 + lead_time_variance × 0.3) × pct / 100

renormalised by ``100 / Σ pct`` when the included shares sum to less
than 100.
"""

from __future__ import annotations

import logging
import math

from supply_planner.config import RecommendationConfig
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.errors import MissingReferenceError
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import DailyDemand
from supply_planner.models.history import LocationReport
from supply_planner.models.strategy import (
    CurrentComponentStrategy,
    CurrentStrategy,
    QuarterlyCost,
    QuarterlyNeed,
)
from supply_planner.recommendations.demand import ComponentDemandCalculator
from supply_planner.recommendations.performance import SupplierPerformance
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector
from supply_planner.utils.numeric import round_half_up
from supply_planner.utils.time_utils import quarter_bounds

logger = logging.getLogger(__name__)

FAILURE_RISK_WEIGHT = 0.7
LEAD_TIME_RISK_WEIGHT = 0.3


# ── Pure helpers ──────────────────────────────────────────────────────────────

def inventory_split(
    report: LocationReport,
    component_id: str,
    eligible_supplier_ids: list[str],
) -> dict[str, float]:
    """Percent of on-hand units per supplier (0 for eligible suppliers without stock)."""
    split = {sid: 0.0 for sid in eligible_supplier_ids}
    rows = [r for r in report.component_inventory if r.component_id == component_id]
    total = sum(r.quantity for r in rows)
    if total > 0:
        for row in rows:
            split[row.supplier_id] = row.quantity / total * 100
    return split


def simulate_quarterly_needs(
    daily: list[DailyDemand],
    current_inventory: float,
    target_level: float,
    year: int,
    quarters: list[int],
) -> list[QuarterlyNeed]:
    """Units the target-level policy reorders per quarter."""
    level = max(current_inventory, target_level)
    needs: list[QuarterlyNeed] = []
    for quarter in quarters:
        start, end = quarter_bounds(year, quarter)
        need = 0.0
        for day in daily:
            if not start <= day.date <= end:
                continue
            level -= day.total_demand
            if level < target_level:
                need += target_level - level
                level = target_level
        needs.append(QuarterlyNeed(quarter=quarter, year=year, total_required=round_half_up(need)))
    return needs


def calculate_allocation_cost(
    catalog: Catalog,
    component_id: str,
    units: float,
    allocation: dict[str, float],
) -> float:
    """Spend for ``units`` split by ``allocation`` (percent per supplier).

    Each supplier's portion is rounded up to whole units.
    """
    total = 0.0
    for supplier_id, pct in allocation.items():
        if pct == 0:
            continue
        supplier = catalog.suppliers.get(supplier_id)
        price = supplier.price_for(component_id) if supplier else None
        if price is None:
            continue
        total += math.ceil(units * pct / 100) * price
    return round_half_up(total)


def calculate_allocation_risk(
    catalog: Catalog,
    performance: SupplierPerformance,
    component_id: str,
    allocation: dict[str, float],
) -> float:
    """Weighted failure and delivery risk of a split (see module doc)."""
    risk = 0.0
    included = 0.0
    for supplier_id, pct in allocation.items():
        if pct == 0:
            continue
        supplier = catalog.suppliers.get(supplier_id)
        if supplier is None or supplier.offer_for(component_id) is None:
            logger.warning("Supplier %s does not offer %s; ignored in risk.", supplier_id, component_id)
            continue
        supplier_risk = (
            performance.failure_rate(supplier_id, component_id) * FAILURE_RISK_WEIGHT
            + performance.lead_time_variance_for(supplier_id) * LEAD_TIME_RISK_WEIGHT
        )
        risk += supplier_risk * pct / 100
        included += pct

    if 0 < included < 100:
        risk *= 100 / included
    return risk


# ── Extractor ─────────────────────────────────────────────────────────────────

class CurrentStrategyExtractor:
    """Builds the status-quo baseline for every location and component.

    Attributes:
        catalog: Reference data.
        demand: Provides daily component demand for the simulation.
        history: Source of the latest report per location.
        performance: Failure and delivery figures for risk.
        config: Planning year, quarters and target inventory days.
        trace: Receives ``"current_strategy"`` payloads.
    """

    def __init__(
        self,
        catalog: Catalog,
        demand: ComponentDemandCalculator,
        history: HistoryRepository,
        performance: SupplierPerformance,
        config: RecommendationConfig,
        trace: TraceCollector | None = None,
    ) -> None:
        self.catalog = catalog
        self.demand = demand
        self.history = history
        self.performance = performance
        self.config = config
        self.trace = trace or NullTraceCollector()

    def latest_reports(self) -> dict[str, LocationReport]:
        """Newest report per catalog location; locations without history are absent."""
        reports: dict[str, LocationReport] = {}
        for location_id in self.catalog.locations:
            report = self.history.get_latest_report(location_id)
            if report is None:
                logger.warning(
                    "No historical report for %s; assuming zero inventory.", location_id,
                    extra={"location_id": location_id},
                )
                continue
            reports[location_id] = report
        return reports

    def _component_strategy(
        self,
        location_id: str,
        component_id: str,
        report: LocationReport | None,
    ) -> CurrentComponentStrategy:
        eligible = [
            s.supplier_id for s in self.catalog.eligible_suppliers(location_id, component_id)
        ]
        if report is None:
            inventory = 0
            split = {sid: 0.0 for sid in eligible}
        else:
            inventory = round_half_up(report.inventory_for(component_id))
            split = inventory_split(report, component_id, eligible)

        year = self.config.planning_year
        quarters = self.config.card_quarters
        try:
            daily = self.demand.calculate_daily_component_demand(location_id, component_id)
        except MissingReferenceError as exc:
            logger.warning(
                "No daily demand for %s at %s (%s); baseline needs left at zero.",
                component_id, location_id, exc,
                extra={"location_id": location_id, "component_id": component_id},
            )
            daily = []

        target = self.catalog.target_inventory_level(
            location_id, component_id, days=self.config.target_inventory_days
        )
        needs = simulate_quarterly_needs(daily, inventory, target, year, quarters)
        costs = [
            QuarterlyCost(
                quarter=n.quarter,
                year=n.year,
                total_cost=calculate_allocation_cost(
                    self.catalog, component_id, n.total_required, split
                ) if n.total_required > 0 else 0.0,
            )
            for n in needs
        ]
        return CurrentComponentStrategy(
            location_id=location_id,
            component_id=component_id,
            current_inventory=inventory,
            supplier_allocations=split,
            quarterly_needs=needs,
            quarterly_costs=costs,
        )

    def extract_current_strategy(self) -> CurrentStrategy:
        """Baseline for every (location, component in use)."""
        reports = self.latest_reports()
        entries: dict[str, dict[str, CurrentComponentStrategy]] = {}
        for location_id in self.catalog.locations:
            report = reports.get(location_id)
            entries[location_id] = {
                cid: self._component_strategy(location_id, cid, report)
                for cid in self.catalog.components_in_use()
            }
        strategy = CurrentStrategy(entries=entries)
        self.trace.record("current_strategy", strategy)
        logger.info(
            "Current strategy extracted: %d locations, %d reports.",
            len(entries), len(reports),
        )
        return strategy
