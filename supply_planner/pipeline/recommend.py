"""
RecommendStage — forecasts + history → persisted quarterly cards.

Recommendation flow
-------------------
  1. Optionally clear existing cards (``clear_existing``); stop there when
     ``generate_new`` is False.
  2. Load the catalog and derive supplier performance from all history.
  3. Extract the status-quo baseline for every (location, component).
  4. For each (location, component) in catalog order:
       demand → inventory-aware allocation → reasoning.
     A ``MissingReferenceError`` skips that pair (logged, counted in
     ``run.pairs_skipped``); any other exception aborts the run.
  5. Compare against the baseline, build two cards per pair and upsert them
     in one transaction.
  6. Optionally write the trace (``trace_file``) and card exports
     (``export_dir``).

Returns the number of cards written.
"""

from __future__ import annotations

import logging
from pathlib import Path

from supply_planner.models.meta import RunMetadata
from supply_planner.pipeline.base import PipelineStage
from supply_planner.recommendations.trace import (
    CapturingTraceCollector,
    NullTraceCollector,
    TraceCollector,
)

logger = logging.getLogger(__name__)


class RecommendStage(PipelineStage):
    """Run the full recommendation pipeline and persist cards."""

    stage_name = "recommend"

    def _execute(
        self,
        run: RunMetadata,
        clear_existing: bool = False,
        generate_new: bool = True,
        trace_file: Path | None = None,
        trace: TraceCollector | None = None,
        export_dir: Path | None = None,
        **kwargs,
    ) -> int:
        from supply_planner.db.repositories.card_repo import CardRepository
        from supply_planner.db.repositories.catalog_repo import CatalogRepository
        from supply_planner.db.repositories.forecast_repo import ForecastRepository
        from supply_planner.db.repositories.history_repo import HistoryRepository
        from supply_planner.errors import MissingReferenceError
        from supply_planner.recommendations.allocation import SupplierAllocator
        from supply_planner.recommendations.cards import create_quarterly_cards
        from supply_planner.recommendations.current_strategy import CurrentStrategyExtractor
        from supply_planner.recommendations.demand import ComponentDemandCalculator
        from supply_planner.recommendations.impact import ImpactCalculator
        from supply_planner.recommendations.performance import analyze_supplier_performance
        from supply_planner.recommendations.prioritization import (
            calculate_risk_reduction_percentage,
            calculate_total_cost_impact,
            format_cost_impact,
        )
        from supply_planner.recommendations.reasoning import ReasoningGenerator
        from supply_planner.recommendations.supplier_scoring import SupplierScorer

        if trace is None:
            trace = CapturingTraceCollector() if trace_file else NullTraceCollector()
        rec_config = self.config.recommendation

        if clear_existing:
            with self._connect() as conn:
                deleted = CardRepository(conn).clear_all()
            logger.info("Deleted %d existing recommendation cards.", deleted)
            if not generate_new:
                return 0

        with self._connect() as conn:
            catalog = CatalogRepository(conn).load_catalog()
            forecasts = ForecastRepository(conn)
            history = HistoryRepository(conn)
            performance = analyze_supplier_performance(history.get_reports())

            demand_calc = ComponentDemandCalculator(catalog, forecasts, rec_config, trace)
            scorer = SupplierScorer(catalog, forecasts, rec_config, trace)
            allocator = SupplierAllocator(catalog, scorer, performance, rec_config, trace)
            extractor = CurrentStrategyExtractor(
                catalog, demand_calc, history, performance, rec_config, trace
            )
            reasoning = ReasoningGenerator(catalog, trace)
            impact_calc = ImpactCalculator(catalog, performance, rec_config, trace)

            current = extractor.extract_current_strategy()

            strategies = {}
            for location_id in catalog.locations:
                for component_id in catalog.components_in_use():
                    baseline = current.get(location_id, component_id)
                    inventory = baseline.current_inventory if baseline else 0
                    try:
                        demand = demand_calc.calculate_component_demand(location_id, component_id)
                        strategy = allocator.calculate_enhanced_supplier_allocation(
                            component_id, location_id, demand, inventory
                        )
                    except MissingReferenceError as exc:
                        run.pairs_skipped += 1
                        logger.warning(
                            "Skipping %s at %s: %s", component_id, location_id, exc,
                            extra={"location_id": location_id, "component_id": component_id},
                        )
                        continue
                    strategies[(location_id, component_id)] = (
                        reasoning.generate_reasoned_strategy(strategy)
                    )

            impacts = impact_calc.calculate_recommendation_impact(current, strategies)
            cards = create_quarterly_cards(strategies, impacts)

            written = CardRepository(conn).upsert_cards(cards)

        cost_deltas: dict[str, dict[str, float]] = {}
        risk_deltas: dict[str, dict[str, float]] = {}
        for (location_id, component_id), impact in impacts.items():
            cost_deltas.setdefault(location_id, {})[component_id] = impact.total_cost_delta
            risk_deltas.setdefault(location_id, {})[component_id] = impact.risk_delta

        logger.info(
            "RecommendStage complete: %d card(s) for %d pair(s), %d pair(s) skipped | "
            "total cost impact %s | %.1f%% of pairs lower risk.",
            written, len(strategies), run.pairs_skipped,
            format_cost_impact(calculate_total_cost_impact(cost_deltas)),
            calculate_risk_reduction_percentage(risk_deltas),
        )

        if trace_file and isinstance(trace, CapturingTraceCollector):
            trace.dump_json(Path(trace_file))

        if export_dir is not None:
            from supply_planner.recommendations.reporter import (
                write_cards_csv,
                write_cards_json,
                write_cards_parquet,
            )

            out = Path(export_dir)
            write_cards_csv(cards, out, rec_config.planning_year)
            write_cards_json(cards, out, rec_config.planning_year, run_slug=run.run_slug)
            write_cards_parquet(cards, out, rec_config.planning_year)

        return written
