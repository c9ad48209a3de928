"""
Component demand aggregation: per-model forecasts → per-component demand.

For a (location, component), every tractor model consuming the component
contributes its default demand forecast at that location. Points are
summed per calendar quarter (or per date, for the daily view).

Safety stock (per quarter)
--------------------------
::

    safety_stock   = ceil(Z × σ × √(avg_lead_time))
    total_required = round(total_demand + safety_stock)

``σ`` is the sample standard deviation (n − 1) of every raw point value in
the quarter, across all contributing models; ``σ = 0`` with one point or
none. ``avg_lead_time`` is the mean base lead time of the location's
suppliers. ``Z`` is the service-level z-score (1.65 ≈ 95 %).

Data quality
------------
- Points dated before 1 January of the planning year are history and are
  dropped.
- Points without a parseable date or a numeric value are skipped with a
  warning.
- A stored series that is not valid JSON is logged and treated as empty.
"""

from __future__ import annotations

import json
import logging
import math
import statistics
from dataclasses import dataclass, field
from datetime import date

from supply_planner.config import RecommendationConfig
from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.errors import MissingReferenceError
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import (
    ComponentDemand,
    DailyDemand,
    DemandForecast,
    ModelContribution,
    QuarterlyDemand,
)
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector
from supply_planner.utils.numeric import round_half_up
from supply_planner.utils.time_utils import (
    parse_point_date,
    planning_horizon_start,
    quarter_of,
)

logger = logging.getLogger(__name__)


@dataclass
class ParsedForecast:
    """A model's forecast series after parsing and validation."""

    model_id: str
    points: list[tuple[date, float]] = field(default_factory=list)


# ── Pure helpers ──────────────────────────────────────────────────────────────

def calculate_safety_stock(
    values: list[float],
    avg_lead_time: float,
    z: float = 1.65,
) -> int:
    """``ceil(z × sample_stdev(values) × √avg_lead_time)``; 0 for ≤ 1 value."""
    sigma = statistics.stdev(values) if len(values) > 1 else 0.0
    return math.ceil(z * sigma * math.sqrt(avg_lead_time))


def parse_forecast(forecast: DemandForecast) -> ParsedForecast:
    """Decode a stored series, dropping malformed points.

    Malformed JSON yields an empty series; it is never raised.
    """
    try:
        raw = json.loads(forecast.forecast_data)
    except json.JSONDecodeError as exc:
        logger.error(
            "Unparseable forecast data for model %s at %s: %s",
            forecast.model_id, forecast.location_id, exc,
        )
        return ParsedForecast(model_id=forecast.model_id)

    if not isinstance(raw, list):
        logger.error(
            "Forecast data for model %s at %s is not a list; treating as empty.",
            forecast.model_id, forecast.location_id,
        )
        return ParsedForecast(model_id=forecast.model_id)

    parsed = ParsedForecast(model_id=forecast.model_id)
    for point in raw:
        day = parse_point_date(point.get("date")) if isinstance(point, dict) else None
        value = point.get("value") if isinstance(point, dict) else None
        if day is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("Invalid forecast point for model %s: %r", forecast.model_id, point)
            continue
        parsed.points.append((day, float(value)))
    return parsed


def _add_contribution(
    contributions: dict[str, float],
    model_id: str,
    value: float,
) -> None:
    contributions[model_id] = contributions.get(model_id, 0.0) + value


def aggregate_quarterly(
    forecasts: list[ParsedForecast],
    avg_lead_time: float,
    planning_year: int = 2025,
    z: float = 1.65,
) -> list[QuarterlyDemand]:
    """Sum per-model points into quarters and attach safety stock.

    Returns:
        ``QuarterlyDemand`` records sorted by (year, quarter).
    """
    horizon = planning_horizon_start(planning_year)
    contributions: dict[tuple[int, int], dict[str, float]] = {}
    raw_values: dict[tuple[int, int], list[float]] = {}

    for fc in forecasts:
        if not fc.points:
            logger.warning("No forecast data for model %s", fc.model_id)
            continue
        for day, value in fc.points:
            if day < horizon:
                continue
            key = (day.year, quarter_of(day))
            _add_contribution(contributions.setdefault(key, {}), fc.model_id, value)
            raw_values.setdefault(key, []).append(value)

    result: list[QuarterlyDemand] = []
    for (year, quarter) in sorted(contributions):
        by_model = contributions[(year, quarter)]
        total_demand = round_half_up(sum(by_model.values()))
        safety_stock = calculate_safety_stock(raw_values[(year, quarter)], avg_lead_time, z)
        result.append(QuarterlyDemand(
            quarter=quarter,
            year=year,
            total_demand=total_demand,
            safety_stock=safety_stock,
            total_required=round_half_up(total_demand + safety_stock),
            model_contributions=[
                ModelContribution(model_id=m, demand=d) for m, d in by_model.items()
            ],
        ))
    return result


def aggregate_daily(
    forecasts: list[ParsedForecast],
    planning_year: int = 2025,
) -> list[DailyDemand]:
    """Sum per-model points per calendar date, sorted by date."""
    horizon = planning_horizon_start(planning_year)
    by_day: dict[date, dict[str, float]] = {}
    for fc in forecasts:
        for day, value in fc.points:
            if day < horizon:
                continue
            _add_contribution(by_day.setdefault(day, {}), fc.model_id, value)

    return [
        DailyDemand(
            date=day,
            total_demand=round_half_up(sum(by_model.values())),
            model_contributions=[
                ModelContribution(model_id=m, demand=d) for m, d in by_model.items()
            ],
        )
        for day, by_model in sorted(by_day.items())
    ]


# ── Store-backed aggregator ───────────────────────────────────────────────────

class ComponentDemandCalculator:
    """Reads stored forecasts and produces component demand.

    Attributes:
        catalog: Reference data (models, suppliers, locations).
        forecasts: Repository for stored demand forecasts.
        config: Planning constants.
        trace: Receives ``"component_demand"`` payloads.
    """

    def __init__(
        self,
        catalog: Catalog,
        forecasts: ForecastRepository,
        config: RecommendationConfig,
        trace: TraceCollector | None = None,
    ) -> None:
        self.catalog = catalog
        self.forecasts = forecasts
        self.config = config
        self.trace = trace or NullTraceCollector()

    def _load(self, location_id: str, component_id: str) -> list[ParsedForecast]:
        model_ids = self.catalog.models_using(component_id)
        if not model_ids:
            raise MissingReferenceError("models", f"no model uses component {component_id}")

        stored = self.forecasts.get_default_forecasts(location_id, model_ids)
        if not stored:
            raise MissingReferenceError(
                "forecast",
                f"no demand forecasts for location {location_id} and models "
                f"{', '.join(model_ids)}",
            )
        return [parse_forecast(fc) for fc in stored]

    def average_lead_time(self, location_id: str) -> float:
        return self.catalog.average_lead_time(
            location_id, default=self.config.default_lead_time_days
        )

    def calculate_component_demand(self, location_id: str, component_id: str) -> ComponentDemand:
        """Quarterly demand for one (location, component).

        Raises:
            MissingReferenceError: No model uses the component, or no default
                forecast exists for any of those models at the location.
        """
        parsed = self._load(location_id, component_id)
        demand = ComponentDemand(
            location_id=location_id,
            component_id=component_id,
            quarterly_demand=aggregate_quarterly(
                parsed,
                avg_lead_time=self.average_lead_time(location_id),
                planning_year=self.config.planning_year,
                z=self.config.service_level_z,
            ),
        )
        self.trace.record("component_demand", demand)
        return demand

    def calculate_daily_component_demand(
        self,
        location_id: str,
        component_id: str,
    ) -> list[DailyDemand]:
        """Per-date demand for one (location, component); same errors as above."""
        return aggregate_daily(
            self._load(location_id, component_id),
            planning_year=self.config.planning_year,
        )

    def calculate_all_component_demand(self, location_id: str) -> dict[str, ComponentDemand]:
        """Demand for every component in use at a location, skipping failures."""
        results: dict[str, ComponentDemand] = {}
        for component_id in self.catalog.components_in_use():
            try:
                results[component_id] = self.calculate_component_demand(location_id, component_id)
            except MissingReferenceError as exc:
                logger.warning(
                    "Skipping demand for %s at %s: %s", component_id, location_id, exc,
                    extra={"location_id": location_id, "component_id": component_id},
                )
        return results

    def calculate_all_locations_component_demand(self) -> dict[str, dict[str, ComponentDemand]]:
        return {
            location_id: self.calculate_all_component_demand(location_id)
            for location_id in self.catalog.locations
        }
