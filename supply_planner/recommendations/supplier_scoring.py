"""
Supplier scoring for one (location, component).

Scores combine forecast quality with relative price::

    quality_score = mean(first min(window, n) quality values) × 100
    cost_score    = (max_price − price) / (max_price − min_price) × 100
    total_score   = 0.7 × quality_score + 0.3 × cost_score

The price range spans **every** supplier offering the component, not only the
ones serving the location, so a supplier's cost score is stable across
locations. When all prices are equal every cost score is 100.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from supply_planner.config import RecommendationConfig
from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.errors import MissingReferenceError
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import SupplierQualityForecast
from supply_planner.recommendations.trace import NullTraceCollector, TraceCollector

logger = logging.getLogger(__name__)

QUALITY_WEIGHT = 0.7
COST_WEIGHT = 0.3


@dataclass(frozen=True)
class SupplierScore:
    supplier_id: str
    component_id: str
    quality_score: float
    cost_score: float
    total_score: float


def quality_values(forecast: SupplierQualityForecast) -> list[float]:
    """Numeric values of a stored quality series, in stored order.

    Unparseable JSON is logged and yields an empty list.
    """
    try:
        raw = json.loads(forecast.forecast_data)
    except json.JSONDecodeError as exc:
        logger.error("Unparseable quality forecast for %s: %s", forecast.supplier_id, exc)
        return []
    if not isinstance(raw, list):
        logger.error("Quality forecast for %s is not a list.", forecast.supplier_id)
        return []

    values: list[float] = []
    for point in raw:
        value = point.get("value") if isinstance(point, dict) else None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("Invalid quality point for %s: %r", forecast.supplier_id, point)
            continue
        values.append(float(value))
    return values


def calculate_quality_score(values: list[float], window: int = 90) -> float:
    """Mean of the first ``window`` values, scaled to 0–100."""
    head = values[:window]
    return sum(head) / len(head) * 100


def calculate_cost_score(price: float, all_prices: list[float]) -> float:
    lo, hi = min(all_prices), max(all_prices)
    if hi == lo:
        return 100.0
    return (hi - price) / (hi - lo) * 100


class SupplierScorer:
    """Scores the suppliers eligible for a (location, component).

    Attributes:
        catalog: Reference data (prices, location supplier lists).
        forecasts: Source of the latest supplier quality forecasts.
        config: Supplies the quality averaging window.
        trace: Receives ``"supplier_scores"`` payloads.
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

    def score_supplier(self, supplier_id: str, component_id: str) -> SupplierScore:
        """Score one supplier for one component.

        Raises:
            MissingReferenceError: The supplier has no usable quality forecast.
        """
        forecast = self.forecasts.get_latest_quality_forecast(supplier_id)
        if forecast is None:
            raise MissingReferenceError("quality forecast", f"supplier {supplier_id}")
        values = quality_values(forecast)
        if not values:
            raise MissingReferenceError(
                "quality forecast", f"supplier {supplier_id} has no usable points"
            )

        supplier = self.catalog.suppliers[supplier_id]
        price = supplier.price_for(component_id) or 0.0
        all_prices = [
            s.price_for(component_id) or 0.0
            for s in self.catalog.suppliers_offering(component_id)
        ]

        quality = calculate_quality_score(values, self.config.quality_window_days)
        cost = calculate_cost_score(price, all_prices)
        return SupplierScore(
            supplier_id=supplier_id,
            component_id=component_id,
            quality_score=quality,
            cost_score=cost,
            total_score=quality * QUALITY_WEIGHT + cost * COST_WEIGHT,
        )

    def score_all_suppliers(self, component_id: str, location_id: str) -> list[SupplierScore]:
        """Score every eligible supplier, highest ``total_score`` first.

        Raises:
            MissingReferenceError: No supplier serves the location with this
                component, or one of them lacks a quality forecast.
        """
        eligible = self.catalog.eligible_suppliers(location_id, component_id)
        if not eligible:
            raise MissingReferenceError(
                "suppliers", f"component {component_id} at location {location_id}"
            )
        scores = sorted(
            (self.score_supplier(s.supplier_id, component_id) for s in eligible),
            key=lambda s: s.total_score,
            reverse=True,
        )
        self.trace.record("supplier_scores", scores)
        return scores
