"""
Repository for imported forecast series.

Demand forecasts are stored per (location, tractor model); only rows with
``is_default = 1`` feed the recommendation pipeline, and when several default
rows exist for the same pair the newest one wins. Supplier quality forecasts
are read newest-first as well.

``forecast_data`` is written and read as raw JSON text. Parsing (and the
handling of malformed rows) belongs to the demand aggregator and supplier
scorer, not to this layer.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from supply_planner.db.repositories.base import BaseRepository
from supply_planner.models.demand import DemandForecast, SupplierQualityForecast

logger = logging.getLogger(__name__)


class ForecastRepository(BaseRepository):
    """Read/write access to ``demand_forecasts`` and ``supplier_quality_forecasts``."""

    def insert_demand_forecast(self, forecast: DemandForecast) -> int:
        """Insert a demand forecast and return its ``forecast_id``.

        When ``is_default`` is set, older default rows for the same
        (location, model) are demoted so exactly one default remains.
        """
        if forecast.is_default:
            self.execute(
                """
                UPDATE demand_forecasts SET is_default = 0
                WHERE location_id = ? AND model_id = ? AND is_default = 1;
                """,
                (forecast.location_id, forecast.model_id),
            )
        self.execute(
            """
            INSERT INTO demand_forecasts (location_id, model_id, is_default, forecast_data)
            VALUES (?, ?, ?, ?);
            """,
            (
                forecast.location_id,
                forecast.model_id,
                int(forecast.is_default),
                forecast.forecast_data,
            ),
        )
        return self.last_insert_rowid()

    def insert_quality_forecast(self, forecast: SupplierQualityForecast) -> int:
        self.execute(
            "INSERT INTO supplier_quality_forecasts (supplier_id, forecast_data) VALUES (?, ?);",
            (forecast.supplier_id, forecast.forecast_data),
        )
        return self.last_insert_rowid()

    def get_default_forecasts(
        self,
        location_id: str,
        model_ids: list[str],
    ) -> list[DemandForecast]:
        """Newest default forecast per model, for the given models at a location.

        Models without a default forecast are absent from the result.
        """
        if not model_ids:
            return []
        placeholders = ", ".join("?" for _ in model_ids)
        rows = self.fetchall(
            f"""
            SELECT df.* FROM demand_forecasts df
            WHERE df.location_id = ?
              AND df.is_default = 1
              AND df.model_id IN ({placeholders})
              AND df.forecast_id = (
                  SELECT MAX(forecast_id) FROM demand_forecasts
                  WHERE location_id = df.location_id
                    AND model_id = df.model_id
                    AND is_default = 1
              )
            ORDER BY df.model_id;
            """,
            (location_id, *model_ids),
        )
        return [_row_to_demand_forecast(r) for r in rows]

    def get_demand_forecast(
        self,
        location_id: str,
        model_id: str,
        default_only: bool = True,
    ) -> Optional[DemandForecast]:
        """Newest forecast for one (location, model), or ``None``."""
        sql = "SELECT * FROM demand_forecasts WHERE location_id = ? AND model_id = ?"
        if default_only:
            sql += " AND is_default = 1"
        row = self.fetchone(sql + " ORDER BY forecast_id DESC LIMIT 1;", (location_id, model_id))
        return _row_to_demand_forecast(row) if row else None

    def get_latest_quality_forecast(self, supplier_id: str) -> Optional[SupplierQualityForecast]:
        row = self.fetchone(
            """
            SELECT * FROM supplier_quality_forecasts
            WHERE supplier_id = ?
            ORDER BY forecast_id DESC LIMIT 1;
            """,
            (supplier_id,),
        )
        return _row_to_quality_forecast(row) if row else None

    def count_forecasts(self) -> tuple[int, int]:
        """Return ``(demand_forecasts, supplier_quality_forecasts)`` row counts."""
        return (
            self.count_rows("demand_forecasts"),
            self.count_rows("supplier_quality_forecasts"),
        )


# ── Private helpers ────────────────────────────────────────────────────────────

def _parse_ts(raw: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(raw.replace("Z", "+00:00")) if raw else None


def _row_to_demand_forecast(row: sqlite3.Row) -> DemandForecast:
    return DemandForecast(
        forecast_id=row["forecast_id"],
        location_id=row["location_id"],
        model_id=row["model_id"],
        is_default=bool(row["is_default"]),
        forecast_data=row["forecast_data"],
        created_at=_parse_ts(row["created_at"]),
    )


def _row_to_quality_forecast(row: sqlite3.Row) -> SupplierQualityForecast:
    return SupplierQualityForecast(
        forecast_id=row["forecast_id"],
        supplier_id=row["supplier_id"],
        forecast_data=row["forecast_data"],
        created_at=_parse_ts(row["created_at"]),
    )
