"""
Forecast and historical-report importers.

Forecast document (JSON)::

    {
      "demand_forecasts": [
        {"location_id": "west", "model_id": "TX-100", "is_default": true,
         "forecast_data": [{"date": "2025-01-01", "value": 12.5,
                            "lower": 10.0, "upper": 15.0}, ...]}
      ],
      "supplier_quality_forecasts": [
        {"supplier_id": "Elite", "forecast_data": [{"date": ..., "value": 0.92}]}
      ]
    }

A ``.csv`` path is accepted for demand forecasts too (see ``forecast_csv``).

History document (JSON): a list of location reports::

    [{"location_id", "report_date",
      "market_trend_index", "inflation_rate",
      "model_demand":        [{"model_id", "demand"}],
      "component_inventory": [{"component_id", "supplier_id", "quantity"}],
      "deliveries":          [{"supplier_id", "component_id", "order_size",
                               "lead_time_variance", "discount"}],
      "component_failures":  [{"supplier_id", "component_id", "failure_rate"}]}]

Both importers validate every record first (pydantic field checks, then
catalog cross-references) and write nothing if any record fails.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.errors import CatalogValidationError
from supply_planner.ingestion.forecast_csv import parse_forecast_csv
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import (
    DemandForecast,
    ForecastPoint,
    SupplierQualityForecast,
)
from supply_planner.models.history import LocationReport

logger = logging.getLogger(__name__)

_MAX_SHOWN = 10


def _raise_if_errors(errors: list[str], source: str) -> None:
    if errors:
        detail = "\n".join(f"  {msg}" for msg in errors[:_MAX_SHOWN])
        suffix = (
            f"\n  … and {len(errors) - _MAX_SHOWN} more" if len(errors) > _MAX_SHOWN else ""
        )
        raise ValueError(f"{len(errors)} record(s) failed validation in {source}:\n{detail}{suffix}")


def _serialise_points(raw_points: Any) -> str:
    """Validate a raw point list and return its normalised JSON text."""
    if not isinstance(raw_points, list):
        raise ValueError("'forecast_data' must be a list of points.")
    points = [ForecastPoint.model_validate(p) for p in raw_points]
    return json.dumps([p.model_dump(mode="json", exclude_none=True) for p in points])


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Import file not found: {path}")
    return json.loads(path.read_text(encoding="utf-8"))


# ── Forecasts ─────────────────────────────────────────────────────────────────

def parse_forecast_document(
    raw: dict[str, Any],
    source: str = "<document>",
) -> tuple[list[DemandForecast], list[SupplierQualityForecast]]:
    """Validate a decoded forecast document.

    Raises:
        ValueError: Listing the first failures if any record is invalid.
    """
    demand: list[DemandForecast] = []
    quality: list[SupplierQualityForecast] = []
    errors: list[str] = []

    for i, rec in enumerate(raw.get("demand_forecasts") or []):
        try:
            demand.append(DemandForecast(
                location_id=rec["location_id"],
                model_id=rec["model_id"],
                is_default=bool(rec.get("is_default", True)),
                forecast_data=_serialise_points(rec.get("forecast_data")),
            ))
        except (KeyError, ValueError, ValidationError) as exc:
            errors.append(f"demand_forecasts[{i}]: {exc}")

    for i, rec in enumerate(raw.get("supplier_quality_forecasts") or []):
        try:
            quality.append(SupplierQualityForecast(
                supplier_id=rec["supplier_id"],
                forecast_data=_serialise_points(rec.get("forecast_data")),
            ))
        except (KeyError, ValueError, ValidationError) as exc:
            errors.append(f"supplier_quality_forecasts[{i}]: {exc}")

    _raise_if_errors(errors, source)
    return demand, quality


def check_forecast_references(
    catalog: Catalog,
    demand: list[DemandForecast],
    quality: list[SupplierQualityForecast],
) -> None:
    """Raise ``CatalogValidationError`` for forecasts naming unknown ids."""
    errors: list[str] = []
    for fc in demand:
        if fc.location_id not in catalog.locations:
            errors.append(f"demand forecast for unknown location '{fc.location_id}'.")
        if fc.model_id not in catalog.tractor_models:
            errors.append(f"demand forecast for unknown model '{fc.model_id}'.")
    for fc in quality:
        if fc.supplier_id not in catalog.suppliers:
            errors.append(f"quality forecast for unknown supplier '{fc.supplier_id}'.")
    if errors:
        raise CatalogValidationError(errors)


def import_forecasts(
    conn: sqlite3.Connection,
    path: Path,
    catalog: Catalog,
    dry_run: bool = False,
) -> tuple[int, int]:
    """Import a forecast ``.json`` document or a demand ``.csv`` file.

    Returns:
        ``(demand_forecasts, quality_forecasts)`` counted (written unless
        ``dry_run``).
    """
    if path.suffix.lower() == ".csv":
        demand, quality = parse_forecast_csv(path), []
    else:
        raw = _read_json(path)
        if not isinstance(raw, dict):
            raise ValueError(f"{path.name}: forecast document must be a JSON object.")
        demand, quality = parse_forecast_document(raw, source=path.name)

    check_forecast_references(catalog, demand, quality)

    if dry_run:
        logger.info(
            "Dry run: %d demand / %d quality forecasts validated from %s",
            len(demand), len(quality), path.name,
        )
        return len(demand), len(quality)

    repo = ForecastRepository(conn)
    for fc in demand:
        repo.insert_demand_forecast(fc)
    for qf in quality:
        repo.insert_quality_forecast(qf)
    repo.commit()
    logger.info(
        "Imported %d demand / %d quality forecasts from %s",
        len(demand), len(quality), path.name,
    )
    return len(demand), len(quality)


# ── History ───────────────────────────────────────────────────────────────────

def parse_history_document(raw: Any, source: str = "<document>") -> list[LocationReport]:
    """Validate a decoded list of location reports.

    Raises:
        ValueError: Listing the first failures if any report is invalid.
    """
    if not isinstance(raw, list):
        raise ValueError(f"{source}: history document must be a JSON list of reports.")

    reports: list[LocationReport] = []
    errors: list[str] = []
    for i, rec in enumerate(raw):
        try:
            reports.append(LocationReport.model_validate(rec))
        except ValidationError as exc:
            errors.append(f"report[{i}]: {exc}")

    _raise_if_errors(errors, source)
    return reports


def check_history_references(catalog: Catalog, reports: list[LocationReport]) -> None:
    """Raise ``CatalogValidationError`` for reports naming unknown ids."""
    errors: list[str] = []
    for rep in reports:
        tag = f"{rep.location_id}@{rep.report_date}"
        if rep.location_id not in catalog.locations:
            errors.append(f"{tag}: unknown location.")
        for rec in rep.component_inventory:
            if rec.component_id not in catalog.components:
                errors.append(f"{tag}: inventory for unknown component '{rec.component_id}'.")
            if rec.supplier_id not in catalog.suppliers:
                errors.append(f"{tag}: inventory from unknown supplier '{rec.supplier_id}'.")
        for rec in rep.model_demand:
            if rec.model_id not in catalog.tractor_models:
                errors.append(f"{tag}: demand for unknown model '{rec.model_id}'.")
    if errors:
        raise CatalogValidationError(errors)


def import_history(
    conn: sqlite3.Connection,
    path: Path,
    catalog: Catalog,
    dry_run: bool = False,
) -> int:
    """Import a history JSON file. Returns reports counted."""
    reports = parse_history_document(_read_json(path), source=path.name)
    check_history_references(catalog, reports)

    if dry_run:
        logger.info("Dry run: %d reports validated from %s", len(reports), path.name)
        return len(reports)

    repo = HistoryRepository(conn)
    for rep in reports:
        repo.upsert_report(rep)
    repo.commit()
    logger.info("Imported %d location reports from %s", len(reports), path.name)
    return len(reports)
