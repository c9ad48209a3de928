"""
CSV import parser for demand forecast series.

Format: comma delimited with a header row, one row per forecast point.
Rows for the same (location_id, model_id) are gathered into one
``DemandForecast`` in file order.

Required columns:
  location_id, model_id, date, value

Optional columns (empty string → None):
  lower, upper, is_default

Date format:
  date → YYYY-MM-DD (ISO timestamps are accepted and truncated to the date)

Boolean columns (is_default):
  true/1/yes/t/y  → True (default if omitted)
  false/0/no/f/n  → False
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from supply_planner.models.demand import DemandForecast, ForecastPoint
from supply_planner.utils.time_utils import parse_point_date

logger = logging.getLogger(__name__)

REQUIRED_CSV_COLUMNS = frozenset({"location_id", "model_id", "date", "value"})


def parse_forecast_csv(path: Path) -> list[DemandForecast]:
    """Parse a CSV of demand forecast points into ``DemandForecast`` records.

    All rows are validated first; if any fails, one ``ValueError`` lists the
    first 10 failures and nothing is returned.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If required columns are missing or any row is invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Forecast CSV file not found: {path}")

    with open(path, encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)

        if reader.fieldnames is None:
            raise ValueError(f"CSV file is empty or has no header row: {path}")

        actual_cols = set(reader.fieldnames)
        missing = REQUIRED_CSV_COLUMNS - actual_cols
        if missing:
            raise ValueError(
                f"CSV missing required columns: {sorted(missing)}\n"
                f"Found columns: {sorted(actual_cols)}"
            )

        rows = list(reader)

    if not rows:
        logger.warning("Forecast CSV is empty (header only): %s", path)
        return []

    series: dict[tuple[str, str], list[ForecastPoint]] = {}
    defaults: dict[tuple[str, str], bool] = {}
    errors: list[tuple[int, str]] = []

    for i, row in enumerate(rows):
        line_no = i + 2
        try:
            key = (_req(row, "location_id"), _req(row, "model_id"))
            point = _row_to_point(row)
        except (ValueError, ValidationError) as exc:
            errors.append((line_no, str(exc)))
            continue
        series.setdefault(key, []).append(point)
        defaults[key] = defaults.get(key, True) and _parse_bool(row, "is_default", default=True)

    if errors:
        max_shown = 10
        detail = "\n".join(f"  Row {ln}: {msg}" for ln, msg in errors[:max_shown])
        suffix = f"\n  … and {len(errors) - max_shown} more" if len(errors) > max_shown else ""
        raise ValueError(
            f"{len(errors)} row(s) failed validation in {path.name}:\n{detail}{suffix}"
        )

    forecasts = [
        DemandForecast(
            location_id=location_id,
            model_id=model_id,
            is_default=defaults[(location_id, model_id)],
            forecast_data=json.dumps(
                [p.model_dump(mode="json", exclude_none=True) for p in points]
            ),
        )
        for (location_id, model_id), points in series.items()
    ]
    logger.info("Parsed %d forecast series (%d points) from %s", len(forecasts), len(rows), path.name)
    return forecasts


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_point(row: dict[str, str]) -> ForecastPoint:
    raw_date = _req(row, "date")
    day = parse_point_date(raw_date)
    if day is None:
        raise ValueError(f"Invalid date for 'date': '{raw_date}'. Expected YYYY-MM-DD format.")
    return ForecastPoint(
        date=day,
        value=_parse_float(row, "value", required=True),
        lower=_parse_float(row, "lower"),
        upper=_parse_float(row, "upper"),
    )


def _req(row: dict[str, str], key: str) -> str:
    v = (row.get(key) or "").strip()
    if not v:
        raise ValueError(f"Required field '{key}' is empty.")
    return v


def _opt(row: dict[str, str], key: str) -> Optional[str]:
    v = (row.get(key) or "").strip()
    return v if v else None


def _parse_float(row: dict[str, str], key: str, required: bool = False) -> Optional[float]:
    v = _opt(row, key)
    if v is None:
        if required:
            raise ValueError(f"Required numeric field '{key}' is empty.")
        return None
    try:
        return float(v)
    except ValueError:
        raise ValueError(f"Invalid number for '{key}': '{v}'.")


def _parse_bool(row: dict[str, str], key: str, default: bool = False) -> bool:
    v = _opt(row, key)
    if v is None:
        return default
    return v.lower() in ("true", "1", "yes", "t", "y")
