"""
Card report writer: CSV, JSON and Parquet output for recommendation cards.

All functions are pure I/O with no DB access. They consume in-memory
``QuarterlyCard`` lists and write human-readable + machine-readable files.

Output files (written by ``export-cards`` and ``run-recommendations``)
----------------------------------------------------------------------
  data/outputs/cards/
    cards_{year}_{date}.csv       -- one row per card, strategy summarised
    cards_{year}_{date}.json      -- full cards including the strategy blob
    cards_{year}_{date}.parquet   -- flat columns, same rows as the CSV
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from supply_planner.models.card import QuarterlyCard
from supply_planner.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

CARD_FIELDNAMES = [
    "location_id", "component_id", "quarter", "year",
    "current_units", "current_cost", "recommended_units", "recommended_cost",
    "unit_delta", "cost_delta", "urgency", "impact_level", "priority",
    "opportunity_score", "suppliers", "recommendation",
]

_CARDS_PA_SCHEMA = pa.schema([
    pa.field("location_id",       pa.string()),
    pa.field("component_id",      pa.string()),
    pa.field("quarter",           pa.int32()),
    pa.field("year",              pa.int32()),
    pa.field("current_units",     pa.int64()),
    pa.field("current_cost",      pa.float64()),
    pa.field("recommended_units", pa.int64()),
    pa.field("recommended_cost",  pa.float64()),
    pa.field("unit_delta",        pa.int64()),
    pa.field("cost_delta",        pa.float64()),
    pa.field("urgency",           pa.string()),
    pa.field("impact_level",      pa.string()),
    pa.field("priority",          pa.string()),
    pa.field("opportunity_score", pa.float64()),
    pa.field("suppliers",         pa.string()),
    pa.field("recommendation",    pa.string()),
])


def _supplier_summary(card: QuarterlyCard) -> str:
    """``"SUP-A:60%;SUP-B:40%"`` in allocation order."""
    return ";".join(
        f"{a.supplier_id}:{a.allocation_percentage}%"
        for a in card.strategy.supplier_allocations
    )


def card_to_row(card: QuarterlyCard) -> dict:
    """Flat, export-friendly view of a card."""
    return {
        "location_id":       card.location_id,
        "component_id":      card.component_id,
        "quarter":           card.quarter,
        "year":              card.year,
        "current_units":     card.current_units,
        "current_cost":      card.current_cost,
        "recommended_units": card.recommended_units,
        "recommended_cost":  card.recommended_cost,
        "unit_delta":        card.unit_delta,
        "cost_delta":        card.cost_delta,
        "urgency":           str(card.urgency),
        "impact_level":      str(card.impact_level),
        "priority":          str(card.priority),
        "opportunity_score": round(card.opportunity_score, 4),
        "suppliers":         _supplier_summary(card),
        "recommendation":    card.strategy.top_level_recommendation,
    }


def _output_path(output_dir: Path, year: int, run_date: date | None, suffix: str) -> Path:
    if run_date is None:
        run_date = date.today()
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"cards_{year}_{run_date}.{suffix}"


def write_cards_csv(
    cards: list[QuarterlyCard],
    output_dir: Path,
    year: int,
    run_date: date | None = None,
) -> Path:
    """Write one CSV row per card.

    Returns:
        Path to the written CSV file.
    """
    csv_path = _output_path(output_dir, year, run_date, "csv")
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CARD_FIELDNAMES)
        writer.writeheader()
        for card in cards:
            writer.writerow(card_to_row(card))

    logger.info("Cards CSV written: %s (%d rows)", csv_path, len(cards))
    return csv_path


def write_cards_json(
    cards: list[QuarterlyCard],
    output_dir: Path,
    year: int,
    run_date: date | None = None,
    run_slug: str = "",
) -> Path:
    """Write cards, including their full strategy blobs, to structured JSON.

    Returns:
        Path to the written JSON file.
    """
    json_path = _output_path(output_dir, year, run_date, "json")
    payload: dict = {
        "schema_version": "1.0",
        "planning_year":  year,
        "generated_at":   utcnow().isoformat(),
        "run_slug":       run_slug,
        "card_count":     len(cards),
        "cards":          [card.model_dump(mode="json") for card in cards],
    }
    json_path.write_text(json.dumps(payload, indent=2, default=str))
    logger.info("Cards JSON written: %s", json_path)
    return json_path


def write_cards_parquet(
    cards: list[QuarterlyCard],
    output_dir: Path,
    year: int,
    run_date: date | None = None,
) -> Path:
    """Write the flat card rows to Parquet (snappy).

    Returns:
        Path to the written Parquet file.
    """
    parquet_path = _output_path(output_dir, year, run_date, "parquet")
    rows = [card_to_row(card) for card in cards]
    table = pa.table(
        {name: [row[name] for row in rows] for name in _CARDS_PA_SCHEMA.names},
        schema=_CARDS_PA_SCHEMA,
    )
    pq.write_table(table, parquet_path, compression="snappy")
    logger.info("Cards Parquet written: %s (%d rows)", parquet_path, len(rows))
    return parquet_path
