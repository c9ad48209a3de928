"""
Reference catalog loader: JSON → validation → SQLite → Parquet.

Responsibilities
----------------
1. Read ``config/catalog/reference_catalog.json`` (or any file with the same
   shape) and validate it.
2. Upsert components, suppliers (with price lists), tractor models (with
   their component lists) and locations (with supplier lists and model
   preferences) into the catalog tables.
3. Optionally export the supplier price list to
   ``<processed_dir>/catalog/supplier_prices.parquet``.

Input shape
-----------
::

    {
      "components":     [{"component_id", "name", "baseline_failure_rate"}],
      "suppliers":      [{"supplier_id", "base_lead_time", "quality_volatility",
                          "seasonal_strength", "quality_momentum",
                          "components": [{"component_id", "price_per_unit"}]}],
      "tractor_models": [{"model_id", "component_ids", "market_sensitivity",
                          "inflation_sensitivity"}],
      "locations":      [{"location_id", "supplier_ids", "model_preferences"}]
    }

Validation rules
----------------
- Every record carries its id field; ids are unique within their section.
- Suppliers, models and locations may only reference ids defined in the
  same file.
- Model preference keys must be known tractor models.

All violations are collected and raised together as a
``CatalogValidationError``.

Parquet schema (supplier_prices.parquet)
----------------------------------------
  supplier_id     (string)
  component_id    (string)
  price_per_unit  (float64)
  base_lead_time  (float64)
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

import pyarrow as pa
import pyarrow.parquet as pq

from supply_planner.db.repositories.catalog_repo import CatalogRepository
from supply_planner.errors import CatalogValidationError
from supply_planner.models.catalog import (
    Catalog,
    Component,
    Location,
    Supplier,
    TractorModel,
)

log = logging.getLogger(__name__)

_SECTIONS: dict[str, str] = {
    "components":     "component_id",
    "suppliers":      "supplier_id",
    "tractor_models": "model_id",
    "locations":      "location_id",
}

_PRICES_PA_SCHEMA = pa.schema([
    pa.field("supplier_id",    pa.string(),  nullable=False),
    pa.field("component_id",   pa.string(),  nullable=False),
    pa.field("price_per_unit", pa.float64(), nullable=False),
    pa.field("base_lead_time", pa.float64(), nullable=False),
])


# ── Validation ────────────────────────────────────────────────────────────────

def _validate_catalog(raw: dict[str, Any]) -> None:
    """Raise ``CatalogValidationError`` listing every problem in ``raw``."""
    errors: list[str] = []
    known: dict[str, set[str]] = {}

    for section, id_field in _SECTIONS.items():
        records = raw.get(section)
        if not isinstance(records, list):
            errors.append(f"'{section}' must be a list.")
            known[section] = set()
            continue
        seen: set[str] = set()
        for i, rec in enumerate(records):
            rid = rec.get(id_field) if isinstance(rec, dict) else None
            if not rid:
                errors.append(f"{section}[{i}]: missing '{id_field}'.")
                continue
            if rid in seen:
                errors.append(f"{section}[{i}]: duplicate {id_field} '{rid}'.")
            seen.add(rid)
        known[section] = seen

    components = known["components"]
    for rec in raw.get("suppliers") or []:
        for offer in rec.get("components", []):
            if offer.get("component_id") not in components:
                errors.append(
                    f"supplier '{rec.get('supplier_id')}': unknown component "
                    f"'{offer.get('component_id')}'."
                )
    for rec in raw.get("tractor_models") or []:
        for cid in rec.get("component_ids", []):
            if cid not in components:
                errors.append(f"model '{rec.get('model_id')}': unknown component '{cid}'.")
    for rec in raw.get("locations") or []:
        for sid in rec.get("supplier_ids", []):
            if sid not in known["suppliers"]:
                errors.append(f"location '{rec.get('location_id')}': unknown supplier '{sid}'.")
        for model_id in (rec.get("model_preferences") or {}):
            if model_id not in known["tractor_models"]:
                errors.append(
                    f"location '{rec.get('location_id')}': preference for unknown "
                    f"model '{model_id}'."
                )

    if errors:
        raise CatalogValidationError(errors)


# ── Loading ───────────────────────────────────────────────────────────────────

def parse_catalog(raw: dict[str, Any]) -> Catalog:
    """Validate a decoded catalog document and build a ``Catalog``.

    Raises:
        CatalogValidationError: On reference or id errors.
        pydantic.ValidationError: On field-level errors (e.g. negative prices).
    """
    _validate_catalog(raw)
    return Catalog(
        components={
            r["component_id"]: Component(**r) for r in raw["components"]
        },
        suppliers={r["supplier_id"]: Supplier(**r) for r in raw["suppliers"]},
        tractor_models={
            r["model_id"]: TractorModel(**r) for r in raw["tractor_models"]
        },
        locations={r["location_id"]: Location(**r) for r in raw["locations"]},
    )


def load_catalog_file(path: Path) -> Catalog:
    """Read and parse a catalog JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
    """
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    raw = json.loads(path.read_text(encoding="utf-8"))
    return parse_catalog(raw)


# ── Parquet export ────────────────────────────────────────────────────────────

def export_prices_parquet(catalog: Catalog, output_dir: Path) -> Path:
    """Write the flattened supplier price list to ``supplier_prices.parquet``."""
    rows = [
        (s.supplier_id, offer.component_id, offer.price_per_unit, s.base_lead_time)
        for s in catalog.suppliers.values()
        for offer in s.components
    ]
    table = pa.table(
        {
            "supplier_id":    pa.array([r[0] for r in rows], type=pa.string()),
            "component_id":   pa.array([r[1] for r in rows], type=pa.string()),
            "price_per_unit": pa.array([float(r[2]) for r in rows], type=pa.float64()),
            "base_lead_time": pa.array([float(r[3]) for r in rows], type=pa.float64()),
        },
        schema=_PRICES_PA_SCHEMA,
    )

    output_dir.mkdir(parents=True, exist_ok=True)
    out_path = output_dir / "supplier_prices.parquet"
    pq.write_table(table, out_path, compression="snappy")
    log.info("Exported %d supplier prices to %s", len(rows), out_path)
    return out_path


# ── Top-level entry point ─────────────────────────────────────────────────────

def seed_catalog(
    conn: sqlite3.Connection,
    catalog_path: Path,
    output_dir: Path | None = None,
    dry_run: bool = False,
) -> tuple[Catalog, int]:
    """Load, validate, upsert and optionally export the reference catalog.

    Args:
        conn:         Open SQLite connection with the schema applied.
        catalog_path: Path to the catalog JSON file.
        output_dir:   If given, also write ``supplier_prices.parquet`` there.
        dry_run:      Validate only; write nothing.

    Returns:
        ``(catalog, records_upserted)``; ``records_upserted`` is 0 on dry run.
    """
    catalog = load_catalog_file(catalog_path)
    log.info(
        "Loaded catalog %s: %d components, %d suppliers, %d models, %d locations",
        catalog_path.name,
        len(catalog.components), len(catalog.suppliers),
        len(catalog.tractor_models), len(catalog.locations),
    )
    if dry_run:
        return catalog, 0

    repo = CatalogRepository(conn)
    upserted = repo.upsert_catalog(catalog)
    repo.commit()
    log.info("Upserted %d catalog records.", upserted)

    if output_dir is not None:
        export_prices_parquet(catalog, output_dir)

    return catalog, upserted
