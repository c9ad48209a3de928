"""
SQLite schema DDL for the planning store.

All statements use ``IF NOT EXISTS`` so ``apply_schema()`` can run on every
``init-db`` and at the start of each test.

Tables, in foreign-key order:
  1. components                  (no FKs)
  2. suppliers                   (no FKs)
  3. supplier_components         (→ suppliers, components)  price list
  4. tractor_models              (no FKs)
  5. model_components            (→ tractor_models, components)
  6. locations                   (no FKs)
  7. location_suppliers          (→ locations, suppliers)
  8. location_model_preferences  (→ locations, tractor_models)
  9. demand_forecasts            (→ locations, tractor_models)
  10. supplier_quality_forecasts (→ suppliers)
  11. location_reports           (→ locations)
  12. report_model_demand / report_component_inventory /
      report_deliveries / report_component_failures (→ location_reports)
  13. run_metadata               (no FKs)
  14. quarterly_recommendation_cards (→ locations, components)

Forecast series are kept as raw JSON text (``forecast_data``) and the card's
reasoning strategy as a versioned JSON blob (``strategy``).
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── Reference catalog ─────────────────────────────────────────────────────────

_DDL_COMPONENTS = """
CREATE TABLE IF NOT EXISTS components (
    component_id          TEXT    NOT NULL PRIMARY KEY,
    name                  TEXT    NOT NULL,
    baseline_failure_rate REAL    NOT NULL DEFAULT 0.0,
    created_at            TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SUPPLIERS = """
CREATE TABLE IF NOT EXISTS suppliers (
    supplier_id         TEXT    NOT NULL PRIMARY KEY,
    base_lead_time      REAL    NOT NULL,
    quality_volatility  REAL    NOT NULL DEFAULT 0.0,
    seasonal_strength   REAL    NOT NULL DEFAULT 0.0,
    quality_momentum    REAL    NOT NULL DEFAULT 0.0,
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_SUPPLIER_COMPONENTS = """
CREATE TABLE IF NOT EXISTS supplier_components (
    supplier_id     TEXT    NOT NULL REFERENCES suppliers(supplier_id) ON DELETE CASCADE,
    component_id    TEXT    NOT NULL REFERENCES components(component_id),
    price_per_unit  REAL    NOT NULL,
    position        INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (supplier_id, component_id)
);
"""

_DDL_TRACTOR_MODELS = """
CREATE TABLE IF NOT EXISTS tractor_models (
    model_id              TEXT    NOT NULL PRIMARY KEY,
    market_sensitivity    REAL    NOT NULL DEFAULT 0.0,
    inflation_sensitivity REAL    NOT NULL DEFAULT 0.0,
    created_at            TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_MODEL_COMPONENTS = """
CREATE TABLE IF NOT EXISTS model_components (
    model_id      TEXT    NOT NULL REFERENCES tractor_models(model_id) ON DELETE CASCADE,
    component_id  TEXT    NOT NULL REFERENCES components(component_id),
    position      INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (model_id, component_id)
);
"""

_DDL_LOCATIONS = """
CREATE TABLE IF NOT EXISTS locations (
    location_id   TEXT    NOT NULL PRIMARY KEY,
    created_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_LOCATION_SUPPLIERS = """
CREATE TABLE IF NOT EXISTS location_suppliers (
    location_id   TEXT    NOT NULL REFERENCES locations(location_id) ON DELETE CASCADE,
    supplier_id   TEXT    NOT NULL REFERENCES suppliers(supplier_id),
    position      INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (location_id, supplier_id)
);
"""

_DDL_LOCATION_MODEL_PREFERENCES = """
CREATE TABLE IF NOT EXISTS location_model_preferences (
    location_id   TEXT    NOT NULL REFERENCES locations(location_id) ON DELETE CASCADE,
    model_id      TEXT    NOT NULL REFERENCES tractor_models(model_id),
    preference    REAL    NOT NULL DEFAULT 1.0,
    PRIMARY KEY (location_id, model_id)
);
"""

# ── Forecasts ─────────────────────────────────────────────────────────────────

_DDL_DEMAND_FORECASTS = """
CREATE TABLE IF NOT EXISTS demand_forecasts (
    forecast_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    location_id    TEXT    NOT NULL REFERENCES locations(location_id),
    model_id       TEXT    NOT NULL REFERENCES tractor_models(model_id),
    is_default     INTEGER NOT NULL DEFAULT 1,
    forecast_data  TEXT    NOT NULL,
    created_at     TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_demand_forecasts_pair
    ON demand_forecasts(location_id, model_id, is_default);
"""

_DDL_SUPPLIER_QUALITY_FORECASTS = """
CREATE TABLE IF NOT EXISTS supplier_quality_forecasts (
    forecast_id    INTEGER PRIMARY KEY AUTOINCREMENT,
    supplier_id    TEXT    NOT NULL REFERENCES suppliers(supplier_id),
    forecast_data  TEXT    NOT NULL,
    created_at     TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_quality_forecasts_supplier
    ON supplier_quality_forecasts(supplier_id, forecast_id DESC);
"""

# ── Historical reports ────────────────────────────────────────────────────────

_DDL_LOCATION_REPORTS = """
CREATE TABLE IF NOT EXISTS location_reports (
    report_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    location_id         TEXT    NOT NULL REFERENCES locations(location_id),
    report_date         TEXT    NOT NULL,
    market_trend_index  REAL    NOT NULL DEFAULT 1.0,
    inflation_rate      REAL    NOT NULL DEFAULT 0.0,
    created_at          TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    UNIQUE (location_id, report_date)
);
"""

_DDL_REPORT_DETAILS = """
CREATE TABLE IF NOT EXISTS report_model_demand (
    report_id   INTEGER NOT NULL REFERENCES location_reports(report_id) ON DELETE CASCADE,
    model_id    TEXT    NOT NULL,
    demand      REAL    NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS report_component_inventory (
    report_id     INTEGER NOT NULL REFERENCES location_reports(report_id) ON DELETE CASCADE,
    component_id  TEXT    NOT NULL,
    supplier_id   TEXT    NOT NULL,
    quantity      REAL    NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS report_deliveries (
    report_id           INTEGER NOT NULL REFERENCES location_reports(report_id) ON DELETE CASCADE,
    supplier_id         TEXT    NOT NULL,
    component_id        TEXT    NOT NULL,
    order_size          REAL    NOT NULL DEFAULT 0.0,
    lead_time_variance  REAL    NOT NULL DEFAULT 0.0,
    discount            REAL    NOT NULL DEFAULT 0.0
);

CREATE TABLE IF NOT EXISTS report_component_failures (
    report_id     INTEGER NOT NULL REFERENCES location_reports(report_id) ON DELETE CASCADE,
    supplier_id   TEXT    NOT NULL,
    component_id  TEXT    NOT NULL,
    failure_rate  REAL    NOT NULL DEFAULT 0.0
);

CREATE INDEX IF NOT EXISTS idx_report_inventory_report
    ON report_component_inventory(report_id);
CREATE INDEX IF NOT EXISTS idx_report_deliveries_report
    ON report_deliveries(report_id);
CREATE INDEX IF NOT EXISTS idx_report_failures_report
    ON report_component_failures(report_id);
"""

# ── Pipeline outputs ──────────────────────────────────────────────────────────

_DDL_RUN_METADATA = """
CREATE TABLE IF NOT EXISTS run_metadata (
    run_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    run_slug         TEXT    NOT NULL UNIQUE,
    pipeline_stage   TEXT    NOT NULL,
    status           TEXT    NOT NULL DEFAULT 'started',
    config_snapshot  TEXT    NOT NULL,
    rows_processed   INTEGER NOT NULL DEFAULT 0,
    pairs_skipped    INTEGER NOT NULL DEFAULT 0,
    error_message    TEXT,
    started_at       TEXT    NOT NULL,
    finished_at      TEXT
);
"""

_DDL_QUARTERLY_CARDS = """
CREATE TABLE IF NOT EXISTS quarterly_recommendation_cards (
    card_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    location_id        TEXT    NOT NULL REFERENCES locations(location_id),
    component_id       TEXT    NOT NULL REFERENCES components(component_id),
    quarter            INTEGER NOT NULL CHECK (quarter BETWEEN 1 AND 4),
    year               INTEGER NOT NULL,
    current_units      INTEGER NOT NULL,
    current_cost       REAL    NOT NULL,
    recommended_units  INTEGER NOT NULL,
    recommended_cost   REAL    NOT NULL,
    unit_delta         INTEGER NOT NULL,
    cost_delta         REAL    NOT NULL,
    urgency            TEXT    NOT NULL,
    impact_level       TEXT    NOT NULL,
    priority           TEXT    NOT NULL,
    opportunity_score  REAL    NOT NULL DEFAULT 0.0,
    strategy           TEXT    NOT NULL,
    created_at         TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    updated_at         TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);

CREATE UNIQUE INDEX IF NOT EXISTS uq_cards_pair_quarter
    ON quarterly_recommendation_cards(location_id, component_id, quarter, year);

CREATE INDEX IF NOT EXISTS idx_cards_listing
    ON quarterly_recommendation_cards(year, quarter, priority, opportunity_score DESC);
"""

# ── Ordered list of all DDL to apply ──────────────────────────────────────────

_ALL_DDL: list[str] = [
    _DDL_COMPONENTS,
    _DDL_SUPPLIERS,
    _DDL_SUPPLIER_COMPONENTS,
    _DDL_TRACTOR_MODELS,
    _DDL_MODEL_COMPONENTS,
    _DDL_LOCATIONS,
    _DDL_LOCATION_SUPPLIERS,
    _DDL_LOCATION_MODEL_PREFERENCES,
    _DDL_DEMAND_FORECASTS,
    _DDL_SUPPLIER_QUALITY_FORECASTS,
    _DDL_LOCATION_REPORTS,
    _DDL_REPORT_DETAILS,
    _DDL_RUN_METADATA,
    _DDL_QUARTERLY_CARDS,
]

ALL_TABLE_NAMES = [
    "components",
    "suppliers",
    "supplier_components",
    "tractor_models",
    "model_components",
    "locations",
    "location_suppliers",
    "location_model_preferences",
    "demand_forecasts",
    "supplier_quality_forecasts",
    "location_reports",
    "report_model_demand",
    "report_component_inventory",
    "report_deliveries",
    "report_component_failures",
    "run_metadata",
    "quarterly_recommendation_cards",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that does not exist yet.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return user table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return explicitly created index names, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type='index' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
