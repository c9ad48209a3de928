"""
Shared pytest fixtures for the Supply Planner test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``sample_catalog``: A small reference catalog (3 components, 3 suppliers,
    2 tractor models, 2 locations).
  - ``seeded_db`` / ``populated_db``: ``in_memory_db`` with the catalog, and
    additionally with forecasts and one history report for ``heartland``.
  - Factories for demand forecasts, quality forecasts and location reports.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import date, timedelta
from typing import Callable, Generator

import pytest

from supply_planner.catalog.seed_loader import parse_catalog
from supply_planner.config import RecommendationConfig
from supply_planner.db.repositories.catalog_repo import CatalogRepository
from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.db.schema import apply_schema
from supply_planner.models.catalog import Catalog
from supply_planner.models.demand import DemandForecast, SupplierQualityForecast
from supply_planner.models.history import LocationReport


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Schema is applied idempotently.
    Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Point helpers ─────────────────────────────────────────────────────────────

def daily_points(start: date, days: int, value: float) -> list[dict]:
    """``days`` consecutive points of constant ``value`` from ``start``."""
    return [
        {"date": (start + timedelta(days=i)).isoformat(), "value": value}
        for i in range(days)
    ]


def half_year_points(value: float, year: int = 2025) -> list[dict]:
    """One point per day for Q1 and Q2 of ``year``."""
    start = date(year, 1, 1)
    return daily_points(start, (date(year, 7, 1) - start).days, value)


# ── Sample catalog ────────────────────────────────────────────────────────────

def sample_catalog_document() -> dict:
    return {
        "components": [
            {"component_id": "ENGINE-A", "name": "Basic Engine", "baseline_failure_rate": 0.03},
            {"component_id": "CHASSIS-BASIC", "name": "Basic Chassis", "baseline_failure_rate": 0.02},
            {"component_id": "HYDRAULICS-SMALL", "name": "Small Hydraulics",
             "baseline_failure_rate": 0.04},
        ],
        "suppliers": [
            {
                "supplier_id": "Elite", "base_lead_time": 5, "seasonal_strength": 0.5,
                "components": [
                    {"component_id": "ENGINE-A", "price_per_unit": 1100},
                    {"component_id": "CHASSIS-BASIC", "price_per_unit": 950},
                ],
            },
            {
                "supplier_id": "Atlas", "base_lead_time": 8, "seasonal_strength": 0.7,
                "components": [
                    {"component_id": "ENGINE-A", "price_per_unit": 850},
                    {"component_id": "CHASSIS-BASIC", "price_per_unit": 680},
                    {"component_id": "HYDRAULICS-SMALL", "price_per_unit": 550},
                ],
            },
            {
                "supplier_id": "Bolt", "base_lead_time": 10, "seasonal_strength": 0.9,
                "components": [
                    {"component_id": "ENGINE-A", "price_per_unit": 880},
                    {"component_id": "CHASSIS-BASIC", "price_per_unit": 700},
                ],
            },
        ],
        "tractor_models": [
            {"model_id": "TX-100", "component_ids": ["ENGINE-A", "CHASSIS-BASIC"]},
            {"model_id": "TX-300", "component_ids": ["ENGINE-A", "HYDRAULICS-SMALL"]},
        ],
        "locations": [
            {
                "location_id": "heartland",
                "supplier_ids": ["Bolt", "Atlas", "Elite"],
                "model_preferences": {"TX-100": 1.2, "TX-300": 1.0},
            },
            {
                "location_id": "west",
                "supplier_ids": ["Atlas", "Elite"],
                "model_preferences": {"TX-100": 0.15},
            },
        ],
    }


@pytest.fixture
def catalog_document() -> dict:
    """A fresh copy of the sample catalog document (safe to mutate)."""
    return sample_catalog_document()


@pytest.fixture
def sample_catalog() -> Catalog:
    return parse_catalog(sample_catalog_document())


@pytest.fixture
def rec_config() -> RecommendationConfig:
    return RecommendationConfig()


# ── Factories ─────────────────────────────────────────────────────────────────

@pytest.fixture
def make_demand_forecast() -> Callable[..., DemandForecast]:
    def _make(
        location_id: str,
        model_id: str,
        points: list[dict],
        is_default: bool = True,
    ) -> DemandForecast:
        return DemandForecast(
            location_id=location_id,
            model_id=model_id,
            is_default=is_default,
            forecast_data=json.dumps(points),
        )
    return _make


@pytest.fixture
def make_quality_forecast() -> Callable[..., SupplierQualityForecast]:
    def _make(supplier_id: str, values: list[float]) -> SupplierQualityForecast:
        return SupplierQualityForecast(
            supplier_id=supplier_id,
            forecast_data=json.dumps([
                {"date": (date(2025, 1, 1) + timedelta(days=i)).isoformat(), "value": v}
                for i, v in enumerate(values)
            ]),
        )
    return _make


@pytest.fixture
def make_report() -> Callable[..., LocationReport]:
    def _make(
        location_id: str = "heartland",
        report_date: date = date(2024, 12, 31),
        inventory: list[tuple[str, str, float]] | None = None,
        deliveries: list[tuple[str, str, float]] | None = None,
        failures: list[tuple[str, str, float]] | None = None,
    ) -> LocationReport:
        """Inventory rows are ``(component, supplier, qty)``; deliveries
        ``(supplier, component, lead_time_variance)``; failures
        ``(supplier, component, rate)``."""
        return LocationReport(
            location_id=location_id,
            report_date=report_date,
            component_inventory=[
                {"component_id": c, "supplier_id": s, "quantity": q}
                for c, s, q in (inventory or [])
            ],
            deliveries=[
                {"supplier_id": s, "component_id": c, "order_size": 100,
                 "lead_time_variance": v}
                for s, c, v in (deliveries or [])
            ],
            component_failures=[
                {"supplier_id": s, "component_id": c, "failure_rate": r}
                for s, c, r in (failures or [])
            ],
        )
    return _make


# ── Seeded databases ──────────────────────────────────────────────────────────

@pytest.fixture
def seeded_db(in_memory_db: sqlite3.Connection, sample_catalog: Catalog) -> sqlite3.Connection:
    """``in_memory_db`` with the sample catalog stored."""
    CatalogRepository(in_memory_db).upsert_catalog(sample_catalog)
    in_memory_db.commit()
    return in_memory_db


@pytest.fixture
def populated_db(
    seeded_db: sqlite3.Connection,
    make_demand_forecast,
    make_quality_forecast,
    make_report,
) -> sqlite3.Connection:
    """Forecasts for heartland (both models) and all suppliers, plus one report.

    ``west`` has no demand forecasts, so every west pair is skipped by a
    recommendation run.
    """
    forecasts = ForecastRepository(seeded_db)
    forecasts.insert_demand_forecast(
        make_demand_forecast("heartland", "TX-100", half_year_points(10.0))
    )
    forecasts.insert_demand_forecast(
        make_demand_forecast("heartland", "TX-300", half_year_points(4.0))
    )
    forecasts.insert_quality_forecast(make_quality_forecast("Elite", [0.95] * 90))
    forecasts.insert_quality_forecast(make_quality_forecast("Atlas", [0.85] * 90))
    forecasts.insert_quality_forecast(make_quality_forecast("Bolt", [0.70] * 90))

    HistoryRepository(seeded_db).upsert_report(make_report(
        inventory=[
            ("ENGINE-A", "Elite", 300), ("ENGINE-A", "Atlas", 100),
            ("CHASSIS-BASIC", "Atlas", 200),
        ],
        deliveries=[("Elite", "ENGINE-A", 0.5), ("Atlas", "ENGINE-A", 1.5)],
        failures=[("Elite", "ENGINE-A", 0.01), ("Atlas", "ENGINE-A", 0.04)],
    ))
    seeded_db.commit()
    return seeded_db
