"""
Read-only query layer over the planning database.

Every function takes an open connection and returns validated models; none
of them write. CLI commands wrap these in ``get_connection()`` and hand the
results to ``reporting.formatters``.
"""

from __future__ import annotations

import sqlite3
from typing import Optional

from supply_planner.db.repositories.card_repo import CardRepository
from supply_planner.db.repositories.catalog_repo import CatalogRepository
from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.models.card import QuarterlyCard
from supply_planner.models.demand import DemandForecast
from supply_planner.models.history import LocationReport
from supply_planner.models.strategy import ReasonedAllocationStrategy


def fetch_all_cards(
    conn: sqlite3.Connection,
    location_id: Optional[str] = None,
    quarter: Optional[int] = None,
    year: Optional[int] = None,
) -> list[QuarterlyCard]:
    """All stored cards, optionally filtered, in storage order."""
    return CardRepository(conn).fetch_all(location_id=location_id, quarter=quarter, year=year)


def fetch_all_allocation_strategies(
    conn: sqlite3.Connection,
    location_id: Optional[str] = None,
) -> list[ReasonedAllocationStrategy]:
    """The strategy blob of every stored card (one per card, quarter-filtered)."""
    return [card.strategy for card in fetch_all_cards(conn, location_id=location_id)]


def fetch_demand_forecast(
    conn: sqlite3.Connection,
    location_id: str,
    model_id: str,
) -> Optional[DemandForecast]:
    """Newest default demand forecast for (location, model), or ``None``."""
    return ForecastRepository(conn).get_demand_forecast(location_id, model_id)


def fetch_location_list(conn: sqlite3.Connection) -> list[str]:
    return CatalogRepository(conn).list_location_ids()


def fetch_historical_reports(
    conn: sqlite3.Connection,
    location_id: str,
) -> list[LocationReport]:
    """Reports for one location, oldest first."""
    return HistoryRepository(conn).get_reports(location_id=location_id)
