"""
Repository for historical location reports.

A report is one ``location_reports`` row plus four child tables (model
demand, component inventory, deliveries, failures). Reports are unique per
(location, report_date); re-importing a report replaces its children.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Optional

from supply_planner.db.repositories.base import BaseRepository
from supply_planner.models.history import (
    DeliveryRecord,
    FailureRecord,
    InventoryRecord,
    LocationReport,
    ModelDemandRecord,
)

logger = logging.getLogger(__name__)

_CHILD_TABLES = (
    "report_model_demand",
    "report_component_inventory",
    "report_deliveries",
    "report_component_failures",
)


class HistoryRepository(BaseRepository):
    """Read/write access to ``location_reports`` and its detail tables."""

    def upsert_report(self, report: LocationReport) -> int:
        """Insert or replace a report and return its ``report_id``."""
        self.execute(
            """
            INSERT INTO location_reports (
                location_id, report_date, market_trend_index, inflation_rate
            ) VALUES (?, ?, ?, ?)
            ON CONFLICT(location_id, report_date) DO UPDATE SET
                market_trend_index = excluded.market_trend_index,
                inflation_rate     = excluded.inflation_rate;
            """,
            (
                report.location_id,
                report.report_date.isoformat(),
                report.market_trend_index,
                report.inflation_rate,
            ),
        )
        report_id = int(self.fetchvalue(
            "SELECT report_id FROM location_reports WHERE location_id = ? AND report_date = ?;",
            (report.location_id, report.report_date.isoformat()),
        ))

        for table in _CHILD_TABLES:
            self.execute(f"DELETE FROM {table} WHERE report_id = ?;", (report_id,))

        self.executemany(
            "INSERT INTO report_model_demand (report_id, model_id, demand) VALUES (?, ?, ?);",
            [(report_id, r.model_id, r.demand) for r in report.model_demand],
        )
        self.executemany(
            """
            INSERT INTO report_component_inventory (report_id, component_id, supplier_id, quantity)
            VALUES (?, ?, ?, ?);
            """,
            [
                (report_id, r.component_id, r.supplier_id, r.quantity)
                for r in report.component_inventory
            ],
        )
        self.executemany(
            """
            INSERT INTO report_deliveries (
                report_id, supplier_id, component_id, order_size, lead_time_variance, discount
            ) VALUES (?, ?, ?, ?, ?, ?);
            """,
            [
                (report_id, r.supplier_id, r.component_id, r.order_size,
                 r.lead_time_variance, r.discount)
                for r in report.deliveries
            ],
        )
        self.executemany(
            """
            INSERT INTO report_component_failures (report_id, supplier_id, component_id, failure_rate)
            VALUES (?, ?, ?, ?);
            """,
            [
                (report_id, r.supplier_id, r.component_id, r.failure_rate)
                for r in report.component_failures
            ],
        )
        return report_id

    def get_reports(self, location_id: Optional[str] = None) -> list[LocationReport]:
        """All reports, oldest first, optionally for one location."""
        if location_id:
            rows = self.fetchall(
                "SELECT * FROM location_reports WHERE location_id = ? ORDER BY report_date;",
                (location_id,),
            )
        else:
            rows = self.fetchall(
                "SELECT * FROM location_reports ORDER BY location_id, report_date;"
            )
        return [self._hydrate(r) for r in rows]

    def get_latest_report(self, location_id: str) -> Optional[LocationReport]:
        row = self.fetchone(
            """
            SELECT * FROM location_reports
            WHERE location_id = ?
            ORDER BY report_date DESC LIMIT 1;
            """,
            (location_id,),
        )
        return self._hydrate(row) if row else None

    def _hydrate(self, row: sqlite3.Row) -> LocationReport:
        report_id = row["report_id"]
        return LocationReport(
            report_id=report_id,
            location_id=row["location_id"],
            report_date=date.fromisoformat(row["report_date"]),
            market_trend_index=row["market_trend_index"],
            inflation_rate=row["inflation_rate"],
            model_demand=[
                ModelDemandRecord(model_id=r["model_id"], demand=r["demand"])
                for r in self.fetchall(
                    "SELECT * FROM report_model_demand WHERE report_id = ? ORDER BY rowid;",
                    (report_id,),
                )
            ],
            component_inventory=[
                InventoryRecord(
                    component_id=r["component_id"],
                    supplier_id=r["supplier_id"],
                    quantity=r["quantity"],
                )
                for r in self.fetchall(
                    "SELECT * FROM report_component_inventory WHERE report_id = ? ORDER BY rowid;",
                    (report_id,),
                )
            ],
            deliveries=[
                DeliveryRecord(
                    supplier_id=r["supplier_id"],
                    component_id=r["component_id"],
                    order_size=r["order_size"],
                    lead_time_variance=r["lead_time_variance"],
                    discount=r["discount"],
                )
                for r in self.fetchall(
                    "SELECT * FROM report_deliveries WHERE report_id = ? ORDER BY rowid;",
                    (report_id,),
                )
            ],
            component_failures=[
                FailureRecord(
                    supplier_id=r["supplier_id"],
                    component_id=r["component_id"],
                    failure_rate=r["failure_rate"],
                )
                for r in self.fetchall(
                    "SELECT * FROM report_component_failures WHERE report_id = ? ORDER BY rowid;",
                    (report_id,),
                )
            ],
        )
