"""
Tests for supply_planner/ingestion/importers.py.

What we test
------------
- Forecast documents: points normalised to JSON text, is_default honoured,
  every invalid record reported together.
- Catalog cross-checks reject forecasts and reports naming unknown ids.
- import_forecasts() / import_history() write on success, write nothing on
  dry run, and accept a CSV path for demand forecasts.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from supply_planner.db.repositories.forecast_repo import ForecastRepository
from supply_planner.db.repositories.history_repo import HistoryRepository
from supply_planner.errors import CatalogValidationError
from supply_planner.ingestion.importers import (
    check_history_references,
    import_forecasts,
    import_history,
    parse_forecast_document,
    parse_history_document,
)


# ── Helpers ────────────────────────────────────────────────────────────────────

def _forecast_document() -> dict:
    return {
        "demand_forecasts": [
            {"location_id": "west", "model_id": "TX-100", "is_default": True,
             "forecast_data": [{"date": "2025-01-01", "value": 12.5,
                                "lower": 10.0, "upper": 15.0}]},
            {"location_id": "west", "model_id": "TX-300", "is_default": False,
             "forecast_data": [{"date": "2025-01-01", "value": 3}]},
        ],
        "supplier_quality_forecasts": [
            {"supplier_id": "Elite", "forecast_data": [{"date": "2025-01-01", "value": 0.92}]},
        ],
    }


def _history_document() -> list[dict]:
    return [{
        "location_id": "west",
        "report_date": "2024-12-31",
        "market_trend_index": 1.05,
        "model_demand": [{"model_id": "TX-100", "demand": 120}],
        "component_inventory": [
            {"component_id": "ENGINE-A", "supplier_id": "Atlas", "quantity": 40},
        ],
        "deliveries": [
            {"supplier_id": "Atlas", "component_id": "ENGINE-A", "order_size": 100,
             "lead_time_variance": 1.2},
        ],
        "component_failures": [
            {"supplier_id": "Atlas", "component_id": "ENGINE-A", "failure_rate": 0.02},
        ],
    }]


def _write_json(tmp_path: Path, name: str, payload) -> Path:
    path = tmp_path / name
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


# ── Parsing ───────────────────────────────────────────────────────────────────

class TestParseForecastDocument:
    def test_parses_both_sections(self):
        demand, quality = parse_forecast_document(_forecast_document())
        assert [(f.model_id, f.is_default) for f in demand] == [("TX-100", True), ("TX-300", False)]
        assert json.loads(demand[0].forecast_data) == [
            {"date": "2025-01-01", "value": 12.5, "lower": 10.0, "upper": 15.0},
        ]
        assert json.loads(demand[1].forecast_data) == [{"date": "2025-01-01", "value": 3.0}]
        assert [q.supplier_id for q in quality] == ["Elite"]

    def test_missing_sections_are_empty(self):
        assert parse_forecast_document({}) == ([], [])

    def test_errors_collected(self):
        doc = _forecast_document()
        del doc["demand_forecasts"][0]["model_id"]
        doc["supplier_quality_forecasts"][0]["forecast_data"] = "not a list"
        with pytest.raises(ValueError) as exc_info:
            parse_forecast_document(doc, source="forecasts.json")
        message = str(exc_info.value)
        assert message.startswith("2 record(s) failed validation in forecasts.json")
        assert "demand_forecasts[0]" in message
        assert "supplier_quality_forecasts[0]" in message


class TestParseHistoryDocument:
    def test_parses_reports(self):
        (report,) = parse_history_document(_history_document())
        assert report.location_id == "west"
        assert report.inventory_for("ENGINE-A") == 40

    def test_requires_list(self):
        with pytest.raises(ValueError, match="JSON list"):
            parse_history_document({"location_id": "west"})

    def test_invalid_report(self):
        doc = _history_document()
        doc[0]["report_date"] = "yesterday"
        with pytest.raises(ValueError, match=r"report\[0\]"):
            parse_history_document(doc)


# ── Reference checks ──────────────────────────────────────────────────────────

class TestReferenceChecks:
    def test_unknown_history_ids(self, sample_catalog):
        doc = _history_document()
        doc[0]["location_id"] = "east"
        doc[0]["component_inventory"][0]["supplier_id"] = "Nobody"
        reports = parse_history_document(doc)
        with pytest.raises(CatalogValidationError) as exc_info:
            check_history_references(sample_catalog, reports)
        assert len(exc_info.value.errors) == 2

    def test_unknown_forecast_ids(self, in_memory_db, sample_catalog, tmp_path):
        doc = _forecast_document()
        doc["demand_forecasts"][0]["location_id"] = "east"
        doc["supplier_quality_forecasts"][0]["supplier_id"] = "Nobody"
        path = _write_json(tmp_path, "forecasts.json", doc)
        with pytest.raises(CatalogValidationError) as exc_info:
            import_forecasts(in_memory_db, path, sample_catalog)
        assert any("east" in e for e in exc_info.value.errors)
        assert any("Nobody" in e for e in exc_info.value.errors)


# ── Import entry points ───────────────────────────────────────────────────────

class TestImportForecasts:
    def test_writes_forecasts(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "forecasts.json", _forecast_document())
        assert import_forecasts(seeded_db, path, sample_catalog) == (2, 1)

        repo = ForecastRepository(seeded_db)
        assert repo.count_forecasts() == (2, 1)
        assert repo.get_demand_forecast("west", "TX-300") is None
        assert repo.get_demand_forecast("west", "TX-300", default_only=False) is not None

    def test_dry_run_writes_nothing(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "forecasts.json", _forecast_document())
        assert import_forecasts(seeded_db, path, sample_catalog, dry_run=True) == (2, 1)
        assert ForecastRepository(seeded_db).count_forecasts() == (0, 0)

    def test_csv_path(self, seeded_db, sample_catalog, tmp_path):
        path = tmp_path / "demand.csv"
        path.write_text(
            "location_id,model_id,date,value\n"
            "west,TX-100,2025-01-01,5\n"
            "west,TX-100,2025-01-02,6\n",
            encoding="utf-8",
        )
        assert import_forecasts(seeded_db, path, sample_catalog) == (1, 0)

    def test_document_must_be_object(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "forecasts.json", [])
        with pytest.raises(ValueError, match="JSON object"):
            import_forecasts(seeded_db, path, sample_catalog)

    def test_missing_file(self, seeded_db, sample_catalog, tmp_path):
        with pytest.raises(FileNotFoundError):
            import_forecasts(seeded_db, tmp_path / "absent.json", sample_catalog)


class TestImportHistory:
    def test_writes_reports(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "history.json", _history_document())
        assert import_history(seeded_db, path, sample_catalog) == 1

        report = HistoryRepository(seeded_db).get_latest_report("west")
        assert report.market_trend_index == pytest.approx(1.05)
        assert report.deliveries[0].lead_time_variance == pytest.approx(1.2)

    def test_reimport_is_idempotent(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "history.json", _history_document())
        import_history(seeded_db, path, sample_catalog)
        import_history(seeded_db, path, sample_catalog)
        repo = HistoryRepository(seeded_db)
        assert repo.count_rows("location_reports") == 1
        assert repo.count_rows("report_component_inventory") == 1

    def test_dry_run_writes_nothing(self, seeded_db, sample_catalog, tmp_path):
        path = _write_json(tmp_path, "history.json", _history_document())
        assert import_history(seeded_db, path, sample_catalog, dry_run=True) == 1
        assert HistoryRepository(seeded_db).get_reports() == []
