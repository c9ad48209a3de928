"""
Tests for supply_planner/ingestion/forecast_csv.py.

What we test
------------
- Rows are grouped into one DemandForecast per (location, model), in file order.
- Optional columns: lower/upper kept when present, is_default defaults to True.
- Required column and per-row validation errors are collected and raised once.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from supply_planner.ingestion.forecast_csv import parse_forecast_csv


# ── Helpers ────────────────────────────────────────────────────────────────────

def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "forecast.csv"
    path.write_text(text, encoding="utf-8")
    return path


# ── Tests ─────────────────────────────────────────────────────────────────────

class TestParseForecastCsv:
    def test_groups_rows_by_pair(self, tmp_path):
        path = _write(tmp_path, (
            "location_id,model_id,date,value,lower,upper\n"
            "west,TX-100,2025-01-01,12.5,10,15\n"
            "west,TX-100,2025-01-02,13,,\n"
            "heartland,TX-300,2025-01-01,4,,\n"
        ))
        forecasts = parse_forecast_csv(path)

        assert [(f.location_id, f.model_id) for f in forecasts] == [
            ("west", "TX-100"), ("heartland", "TX-300"),
        ]
        points = json.loads(forecasts[0].forecast_data)
        assert points == [
            {"date": "2025-01-01", "value": 12.5, "lower": 10.0, "upper": 15.0},
            {"date": "2025-01-02", "value": 13.0},
        ]
        assert all(f.is_default for f in forecasts)

    def test_timestamp_dates_truncated(self, tmp_path):
        path = _write(tmp_path, (
            "location_id,model_id,date,value\n"
            "west,TX-100,2025-01-01T00:00:00Z,1\n"
        ))
        (forecast,) = parse_forecast_csv(path)
        assert json.loads(forecast.forecast_data)[0]["date"] == "2025-01-01"

    @pytest.mark.parametrize("flag,expected", [
        ("false", False), ("0", False), ("no", False), ("true", True), ("", True),
    ])
    def test_is_default_column(self, tmp_path, flag, expected):
        path = _write(tmp_path, (
            "location_id,model_id,date,value,is_default\n"
            f"west,TX-100,2025-01-01,1,{flag}\n"
        ))
        assert parse_forecast_csv(path)[0].is_default is expected

    def test_header_only(self, tmp_path):
        path = _write(tmp_path, "location_id,model_id,date,value\n")
        assert parse_forecast_csv(path) == []

    def test_missing_columns(self, tmp_path):
        path = _write(tmp_path, "location_id,date,value\nwest,2025-01-01,1\n")
        with pytest.raises(ValueError, match="missing required columns"):
            parse_forecast_csv(path)

    def test_empty_file(self, tmp_path):
        with pytest.raises(ValueError, match="no header row"):
            parse_forecast_csv(_write(tmp_path, ""))

    def test_row_errors_collected(self, tmp_path):
        path = _write(tmp_path, (
            "location_id,model_id,date,value,lower,upper\n"
            "west,TX-100,not-a-date,1,,\n"
            "west,TX-100,2025-01-02,abc,,\n"
            "west,TX-100,2025-01-03,1,5,2\n"
            "west,TX-100,2025-01-04,1,,\n"
        ))
        with pytest.raises(ValueError) as exc_info:
            parse_forecast_csv(path)
        message = str(exc_info.value)
        assert message.startswith("3 row(s) failed validation")
        assert "Row 2" in message and "Row 3" in message and "Row 4" in message

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_forecast_csv(tmp_path / "absent.csv")
