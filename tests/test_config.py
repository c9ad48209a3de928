"""
Tests for supply_planner/config.py.

What we test
------------
- Defaults match config/default.toml.
- RecommendationConfig validators (quarters, service level, window and
  day counts).
- load_config(): missing file, local.toml overrides, env var overrides.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from supply_planner.config import AppConfig, LoggingConfig, RecommendationConfig, load_config

_ENV_VARS = (
    "SUPPLY_PLANNER_DB_PATH",
    "SUPPLY_PLANNER_LOG_LEVEL",
    "SUPPLY_PLANNER_PLANNING_YEAR",
    "SUPPLY_PLANNER_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestRecommendationConfig:
    def test_defaults(self):
        cfg = RecommendationConfig()
        assert cfg.planning_year == 2025
        assert cfg.service_level_z == pytest.approx(1.65)
        assert cfg.target_inventory_days == 30
        assert cfg.quality_window_days == 90
        assert cfg.card_quarters == [1, 2]

    def test_quarters_sorted_and_deduplicated(self):
        assert RecommendationConfig(card_quarters=[2, 1, 2]).card_quarters == [1, 2]

    @pytest.mark.parametrize("quarters", [[0], [1, 5], []])
    def test_invalid_quarters(self, quarters):
        with pytest.raises(ValidationError):
            RecommendationConfig(card_quarters=quarters)

    def test_service_level_positive(self):
        with pytest.raises(ValidationError):
            RecommendationConfig(service_level_z=0)

    def test_quality_window_at_least_one_day(self):
        with pytest.raises(ValidationError, match="quality_window_days"):
            RecommendationConfig(quality_window_days=0)
        assert RecommendationConfig(quality_window_days=1).quality_window_days == 1

    @pytest.mark.parametrize("field", ["default_lead_time_days", "target_inventory_days"])
    def test_negative_days_rejected(self, field):
        with pytest.raises(ValidationError, match=field):
            RecommendationConfig(**{field: -1})
        assert getattr(RecommendationConfig(**{field: 0}), field) == 0

    def test_bad_window_in_toml_rejected(self, tmp_path):
        path = _write(tmp_path / "default.toml", "[recommendation]\nquality_window_days = 0\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")


class TestLoadConfig:
    def test_project_default_file(self):
        assert load_config() == AppConfig()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    def test_local_override(self, tmp_path):
        path = _write(tmp_path / "default.toml", "[recommendation]\nplanning_year = 2025\n")
        _write(tmp_path / "local.toml", "[recommendation]\nplanning_year = 2026\n")
        assert load_config(path).recommendation.planning_year == 2026

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = _write(tmp_path / "default.toml", "[project]\ndebug = false\n")
        monkeypatch.setenv("SUPPLY_PLANNER_DB_PATH", str(tmp_path / "env.db"))
        monkeypatch.setenv("SUPPLY_PLANNER_LOG_LEVEL", "warning")
        monkeypatch.setenv("SUPPLY_PLANNER_PLANNING_YEAR", "2027")
        monkeypatch.setenv("SUPPLY_PLANNER_DEBUG", "true")

        cfg = load_config(path)
        assert cfg.database.db_path == str(tmp_path / "env.db")
        assert cfg.logging.level == "WARNING"
        assert cfg.recommendation.planning_year == 2027
        assert cfg.debug is True

    def test_project_debug_flag(self, tmp_path):
        path = _write(tmp_path / "default.toml", "[project]\ndebug = true\n")
        assert load_config(path).debug is True
