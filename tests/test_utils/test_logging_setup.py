"""Tests for supply_planner/utils/logging.py."""

from __future__ import annotations

import json
import logging

import pytest

from supply_planner.config import LoggingConfig
from supply_planner.utils.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestConfigureLogging:
    def test_level_and_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "planner.log"
        configure_logging(LoggingConfig(level="WARNING", log_file=str(log_file)))

        logging.getLogger("supply_planner.test").warning("low stock at %s", "heartland")
        logging.getLogger("supply_planner.test").info("not written")
        _flush()

        text = log_file.read_text(encoding="utf-8")
        assert "[WARNING] supply_planner.test: low stock at heartland" in text
        assert "not written" not in text

    def test_no_file_handler_when_blank(self):
        configure_logging(LoggingConfig(log_file=""))
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_json_lines_carry_extra_keys(self, tmp_path):
        log_file = tmp_path / "planner.jsonl"
        configure_logging(LoggingConfig(log_file=str(log_file), json_format=True))

        logging.getLogger("supply_planner.pipeline").warning(
            "Skipping pair", extra={"location_id": "west", "component_id": "ENGINE-A"},
        )
        _flush()

        payload = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "supply_planner.pipeline"
        assert payload["msg"] == "Skipping pair"
        assert (payload["location_id"], payload["component_id"]) == ("west", "ENGINE-A")
