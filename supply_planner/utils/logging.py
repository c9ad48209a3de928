"""
Root logger setup for the supply planner CLI.

``configure_logging(config)`` runs once per CLI command, before any pipeline
work. Everything else only calls ``logging.getLogger(__name__)``.

With ``json_format = true`` in ``[logging]`` each record becomes one JSON
line::

    {"ts": "2025-01-15T09:00:00Z", "level": "WARNING", "logger": "...",
     "msg": "...", "location_id": "west", "component_id": "ENGINE-A"}

Keys passed through ``extra=`` (the recommendation runner tags per-pair
skips with ``location_id`` / ``component_id``) appear at the top level.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from supply_planner.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

_STANDARD_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``, extras."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line: dict = {
            "ts": stamp.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        line.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_KEYS and not key.startswith("_")
        )
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Install stdout (and optionally file) handlers on the root logger.

    Args:
        config: ``AppConfig.logging``. A blank ``log_file`` disables the file
            handler; otherwise its parent directory is created.
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = (
        _JsonFormatter()
        if config.json_format
        else logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    )

    handlers = [_handler(logging.StreamHandler(sys.stdout), level, formatter)]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            _handler(logging.FileHandler(path, encoding="utf-8"), level, formatter)
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.getLogger("pyarrow").setLevel(logging.WARNING)
