"""
Optional structured trace output for pipeline computations.

Every computation accepts a ``TraceCollector`` and reports labelled payloads
(scored suppliers, allocations after each rule, impacts, …) to it:

  - ``NullTraceCollector``      — production default; discards everything.
  - ``CapturingTraceCollector`` — keeps records in memory for tests and for
                                  ``run-recommendations --trace-file``.

Payloads may be pydantic models, dataclasses or plain JSON-compatible values;
``dump_json()`` converts them on write.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TraceCollector(Protocol):
    def record(self, label: str, payload: Any) -> None: ...


class NullTraceCollector:
    """Trace sink that drops every record."""

    def record(self, label: str, payload: Any) -> None:
        return None


@dataclass
class TraceRecord:
    label: str
    payload: Any


class CapturingTraceCollector:
    """Trace sink that keeps every record in order.

    Attributes:
        records: All ``TraceRecord`` entries captured so far.
    """

    def __init__(self) -> None:
        self.records: list[TraceRecord] = []

    def record(self, label: str, payload: Any) -> None:
        self.records.append(TraceRecord(label=label, payload=payload))

    def labels(self) -> list[str]:
        return [r.label for r in self.records]

    def payloads(self, label: str) -> list[Any]:
        """Payloads recorded under ``label``, in order."""
        return [r.payload for r in self.records if r.label == label]

    def dump_json(self, path: Path) -> Path:
        """Write all records to ``path`` as a JSON list of ``{label, payload}``."""
        path.parent.mkdir(parents=True, exist_ok=True)
        data = [
            {"label": r.label, "payload": _to_jsonable(r.payload)} for r in self.records
        ]
        path.write_text(json.dumps(data, indent=2, default=str))
        logger.info("Trace written: %s (%d records)", path, len(self.records))
        return path


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _to_jsonable(dataclasses.asdict(value))
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value
