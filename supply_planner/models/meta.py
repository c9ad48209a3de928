"""
Pipeline audit record.

Each stage run writes one ``RunMetadata`` row. ``config_snapshot`` holds the
whole ``AppConfig`` so a stored card set can be tied back to the planning
constants that produced it.

Unlike the domain models this one stays mutable: the stage fills in the
outcome fields as it finishes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel

PipelineStageName = Literal["seed_catalog", "import_forecasts", "import_history", "recommend"]
RunStatus = Literal["started", "success", "failed", "skipped"]


class RunMetadata(BaseModel):
    """One execution of a pipeline stage.

    ``run_id`` is ``None`` until the row is inserted. ``pairs_skipped``
    counts (location, component) pairs dropped after a missing-reference
    error; ``error_message`` is set only for failed runs.
    """

    run_id: Optional[int] = None
    run_slug: str
    pipeline_stage: PipelineStageName
    status: RunStatus = "started"
    config_snapshot: dict[str, Any]
    rows_processed: int = 0
    pairs_skipped: int = 0
    error_message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None
