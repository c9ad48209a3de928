"""
Pipeline stage contract.

A stage is built with an ``AppConfig`` and driven through ``run(**kwargs)``.
``run`` opens a ``RunMetadata`` audit record, delegates to ``_execute``,
closes the record as ``success`` or ``failed`` and writes it to
``run_metadata``. Exceptions from ``_execute`` are re-raised after the
failed record is written; cards committed by earlier runs are untouched.

Usage::

    class MyStage(PipelineStage):
        stage_name = "recommend"

        def _execute(self, run: RunMetadata, **kwargs) -> int:
            return 42

    run = MyStage(config=app_config).run(clear_existing=True)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from uuid import uuid4

from supply_planner.config import AppConfig
from supply_planner.models.meta import RunMetadata
from supply_planner.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


class PipelineStage(ABC):
    """Base class for ingest and recommendation stages.

    Attributes:
        stage_name: One of the ``RunMetadata.pipeline_stage`` values.
        config: Application configuration for this run.
        db_path: SQLite file, ``config.database.db_path`` unless overridden.
    """

    stage_name: str

    def __init__(self, config: AppConfig, db_path: str | None = None) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

    def run(self, **kwargs) -> RunMetadata:
        """Execute the stage and return its closed ``RunMetadata`` record.

        Raises:
            Exception: Whatever ``_execute()`` raised, after the run has been
                recorded with ``status='failed'``.
        """
        run = self._open_run()
        try:
            rows = self._execute(run=run, **kwargs)
        except Exception as exc:
            self._close_run(run, "failed", error=str(exc))
            logger.error(
                "Stage [%s] FAILED: %s | run_slug=%s",
                self.stage_name, exc, run.run_slug,
            )
            raise

        self._close_run(run, "success", rows=rows)
        logger.info(
            "Stage [%s] completed | rows=%d | skipped=%d | run_slug=%s",
            self.stage_name, rows, run.pairs_skipped, run.run_slug,
        )
        return run

    @abstractmethod
    def _execute(self, run: RunMetadata, **kwargs) -> int:
        """Do the stage's work and return the number of records written.

        ``run`` is the open audit record; stages may bump
        ``run.pairs_skipped`` while they work.
        """
        ...

    def _connect(self):
        from supply_planner.db.connection import get_connection

        return get_connection(
            self.db_path,
            wal_mode=self.config.database.wal_mode,
            busy_timeout_ms=self.config.database.busy_timeout_ms,
        )

    def _open_run(self) -> RunMetadata:
        run = RunMetadata(
            run_slug=str(uuid4()),
            pipeline_stage=self.stage_name,
            config_snapshot=self.config.model_dump(),
            started_at=utcnow(),
        )
        logger.info("Stage [%s] starting | run_slug=%s", self.stage_name, run.run_slug)
        return run

    def _close_run(
        self,
        run: RunMetadata,
        status: str,
        rows: int = 0,
        error: str | None = None,
    ) -> None:
        run.status = status
        run.rows_processed = rows
        run.error_message = error
        run.finished_at = utcnow()
        self._persist_run(run)

    def _persist_run(self, run: RunMetadata) -> None:
        """Write the closed run record.

        A database failure here is logged and dropped so it never replaces
        the stage's own exception.
        """
        from supply_planner.db.repositories.run_repo import RunMetadataRepository

        try:
            with self._connect() as conn:
                repo = RunMetadataRepository(conn)
                if run.run_id is None:
                    run.run_id = repo.insert_run(run)
                else:
                    repo.update_run(run)
        except Exception as exc:
            logger.error(
                "Failed to persist RunMetadata for run_slug=%s: %s",
                run.run_slug, exc,
            )
