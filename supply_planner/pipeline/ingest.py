"""
Ingestion stages: reference catalog, forecasts and history → SQLite.

Upstream of the recommendation run::

    seed-catalog -> import-forecasts -> import-history -> run-recommendations

``SeedCatalogStage`` must run first: forecast and history imports validate
every id they reference against the stored catalog and fail with
``CatalogValidationError`` otherwise.
"""

from __future__ import annotations

import logging
from pathlib import Path

from supply_planner.models.meta import RunMetadata
from supply_planner.pipeline.base import PipelineStage

logger = logging.getLogger(__name__)


class SeedCatalogStage(PipelineStage):
    """Upsert the reference catalog and export the supplier price list."""

    stage_name = "seed_catalog"

    def _execute(
        self,
        run: RunMetadata,
        catalog_path: Path | None = None,
        dry_run: bool = False,
        **kwargs,
    ) -> int:
        from supply_planner.catalog.seed_loader import seed_catalog

        path = Path(catalog_path or self.config.data.catalog_seed_file)
        with self._connect() as conn:
            _, upserted = seed_catalog(
                conn,
                path,
                output_dir=None if dry_run else Path(self.config.data.processed_dir) / "catalog",
                dry_run=dry_run,
            )
        return upserted


class ImportForecastsStage(PipelineStage):
    """Import demand and supplier-quality forecasts (JSON document or demand CSV)."""

    stage_name = "import_forecasts"

    def _execute(
        self,
        run: RunMetadata,
        path: Path,
        dry_run: bool = False,
        **kwargs,
    ) -> int:
        from supply_planner.db.repositories.catalog_repo import CatalogRepository
        from supply_planner.ingestion.importers import import_forecasts

        with self._connect() as conn:
            catalog = CatalogRepository(conn).load_catalog()
            n_demand, n_quality = import_forecasts(conn, Path(path), catalog, dry_run=dry_run)
        logger.info("Forecast import: %d demand, %d quality.", n_demand, n_quality)
        return n_demand + n_quality


class ImportHistoryStage(PipelineStage):
    """Import historical location reports."""

    stage_name = "import_history"

    def _execute(
        self,
        run: RunMetadata,
        path: Path,
        dry_run: bool = False,
        **kwargs,
    ) -> int:
        from supply_planner.db.repositories.catalog_repo import CatalogRepository
        from supply_planner.ingestion.importers import import_history

        with self._connect() as conn:
            catalog = CatalogRepository(conn).load_catalog()
            return import_history(conn, Path(path), catalog, dry_run=dry_run)
