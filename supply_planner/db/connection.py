"""
SQLite connection management for the planning store.

``get_connection()`` is the only way the pipeline, importers and query layer
open the database. Every connection it yields:
  - enforces foreign keys (catalog rows must exist before forecasts,
    reports or cards reference them);
  - runs in WAL mode unless disabled, so ``list-cards`` can read while a
    recommendation run is writing;
  - waits ``busy_timeout_ms`` on a locked file before failing;
  - returns ``sqlite3.Row`` rows;
  - commits on clean exit and rolls back on any exception, so a failed run
    never leaves a half-written card batch behind.

Usage::

    from supply_planner.db.connection import get_connection

    with get_connection(config.database.db_path) as conn:
        CardRepository(conn).fetch_all()
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured connection to the planning database.

    The database file and its parent directory are created on first use.

    Args:
        db_path: SQLite file path, or ``":memory:"`` for a throwaway database.
        wal_mode: Enable WAL journaling (ignored for in-memory databases).
        busy_timeout_ms: Lock wait before ``sqlite3.OperationalError``.

    Yields:
        An open ``sqlite3.Connection``.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    logger.debug("Opening database %s", db_path)
    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and db_path != MEMORY_DB:
            conn.execute("PRAGMA journal_mode = WAL;")

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
