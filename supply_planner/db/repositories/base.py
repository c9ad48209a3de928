"""
Shared SQL helpers for the planning-store repositories.

Each repository wraps one group of tables and is constructed with an open
``sqlite3.Connection`` (usually from ``get_connection()``). Repositories:
  - hold no connection state of their own and never commit, except the
    explicit ``commit()`` helper used by batch writers;
  - take and return pydantic models, never raw dicts;
  - write SQL by hand; there is no ORM.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional

logger = logging.getLogger(__name__)

Params = tuple[Any, ...] | dict[str, Any]


class BaseRepository:
    """Execution helpers shared by every repository.

    Attributes:
        conn: The active ``sqlite3.Connection``.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("SQL: %s | params: %s", sql.strip(), params)
        return self.conn.execute(sql, params)

    def executemany(self, sql: str, params_list: list[Params]) -> sqlite3.Cursor:
        logger.debug("SQL (many): %s | count: %d", sql.strip(), len(params_list))
        return self.conn.executemany(sql, params_list)

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def fetchvalue(self, sql: str, params: Params = (), default: Any = None) -> Any:
        """Return the first column of the first row, or ``default``."""
        row = self.fetchone(sql, params)
        return row[0] if row is not None else default

    def last_insert_rowid(self) -> int:
        value = self.fetchvalue("SELECT last_insert_rowid();")
        assert value is not None
        return int(value)

    def count_rows(self, table: str) -> int:
        """Row count of ``table``. Only call with trusted table names."""
        return int(self.fetchvalue(f"SELECT COUNT(*) FROM {table};", default=0))

    def commit(self) -> None:
        self.conn.commit()

    # ── JSON columns ─────────────────────────────────────────────────────────

    @staticmethod
    def to_json(value: Any) -> str:
        """Serialise a JSON column value, rendering dates as ISO strings."""
        return json.dumps(value, default=str)
