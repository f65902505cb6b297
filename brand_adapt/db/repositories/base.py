"""
Shared plumbing for the history-store repositories.

A repository wraps an open connection (normally from ``open_store()``); the
caller owns the transaction. SQL stays explicit in each repository method,
models go in and come out, and list/map fields travel as JSON text columns.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Optional, Sequence

logger = logging.getLogger(__name__)

Params = Sequence[Any] | dict[str, Any]


def to_json(value: Any) -> str:
    """Encode a JSON column value (stable key order)."""
    return json.dumps(value, sort_keys=True)


def from_json(text: Optional[str], default: Any = None) -> Any:
    """Decode a JSON column value; NULL becomes ``default``."""
    return default if text is None else json.loads(text)


class BaseRepository:
    """Thin helpers over ``conn.execute`` shared by every repository."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def execute(self, sql: str, params: Params = ()) -> sqlite3.Cursor:
        logger.debug("SQL %s | %s", " ".join(sql.split()), params)
        return self.conn.execute(sql, params)

    def insert_row(self, sql: str, params: Params = ()) -> int:
        """Run an INSERT and return the new row's id."""
        cursor = self.execute(sql, params)
        if cursor.lastrowid is None:
            raise sqlite3.DatabaseError(f"INSERT produced no row id: {sql.split()[:4]}")
        return cursor.lastrowid

    def fetchone(self, sql: str, params: Params = ()) -> Optional[sqlite3.Row]:
        return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Params = ()) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()
