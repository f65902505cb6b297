"""
SQLite connections for the score, recommendation and feedback store.

``get_connection()`` opens a connection with foreign keys on, WAL journaling
(optional), a busy timeout and ``sqlite3.Row`` rows, and commits on clean
exit or rolls back on error. ``open_store()`` does the same from the
``[database]`` config section and can apply the schema first.

Usage::

    from brand_adapt.db.connection import open_store

    with open_store(config.database, ensure_schema=True) as conn:
        ScoreRepository(conn).insert(score)
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Generator, Optional

from brand_adapt.db.schema import apply_schema

if TYPE_CHECKING:
    from brand_adapt.config import DatabaseConfig

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


def _apply_pragmas(conn: sqlite3.Connection, wal_mode: bool, busy_timeout_ms: int) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")
    if wal_mode:
        mode = conn.execute("PRAGMA journal_mode = WAL;").fetchone()[0]
        if mode.lower() != "wal":
            # In-memory databases stay in "memory" mode.
            logger.debug("journal_mode is %s, not wal", mode)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured connection; one transaction per ``with`` block.

    Args:
        db_path: Database file (parent directories are created) or
            ``":memory:"``.
        wal_mode: Switch the journal to WAL so readers never block the writer.
        busy_timeout_ms: How long a writer waits on a locked database before
            ``sqlite3.OperationalError`` is raised.
    """
    if db_path != MEMORY_DB:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row
    try:
        _apply_pragmas(conn, wal_mode, busy_timeout_ms)
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def open_store(
    database: "DatabaseConfig",
    db_path: Optional[str] = None,
    ensure_schema: bool = False,
) -> Generator[sqlite3.Connection, None, None]:
    """``get_connection()`` driven by the ``[database]`` config section.

    Args:
        database: Config section supplying the path, WAL flag and timeout.
        db_path: Overrides ``database.db_path`` (CLI ``--db-path``).
        ensure_schema: Apply the idempotent DDL before yielding.
    """
    target = db_path or database.db_path
    with get_connection(
        target, wal_mode=database.wal_mode, busy_timeout_ms=database.busy_timeout_ms
    ) as conn:
        if ensure_schema:
            apply_schema(conn)
        yield conn
