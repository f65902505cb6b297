"""
SQLite schema DDL for the history store.

Every statement uses ``IF NOT EXISTS`` so ``apply_schema()`` is idempotent.

Tables:
  1. adaptation_scores        append-only score history, UNIQUE(brand_id, computed_at)
  2. recommendations          generated recommendations and their status
  3. feedback_events          append-only feedback log (→ recommendations)
  4. personalization_weights  current per-brand weight table

Timestamps are stored as ISO-8601 UTC text, which sorts chronologically.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

# ── DDL statements ─────────────────────────────────────────────────────────────

_DDL_ADAPTATION_SCORES = """
CREATE TABLE IF NOT EXISTS adaptation_scores (
    score_id        INTEGER PRIMARY KEY AUTOINCREMENT,
    brand_id        TEXT    NOT NULL,
    value           INTEGER NOT NULL CHECK (value BETWEEN 0 AND 100),
    trend           TEXT    NOT NULL,
    alert           INTEGER NOT NULL,
    components      TEXT    NOT NULL,
    computed_at     TEXT    NOT NULL,
    UNIQUE (brand_id, computed_at)
);
"""

_DDL_RECOMMENDATIONS = """
CREATE TABLE IF NOT EXISTS recommendations (
    recommendation_id    TEXT    PRIMARY KEY,
    brand_id             TEXT    NOT NULL,
    rec_type             TEXT    NOT NULL,
    title                TEXT    NOT NULL,
    rationale            TEXT    NOT NULL CHECK (length(trim(rationale)) > 0),
    estimated_impact     REAL    NOT NULL,
    priority             TEXT    NOT NULL,
    affected_attribute   TEXT    NOT NULL,
    proposed_value       TEXT    NOT NULL,
    effective_score      REAL    NOT NULL,
    status               TEXT    NOT NULL DEFAULT 'pending',
    implementation_steps TEXT    NOT NULL,
    created_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
    updated_at           TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
);
"""

_DDL_FEEDBACK_EVENTS = """
CREATE TABLE IF NOT EXISTS feedback_events (
    event_id            INTEGER PRIMARY KEY AUTOINCREMENT,
    brand_id            TEXT    NOT NULL,
    recommendation_id   TEXT    NOT NULL REFERENCES recommendations(recommendation_id),
    recommendation_type TEXT    NOT NULL,
    action              TEXT    NOT NULL,
    occurred_at         TEXT    NOT NULL
);
"""

_DDL_PERSONALIZATION_WEIGHTS = """
CREATE TABLE IF NOT EXISTS personalization_weights (
    brand_id        TEXT    PRIMARY KEY,
    multipliers     TEXT    NOT NULL,
    events_applied  INTEGER NOT NULL DEFAULT 0,
    updated_at      TEXT
);
"""

_DDL_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_scores_brand_time
    ON adaptation_scores (brand_id, computed_at);
CREATE INDEX IF NOT EXISTS idx_recommendations_brand
    ON recommendations (brand_id);
CREATE INDEX IF NOT EXISTS idx_feedback_brand_time
    ON feedback_events (brand_id, occurred_at, event_id);
"""

_ALL_DDL = [
    _DDL_ADAPTATION_SCORES,
    _DDL_RECOMMENDATIONS,
    _DDL_FEEDBACK_EVENTS,
    _DDL_PERSONALIZATION_WEIGHTS,
    _DDL_INDEXES,
]

ALL_TABLE_NAMES = [
    "adaptation_scores",
    "recommendations",
    "feedback_events",
    "personalization_weights",
]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist.

    Args:
        conn: An open ``sqlite3.Connection`` (FK enforcement should be ON).
    """
    logger.debug("Applying schema to database...")

    for ddl in _ALL_DDL:
        for statement in _split_ddl(ddl):
            conn.execute(statement)

    conn.commit()
    logger.info("Schema applied: %d tables, indexes created/verified.", len(ALL_TABLE_NAMES))


def _split_ddl(ddl: str) -> list[str]:
    """Split a multi-statement DDL block on semicolons."""
    return [s.strip() for s in ddl.split(";") if s.strip()]


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]


def get_existing_indexes(conn: sqlite3.Connection) -> list[str]:
    """Return index names present in the database, sorted alphabetically."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='index' ORDER BY name;"
    ).fetchall()
    return [row["name"] for row in rows]
