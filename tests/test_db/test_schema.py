"""Tests for brand_adapt/db/schema.py: tables, indexes and the CHECK/UNIQUE/FK constraints."""

from __future__ import annotations

import sqlite3

import pytest

from brand_adapt.db.schema import (
    ALL_TABLE_NAMES,
    apply_schema,
    get_existing_indexes,
    get_existing_tables,
)


class TestApplySchema:
    def test_history_store_tables(self, in_memory_db):
        assert sorted(ALL_TABLE_NAMES) == [
            t for t in get_existing_tables(in_memory_db) if not t.startswith("sqlite_")
        ]

    def test_reapplying_keeps_data(self, in_memory_db):
        in_memory_db.execute(
            "INSERT INTO personalization_weights (brand_id, multipliers, events_applied) "
            "VALUES ('acme', '{}', 0);"
        )
        apply_schema(in_memory_db)
        assert in_memory_db.execute("SELECT COUNT(*) FROM personalization_weights;").fetchone()[0] == 1

    def test_key_indexes_created(self, in_memory_db):
        indexes = get_existing_indexes(in_memory_db)
        for idx in ("idx_scores_brand_time", "idx_recommendations_brand", "idx_feedback_brand_time"):
            assert idx in indexes, f"Expected index '{idx}' not found. Found: {indexes}"


class TestConstraints:
    def test_fk_enforcement_is_on(self, in_memory_db):
        row = in_memory_db.execute("PRAGMA foreign_keys;").fetchone()
        assert row[0] == 1

    def test_feedback_requires_known_recommendation(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO feedback_events (brand_id, recommendation_id, recommendation_type, "
                "action, occurred_at) VALUES ('acme', 'rec-missing', 'visual', 'accept', "
                "'2026-03-01T00:00:00+00:00');"
            )

    def test_score_value_range_checked(self, in_memory_db):
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(
                "INSERT INTO adaptation_scores (brand_id, value, trend, alert, components, "
                "computed_at) VALUES ('acme', 101, 'stable', 0, '[]', '2026-03-01T00:00:00+00:00');"
            )

    def test_score_key_is_unique(self, in_memory_db):
        sql = (
            "INSERT INTO adaptation_scores (brand_id, value, trend, alert, components, "
            "computed_at) VALUES ('acme', 50, 'stable', 1, '[]', '2026-03-01T00:00:00+00:00');"
        )
        in_memory_db.execute(sql)
        with pytest.raises(sqlite3.IntegrityError):
            in_memory_db.execute(sql)
