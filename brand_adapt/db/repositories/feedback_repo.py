"""
Repositories for the feedback log and the per-brand personalization weights.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from brand_adapt.db.repositories.base import BaseRepository, from_json, to_json
from brand_adapt.models.feedback import FeedbackEvent, PersonalizationWeights
from brand_adapt.utils.time_utils import parse_iso, to_utc

logger = logging.getLogger(__name__)


class FeedbackRepository(BaseRepository):
    """Append/read access to ``feedback_events``."""

    def insert(self, event: FeedbackEvent) -> int:
        """Append a feedback event and return its ``event_id``."""
        return self.insert_row(
            """
            INSERT INTO feedback_events (
                brand_id, recommendation_id, recommendation_type, action, occurred_at
            ) VALUES (?, ?, ?, ?, ?);
            """,
            (
                event.brand_id,
                event.recommendation_id,
                event.recommendation_type.value,
                event.action.value,
                to_utc(event.timestamp).isoformat(),
            ),
        )

    def get_all(self) -> list[FeedbackEvent]:
        """Every event in arrival order, used to seed the in-process ledger."""
        rows = self.fetchall("SELECT * FROM feedback_events ORDER BY event_id;")
        return [_row_to_event(r) for r in rows]


class WeightsRepository(BaseRepository):
    """Read/write access to ``personalization_weights``."""

    def upsert(self, weights: PersonalizationWeights) -> None:
        """Insert or replace a brand's current weights."""
        self.execute(
            """
            INSERT INTO personalization_weights (
                brand_id, multipliers, events_applied, updated_at
            ) VALUES (?, ?, ?, ?)
            ON CONFLICT (brand_id) DO UPDATE SET
                multipliers    = excluded.multipliers,
                events_applied = excluded.events_applied,
                updated_at     = excluded.updated_at;
            """,
            (
                weights.brand_id,
                to_json({k.value: v for k, v in weights.per_type_multiplier.items()}),
                weights.events_applied,
                to_utc(weights.updated_at).isoformat() if weights.updated_at else None,
            ),
        )

    def get_all(self) -> dict[str, PersonalizationWeights]:
        """All stored weights keyed by brand id."""
        rows = self.fetchall("SELECT * FROM personalization_weights ORDER BY brand_id;")
        return {r["brand_id"]: _row_to_weights(r) for r in rows}


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_event(row: sqlite3.Row) -> FeedbackEvent:
    return FeedbackEvent(
        event_id=row["event_id"],
        brand_id=row["brand_id"],
        recommendation_id=row["recommendation_id"],
        recommendation_type=row["recommendation_type"],
        action=row["action"],
        timestamp=datetime.fromisoformat(row["occurred_at"]),
    )


def _row_to_weights(row: sqlite3.Row) -> PersonalizationWeights:
    return PersonalizationWeights(
        brand_id=row["brand_id"],
        per_type_multiplier=from_json(row["multipliers"]),
        events_applied=row["events_applied"],
        updated_at=parse_iso(row["updated_at"]),
    )
