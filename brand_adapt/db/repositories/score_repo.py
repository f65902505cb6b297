"""
Repository for the append-only adaptation score history.

Records are keyed by ``(brand_id, computed_at)``. There is no update or
delete method: a score, once written, is history.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Optional

from brand_adapt.db.repositories.base import BaseRepository, from_json, to_json
from brand_adapt.models.score import AdaptationScore, ScoreComponent
from brand_adapt.utils.time_utils import to_utc

logger = logging.getLogger(__name__)


class ScoreRepository(BaseRepository):
    """Read/append access to ``adaptation_scores``."""

    def insert(self, score: AdaptationScore) -> int:
        """Append a score record and return its ``score_id``.

        Raises:
            sqlite3.IntegrityError: If a record with the same
                ``(brand_id, computed_at)`` already exists.
        """
        return self.insert_row(
            """
            INSERT INTO adaptation_scores (
                brand_id, value, trend, alert, components, computed_at
            ) VALUES (?, ?, ?, ?, ?, ?);
            """,
            (
                score.brand_id,
                score.value,
                score.trend.value,
                int(score.alert),
                to_json([c.model_dump() for c in score.components]),
                to_utc(score.computed_at).isoformat(),
            ),
        )

    def get_latest(self, brand_id: str) -> Optional[AdaptationScore]:
        """Most recent score for ``brand_id``, or ``None``."""
        row = self.fetchone(
            """
            SELECT * FROM adaptation_scores
            WHERE brand_id = ?
            ORDER BY computed_at DESC LIMIT 1;
            """,
            (brand_id,),
        )
        return _row_to_score(row) if row else None

    def get_history(
        self,
        brand_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[AdaptationScore]:
        """Scores for ``brand_id`` in ``[start, end]``, oldest first.

        Either bound may be ``None`` (open-ended).
        """
        clauses = ["brand_id = ?"]
        params: list[object] = [brand_id]
        if start is not None:
            clauses.append("computed_at >= ?")
            params.append(to_utc(start).isoformat())
        if end is not None:
            clauses.append("computed_at <= ?")
            params.append(to_utc(end).isoformat())

        rows = self.fetchall(
            f"""
            SELECT * FROM adaptation_scores
            WHERE {' AND '.join(clauses)}
            ORDER BY computed_at ASC;
            """,
            tuple(params),
        )
        return [_row_to_score(r) for r in rows]


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_score(row: sqlite3.Row) -> AdaptationScore:
    return AdaptationScore(
        score_id=row["score_id"],
        brand_id=row["brand_id"],
        value=row["value"],
        components=[ScoreComponent(**c) for c in from_json(row["components"])],
        trend=row["trend"],
        alert=bool(row["alert"]),
        computed_at=datetime.fromisoformat(row["computed_at"]),
    )
