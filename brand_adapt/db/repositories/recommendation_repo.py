"""
Repository for generated recommendations and their lifecycle status.

Recommendation ids are deterministic, so regenerating the same list upserts
the same rows. Regeneration refreshes the descriptive columns but never the
``status``: a recommendation a user accepted stays accepted.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Iterable, Optional

from brand_adapt.db.repositories.base import BaseRepository, from_json, to_json
from brand_adapt.models.recommendation import Recommendation
from brand_adapt.taxonomy.recommendation_taxonomy import RecommendationStatus

logger = logging.getLogger(__name__)


class RecommendationRepository(BaseRepository):
    """Read/write access to ``recommendations``."""

    def upsert_generated(
        self, recommendations: Iterable[Recommendation]
    ) -> list[Recommendation]:
        """Persist a freshly ranked list, keeping any stored status.

        Args:
            recommendations: Ranked recommendations from one generation call.

        Returns:
            The same recommendations in the same order, each carrying the
            status already stored for its id (``pending`` for new ids).
        """
        merged: list[Recommendation] = []
        for rec in recommendations:
            self.execute(
                """
                INSERT INTO recommendations (
                    recommendation_id, brand_id, rec_type, title, rationale,
                    estimated_impact, priority, affected_attribute,
                    proposed_value, effective_score, status, implementation_steps
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (recommendation_id) DO UPDATE SET
                    title                = excluded.title,
                    rationale            = excluded.rationale,
                    estimated_impact     = excluded.estimated_impact,
                    priority             = excluded.priority,
                    effective_score      = excluded.effective_score,
                    implementation_steps = excluded.implementation_steps,
                    updated_at           = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
                """,
                (
                    rec.id,
                    rec.brand_id,
                    rec.type.value,
                    rec.title,
                    rec.rationale,
                    rec.estimated_impact,
                    rec.priority.value,
                    rec.affected_attribute.value,
                    rec.proposed_value,
                    rec.effective_score,
                    rec.status.value,
                    to_json(rec.implementation_steps),
                ),
            )
            stored = self._status_of(rec.id)
            merged.append(rec if stored is None else rec.with_status(stored))
        return merged

    def get(self, recommendation_id: str) -> Optional[Recommendation]:
        """Fetch one recommendation by id, or ``None``."""
        row = self.fetchone(
            "SELECT * FROM recommendations WHERE recommendation_id = ?;",
            (recommendation_id,),
        )
        return _row_to_recommendation(row) if row else None

    def update_status(
        self, recommendation_id: str, status: RecommendationStatus
    ) -> None:
        """Set the lifecycle status. Transition rules are the caller's job."""
        self.execute(
            """
            UPDATE recommendations
            SET status = ?, updated_at = strftime('%Y-%m-%dT%H:%M:%SZ', 'now')
            WHERE recommendation_id = ?;
            """,
            (status.value, recommendation_id),
        )
        logger.debug("Recommendation %s -> %s", recommendation_id, status.value)

    def _status_of(self, recommendation_id: str) -> Optional[RecommendationStatus]:
        row = self.fetchone(
            "SELECT status FROM recommendations WHERE recommendation_id = ?;",
            (recommendation_id,),
        )
        return RecommendationStatus(row["status"]) if row else None


# ── Private helpers ────────────────────────────────────────────────────────────

def _row_to_recommendation(row: sqlite3.Row) -> Recommendation:
    return Recommendation(
        id=row["recommendation_id"],
        brand_id=row["brand_id"],
        type=row["rec_type"],
        title=row["title"],
        rationale=row["rationale"],
        estimated_impact=row["estimated_impact"],
        priority=row["priority"],
        affected_attribute=row["affected_attribute"],
        proposed_value=row["proposed_value"],
        effective_score=row["effective_score"],
        status=row["status"],
        implementation_steps=from_json(row["implementation_steps"]),
    )
