"""
Tests for the repository layer (score, recommendation, feedback, weights).

Uses the ``in_memory_db`` fixture from conftest.py.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from brand_adapt.db.repositories.feedback_repo import FeedbackRepository, WeightsRepository
from brand_adapt.db.repositories.recommendation_repo import RecommendationRepository
from brand_adapt.db.repositories.score_repo import ScoreRepository
from brand_adapt.models.feedback import FeedbackEvent, PersonalizationWeights
from brand_adapt.recommendations.generator import generate_candidates
from brand_adapt.recommendations.ranker import rank
from brand_adapt.recommendations.resolver import resolve
from brand_adapt.scoring.engine import compute_score
from brand_adapt.taxonomy.recommendation_taxonomy import (
    FeedbackAction,
    RecommendationStatus,
    RecommendationType,
)

CAPTURED_AT = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _ranked(snapshot):
    score = compute_score(snapshot, now=snapshot.captured_at)
    return rank(resolve(generate_candidates(snapshot, score)), PersonalizationWeights.default(snapshot.brand_id))


# ── ScoreRepository ───────────────────────────────────────────────────────────

class TestScoreRepository:
    def test_insert_and_latest_round_trip(self, in_memory_db, sample_snapshot):
        repo = ScoreRepository(in_memory_db)
        score = compute_score(sample_snapshot, now=CAPTURED_AT)
        score_id = repo.insert(score)

        latest = repo.get_latest("acme")
        assert latest is not None
        assert latest.score_id == score_id
        assert latest.value == score.value
        assert latest.components == score.components
        assert latest.computed_at == score.computed_at

    def test_latest_none_for_unknown_brand(self, in_memory_db):
        assert ScoreRepository(in_memory_db).get_latest("nobody") is None

    def test_history_range_and_order(self, in_memory_db, make_score):
        repo = ScoreRepository(in_memory_db)
        for day, value in ((3, 70), (1, 50), (2, 60)):
            repo.insert(make_score(value, computed_at=CAPTURED_AT + timedelta(days=day)))
        repo.insert(make_score(10, brand_id="globex", computed_at=CAPTURED_AT))

        assert [s.value for s in repo.get_history("acme")] == [50, 60, 70]
        window = repo.get_history(
            "acme", start=CAPTURED_AT + timedelta(days=2), end=CAPTURED_AT + timedelta(days=3),
        )
        assert [s.value for s in window] == [60, 70]
        assert [s.value for s in repo.get_history("acme", end=CAPTURED_AT + timedelta(days=1))] == [50]

    def test_duplicate_key_rejected(self, in_memory_db, make_score):
        repo = ScoreRepository(in_memory_db)
        repo.insert(make_score(50))
        with pytest.raises(sqlite3.IntegrityError):
            repo.insert(make_score(55))


# ── RecommendationRepository ──────────────────────────────────────────────────

class TestRecommendationRepository:
    def test_upsert_and_get(self, in_memory_db, sample_snapshot):
        repo = RecommendationRepository(in_memory_db)
        ranked = _ranked(sample_snapshot)
        merged = repo.upsert_generated(ranked)
        assert merged == ranked

        stored = repo.get(ranked[0].id)
        assert stored is not None
        assert stored.rationale == ranked[0].rationale
        assert stored.implementation_steps == ranked[0].implementation_steps
        assert stored.rank is None

    def test_regeneration_keeps_status(self, in_memory_db, sample_snapshot):
        repo = RecommendationRepository(in_memory_db)
        ranked = _ranked(sample_snapshot)
        repo.upsert_generated(ranked)
        repo.update_status(ranked[0].id, RecommendationStatus.ACCEPTED)

        merged = repo.upsert_generated(ranked)
        assert merged[0].status is RecommendationStatus.ACCEPTED
        assert merged[0].rank == 1
        assert all(r.status is RecommendationStatus.PENDING for r in merged[1:])

    def test_get_unknown(self, in_memory_db):
        assert RecommendationRepository(in_memory_db).get("rec-nope") is None


# ── Feedback and weights ──────────────────────────────────────────────────────

class TestFeedbackRepository:
    def test_insert_and_read_in_arrival_order(self, in_memory_db, sample_snapshot):
        ranked = _ranked(sample_snapshot)
        RecommendationRepository(in_memory_db).upsert_generated(ranked)
        repo = FeedbackRepository(in_memory_db)

        ids = []
        for i, action in enumerate((FeedbackAction.REJECT, FeedbackAction.ACCEPT)):
            ids.append(repo.insert(FeedbackEvent(
                brand_id="acme",
                recommendation_id=ranked[i].id,
                recommendation_type=ranked[i].type,
                action=action,
                timestamp=CAPTURED_AT + timedelta(seconds=i),
            )))

        events = repo.get_all()
        assert [e.event_id for e in events] == ids
        assert [e.action for e in events] == [FeedbackAction.REJECT, FeedbackAction.ACCEPT]
        assert events[0].timestamp == CAPTURED_AT


class TestWeightsRepository:
    def test_upsert_replaces_row(self, in_memory_db):
        repo = WeightsRepository(in_memory_db)
        weights = PersonalizationWeights(
            brand_id="acme",
            per_type_multiplier={RecommendationType.VISUAL: 1.1, RecommendationType.CONTENT: 0.9},
            events_applied=2,
            updated_at=CAPTURED_AT,
        )
        repo.upsert(weights)
        assert repo.get_all() == {"acme": weights}

        updated = weights.model_copy(update={"events_applied": 3})
        repo.upsert(updated)
        assert repo.get_all()["acme"].events_applied == 3

    def test_empty_store(self, in_memory_db):
        assert WeightsRepository(in_memory_db).get_all() == {}
