"""
Tests for brand_adapt/service.py — BrandAdaptationService end to end.

Covers:
  - score(): appends to history; trend against the stored prior; alert flag
  - score_history(): range filtering and validation
  - recommendations(): ordered, conflict-free, reasoned, idempotent
  - feedback(): weights move per brand; statuses follow allowed transitions;
    unknown or foreign ids → UnknownRecommendation
  - implement(): status → implemented; rescoring lands strictly later;
    rejected recommendations cannot be implemented
  - Persistence: a new service over the same DB resumes the weights
  - request_variations(): caps enforced
"""

from __future__ import annotations

import sqlite3
from datetime import timedelta

import pytest

from brand_adapt.db.repositories.feedback_repo import WeightsRepository
from brand_adapt.errors import InvalidInput, OutOfRangeCollection, UnknownRecommendation
from brand_adapt.recommendations.ranker import is_properly_ordered
from brand_adapt.recommendations.resolver import is_conflict_free
from brand_adapt.service import BrandAdaptationService
from brand_adapt.taxonomy.recommendation_taxonomy import (
    AffectedAttribute,
    RecommendationStatus,
    RecommendationType,
    ScoreTrend,
)


def _by_attr(recs):
    return {r.affected_attribute: r for r in recs}


# ── Scores ────────────────────────────────────────────────────────────────────

class TestScore:
    def test_score_is_persisted(self, service, snapshot_payload):
        score = service.score(snapshot_payload)
        assert score.value == 63
        assert score.score_id is not None
        assert [s.score_id for s in service.score_history("acme")] == [score.score_id]

    def test_second_score_is_strictly_later(self, service, snapshot_payload):
        first = service.score(snapshot_payload)
        second = service.score(snapshot_payload)
        assert second.computed_at > first.computed_at
        assert second.trend is ScoreTrend.STABLE

    def test_declining_trend_and_alert(self, service, snapshot_payload):
        service.score(snapshot_payload)
        snapshot_payload["trends"] = []
        score = service.score(snapshot_payload)
        assert score.value == 39
        assert score.alert is True
        assert score.trend is ScoreTrend.DECLINING

    def test_invalid_snapshot_rejected_before_history(self, service, snapshot_payload):
        snapshot_payload["brand_id"] = ""
        with pytest.raises(InvalidInput):
            service.score(snapshot_payload)
        snapshot_payload["brand_id"] = "acme"
        snapshot_payload["voice"]["variants"] = ["v"] * 6
        with pytest.raises(OutOfRangeCollection):
            service.score(snapshot_payload)
        assert service.score_history("acme") == []

    def test_history_range(self, service, snapshot_payload):
        first = service.score(snapshot_payload)
        second = service.score(snapshot_payload)
        assert service.score_history("acme", start=second.computed_at) == [second]
        assert service.score_history("acme", end=first.computed_at) == [first]

    def test_history_bad_range(self, service):
        from datetime import datetime, timezone

        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        with pytest.raises(InvalidInput):
            service.score_history("acme", start=now, end=now - timedelta(days=1))
        with pytest.raises(InvalidInput):
            service.score_history("acme", start=datetime(2026, 3, 1))
        with pytest.raises(InvalidInput):
            service.score_history("  ")


# ── Recommendations ───────────────────────────────────────────────────────────

class TestRecommendations:
    def test_list_properties(self, service, snapshot_payload):
        recs = service.recommendations(snapshot_payload)
        assert len(recs) == 4
        assert is_properly_ordered(recs)
        assert is_conflict_free(recs)
        assert all(r.rationale for r in recs)
        assert recs[0].affected_attribute is AffectedAttribute.TONE_FORMALITY
        assert [r.rank for r in recs] == [1, 2, 3, 4]

    def test_idempotent(self, service, snapshot_payload):
        assert service.recommendations(snapshot_payload) == service.recommendations(snapshot_payload)

    def test_does_not_append_history(self, service, snapshot_payload):
        service.recommendations(snapshot_payload)
        assert service.score_history("acme") == []

    def test_conflicting_audience_trend_resolved(self, service, snapshot_payload):
        snapshot_payload["trends"].append({
            "trend_id": "t-7", "name": "Gen Z outdoors", "category": "audience",
            "relevance": 90, "attribute": "audience_segment", "suggested_value": "gen z",
        })
        recs = service.recommendations(snapshot_payload)
        assert _by_attr(recs)[AffectedAttribute.AUDIENCE_SEGMENT].proposed_value == "gen z"
        assert is_conflict_free(recs)

    @pytest.mark.parametrize("category, attribute", [
        ("visual", "primary_color"),
        ("messaging", "tone_formality"),
        ("content", "content_focus"),
        ("audience", "audience_segment"),
    ])
    def test_blank_trend_suggestion_is_not_an_error(
        self, service, snapshot_payload, category, attribute,
    ):
        snapshot_payload["trends"].append({
            "trend_id": "t-9", "name": "Blank hint", "category": category,
            "relevance": 95, "attribute": attribute, "suggested_value": "   ",
        })
        recs = service.recommendations(snapshot_payload)
        assert recs
        assert all(r.proposed_value.strip() for r in recs)


# ── Feedback ──────────────────────────────────────────────────────────────────

class TestFeedback:
    def test_accept_updates_weights_and_status(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        weights = service.feedback("acme", rec.id, "accept")
        assert weights.multiplier(rec.type) == pytest.approx(1.1)
        assert weights.events_applied == 1

        refreshed = _by_attr(service.recommendations(snapshot_payload))[rec.affected_attribute]
        assert refreshed.status is RecommendationStatus.ACCEPTED
        assert refreshed.effective_score == pytest.approx(rec.estimated_impact * 1.1)

    def test_modify_keeps_status_and_weight(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        weights = service.feedback("acme", rec.id, "modify")
        assert weights.multiplier(rec.type) == 1.0
        assert weights.events_applied == 1
        assert service.recommendations(snapshot_payload)[0].status is RecommendationStatus.PENDING

    def test_rejects_reorder_within_band(self, service, snapshot_payload):
        recs = service.recommendations(snapshot_payload)
        visual = _by_attr(recs)[AffectedAttribute.PRIMARY_COLOR]
        for _ in range(3):
            service.feedback("acme", visual.id, "reject")
        reordered = service.recommendations(snapshot_payload)
        assert is_properly_ordered(reordered)
        assert reordered[-1].type is RecommendationType.VISUAL
        assert reordered[-1].priority is visual.priority

    def test_unknown_recommendation(self, service, snapshot_payload):
        service.recommendations(snapshot_payload)
        with pytest.raises(UnknownRecommendation) as exc_info:
            service.feedback("acme", "rec-doesnotexist", "accept")
        assert exc_info.value.kind == "unknown_recommendation"

    def test_foreign_brand_is_unknown(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        with pytest.raises(UnknownRecommendation):
            service.feedback("globex", rec.id, "accept")

    def test_bad_action(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        with pytest.raises(InvalidInput):
            service.feedback("acme", rec.id, "love")

    def test_weights_survive_restart(self, service, app_config, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        service.feedback("acme", rec.id, "reject")
        service.feedback("acme", rec.id, "reject")

        restarted = BrandAdaptationService(app_config, db_path=service.db_path)
        weights = restarted.personalizer.weights_for("acme")
        assert weights.multiplier(rec.type) == pytest.approx(0.81)
        assert weights.events_applied == 2

    def test_failed_write_leaves_memory_and_store_in_step(
        self, service, app_config, snapshot_payload, monkeypatch,
    ):
        rec = service.recommendations(snapshot_payload)[0]

        def locked(self, weights):
            raise sqlite3.OperationalError("database is locked")

        with monkeypatch.context() as m:
            m.setattr(WeightsRepository, "upsert", locked)
            with pytest.raises(sqlite3.OperationalError):
                service.feedback("acme", rec.id, "reject")

        assert len(service.ledger) == 0
        assert service.personalizer.weights_for("acme").multiplier(rec.type) == 1.0
        restarted = BrandAdaptationService(app_config, db_path=service.db_path)
        assert len(restarted.ledger) == 0
        assert service.recommendations(snapshot_payload)[0].status is RecommendationStatus.PENDING

        weights = service.feedback("acme", rec.id, "reject")
        assert weights.multiplier(rec.type) == pytest.approx(0.9)
        assert weights.events_applied == 1

    def test_brands_are_isolated(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        service.feedback("acme", rec.id, "accept")
        snapshot_payload["brand_id"] = "globex"
        globex = service.recommendations(snapshot_payload)
        assert globex[0].effective_score == pytest.approx(globex[0].estimated_impact)


# ── Implement ─────────────────────────────────────────────────────────────────

class TestImplement:
    def test_implement_and_rescore(self, service, snapshot_payload):
        prior = service.score(snapshot_payload)
        rec = _by_attr(service.recommendations(snapshot_payload))[AffectedAttribute.TONE_FORMALITY]

        snapshot_payload["voice"]["tone_formality"] = "casual"
        outcome = service.implement(rec.id, snapshot_payload)

        assert outcome.recommendation.status is RecommendationStatus.IMPLEMENTED
        assert outcome.score is not None
        assert outcome.score.computed_at > prior.computed_at
        assert len(service.score_history("acme")) == 2

    def test_implement_without_snapshot(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        outcome = service.implement(rec.id)
        assert outcome.score is None
        assert outcome.recommendation.status is RecommendationStatus.IMPLEMENTED

    def test_implement_is_idempotent(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        service.implement(rec.id)
        again = service.implement(rec.id)
        assert again.recommendation.status is RecommendationStatus.IMPLEMENTED

    def test_feedback_after_implement_keeps_status(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        service.implement(rec.id)
        weights = service.feedback("acme", rec.id, "reject")
        assert weights.events_applied == 1
        refreshed = _by_attr(service.recommendations(snapshot_payload))[rec.affected_attribute]
        assert refreshed.status is RecommendationStatus.IMPLEMENTED

    def test_rejected_cannot_be_implemented(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        service.feedback("acme", rec.id, "reject")
        with pytest.raises(InvalidInput):
            service.implement(rec.id)

    def test_unknown_id(self, service):
        with pytest.raises(UnknownRecommendation):
            service.implement("rec-doesnotexist")

    def test_snapshot_for_other_brand(self, service, snapshot_payload):
        rec = service.recommendations(snapshot_payload)[0]
        snapshot_payload["brand_id"] = "globex"
        with pytest.raises(InvalidInput):
            service.implement(rec.id, snapshot_payload)


class TestVariations:
    def test_caps(self, service):
        assert service.request_variations("voice", 5) == 5
        with pytest.raises(OutOfRangeCollection):
            service.request_variations("voice", 6)
        with pytest.raises(OutOfRangeCollection):
            service.request_variations("logo", 11)
