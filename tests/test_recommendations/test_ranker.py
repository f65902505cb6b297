"""
Tests for brand_adapt/recommendations/ranker.py and steps.py.

What we test
------------
rank():
  - Priority band is the primary key (a low-impact CRITICAL never drops
    below a HIGH, whatever the multipliers).
  - Within a band, effective score (impact × type multiplier) decides.
  - Equal effective scores fall back to id ascending.
  - Ranks are 1-based and contiguous; every recommendation is pending and
    has implementation steps.
  - Candidates for another brand are rejected.
is_properly_ordered():
  - Detects band and effective-score inversions.
"""

from __future__ import annotations

import pytest

from brand_adapt.errors import InvalidInput
from brand_adapt.models.feedback import PersonalizationWeights
from brand_adapt.models.recommendation import RecommendationCandidate, candidate_id
from brand_adapt.recommendations.ranker import effective_score, is_properly_ordered, rank
from brand_adapt.recommendations.steps import build_implementation_steps
from brand_adapt.taxonomy.recommendation_taxonomy import (
    ATTRIBUTES_BY_TYPE,
    AffectedAttribute,
    PriorityBand,
    RecommendationStatus,
    RecommendationType,
)

_ATTR_FOR_TYPE = {
    RecommendationType.VISUAL: AffectedAttribute.PRIMARY_COLOR,
    RecommendationType.MESSAGING: AffectedAttribute.TONE_FORMALITY,
    RecommendationType.CONTENT: AffectedAttribute.CONTENT_FOCUS,
    RecommendationType.AUDIENCE: AffectedAttribute.AUDIENCE_SEGMENT,
}


def _cand(rec_type: RecommendationType, impact: float, value: str = "x", brand_id: str = "acme"):
    attribute = _ATTR_FOR_TYPE[rec_type]
    return RecommendationCandidate(
        id=candidate_id(brand_id, rec_type, attribute, value),
        brand_id=brand_id,
        type=rec_type,
        title="t",
        rationale="because",
        estimated_impact=impact,
        priority=PriorityBand.from_impact(impact),
        affected_attribute=attribute,
        proposed_value=value,
    )


def _weights(**multipliers: float) -> PersonalizationWeights:
    return PersonalizationWeights(brand_id="acme", per_type_multiplier=multipliers)


class TestRank:
    def test_band_is_primary_key(self):
        critical = _cand(RecommendationType.VISUAL, 80)
        high = _cand(RecommendationType.CONTENT, 79)
        weights = _weights(visual=0.1, content=2.0)
        ranked = rank([high, critical], weights)
        assert [r.id for r in ranked] == [critical.id, high.id]
        assert ranked[0].effective_score == pytest.approx(8.0)

    def test_multiplier_reorders_within_band(self):
        visual = _cand(RecommendationType.VISUAL, 50)
        content = _cand(RecommendationType.CONTENT, 45)
        assert [r.id for r in rank([visual, content], _weights())] == [visual.id, content.id]
        boosted = rank([visual, content], _weights(content=1.21))
        assert [r.id for r in boosted] == [content.id, visual.id]
        assert boosted[0].priority is PriorityBand.MEDIUM

    def test_id_breaks_ties(self):
        a = _cand(RecommendationType.VISUAL, 50, value="a")
        b = _cand(RecommendationType.CONTENT, 50, value="b")
        ranked = rank([a, b], _weights())
        assert [r.id for r in ranked] == sorted([a.id, b.id])

    def test_ranks_and_status(self):
        cands = [_cand(t, 40 + i * 10) for i, t in enumerate(RecommendationType)]
        ranked = rank(cands, _weights())
        assert [r.rank for r in ranked] == [1, 2, 3, 4]
        assert all(r.status is RecommendationStatus.PENDING for r in ranked)
        assert all(r.implementation_steps for r in ranked)
        assert is_properly_ordered(ranked)

    def test_foreign_brand_rejected(self):
        with pytest.raises(InvalidInput):
            rank([_cand(RecommendationType.VISUAL, 50, brand_id="globex")], _weights())

    def test_empty(self):
        assert rank([], _weights()) == []

    def test_effective_score_default_multiplier(self):
        assert effective_score(_cand(RecommendationType.AUDIENCE, 42), _weights()) == 42.0


class TestIsProperlyOrdered:
    def test_detects_band_inversion(self):
        ranked = rank([_cand(RecommendationType.VISUAL, 90), _cand(RecommendationType.CONTENT, 20)], _weights())
        assert is_properly_ordered(ranked)
        assert not is_properly_ordered(list(reversed(ranked)))

    def test_detects_score_inversion_within_band(self):
        ranked = rank([_cand(RecommendationType.VISUAL, 50), _cand(RecommendationType.CONTENT, 40)], _weights())
        assert not is_properly_ordered(list(reversed(ranked)))


class TestSteps:
    @pytest.mark.parametrize("attribute", list(AffectedAttribute))
    def test_every_attribute_has_steps(self, attribute):
        rec_type = next(t for t, attrs in ATTRIBUTES_BY_TYPE.items() if attribute in attrs)
        cand = RecommendationCandidate(
            id="rec-1", brand_id="acme", type=rec_type, title="t", rationale="r",
            estimated_impact=10, priority=PriorityBand.LOW,
            affected_attribute=attribute, proposed_value="val",
        )
        steps = build_implementation_steps(cand)
        assert len(steps) >= 3
        assert all("{value}" not in s for s in steps)
