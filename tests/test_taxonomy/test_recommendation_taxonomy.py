"""
Tests for brand_adapt/taxonomy/recommendation_taxonomy.py.
"""

from __future__ import annotations

import pytest

from brand_adapt.taxonomy.recommendation_taxonomy import (
    ATTRIBUTES_BY_TYPE,
    AffectedAttribute,
    FeedbackAction,
    PriorityBand,
    RecommendationStatus,
    RecommendationType,
)


class TestPriorityBand:
    @pytest.mark.parametrize(
        "impact, band",
        [
            (100, PriorityBand.CRITICAL),
            (80, PriorityBand.CRITICAL),
            (79.99, PriorityBand.HIGH),
            (60, PriorityBand.HIGH),
            (59.9, PriorityBand.MEDIUM),
            (35, PriorityBand.MEDIUM),
            (34.9, PriorityBand.LOW),
            (0, PriorityBand.LOW),
        ],
    )
    def test_from_impact_bands(self, impact, band):
        assert PriorityBand.from_impact(impact) is band

    def test_rank_order(self):
        ranks = [b.rank for b in (PriorityBand.CRITICAL, PriorityBand.HIGH, PriorityBand.MEDIUM, PriorityBand.LOW)]
        assert ranks == sorted(ranks, reverse=True)


class TestRecommendationStatus:
    def test_pending_can_go_anywhere(self):
        for target in (RecommendationStatus.ACCEPTED, RecommendationStatus.REJECTED, RecommendationStatus.IMPLEMENTED):
            assert RecommendationStatus.PENDING.can_transition_to(target)

    def test_implemented_is_terminal(self):
        for target in RecommendationStatus:
            assert not RecommendationStatus.IMPLEMENTED.can_transition_to(target)

    def test_rejected_cannot_be_implemented(self):
        assert not RecommendationStatus.REJECTED.can_transition_to(RecommendationStatus.IMPLEMENTED)
        assert RecommendationStatus.REJECTED.can_transition_to(RecommendationStatus.ACCEPTED)


class TestFeedbackAction:
    def test_resulting_status(self):
        assert FeedbackAction.ACCEPT.resulting_status is RecommendationStatus.ACCEPTED
        assert FeedbackAction.REJECT.resulting_status is RecommendationStatus.REJECTED
        assert FeedbackAction.MODIFY.resulting_status is None


class TestAttributesByType:
    def test_every_attribute_has_exactly_one_owner(self):
        owners = [
            t for attr in AffectedAttribute
            for t, attrs in ATTRIBUTES_BY_TYPE.items() if attr in attrs
        ]
        assert len(owners) == len(AffectedAttribute)

    def test_every_type_is_mapped(self):
        assert set(ATTRIBUTES_BY_TYPE) == set(RecommendationType)
