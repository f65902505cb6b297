"""
Recommendation ranker: orders resolved candidates and promotes them to
``Recommendation`` objects.

Ordering (first key that differs decides)
-----------------------------------------
    1. priority band descending   (critical > high > medium > low)
    2. effective score descending (estimated_impact × per-type multiplier)
    3. id ascending               (full determinism)

The personalization multiplier never changes a candidate's priority band. It
only reorders candidates inside a band, so the band ordering stays exact
while feedback still shapes what a brand sees first.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Iterable

from brand_adapt.errors import InvalidInput
from brand_adapt.models.feedback import PersonalizationWeights
from brand_adapt.models.recommendation import Recommendation, RecommendationCandidate
from brand_adapt.recommendations.steps import build_implementation_steps

logger = logging.getLogger(__name__)

StepBuilder = Callable[[RecommendationCandidate], list[str]]


def effective_score(
    candidate: RecommendationCandidate,
    weights: PersonalizationWeights,
) -> float:
    """``estimated_impact`` scaled by the brand's multiplier for the type."""
    return round(candidate.estimated_impact * weights.multiplier(candidate.type), 4)


def rank(
    candidates: Iterable[RecommendationCandidate],
    weights: PersonalizationWeights,
    step_builder: StepBuilder = build_implementation_steps,
) -> list[Recommendation]:
    """Sort candidates and promote them to ranked recommendations.

    Args:
        candidates:   Resolved (conflict-free) candidates.
        weights:      The brand's personalization weights.
        step_builder: Produces implementation steps for a candidate.

    Returns:
        Recommendations in rank order with 1-based ``rank`` and
        ``status=pending``.

    Raises:
        InvalidInput: If a candidate belongs to a different brand than ``weights``.
    """
    candidates = list(candidates)
    foreign = sorted({c.brand_id for c in candidates if c.brand_id != weights.brand_id})
    if foreign:
        raise InvalidInput(
            f"Cannot rank candidates for brand(s) {foreign} with weights for "
            f"'{weights.brand_id}'."
        )

    scored = [(c, effective_score(c, weights)) for c in candidates]
    scored.sort(key=lambda pair: (-pair[0].priority.rank, -pair[1], pair[0].id))

    ranked = [
        Recommendation.from_candidate(
            candidate,
            effective_score=score,
            implementation_steps=step_builder(candidate),
            rank=position,
        )
        for position, (candidate, score) in enumerate(scored, start=1)
    ]
    logger.debug(
        "Ranked %d recommendation(s) for brand=%s",
        len(ranked), weights.brand_id,
    )
    return ranked


def is_properly_ordered(recommendations: list[Recommendation]) -> bool:
    """True when the list is non-increasing by band, then by effective score."""
    for prev, curr in zip(recommendations, recommendations[1:]):
        if prev.priority.rank < curr.priority.rank:
            return False
        if prev.priority == curr.priority and prev.effective_score < curr.effective_score:
            return False
    return True
