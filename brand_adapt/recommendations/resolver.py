"""
Conflict resolution: reduce raw candidates to a coherent list.

Candidates are grouped by ``affected_attribute``. Two candidates in a group
conflict when their ``proposed_value`` differs (compared case-insensitively).
Agreeing candidates share an id (ids hash the attribute and value), so they
are merged rather than kept twice.

Winner per group (first key that differs decides):
    1. higher ``estimated_impact``
    2. higher ``priority`` band
    3. lexicographically smaller ``id``

Losers are dropped, not retried. Output keeps the order in which each
attribute first appeared in the input, so the result is stable for a stable
generator.
"""

from __future__ import annotations

import logging
from typing import Iterable

from brand_adapt.models.recommendation import RecommendationCandidate
from brand_adapt.taxonomy.recommendation_taxonomy import AffectedAttribute

logger = logging.getLogger(__name__)


def _winner_key(c: RecommendationCandidate) -> tuple[float, int, str]:
    return (-c.estimated_impact, -c.priority.rank, c.id)


def _normalized(value: str) -> str:
    return value.strip().lower()


def detect_conflicts(
    candidates: Iterable[RecommendationCandidate],
) -> dict[AffectedAttribute, list[RecommendationCandidate]]:
    """Return only the attribute groups holding contradictory proposals."""
    groups = _group_by_attribute(candidates)
    return {
        attr: items
        for attr, items in groups.items()
        if len({_normalized(c.proposed_value) for c in items}) > 1
    }


def resolve(candidates: Iterable[RecommendationCandidate]) -> list[RecommendationCandidate]:
    """Keep one candidate per affected attribute.

    Args:
        candidates: Raw candidates, possibly conflicting or duplicated.

    Returns:
        Conflict-free list: every surviving candidate targets a distinct
        ``affected_attribute``.
    """
    groups = _group_by_attribute(candidates)

    resolved: list[RecommendationCandidate] = []
    for attr, items in groups.items():
        winner = min(items, key=_winner_key)
        values = {_normalized(c.proposed_value) for c in items}
        if len(values) > 1:
            dropped = sorted(c.id for c in items if c.id != winner.id)
            logger.debug(
                "Conflict on %s: kept %s (%s, impact %.2f), dropped %s",
                attr.value, winner.id, winner.proposed_value,
                winner.estimated_impact, ", ".join(dropped),
            )
        elif len(items) > 1:
            logger.debug("Merged %d agreeing candidate(s) on %s", len(items), attr.value)
        resolved.append(winner)
    return resolved


def is_conflict_free(candidates: Iterable[RecommendationCandidate]) -> bool:
    """True when no two candidates propose different values for one attribute."""
    return not detect_conflicts(candidates)


def _group_by_attribute(
    candidates: Iterable[RecommendationCandidate],
) -> dict[AffectedAttribute, list[RecommendationCandidate]]:
    groups: dict[AffectedAttribute, list[RecommendationCandidate]] = {}
    for c in candidates:
        groups.setdefault(c.affected_attribute, []).append(c)
    return groups
