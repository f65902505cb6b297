"""
Recommendation candidate and recommendation models.

``RecommendationCandidate`` is what a generation strategy produces: an
unresolved, unranked proposal to set ``affected_attribute`` to
``proposed_value``, with an estimated impact and a rationale.

``Recommendation`` is a candidate promoted to the final ranked list. It adds
the ranking outcome (``effective_score``, ``rank``), the lifecycle ``status``
and the ``implementation_steps``. Only ``status`` ever changes after
creation; the repository applies those transitions.
"""

from __future__ import annotations

import hashlib
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from brand_adapt.taxonomy.recommendation_taxonomy import (
    ATTRIBUTES_BY_TYPE,
    AffectedAttribute,
    PriorityBand,
    RecommendationStatus,
    RecommendationType,
)


def candidate_id(
    brand_id: str,
    rec_type: RecommendationType,
    attribute: AffectedAttribute,
    proposed_value: str,
) -> str:
    """Deterministic candidate id for a (brand, type, attribute, value) tuple.

    Identical generation inputs always yield identical ids, which is what lets
    feedback submitted against one ``recommendations()`` call resolve against
    the next.
    """
    key = "|".join([brand_id, str(rec_type), str(attribute), proposed_value])
    return "rec-" + hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]


class RecommendationCandidate(BaseModel):
    """An unresolved, unranked recommendation proposal.

    Attributes:
        id:                 Deterministic id, see ``candidate_id()``.
        brand_id:           Brand this candidate was generated for.
        type:               Strategy family that produced it.
        title:              Short imperative headline.
        rationale:          Non-empty explanation of the triggering condition.
        estimated_impact:   0–100; larger when the trigger metric is further
                            below its threshold.
        priority:           Band derived from ``estimated_impact``.
        affected_attribute: Brand facet this candidate targets.
        proposed_value:     Target value for ``affected_attribute``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    brand_id: str
    type: RecommendationType
    title: str
    rationale: str
    estimated_impact: float
    priority: PriorityBand
    affected_attribute: AffectedAttribute
    proposed_value: str

    @field_validator("rationale", "title", "proposed_value")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("rationale, title and proposed_value must not be empty.")
        return v.strip()

    @field_validator("estimated_impact")
    @classmethod
    def validate_impact(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"estimated_impact must be in [0, 100], got {v}.")
        return v

    @model_validator(mode="after")
    def validate_candidate_consistency(self) -> "RecommendationCandidate":
        if self.priority != PriorityBand.from_impact(self.estimated_impact):
            raise ValueError(
                f"priority {self.priority.value} does not match impact "
                f"{self.estimated_impact} (expected "
                f"{PriorityBand.from_impact(self.estimated_impact).value})."
            )
        if self.affected_attribute not in ATTRIBUTES_BY_TYPE[self.type]:
            raise ValueError(
                f"{self.type.value} recommendations cannot target "
                f"'{self.affected_attribute.value}'."
            )
        return self


class Recommendation(RecommendationCandidate):
    """A ranked recommendation with lifecycle status.

    Attributes:
        effective_score:      ``estimated_impact`` × the brand's multiplier
                              for ``type`` at ranking time.
        rank:                 1-based position in the ranked list, or
                              ``None`` when loaded outside a ranking call.
        status:               Lifecycle state.
        implementation_steps: Ordered, non-empty list of concrete steps.
    """

    effective_score: float
    rank: Optional[int] = None
    status: RecommendationStatus = RecommendationStatus.PENDING
    implementation_steps: list[str]

    @field_validator("effective_score")
    @classmethod
    def validate_effective_score(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"effective_score must be non-negative, got {v}.")
        return v

    @field_validator("implementation_steps")
    @classmethod
    def validate_steps(cls, v: list[str]) -> list[str]:
        steps = [s.strip() for s in v if s and s.strip()]
        if not steps:
            raise ValueError("implementation_steps must not be empty.")
        return steps

    @classmethod
    def from_candidate(
        cls,
        candidate: RecommendationCandidate,
        effective_score: float,
        implementation_steps: list[str],
        rank: Optional[int] = None,
        status: RecommendationStatus = RecommendationStatus.PENDING,
    ) -> "Recommendation":
        return cls(
            **candidate.model_dump(include=set(RecommendationCandidate.model_fields)),
            effective_score=effective_score,
            implementation_steps=implementation_steps,
            rank=rank,
            status=status,
        )

    def with_status(self, status: RecommendationStatus) -> "Recommendation":
        """Return a copy in ``status``; the caller validates the transition."""
        return self.model_copy(update={"status": status})
