"""
Feedback and personalization models.

``FeedbackEvent`` is append-only: once recorded it is never mutated or
deleted. It carries the recommendation's type so per-type weights can be
rebuilt from the log alone.

``PersonalizationWeights`` holds one brand's per-type multipliers. Unseen
types read as 1.0. Instances are frozen; the personalizer produces a new
instance for every applied event.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from brand_adapt.taxonomy.recommendation_taxonomy import (
    FeedbackAction,
    RecommendationType,
)
from brand_adapt.utils.time_utils import to_utc

DEFAULT_MULTIPLIER = 1.0


class FeedbackEvent(BaseModel):
    """A user action on a recommendation.

    Attributes:
        event_id:            Auto-assigned DB PK; ``None`` before insertion.
        brand_id:            Brand the recommendation belongs to.
        recommendation_id:   Id of the recommendation acted on.
        recommendation_type: Type of that recommendation at record time.
        action:              ``accept``, ``reject`` or ``modify``.
        timestamp:           When the action happened (UTC).
    """

    model_config = ConfigDict(frozen=True)

    event_id: Optional[int] = None
    brand_id: str
    recommendation_id: str
    recommendation_type: RecommendationType
    action: FeedbackAction
    timestamp: datetime

    @field_validator("brand_id", "recommendation_id")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("brand_id and recommendation_id must not be empty.")
        return v.strip()

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        return to_utc(v)


class PersonalizationWeights(BaseModel):
    """Per-brand, per-type ranking multipliers.

    Attributes:
        brand_id:           Brand these weights belong to.
        per_type_multiplier: Type → multiplier (>= 0). Missing types read 1.0.
        events_applied:     Number of feedback events folded into these weights.
        updated_at:         When the last event was applied, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    brand_id: str
    per_type_multiplier: dict[RecommendationType, float] = {}
    events_applied: int = 0
    updated_at: Optional[datetime] = None

    @field_validator("per_type_multiplier")
    @classmethod
    def validate_multipliers(
        cls, v: dict[RecommendationType, float]
    ) -> dict[RecommendationType, float]:
        for rec_type, multiplier in v.items():
            if multiplier < 0:
                raise ValueError(
                    f"Multiplier for '{rec_type}' must be >= 0, got {multiplier}."
                )
        return v

    @classmethod
    def default(cls, brand_id: str) -> "PersonalizationWeights":
        """Neutral weights: every type reads 1.0."""
        return cls(brand_id=brand_id)

    def multiplier(self, rec_type: RecommendationType) -> float:
        """Multiplier for ``rec_type``; ``DEFAULT_MULTIPLIER`` when unseen."""
        return self.per_type_multiplier.get(rec_type, DEFAULT_MULTIPLIER)
