"""
Adaptation score models.

``ScoreComponent`` is one weighted factor of the score. Exactly three are
required per score: ``brand_consistency``, ``market_alignment`` and
``audience_engagement``.

``AdaptationScore`` is the append-only history record. Its ``value`` must
equal the clamped, half-up-rounded weighted sum of its components and its
``alert`` flag must equal ``value < ALERT_THRESHOLD``; both are enforced at
construction so a malformed score can never be persisted or returned.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from brand_adapt.taxonomy.recommendation_taxonomy import ScoreTrend
from brand_adapt.utils.time_utils import to_utc

BRAND_CONSISTENCY = "brand_consistency"
MARKET_ALIGNMENT = "market_alignment"
AUDIENCE_ENGAGEMENT = "audience_engagement"

REQUIRED_COMPONENTS: tuple[str, ...] = (
    BRAND_CONSISTENCY,
    MARKET_ALIGNMENT,
    AUDIENCE_ENGAGEMENT,
)

ALERT_THRESHOLD = 60


def round_half_up(value: "float | Decimal") -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    exact = value if isinstance(value, Decimal) else Decimal(str(value))
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def weighted_value(components: list["ScoreComponent"]) -> int:
    """Clamped, rounded weighted sum of ``components``."""
    # Decimal of the shortest repr keeps 90 * 0.35 at exactly 31.5.
    total = sum(
        (Decimal(str(c.raw_value)) * Decimal(str(c.weight)) for c in components),
        Decimal(0),
    )
    return max(0, min(100, round_half_up(total)))


class ScoreComponent(BaseModel):
    """One weighted factor of the adaptation score.

    Attributes:
        name:                 One of ``REQUIRED_COMPONENTS``.
        raw_value:            Component value, 0–100.
        weight:               Fixed weight; the three weights sum to 1.0.
        contributing_factors: Named sub-measurements behind ``raw_value``.
        data_complete:        ``False`` when the backing facet was missing
                              and the component was scored as 0.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    raw_value: float
    weight: float
    contributing_factors: dict[str, float] = {}
    data_complete: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if v not in REQUIRED_COMPONENTS:
            raise ValueError(
                f"Unknown component '{v}'. Must be one of {list(REQUIRED_COMPONENTS)}."
            )
        return v

    @field_validator("raw_value")
    @classmethod
    def validate_raw_value(cls, v: float) -> float:
        if math.isnan(v) or not 0.0 <= v <= 100.0:
            raise ValueError(f"raw_value must be in [0, 100], got {v}.")
        return v

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"weight must be in [0, 1], got {v}.")
        return v

    @property
    def contribution(self) -> float:
        """Weighted contribution to the unrounded total."""
        return self.raw_value * self.weight


class AdaptationScore(BaseModel):
    """Append-only adaptation score record for one brand.

    Attributes:
        score_id:    Auto-assigned DB PK; ``None`` before insertion.
        brand_id:    Brand the score belongs to.
        value:       Final score, 0–100.
        components:  Exactly the three required components, in canonical order.
        trend:       Direction versus the immediately preceding stored score.
        alert:       ``True`` iff ``value`` is below the alert threshold.
        computed_at: When the score was computed (UTC); strictly increasing
                     per brand.
    """

    model_config = ConfigDict(frozen=True)

    score_id: Optional[int] = None
    brand_id: str
    value: int
    components: list[ScoreComponent]
    trend: ScoreTrend = ScoreTrend.STABLE
    alert: bool
    computed_at: datetime

    @field_validator("computed_at")
    @classmethod
    def validate_computed_at(cls, v: datetime) -> datetime:
        return to_utc(v)

    @model_validator(mode="after")
    def validate_score_consistency(self) -> "AdaptationScore":
        names = [c.name for c in self.components]
        if sorted(names) != sorted(REQUIRED_COMPONENTS):
            raise ValueError(
                f"components must be exactly {list(REQUIRED_COMPONENTS)}, got {names}."
            )
        weight_sum = sum(c.weight for c in self.components)
        if not math.isclose(weight_sum, 1.0, abs_tol=1e-9):
            raise ValueError(f"component weights must sum to 1.0, got {weight_sum}.")
        if not 0 <= self.value <= 100:
            raise ValueError(f"value must be in [0, 100], got {self.value}.")
        expected = weighted_value(self.components)
        if self.value != expected:
            raise ValueError(
                f"value ({self.value}) does not match weighted components ({expected})."
            )
        if self.alert != (self.value < ALERT_THRESHOLD):
            raise ValueError(
                f"alert must be {self.value < ALERT_THRESHOLD} for value {self.value}."
            )
        return self

    def component(self, name: str) -> ScoreComponent:
        """Return the component called ``name``.

        Raises:
            KeyError: If no such component exists.
        """
        for c in self.components:
            if c.name == name:
                return c
        raise KeyError(name)

    @property
    def data_completeness(self) -> float:
        """Fraction of components backed by complete data (0.0–1.0)."""
        return sum(1 for c in self.components if c.data_complete) / len(self.components)

    @property
    def missing_facets(self) -> list[str]:
        """Names of components scored as 0 because their facet was missing."""
        return [c.name for c in self.components if not c.data_complete]
