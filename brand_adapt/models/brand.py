"""
Brand snapshot models — the read-only input to scoring and generation.

A ``BrandSnapshot`` is an immutable view of one brand at score-computation
time, assembled by the signal store from the profile, the current visual kit,
the current voice, the audience descriptor, and pre-filtered trend signals.

Every facet is optional. A missing facet is a *scoring* condition (the
affected component scores 0 and is flagged incomplete), never a validation
error. Collection caps (core values, logo variations, voice variants) are
enforced by ``brand_adapt.validation`` before a snapshot reaches the core,
so these models stay free of deployment limits.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from brand_adapt.taxonomy.recommendation_taxonomy import (
    RecommendationType,
    ToneFormality,
)
from brand_adapt.utils.time_utils import to_utc


def _clean_list(values: list[str]) -> list[str]:
    """Strip entries and drop blanks, preserving order."""
    return [v.strip() for v in values if v and v.strip()]


class BrandIdentity(BaseModel):
    """Declared identity attributes.

    Attributes:
        values:             Core brand values (capped upstream at 10).
        personality_traits: Personality traits, e.g. ``["playful", "bold"]``.
        mission:            Mission statement text.
        mission_keywords:   Keywords extracted from the mission.
    """

    model_config = ConfigDict(frozen=True)

    values: list[str] = []
    personality_traits: list[str] = []
    mission: str = ""
    mission_keywords: list[str] = []

    @field_validator("values", "personality_traits", "mission_keywords")
    @classmethod
    def strip_entries(cls, v: list[str]) -> list[str]:
        return _clean_list(v)


class VisualKit(BaseModel):
    """Current visual-kit descriptor.

    Attributes:
        primary_color:     Primary brand colour (hex string or token).
        secondary_colors:  Supporting palette.
        logo_variants:     Available logo variations (capped upstream at 10).
        logo_variant:      Logo variation currently in use.
        color_usage_rules: Personality trait → colour-usage rule text.
    """

    model_config = ConfigDict(frozen=True)

    primary_color: Optional[str] = None
    secondary_colors: list[str] = []
    logo_variants: list[str] = []
    logo_variant: Optional[str] = None
    color_usage_rules: dict[str, str] = {}

    @field_validator("secondary_colors", "logo_variants")
    @classmethod
    def strip_entries(cls, v: list[str]) -> list[str]:
        return _clean_list(v)


class VoiceProfile(BaseModel):
    """Current brand-voice descriptor.

    Attributes:
        tone_formality:  Register currently used in brand copy.
        vocabulary_set:  Named vocabulary set in use.
        tone_guidelines: Personality trait → tone guideline text.
        variants:        Voice variants on file (capped upstream at 5).
    """

    model_config = ConfigDict(frozen=True)

    tone_formality: Optional[ToneFormality] = None
    vocabulary_set: Optional[str] = None
    tone_guidelines: dict[str, str] = {}
    variants: list[str] = []

    @field_validator("variants")
    @classmethod
    def strip_entries(cls, v: list[str]) -> list[str]:
        return _clean_list(v)


class AudienceProfile(BaseModel):
    """Audience descriptor; completeness and freshness drive engagement.

    Attributes:
        segment:     Primary audience segment label.
        age_range:   Free-form age range, e.g. ``"25-34"``.
        locations:   Target locations.
        interests:   Audience interests.
        pain_points: Known audience pain points.
        updated_at:  When the descriptor was last refreshed (UTC).
    """

    model_config = ConfigDict(frozen=True)

    segment: Optional[str] = None
    age_range: Optional[str] = None
    locations: list[str] = []
    interests: list[str] = []
    pain_points: list[str] = []
    updated_at: Optional[datetime] = None

    @field_validator("updated_at")
    @classmethod
    def validate_aware(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None


class TrendSignal(BaseModel):
    """A market trend already judged applicable to the brand.

    Attributes:
        trend_id:        Stable identifier from the signal store.
        name:            Human-readable trend name.
        category:        Strategy family the trend speaks to.
        relevance:       Relevance to this brand, 0–100.
        attribute:       Brand facet the trend implies a value for, if any.
        suggested_value: Value the trend implies for ``attribute``.
    """

    model_config = ConfigDict(frozen=True)

    trend_id: str
    name: str
    category: RecommendationType
    relevance: float
    attribute: Optional[str] = None
    suggested_value: Optional[str] = None

    @field_validator("relevance")
    @classmethod
    def validate_relevance(cls, v: float) -> float:
        if not 0.0 <= v <= 100.0:
            raise ValueError(f"relevance must be in [0, 100], got {v}.")
        return v

    @field_validator("trend_id", "name")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("trend_id and name must not be empty.")
        return v.strip()

    @field_validator("attribute", "suggested_value")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class BrandSnapshot(BaseModel):
    """Immutable view of a brand at score-computation time.

    Attributes:
        brand_id:    Non-empty brand identifier.
        industry:    Industry tag, e.g. ``"outdoor_apparel"``.
        identity:    Declared identity attributes, or ``None`` if unavailable.
        visual_kit:  Current visual kit, or ``None``.
        voice:       Current voice descriptor, or ``None``.
        audience:    Audience descriptor, or ``None``.
        trends:      Applicable trend signals (pre-filtered by the signal store).
        captured_at: Reference time for freshness calculations (UTC).
    """

    model_config = ConfigDict(frozen=True)

    brand_id: str
    industry: Optional[str] = None
    identity: Optional[BrandIdentity] = None
    visual_kit: Optional[VisualKit] = None
    voice: Optional[VoiceProfile] = None
    audience: Optional[AudienceProfile] = None
    trends: list[TrendSignal] = []
    captured_at: datetime

    @field_validator("brand_id")
    @classmethod
    def validate_brand_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("brand_id must not be empty.")
        return v.strip()

    @field_validator("captured_at")
    @classmethod
    def validate_captured_at(cls, v: datetime) -> datetime:
        return to_utc(v)
