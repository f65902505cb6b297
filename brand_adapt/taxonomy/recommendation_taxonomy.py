"""
Recommendation taxonomy for brand adaptation.

Dimensions used throughout the engine:
  - ``RecommendationType``   — which strategy family produced a candidate.
  - ``PriorityBand``         — urgency band derived from estimated impact.
  - ``RecommendationStatus`` — lifecycle state of a promoted recommendation.
  - ``FeedbackAction``       — what a user did with a recommendation.
  - ``ScoreTrend``           — direction of the score versus the prior record.
  - ``ToneFormality``        — register of the brand voice.
  - ``AffectedAttribute``    — the brand facet a recommendation targets; the
                               unit of conflict detection.
  - ``VariationKind``        — capped variation requests (voice / logo).

This module has NO imports from any other ``brand_adapt`` package.
"""

from enum import StrEnum


class RecommendationType(StrEnum):
    """Strategy family of a recommendation."""

    VISUAL = "visual"
    """Colour, logo, and visual-kit changes."""

    MESSAGING = "messaging"
    """Tone formality and vocabulary changes."""

    CONTENT = "content"
    """Content focus and topic strategy."""

    AUDIENCE = "audience"
    """Audience segment and targeting refresh."""


class PriorityBand(StrEnum):
    """Priority band derived from estimated impact.

    Bands (inclusive lower bounds): >=80 CRITICAL, >=60 HIGH, >=35 MEDIUM,
    otherwise LOW.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric ordering key, higher = more urgent."""
        return _PRIORITY_RANK[self]

    @classmethod
    def from_impact(cls, impact: float) -> "PriorityBand":
        if impact >= 80:
            return cls.CRITICAL
        if impact >= 60:
            return cls.HIGH
        if impact >= 35:
            return cls.MEDIUM
        return cls.LOW


_PRIORITY_RANK: dict[PriorityBand, int] = {
    PriorityBand.CRITICAL: 4,
    PriorityBand.HIGH: 3,
    PriorityBand.MEDIUM: 2,
    PriorityBand.LOW: 1,
}


class RecommendationStatus(StrEnum):
    """Lifecycle state of a recommendation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IMPLEMENTED = "implemented"

    def can_transition_to(self, target: "RecommendationStatus") -> bool:
        return target in _ALLOWED_TRANSITIONS[self]


_ALLOWED_TRANSITIONS: dict[RecommendationStatus, frozenset[RecommendationStatus]] = {
    RecommendationStatus.PENDING: frozenset({
        RecommendationStatus.ACCEPTED,
        RecommendationStatus.REJECTED,
        RecommendationStatus.IMPLEMENTED,
    }),
    RecommendationStatus.ACCEPTED: frozenset({
        RecommendationStatus.REJECTED,
        RecommendationStatus.IMPLEMENTED,
    }),
    RecommendationStatus.REJECTED: frozenset({RecommendationStatus.ACCEPTED}),
    RecommendationStatus.IMPLEMENTED: frozenset(),
}


class FeedbackAction(StrEnum):
    """User action on a recommendation."""

    ACCEPT = "accept"
    REJECT = "reject"
    MODIFY = "modify"
    """Recorded for audit; leaves the type's weight unchanged."""

    @property
    def resulting_status(self) -> RecommendationStatus | None:
        """Status this action moves a recommendation to, if any."""
        if self is FeedbackAction.ACCEPT:
            return RecommendationStatus.ACCEPTED
        if self is FeedbackAction.REJECT:
            return RecommendationStatus.REJECTED
        return None


class ScoreTrend(StrEnum):
    """Direction of an adaptation score versus the previous stored score."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class ToneFormality(StrEnum):
    """Register of a brand voice."""

    FORMAL = "formal"
    NEUTRAL = "neutral"
    CASUAL = "casual"


class AffectedAttribute(StrEnum):
    """Brand facets a recommendation can target."""

    PRIMARY_COLOR = "primary_color"
    LOGO_VARIANT = "logo_variant"
    COLOR_USAGE_RULES = "color_usage_rules"
    TONE_FORMALITY = "tone_formality"
    VOCABULARY_SET = "vocabulary_set"
    CONTENT_FOCUS = "content_focus"
    AUDIENCE_SEGMENT = "audience_segment"


# Attributes each strategy family is allowed to touch.
ATTRIBUTES_BY_TYPE: dict[RecommendationType, frozenset[AffectedAttribute]] = {
    RecommendationType.VISUAL: frozenset({
        AffectedAttribute.PRIMARY_COLOR,
        AffectedAttribute.LOGO_VARIANT,
        AffectedAttribute.COLOR_USAGE_RULES,
    }),
    RecommendationType.MESSAGING: frozenset({
        AffectedAttribute.TONE_FORMALITY,
        AffectedAttribute.VOCABULARY_SET,
    }),
    RecommendationType.CONTENT: frozenset({AffectedAttribute.CONTENT_FOCUS}),
    RecommendationType.AUDIENCE: frozenset({AffectedAttribute.AUDIENCE_SEGMENT}),
}


class VariationKind(StrEnum):
    """Kinds of asset variation a caller may request, each with a fixed cap."""

    VOICE = "voice"
    LOGO = "logo"
