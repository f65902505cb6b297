"""
Candidate generation: four independent, deterministic strategies that turn a
snapshot, its score breakdown and the applicable trend signals into raw
``RecommendationCandidate`` objects.

Strategies (each a pure function; none calls another)
-----------------------------------------------------
visual    : brand_consistency < 70            → color_usage_rules
            visual trend with relevance >= 75 whose suggested value differs
            from the current kit              → primary_color / logo_variant
messaging : audience_engagement < 65          → vocabulary_set
            trait/tone alignment < 70         → tone_formality
            messaging trend with relevance >= 75 that disagrees with the
            current voice                     → tone_formality / vocabulary_set
content   : market_alignment < 60             → content_focus
audience  : descriptor stale (> 90 days) or incomplete → audience_segment
            audience trend with relevance >= 75 naming another segment
                                              → audience_segment

Impact
------
    metric-triggered : min(100, (threshold - metric) * impact_gain)
    trend-triggered  : min(100, trend_base_impact
                                + (relevance - high_relevance_threshold) * impact_gain)

Priority is derived from impact via ``PriorityBand.from_impact`` (>=80
critical, >=60 high, >=35 medium, else low). Every candidate carries a
rationale naming its trigger. Trends are always visited in
``(-relevance, trend_id)`` order so output is reproducible.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Iterable, Optional, Sequence

from brand_adapt.config import GenerationConfig
from brand_adapt.models.brand import BrandSnapshot, TrendSignal
from brand_adapt.models.recommendation import RecommendationCandidate, candidate_id
from brand_adapt.models.score import (
    AUDIENCE_ENGAGEMENT,
    BRAND_CONSISTENCY,
    MARKET_ALIGNMENT,
    AdaptationScore,
)
from brand_adapt.scoring.engine import (
    audience_age_days,
    audience_completeness,
    covered_keys,
    trait_keys,
)
from brand_adapt.taxonomy.recommendation_taxonomy import (
    AffectedAttribute,
    PriorityBand,
    RecommendationType,
    ToneFormality,
)

logger = logging.getLogger(__name__)

Strategy = Callable[
    [BrandSnapshot, AdaptationScore, Sequence[TrendSignal], GenerationConfig],
    list[RecommendationCandidate],
]

# Formality lean of common personality traits.
FORMAL_TRAITS: frozenset[str] = frozenset({
    "professional", "trustworthy", "authoritative", "sophisticated", "elegant",
    "reliable", "expert", "premium", "serious", "luxurious", "refined",
})
CASUAL_TRAITS: frozenset[str] = frozenset({
    "playful", "friendly", "fun", "approachable", "quirky", "casual",
    "youthful", "witty", "energetic", "relaxed", "irreverent",
})

_VISUAL_TREND_ATTRIBUTES = (AffectedAttribute.PRIMARY_COLOR, AffectedAttribute.LOGO_VARIANT)
_MESSAGING_TREND_ATTRIBUTES = (AffectedAttribute.TONE_FORMALITY, AffectedAttribute.VOCABULARY_SET)


# ── Impact helpers ────────────────────────────────────────────────────────────

def gap_impact(metric: float, threshold: float, gain: float) -> float:
    """Impact of a metric sitting ``threshold - metric`` points below target."""
    gap = max(0.0, threshold - metric)
    return round(min(100.0, gap * gain), 2)


def trend_impact(relevance: float, config: GenerationConfig) -> float:
    """Impact of a high-relevance trend; grows with relevance above the bar."""
    excess = max(0.0, relevance - config.high_relevance_threshold)
    return round(min(100.0, config.trend_base_impact + excess * config.impact_gain), 2)


def _candidate(
    snapshot: BrandSnapshot,
    rec_type: RecommendationType,
    attribute: AffectedAttribute,
    proposed_value: str,
    title: str,
    rationale: str,
    impact: float,
) -> RecommendationCandidate:
    return RecommendationCandidate(
        id=candidate_id(snapshot.brand_id, rec_type, attribute, proposed_value),
        brand_id=snapshot.brand_id,
        type=rec_type,
        title=title,
        rationale=rationale,
        estimated_impact=impact,
        priority=PriorityBand.from_impact(impact),
        affected_attribute=attribute,
        proposed_value=proposed_value,
    )


def _ordered_trends(
    trends: Iterable[TrendSignal],
    category: RecommendationType,
    min_relevance: float,
) -> list[TrendSignal]:
    selected = [t for t in trends if t.category == category and t.relevance >= min_relevance]
    return sorted(selected, key=lambda t: (-t.relevance, t.trend_id))


def _differs(current: Optional[str], suggested: str) -> bool:
    return current is None or current.strip().lower() != suggested.strip().lower()


# ── Strategies ────────────────────────────────────────────────────────────────

def visual_update_strategy(
    snapshot: BrandSnapshot,
    score: AdaptationScore,
    trends: Sequence[TrendSignal],
    config: GenerationConfig,
) -> list[RecommendationCandidate]:
    """Colour-rule coverage and trend-driven visual changes."""
    out: list[RecommendationCandidate] = []
    kit = snapshot.visual_kit

    consistency = score.component(BRAND_CONSISTENCY)
    threshold = config.visual_consistency_threshold
    if consistency.raw_value < threshold:
        traits = trait_keys(snapshot)
        ruled = covered_keys(kit.color_usage_rules) if kit else set()
        uncovered = sorted(t for t in traits if t not in ruled)
        if kit is None:
            proposed = "establish_visual_kit"
            detail = "no visual kit is on file"
        elif not traits:
            proposed = "define_traits"
            detail = "no personality traits are declared to anchor the palette"
        elif uncovered:
            proposed = "cover:" + ",".join(uncovered)
            detail = (
                f"{len(uncovered)} of {len(traits)} personality traits lack "
                f"colour-usage rules ({', '.join(uncovered)})"
            )
        else:
            proposed = "audit_palette"
            detail = "every trait has a colour rule but tone guidelines lag behind"

        out.append(_candidate(
            snapshot,
            RecommendationType.VISUAL,
            AffectedAttribute.COLOR_USAGE_RULES,
            proposed,
            title="Codify colour usage for every personality trait",
            rationale=(
                f"Brand consistency is {consistency.raw_value:.1f}, "
                f"{threshold - consistency.raw_value:.1f} points below the "
                f"{threshold:.0f} target; {detail}."
            ),
            impact=gap_impact(consistency.raw_value, threshold, config.impact_gain),
        ))

    for trend in _ordered_trends(trends, RecommendationType.VISUAL, config.high_relevance_threshold):
        if trend.attribute not in _VISUAL_TREND_ATTRIBUTES or not trend.suggested_value:
            continue
        attribute = AffectedAttribute(trend.attribute)
        current = getattr(kit, attribute.value) if kit else None
        if not _differs(current, trend.suggested_value):
            continue
        label = "primary colour" if attribute is AffectedAttribute.PRIMARY_COLOR else "logo variant"
        out.append(_candidate(
            snapshot,
            RecommendationType.VISUAL,
            attribute,
            trend.suggested_value,
            title=f"Move {label} to {trend.suggested_value}",
            rationale=(
                f"Trend '{trend.name}' (relevance {trend.relevance:.0f}) favours "
                f"{trend.suggested_value}; current {label} is {current or 'unset'}."
            ),
            impact=trend_impact(trend.relevance, config),
        ))
    return out


def tone_alignment(snapshot: BrandSnapshot) -> tuple[Optional[float], Optional[ToneFormality]]:
    """Share (0–100) of leaning traits that agree with the current formality.

    Returns ``(alignment, preferred)`` where ``preferred`` is the formality the
    traits lean towards (``NEUTRAL`` on a tie). ``(None, None)`` when no trait
    leans either way.
    """
    traits = trait_keys(snapshot)
    formal = sum(1 for t in traits if t in FORMAL_TRAITS)
    casual = sum(1 for t in traits if t in CASUAL_TRAITS)
    leaning = formal + casual
    if leaning == 0:
        return None, None

    if formal > casual:
        preferred = ToneFormality.FORMAL
    elif casual > formal:
        preferred = ToneFormality.CASUAL
    else:
        preferred = ToneFormality.NEUTRAL

    current = snapshot.voice.tone_formality if snapshot.voice else None
    if current is ToneFormality.FORMAL:
        agree = float(formal)
    elif current is ToneFormality.CASUAL:
        agree = float(casual)
    elif current is ToneFormality.NEUTRAL:
        agree = 0.5 * leaning
    else:
        agree = 0.0
    return round(100.0 * agree / leaning, 2), preferred


def messaging_adjustment_strategy(
    snapshot: BrandSnapshot,
    score: AdaptationScore,
    trends: Sequence[TrendSignal],
    config: GenerationConfig,
) -> list[RecommendationCandidate]:
    """Vocabulary refresh for low engagement; tone fixes for trait mismatch."""
    out: list[RecommendationCandidate] = []
    voice = snapshot.voice

    engagement = score.component(AUDIENCE_ENGAGEMENT)
    threshold = config.messaging_engagement_threshold
    if engagement.raw_value < threshold:
        segment = snapshot.audience.segment if snapshot.audience else None
        proposed = f"{segment.strip().lower().replace(' ', '_')}_aligned" if segment else "audience_aligned"
        out.append(_candidate(
            snapshot,
            RecommendationType.MESSAGING,
            AffectedAttribute.VOCABULARY_SET,
            proposed,
            title="Rework vocabulary around the audience's own language",
            rationale=(
                f"Audience engagement is {engagement.raw_value:.1f}, "
                f"{threshold - engagement.raw_value:.1f} points below the "
                f"{threshold:.0f} target; current vocabulary set is "
                f"{(voice.vocabulary_set if voice else None) or 'unset'}."
            ),
            impact=gap_impact(engagement.raw_value, threshold, config.impact_gain),
        ))

    if voice is not None:
        alignment, preferred = tone_alignment(snapshot)
        tone_threshold = config.tone_alignment_threshold
        if (
            alignment is not None
            and preferred is not None
            and alignment < tone_threshold
            and preferred != voice.tone_formality
        ):
            current = voice.tone_formality.value if voice.tone_formality else "unset"
            out.append(_candidate(
                snapshot,
                RecommendationType.MESSAGING,
                AffectedAttribute.TONE_FORMALITY,
                preferred.value,
                title=f"Shift tone to {preferred.value}",
                rationale=(
                    f"Only {alignment:.0f}% of tone-leaning personality traits agree "
                    f"with the current {current} register (target {tone_threshold:.0f}%); "
                    f"the traits lean {preferred.value}."
                ),
                impact=gap_impact(alignment, tone_threshold, config.impact_gain),
            ))

    for trend in _ordered_trends(trends, RecommendationType.MESSAGING, config.high_relevance_threshold):
        if trend.attribute not in _MESSAGING_TREND_ATTRIBUTES or not trend.suggested_value:
            continue
        attribute = AffectedAttribute(trend.attribute)
        current = getattr(voice, attribute.value) if voice else None
        if not _differs(current, trend.suggested_value):
            continue
        out.append(_candidate(
            snapshot,
            RecommendationType.MESSAGING,
            attribute,
            trend.suggested_value,
            title=f"Adopt {trend.suggested_value} {attribute.value.replace('_', ' ')}",
            rationale=(
                f"Trend '{trend.name}' (relevance {trend.relevance:.0f}) favours "
                f"{trend.suggested_value} {attribute.value.replace('_', ' ')}; "
                f"current value is {current or 'unset'}."
            ),
            impact=trend_impact(trend.relevance, config),
        ))
    return out


def content_strategy(
    snapshot: BrandSnapshot,
    score: AdaptationScore,
    trends: Sequence[TrendSignal],
    config: GenerationConfig,
) -> list[RecommendationCandidate]:
    """Refocus content when market alignment is low."""
    alignment = score.component(MARKET_ALIGNMENT)
    threshold = config.content_alignment_threshold
    if alignment.raw_value >= threshold:
        return []

    ordered = sorted(trends, key=lambda t: (-t.relevance, t.trend_id))
    content_trends = [t for t in ordered if t.category == RecommendationType.CONTENT]
    lead = content_trends[0] if content_trends else (ordered[0] if ordered else None)

    if lead is None:
        proposed = "trend_research"
        detail = "no applicable trends were supplied, so start with trend research"
    else:
        proposed = (lead.suggested_value or lead.name).strip()
        detail = f"lead with '{lead.name}' (relevance {lead.relevance:.0f})"

    return [_candidate(
        snapshot,
        RecommendationType.CONTENT,
        AffectedAttribute.CONTENT_FOCUS,
        proposed,
        title=f"Refocus content on {proposed}",
        rationale=(
            f"Market alignment is {alignment.raw_value:.1f}, "
            f"{threshold - alignment.raw_value:.1f} points below the "
            f"{threshold:.0f} target; {detail}."
        ),
        impact=gap_impact(alignment.raw_value, threshold, config.impact_gain),
    )]


def audience_targeting_strategy(
    snapshot: BrandSnapshot,
    score: AdaptationScore,
    trends: Sequence[TrendSignal],
    config: GenerationConfig,
) -> list[RecommendationCandidate]:
    """Refresh stale or incomplete audience data; follow audience trends."""
    out: list[RecommendationCandidate] = []
    audience = snapshot.audience
    segment = audience.segment if audience else None

    reasons: list[str] = []
    impact = 0.0
    if audience is None:
        reasons.append("no audience descriptor is on file")
        impact = 100.0
    else:
        age = audience_age_days(audience, snapshot.captured_at)
        stale_days = config.audience_stale_days
        if age is None:
            reasons.append("the audience descriptor has never been refreshed")
            impact = 100.0
        elif age > stale_days:
            reasons.append(
                f"the audience descriptor is {age:.0f} days old (refresh every {stale_days})"
            )
            impact = max(impact, round(min(100.0, 100.0 * (age - stale_days) / stale_days), 2))

        completeness = audience_completeness(audience)
        if completeness < config.audience_completeness_threshold:
            reasons.append(f"only {completeness:.0%} of audience fields are populated")
            impact = max(impact, gap_impact(
                100.0 * completeness,
                100.0 * config.audience_completeness_threshold,
                config.impact_gain,
            ))

    if reasons:
        proposed = f"refresh:{segment.strip().lower()}" if segment else "refresh:undefined"
        out.append(_candidate(
            snapshot,
            RecommendationType.AUDIENCE,
            AffectedAttribute.AUDIENCE_SEGMENT,
            proposed,
            title="Refresh the audience profile",
            rationale="Audience targeting is unreliable: " + "; ".join(reasons) + ".",
            impact=impact,
        ))

    for trend in _ordered_trends(trends, RecommendationType.AUDIENCE, config.high_relevance_threshold):
        if trend.attribute != AffectedAttribute.AUDIENCE_SEGMENT or not trend.suggested_value:
            continue
        if not _differs(segment, trend.suggested_value):
            continue
        out.append(_candidate(
            snapshot,
            RecommendationType.AUDIENCE,
            AffectedAttribute.AUDIENCE_SEGMENT,
            trend.suggested_value,
            title=f"Target the {trend.suggested_value} segment",
            rationale=(
                f"Trend '{trend.name}' (relevance {trend.relevance:.0f}) points to the "
                f"{trend.suggested_value} segment; current segment is {segment or 'unset'}."
            ),
            impact=trend_impact(trend.relevance, config),
        ))
    return out


STRATEGIES: tuple[Strategy, ...] = (
    visual_update_strategy,
    messaging_adjustment_strategy,
    content_strategy,
    audience_targeting_strategy,
)


# ── Entry point ───────────────────────────────────────────────────────────────

def generate_candidates(
    snapshot: BrandSnapshot,
    score: AdaptationScore,
    trend_signals: Optional[Sequence[TrendSignal]] = None,
    config: GenerationConfig | None = None,
) -> list[RecommendationCandidate]:
    """Run every strategy and concatenate their candidates.

    Args:
        snapshot:      Validated brand snapshot.
        score:         Score breakdown for ``snapshot`` (from ``compute_score``).
        trend_signals: Applicable trends; defaults to ``snapshot.trends``.
        config:        Strategy thresholds; defaults to ``GenerationConfig()``.

    Returns:
        Candidates in strategy order (visual, messaging, content, audience).
        The list may contain conflicting proposals; see ``resolver.resolve``.
    """
    config = config or GenerationConfig()
    trends = list(snapshot.trends if trend_signals is None else trend_signals)

    candidates: list[RecommendationCandidate] = []
    for strategy in STRATEGIES:
        produced = strategy(snapshot, score, trends, config)
        logger.debug(
            "Strategy %s produced %d candidate(s) for brand=%s",
            strategy.__name__, len(produced), snapshot.brand_id,
        )
        candidates.extend(produced)
    return candidates
