"""
Adaptation score engine: turns a ``BrandSnapshot`` plus the brand's score
history into an ``AdaptationScore``.

Score formula (weighted sum, 0–100)
-----------------------------------
    value = clamp(round_half_up(
          brand_consistency   * 0.40
        + market_alignment    * 0.35
        + audience_engagement * 0.25
    ), 0, 100)

Component explanations
----------------------
brand_consistency (0–100):
    How well the current voice and visual kit cover the declared personality
    traits. Each trait earns half credit for a tone guideline and half credit
    for a colour-usage rule (trait names match case-insensitively).
    Formula: 100 * (tone_covered + color_covered) / (2 * n_traits).
    Needs identity traits and at least one of the visual kit or voice;
    otherwise 0. An absent kit or voice contributes no coverage.

market_alignment (0–100):
    Mean relevance of the applicable trend signals. The signal store
    pre-filters trends by industry and audience, so every supplied trend
    counts. No trends → 0.

audience_engagement (0–100):
    100 * (0.6 * completeness + 0.4 * freshness)
    completeness = populated fields among segment, age_range, locations,
                   interests, pain_points (fraction).
    freshness    = max(0, 1 - days_since_update / 180), measured at
                   ``snapshot.captured_at``; 0 when never updated.
    No audience descriptor → 0.

A missing facet never raises: the component scores 0 with
``data_complete=False`` and the result is still a valid, in-range score.

Trend (versus the latest prior stored score for the same brand)
---------------------------------------------------------------
    |delta| <= 2 → stable,  delta > 2 → improving,  delta < -2 → declining
    No prior score → stable.

Alert
-----
    value < 60 → alert=True. The engine only raises the flag; routing it to a
    notification channel is the caller's job.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from brand_adapt.config import ScoringConfig
from brand_adapt.models.brand import AudienceProfile, BrandSnapshot, TrendSignal
from brand_adapt.models.score import (
    ALERT_THRESHOLD,
    AUDIENCE_ENGAGEMENT,
    BRAND_CONSISTENCY,
    MARKET_ALIGNMENT,
    AdaptationScore,
    ScoreComponent,
    weighted_value,
)
from brand_adapt.taxonomy.recommendation_taxonomy import ScoreTrend
from brand_adapt.utils.time_utils import days_between, strictly_after

logger = logging.getLogger(__name__)

_AUDIENCE_FIELDS: tuple[str, ...] = (
    "segment", "age_range", "locations", "interests", "pain_points",
)


# ── Components ────────────────────────────────────────────────────────────────

def score_brand_consistency(snapshot: BrandSnapshot, weight: float) -> ScoreComponent:
    """Trait coverage of tone guidelines and colour-usage rules."""
    traits = trait_keys(snapshot)
    kit, voice = snapshot.visual_kit, snapshot.voice

    if not traits or (kit is None and voice is None):
        return ScoreComponent(
            name=BRAND_CONSISTENCY,
            raw_value=0.0,
            weight=weight,
            contributing_factors={"traits_defined": float(len(traits))},
            data_complete=False,
        )

    # An absent kit or voice covers no traits.
    tone_keys = covered_keys(voice.tone_guidelines) if voice else set()
    color_keys = covered_keys(kit.color_usage_rules) if kit else set()
    tone_covered = sum(1 for t in traits if t in tone_keys)
    color_covered = sum(1 for t in traits if t in color_keys)

    raw = 100.0 * (tone_covered + color_covered) / (2 * len(traits))
    return ScoreComponent(
        name=BRAND_CONSISTENCY,
        raw_value=round(_clamp(raw, 0.0, 100.0), 2),
        weight=weight,
        contributing_factors={
            "traits_defined": float(len(traits)),
            "tone_coverage_pct": round(100.0 * tone_covered / len(traits), 2),
            "color_coverage_pct": round(100.0 * color_covered / len(traits), 2),
        },
    )


def score_market_alignment(trends: Iterable[TrendSignal], weight: float) -> ScoreComponent:
    """Mean relevance of applicable trends; 0 when none are supplied."""
    relevances = [t.relevance for t in trends]
    if not relevances:
        return ScoreComponent(
            name=MARKET_ALIGNMENT,
            raw_value=0.0,
            weight=weight,
            contributing_factors={"trend_count": 0.0},
            data_complete=False,
        )

    mean = sum(relevances) / len(relevances)
    return ScoreComponent(
        name=MARKET_ALIGNMENT,
        raw_value=round(_clamp(mean, 0.0, 100.0), 2),
        weight=weight,
        contributing_factors={
            "trend_count": float(len(relevances)),
            "max_relevance": max(relevances),
            "min_relevance": min(relevances),
        },
    )


def audience_completeness(audience: AudienceProfile) -> float:
    """Fraction (0–1) of the descriptive audience fields that are populated."""
    filled = 0
    for field_name in _AUDIENCE_FIELDS:
        val = getattr(audience, field_name)
        if isinstance(val, str):
            filled += bool(val.strip())
        else:
            filled += bool(val)
    return filled / len(_AUDIENCE_FIELDS)


def audience_age_days(audience: AudienceProfile, as_of: datetime) -> Optional[float]:
    """Days since the audience descriptor was refreshed, or ``None`` if never."""
    if audience.updated_at is None:
        return None
    return max(0.0, days_between(audience.updated_at, as_of))


def score_audience_engagement(
    audience: Optional[AudienceProfile],
    as_of: datetime,
    weight: float,
    config: ScoringConfig,
) -> ScoreComponent:
    """Completeness and freshness of the audience descriptor."""
    if audience is None:
        return ScoreComponent(
            name=AUDIENCE_ENGAGEMENT,
            raw_value=0.0,
            weight=weight,
            data_complete=False,
        )

    completeness = audience_completeness(audience)
    age_days = audience_age_days(audience, as_of)
    if age_days is None:
        freshness = 0.0
    else:
        freshness = _clamp(1.0 - age_days / config.freshness_horizon_days, 0.0, 1.0)

    raw = 100.0 * (
        config.completeness_weight * completeness
        + config.freshness_weight * freshness
    )
    factors = {
        "completeness_pct": round(100.0 * completeness, 2),
        "freshness_pct": round(100.0 * freshness, 2),
    }
    if age_days is not None:
        factors["days_since_update"] = round(age_days, 2)

    return ScoreComponent(
        name=AUDIENCE_ENGAGEMENT,
        raw_value=round(_clamp(raw, 0.0, 100.0), 2),
        weight=weight,
        contributing_factors=factors,
    )


# ── Trend ─────────────────────────────────────────────────────────────────────

def latest_prior(
    history: Iterable[AdaptationScore],
    brand_id: str,
) -> Optional[AdaptationScore]:
    """Most recent stored score for ``brand_id`` in ``history``, if any."""
    own = [s for s in history if s.brand_id == brand_id]
    if not own:
        return None
    return max(own, key=lambda s: s.computed_at)


def determine_trend(
    value: int,
    prior: Optional[AdaptationScore],
    stable_band: int = 2,
) -> ScoreTrend:
    """Classify ``value`` against the prior score.

    Rules:
        1. No prior score      → STABLE
        2. |delta| <= band     → STABLE
        3. delta > band        → IMPROVING
        4. delta < -band       → DECLINING
    """
    if prior is None:
        return ScoreTrend.STABLE
    delta = value - prior.value
    if abs(delta) <= stable_band:
        return ScoreTrend.STABLE
    return ScoreTrend.IMPROVING if delta > 0 else ScoreTrend.DECLINING


# ── Entry point ───────────────────────────────────────────────────────────────

def compute_score(
    snapshot: BrandSnapshot,
    history: Iterable[AdaptationScore] = (),
    config: ScoringConfig | None = None,
    now: Optional[datetime] = None,
) -> AdaptationScore:
    """Compute the adaptation score for one brand snapshot.

    Args:
        snapshot: Validated, immutable brand snapshot.
        history:  Previously stored scores; entries for other brands are ignored.
        config:   Weights and sub-weights; defaults to ``ScoringConfig()``.
        now:      Clock override (UTC). ``computed_at`` is always strictly after
                  the latest prior record for the brand.

    Returns:
        A validated ``AdaptationScore`` with ``alert`` set when value < 60.
    """
    config = config or ScoringConfig()

    components = [
        score_brand_consistency(snapshot, config.consistency_weight),
        score_market_alignment(snapshot.trends, config.alignment_weight),
        score_audience_engagement(
            snapshot.audience, snapshot.captured_at, config.engagement_weight, config,
        ),
    ]
    value = weighted_value(components)

    prior = latest_prior(history, snapshot.brand_id)
    trend = determine_trend(value, prior, config.stable_band)

    score = AdaptationScore(
        brand_id=snapshot.brand_id,
        value=value,
        components=components,
        trend=trend,
        alert=value < ALERT_THRESHOLD,
        computed_at=strictly_after(prior.computed_at if prior else None, now),
    )

    logger.info(
        "Scored brand=%s value=%d trend=%s alert=%s completeness=%.2f",
        score.brand_id, score.value, score.trend.value, score.alert,
        score.data_completeness,
    )
    if score.missing_facets:
        logger.debug(
            "Brand %s scored with missing facets: %s",
            score.brand_id, ", ".join(score.missing_facets),
        )
    return score


# ── Helpers ───────────────────────────────────────────────────────────────────

def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def trait_keys(snapshot: BrandSnapshot) -> list[str]:
    """Declared personality traits, lower-cased and de-duplicated in order."""
    if snapshot.identity is None:
        return []
    seen: list[str] = []
    for trait in snapshot.identity.personality_traits:
        key = trait.strip().lower()
        if key and key not in seen:
            seen.append(key)
    return seen


def covered_keys(mapping: dict[str, str]) -> set[str]:
    """Lower-cased keys whose value is non-blank."""
    return {k.strip().lower() for k, v in mapping.items() if v and v.strip()}
