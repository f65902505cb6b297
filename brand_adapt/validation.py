"""
Input guardrails applied before anything reaches the core.

The core functions assume a valid ``BrandSnapshot``. This module is the
enforcement point that turns raw caller payloads into one, or rejects them
with a distinct, machine-checkable error:

  ``InvalidInput``          — missing/blank ``brand_id``, malformed facets,
                              naive timestamps, non-positive variation counts.
  ``OutOfRangeCollection``  — more than ``max_core_values`` identity values,
                              more than ``max_logo_variations`` logo variants,
                              more than ``max_voice_variants`` voice variants.

Collection caps are checked on the raw payload first so the offending count
is reported even when other fields are also malformed.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from brand_adapt.config import LimitsConfig
from brand_adapt.errors import InvalidInput, OutOfRangeCollection
from brand_adapt.models.brand import BrandSnapshot
from brand_adapt.taxonomy.recommendation_taxonomy import VariationKind

logger = logging.getLogger(__name__)


def require_brand_id(brand_id: Optional[str]) -> str:
    """Return the stripped ``brand_id`` or raise ``InvalidInput``."""
    if brand_id is None or not str(brand_id).strip():
        raise InvalidInput("brand_id is required.")
    return str(brand_id).strip()


def check_collection_caps(
    payload: Mapping[str, Any],
    limits: LimitsConfig | None = None,
) -> None:
    """Reject a raw snapshot payload whose collections exceed their caps.

    Args:
        payload: Raw snapshot mapping (as decoded from JSON).
        limits:  Cap configuration; defaults to ``LimitsConfig()``.

    Raises:
        OutOfRangeCollection: On the first collection over its cap.
    """
    limits = limits or LimitsConfig()

    checks = (
        ("identity", "values", "core_values", limits.max_core_values),
        ("visual_kit", "logo_variants", "logo_variants", limits.max_logo_variations),
        ("voice", "variants", "voice_variants", limits.max_voice_variants),
    )
    for facet_key, field_key, label, limit in checks:
        facet = payload.get(facet_key)
        if not isinstance(facet, Mapping):
            continue
        entries = facet.get(field_key)
        if isinstance(entries, (list, tuple)) and len(entries) > limit:
            logger.warning(
                "Rejected snapshot: %s count %d exceeds cap %d",
                label, len(entries), limit,
            )
            raise OutOfRangeCollection(label, len(entries), limit)


def parse_snapshot(
    payload: Mapping[str, Any],
    limits: LimitsConfig | None = None,
) -> BrandSnapshot:
    """Validate a raw payload into a ``BrandSnapshot``.

    Args:
        payload: Raw snapshot mapping.
        limits:  Cap configuration; defaults to ``LimitsConfig()``.

    Returns:
        A frozen, validated ``BrandSnapshot``.

    Raises:
        InvalidInput: If the payload is not a mapping, lacks a brand id, or
            fails model validation.
        OutOfRangeCollection: If a capped collection is too large.
    """
    if not isinstance(payload, Mapping):
        raise InvalidInput(
            f"Snapshot payload must be a mapping, got {type(payload).__name__}."
        )
    require_brand_id(payload.get("brand_id"))
    check_collection_caps(payload, limits)

    try:
        return BrandSnapshot.model_validate(dict(payload))
    except ValidationError as exc:
        raise InvalidInput(f"Malformed snapshot: {exc}") from exc


def check_snapshot(
    snapshot: BrandSnapshot,
    limits: LimitsConfig | None = None,
) -> BrandSnapshot:
    """Apply collection caps to an already-constructed snapshot.

    Used when callers build ``BrandSnapshot`` objects directly rather than
    going through ``parse_snapshot()``.
    """
    if not isinstance(snapshot, BrandSnapshot):
        raise InvalidInput(
            f"Expected a BrandSnapshot, got {type(snapshot).__name__}."
        )
    check_collection_caps(snapshot.model_dump(), limits)
    return snapshot


def check_variation_request(
    kind: VariationKind | str,
    count: int,
    limits: LimitsConfig | None = None,
) -> int:
    """Validate a request for ``count`` voice or logo-style variations.

    Args:
        kind:   ``"voice"`` or ``"logo"``.
        count:  Number of variations requested.
        limits: Cap configuration; defaults to ``LimitsConfig()``.

    Returns:
        ``count`` unchanged when it is within the cap.

    Raises:
        InvalidInput: Unknown ``kind`` or ``count < 1``.
        OutOfRangeCollection: ``count`` exceeds the cap for ``kind``.
    """
    limits = limits or LimitsConfig()
    try:
        kind = VariationKind(kind)
    except ValueError as exc:
        raise InvalidInput(
            f"Unknown variation kind '{kind}'. Must be one of "
            f"{[k.value for k in VariationKind]}."
        ) from exc

    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidInput(f"Variation count must be a positive integer, got {count!r}.")

    limit = (
        limits.max_voice_variants if kind is VariationKind.VOICE
        else limits.max_logo_variations
    )
    if count > limit:
        raise OutOfRangeCollection(f"{kind.value}_variations", count, limit)
    return count
