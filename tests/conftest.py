"""
Shared pytest fixtures for the brand adaptation test suite.

Provides:
  - ``in_memory_db``: A fresh in-memory SQLite connection with the full
    schema applied. Created anew for each test that requests it.
  - ``snapshot_payload`` / ``sample_snapshot``: the "acme" brand used across
    modules, as a raw mapping and as a validated ``BrandSnapshot``.
  - ``make_score``: factory for valid ``AdaptationScore`` history records.
  - ``service``: a ``BrandAdaptationService`` backed by a temp-file database.

The acme snapshot scores (at default config):
    brand_consistency   = 50.00  (3 traits; 1 tone guideline + 2 colour rules)
    market_alignment    = 70.67  (mean of 80, 82, 50)
    audience_engagement = 74.89  (4/5 fields, 59 days old)
    value               = 63     (no alert)
"""

from __future__ import annotations

import copy
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generator

import pytest

from brand_adapt.config import AppConfig, LoggingConfig
from brand_adapt.db.schema import apply_schema
from brand_adapt.models.brand import BrandSnapshot
from brand_adapt.models.score import (
    AUDIENCE_ENGAGEMENT,
    BRAND_CONSISTENCY,
    MARKET_ALIGNMENT,
    AdaptationScore,
    ScoreComponent,
)
from brand_adapt.service import BrandAdaptationService
from brand_adapt.taxonomy.recommendation_taxonomy import ScoreTrend

CAPTURED_AT = datetime(2026, 3, 1, 0, 0, 0, tzinfo=timezone.utc)


# ── Database fixture ──────────────────────────────────────────────────────────

@pytest.fixture
def in_memory_db() -> Generator[sqlite3.Connection, None, None]:
    """Yield a fresh in-memory SQLite connection with the full schema applied.

    Foreign key enforcement is ON. Connection is closed after the test.
    """
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    apply_schema(conn)
    yield conn
    conn.close()


# ── Sample domain objects ─────────────────────────────────────────────────────

_ACME: dict[str, Any] = {
    "brand_id": "acme",
    "industry": "outdoor_apparel",
    "identity": {
        "values": ["quality", "innovation"],
        "personality_traits": ["playful", "friendly", "bold"],
        "mission": "Gear that makes every trail more fun.",
        "mission_keywords": ["gear", "trail"],
    },
    "visual_kit": {
        "primary_color": "#FF5500",
        "secondary_colors": ["#222222"],
        "logo_variants": ["full", "mark"],
        "logo_variant": "full",
        "color_usage_rules": {
            "playful": "Orange for calls to action",
            "bold": "High-contrast headers",
        },
    },
    "voice": {
        "tone_formality": "formal",
        "vocabulary_set": "corporate",
        "tone_guidelines": {"playful": "Light humour in headlines"},
        "variants": ["default"],
    },
    "audience": {
        "segment": "urban millennials",
        "age_range": "25-34",
        "locations": ["Berlin"],
        "interests": ["cycling"],
        "pain_points": [],
        "updated_at": (CAPTURED_AT - timedelta(days=59)).isoformat(),
    },
    "trends": [
        {
            "trend_id": "t-1",
            "name": "Sustainable materials",
            "category": "content",
            "relevance": 80,
            "attribute": "content_focus",
            "suggested_value": "sustainability",
        },
        {
            "trend_id": "t-2",
            "name": "Earth tones",
            "category": "visual",
            "relevance": 82,
            "attribute": "primary_color",
            "suggested_value": "#8B5E3C",
        },
        {
            "trend_id": "t-3",
            "name": "Gen Z humour",
            "category": "messaging",
            "relevance": 50,
        },
    ],
    "captured_at": CAPTURED_AT.isoformat(),
}


@pytest.fixture
def snapshot_payload() -> dict[str, Any]:
    """Raw acme snapshot mapping (a fresh deep copy per test)."""
    return copy.deepcopy(_ACME)


@pytest.fixture
def sample_snapshot(snapshot_payload) -> BrandSnapshot:
    """Validated acme ``BrandSnapshot``."""
    return BrandSnapshot.model_validate(snapshot_payload)


@pytest.fixture
def make_score() -> Callable[..., AdaptationScore]:
    """Factory for a valid ``AdaptationScore`` whose components all equal ``value``."""

    def _make(
        value: int,
        brand_id: str = "acme",
        computed_at: datetime = CAPTURED_AT,
        trend: ScoreTrend = ScoreTrend.STABLE,
    ) -> AdaptationScore:
        components = [
            ScoreComponent(name=BRAND_CONSISTENCY, raw_value=value, weight=0.40),
            ScoreComponent(name=MARKET_ALIGNMENT, raw_value=value, weight=0.35),
            ScoreComponent(name=AUDIENCE_ENGAGEMENT, raw_value=value, weight=0.25),
        ]
        return AdaptationScore(
            brand_id=brand_id,
            value=value,
            components=components,
            trend=trend,
            alert=value < 60,
            computed_at=computed_at,
        )

    return _make


# ── Service fixture ───────────────────────────────────────────────────────────

@pytest.fixture
def app_config() -> AppConfig:
    """Default config with file logging disabled."""
    return AppConfig(logging=LoggingConfig(log_file=""))


@pytest.fixture
def service(tmp_path, app_config) -> BrandAdaptationService:
    """Service over a fresh SQLite file in ``tmp_path``."""
    return BrandAdaptationService(app_config, db_path=str(tmp_path / "brand_adapt.db"))
