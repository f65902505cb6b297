"""
Configuration for the brand adaptation engine.

``load_config(config_path=None) -> AppConfig`` layers, lowest first:

  config/default.toml    committed defaults (or the file passed as --config)
  local.toml             same directory, optional, gitignored
  .env                   loaded into the environment, never overrides it
  BRAND_ADAPT_*          DB_PATH, LOG_LEVEL, DEBUG

The core functions (score engine, candidate generator, ranker, personalizer)
accept their own config section as an optional argument and fall back to that
section's defaults, so they stay usable without a config file.
"""

from __future__ import annotations

import math
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class DatabaseConfig(BaseModel):
    """SQLite history store connection settings."""

    model_config = ConfigDict(frozen=True)

    db_path: str = "data/db/brand_adapt.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = "data/logs/brand_adapt.log"
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class ScoringConfig(BaseModel):
    """Adaptation score weights and thresholds.

    The three component weights are fixed constants; they are configurable
    only so a deployment can pin them explicitly, and must sum to 1.0.
    """

    model_config = ConfigDict(frozen=True)

    consistency_weight: float = 0.40
    alignment_weight: float = 0.35
    engagement_weight: float = 0.25
    stable_band: int = 2
    completeness_weight: float = 0.6     # audience_engagement sub-weights
    freshness_weight: float = 0.4
    freshness_horizon_days: int = 180    # audience freshness decays to 0 here

    @model_validator(mode="after")
    def validate_weights(self) -> "ScoringConfig":
        total = self.consistency_weight + self.alignment_weight + self.engagement_weight
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Component weights must sum to 1.0, got {total}.")
        sub_total = self.completeness_weight + self.freshness_weight
        if not math.isclose(sub_total, 1.0, abs_tol=1e-9):
            raise ValueError(
                f"completeness_weight + freshness_weight must sum to 1.0, got {sub_total}."
            )
        if self.freshness_horizon_days <= 0:
            raise ValueError("freshness_horizon_days must be positive.")
        return self


class GenerationConfig(BaseModel):
    """Candidate generator strategy thresholds.

    ``impact_gain`` converts a metric's shortfall below its threshold into an
    estimated impact; trend-triggered candidates start from
    ``trend_base_impact`` and grow with relevance above
    ``high_relevance_threshold``.
    """

    model_config = ConfigDict(frozen=True)

    visual_consistency_threshold: float = 70.0
    high_relevance_threshold: float = 75.0
    messaging_engagement_threshold: float = 65.0
    tone_alignment_threshold: float = 70.0
    content_alignment_threshold: float = 60.0
    audience_stale_days: int = 90
    audience_completeness_threshold: float = 1.0
    impact_gain: float = 2.0
    trend_base_impact: float = 35.0

    @field_validator("impact_gain")
    @classmethod
    def validate_gain(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"impact_gain must be positive, got {v}.")
        return v


class PersonalizationConfig(BaseModel):
    """Bounded multiplicative update rule for per-type feedback weights."""

    model_config = ConfigDict(frozen=True)

    accept_factor: float = 1.1
    reject_factor: float = 0.9
    modify_factor: float = 1.0
    min_multiplier: float = 0.1
    max_multiplier: float = 2.0

    @model_validator(mode="after")
    def validate_bounds(self) -> "PersonalizationConfig":
        if not 0.0 <= self.min_multiplier <= 1.0 <= self.max_multiplier:
            raise ValueError(
                "Multiplier bounds must satisfy 0 <= min_multiplier <= 1.0 <= max_multiplier, "
                f"got [{self.min_multiplier}, {self.max_multiplier}]."
            )
        if self.accept_factor < 1.0:
            raise ValueError(f"accept_factor must be >= 1.0, got {self.accept_factor}.")
        if not 0.0 < self.reject_factor <= 1.0:
            raise ValueError(f"reject_factor must be in (0.0, 1.0], got {self.reject_factor}.")
        return self


class LimitsConfig(BaseModel):
    """Upstream collection caps enforced before computation."""

    model_config = ConfigDict(frozen=True)

    max_core_values: int = 10
    max_logo_variations: int = 10
    max_voice_variants: int = 5


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    Constructed by ``load_config()`` which merges TOML + .env.
    """

    model_config = ConfigDict(frozen=True)

    database: DatabaseConfig = DatabaseConfig()
    logging: LoggingConfig = LoggingConfig()
    scoring: ScoringConfig = ScoringConfig()
    generation: GenerationConfig = GenerationConfig()
    personalization: PersonalizationConfig = PersonalizationConfig()
    limits: LimitsConfig = LimitsConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

DEFAULT_CONFIG = Path("config") / "default.toml"
LOCAL_CONFIG_NAME = "local.toml"

# Env var → (section, key); section None means top level.
_ENV_OVERRIDES: dict[str, tuple[Optional[str], str]] = {
    "BRAND_ADAPT_DB_PATH": ("database", "db_path"),
    "BRAND_ADAPT_LOG_LEVEL": ("logging", "level"),
    "BRAND_ADAPT_DEBUG": (None, "debug"),
}
_TRUTHY = frozenset({"1", "true", "yes", "on"})


def project_root() -> Path:
    """Nearest ancestor of this package holding ``pyproject.toml``."""
    here = Path(__file__).resolve().parent
    for candidate in (here, *here.parents):
        if (candidate / "pyproject.toml").exists():
            return candidate
    return here.parent


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Build the ``AppConfig`` from TOML layers, ``.env`` and the environment.

    Args:
        config_path: TOML file to start from; ``config/default.toml`` under
            the project root when omitted. A ``local.toml`` next to it is
            merged on top.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        pydantic.ValidationError: A merged value fails validation.
    """
    root = project_root()
    load_dotenv(dotenv_path=root / ".env", override=False)

    path = Path(config_path) if config_path is not None else root / DEFAULT_CONFIG
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}. "
            "Create config/default.toml or pass --config explicitly."
        )

    raw = _read_toml(path)
    local = path.with_name(LOCAL_CONFIG_NAME)
    if local.exists():
        raw = _merge(raw, _read_toml(local))

    # [project] debug is the file-level switch; top-level debug wins.
    project = raw.pop("project", {})
    raw.setdefault("debug", project.get("debug", False))

    return AppConfig.model_validate(_with_env(raw, os.environ))


def _read_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as fh:
        return tomllib.load(fh)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Section-aware merge: nested tables merge, scalars replace."""
    merged = dict(base)
    for key, val in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(val, dict):
            merged[key] = _merge(current, val)
        else:
            merged[key] = val
    return merged


def _with_env(raw: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    out = dict(raw)
    for var, (section, key) in _ENV_OVERRIDES.items():
        value: Any = env.get(var)
        if not value:
            continue
        if key == "debug":
            value = value.strip().lower() in _TRUTHY
        if section is None:
            out[key] = value
        else:
            out[section] = {**out.get(section, {}), key: value}
    return out
