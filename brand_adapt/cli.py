"""
``brand-adapt`` command line.

Each data command reads its inputs (snapshot files are JSON), builds a
``BrandAdaptationService`` from the loaded config and prints the result as
JSON on stdout. Logs go to stderr. A domain error prints
``[ERROR] <kind>: <message>`` on stderr and exits 1.

Examples::

    brand-adapt --help
    brand-adapt init-db
    brand-adapt validate-config
    brand-adapt score --snapshot snapshots/acme.json
    brand-adapt history --brand acme --since 2026-01-01T00:00:00+00:00
    brand-adapt recommend --snapshot snapshots/acme.json
    brand-adapt feedback --brand acme --recommendation rec-0123456789ab --action accept
    brand-adapt implement --recommendation rec-0123456789ab --snapshot snapshots/acme.json
"""

from __future__ import annotations

import json
import tomllib
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from pydantic import ValidationError

app = typer.Typer(
    name="brand-adapt",
    help="Brand adaptation score and recommendation engine.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _config(config_path: Optional[str], with_logging: bool = True):
    """Load ``AppConfig`` (and set up logging), exiting 1 on a bad config."""
    from brand_adapt.config import load_config
    from brand_adapt.utils.logging import configure_logging

    try:
        config = load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except (tomllib.TOMLDecodeError, ValidationError) as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)

    if with_logging:
        configure_logging(config.logging)
    return config


def _service(config_path: Optional[str], db_path: Optional[str]):
    from brand_adapt.service import BrandAdaptationService

    return BrandAdaptationService(_config(config_path), db_path=db_path)


def _read_snapshot_or_exit(path: str) -> dict[str, Any]:
    """Read a JSON snapshot file, exiting with an error if unreadable."""
    snapshot_path = Path(path)
    if not snapshot_path.exists():
        typer.echo(f"[ERROR] Snapshot file not found: {snapshot_path}", err=True)
        raise typer.Exit(code=1)
    try:
        with open(snapshot_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] Snapshot is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)


def _parse_datetime_or_exit(value: Optional[str], option: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        typer.echo(
            f"[ERROR] {option} must be an ISO-8601 datetime with offset, got '{value}'.",
            err=True,
        )
        raise typer.Exit(code=1)


def _emit(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


def _fail(exc: Exception) -> None:
    """Report a domain error and exit with code 1."""
    kind = getattr(exc, "kind", type(exc).__name__)
    typer.echo(f"[ERROR] {kind}: {exc}", err=True)
    raise typer.Exit(code=1)


_CONFIG_HELP = "Path to TOML config file."
_DB_HELP = "Override DB path from config (e.g. data/db/test.db)."


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Create the history store tables and indexes (idempotent)."""
    from brand_adapt.db.connection import open_store
    from brand_adapt.db.schema import get_existing_tables

    config = _config(config_path)

    typer.echo(f"Initializing database at: {db_path or config.database.db_path}")
    with open_store(config.database, db_path, ensure_schema=True) as conn:
        tables = get_existing_tables(conn)

    typer.echo(f"  Tables: {', '.join(tables)}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Load and validate the config, then summarise the scoring setup."""
    from brand_adapt.models.score import ALERT_THRESHOLD

    config = _config(config_path, with_logging=False)
    scoring = config.scoring
    limits = config.limits

    typer.echo(f"  Store:            {config.database.db_path} (wal={config.database.wal_mode})")
    typer.echo(
        "  Score weights:    "
        f"consistency={scoring.consistency_weight} "
        f"alignment={scoring.alignment_weight} "
        f"engagement={scoring.engagement_weight}"
    )
    typer.echo(f"  Alert below:      {ALERT_THRESHOLD} (trend band +/-{scoring.stable_band})")
    p = config.personalization
    typer.echo(
        f"  Feedback:         accept x{p.accept_factor} reject x{p.reject_factor} "
        f"within [{p.min_multiplier}, {p.max_multiplier}]"
    )
    typer.echo(
        "  Caps:             "
        f"core_values={limits.max_core_values} "
        f"logo_variations={limits.max_logo_variations} "
        f"voice_variants={limits.max_voice_variants}"
    )
    typer.echo(f"  Logging:          {config.logging.level} -> {config.logging.log_file or 'stderr only'}")

    if show_full:
        _emit(config.model_dump(mode="json"))

    typer.echo("[OK] Config valid.")


@app.command("score")
def score(
    snapshot_file: str = typer.Option(..., "--snapshot", "-s", help="Brand snapshot JSON file."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Compute the adaptation score for a snapshot and append it to history."""
    from brand_adapt.errors import BrandAdaptError

    payload = _read_snapshot_or_exit(snapshot_file)
    service = _service(config_path, db_path)
    try:
        result = service.score(payload)
    except BrandAdaptError as exc:
        _fail(exc)
    _emit(result.model_dump(mode="json"))


@app.command("history")
def history(
    brand_id: str = typer.Option(..., "--brand", "-b", help="Brand id."),
    since: Optional[str] = typer.Option(None, "--since", help="ISO-8601 start (inclusive)."),
    until: Optional[str] = typer.Option(None, "--until", help="ISO-8601 end (inclusive)."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Print the stored score history for a brand, oldest first."""
    from brand_adapt.errors import BrandAdaptError

    start = _parse_datetime_or_exit(since, "--since")
    end = _parse_datetime_or_exit(until, "--until")
    service = _service(config_path, db_path)
    try:
        scores = service.score_history(brand_id, start, end)
    except BrandAdaptError as exc:
        _fail(exc)
    _emit([s.model_dump(mode="json") for s in scores])


@app.command("recommend")
def recommend(
    snapshot_file: str = typer.Option(..., "--snapshot", "-s", help="Brand snapshot JSON file."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Generate, de-conflict and rank recommendations for a snapshot."""
    from brand_adapt.errors import BrandAdaptError

    payload = _read_snapshot_or_exit(snapshot_file)
    service = _service(config_path, db_path)
    try:
        recs = service.recommendations(payload)
    except BrandAdaptError as exc:
        _fail(exc)
    _emit([r.model_dump(mode="json") for r in recs])


@app.command("feedback")
def feedback(
    brand_id: str = typer.Option(..., "--brand", "-b", help="Brand id."),
    recommendation_id: str = typer.Option(..., "--recommendation", "-r", help="Recommendation id."),
    action: str = typer.Option(..., "--action", "-a", help="accept, reject or modify."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Record feedback on a recommendation and print the updated weights."""
    from brand_adapt.errors import BrandAdaptError

    service = _service(config_path, db_path)
    try:
        weights = service.feedback(brand_id, recommendation_id, action)
    except BrandAdaptError as exc:
        _fail(exc)
    _emit(weights.model_dump(mode="json"))


@app.command("implement")
def implement(
    recommendation_id: str = typer.Option(..., "--recommendation", "-r", help="Recommendation id."),
    snapshot_file: Optional[str] = typer.Option(
        None,
        "--snapshot",
        "-s",
        help="Post-implementation snapshot JSON; when given, the brand is rescored.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help=_DB_HELP),
    config_path: Optional[str] = typer.Option(None, "--config", help=_CONFIG_HELP),
) -> None:
    """Mark a recommendation implemented, optionally rescoring the brand."""
    from brand_adapt.errors import BrandAdaptError

    payload = _read_snapshot_or_exit(snapshot_file) if snapshot_file else None
    service = _service(config_path, db_path)
    try:
        outcome = service.implement(recommendation_id, payload)
    except BrandAdaptError as exc:
        _fail(exc)
    _emit({
        "recommendation": outcome.recommendation.model_dump(mode="json"),
        "score": outcome.score.model_dump(mode="json") if outcome.score else None,
    })


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
