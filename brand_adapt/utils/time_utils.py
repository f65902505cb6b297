"""
Time helpers shared by the score engine, feedback ledger, and repositories.

All timestamps in the system are timezone-aware UTC datetimes. SQLite stores
them as ISO-8601 text, which sorts chronologically as long as every value
carries the same offset, so ``to_utc()`` is applied before persistence.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

# Smallest step used to keep successive score records strictly ordered.
TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Convert an aware datetime to UTC.

    Raises:
        ValueError: If ``value`` is naive.
    """
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise ValueError(f"Datetime must be timezone-aware, got naive {value.isoformat()}.")
    return value.astimezone(timezone.utc)


def strictly_after(previous: Optional[datetime], now: Optional[datetime] = None) -> datetime:
    """Return ``now`` (default: current time), nudged past ``previous`` if needed.

    Score history is keyed by ``(brand_id, computed_at)``; a recomputation must
    land strictly after the record it follows even when the wall clock has
    not advanced (or has stepped backwards).
    """
    current = to_utc(now) if now is not None else utcnow()
    if previous is not None and current <= to_utc(previous):
        return to_utc(previous) + TICK
    return current


def days_between(earlier: datetime, later: datetime) -> float:
    """Fractional days from ``earlier`` to ``later`` (negative if reversed)."""
    return (to_utc(later) - to_utc(earlier)).total_seconds() / 86_400.0


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string from the database, or pass ``None`` through."""
    if value is None:
        return None
    return datetime.fromisoformat(value)
