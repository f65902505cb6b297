"""
Logging setup for the brand adaptation engine.

Call ``configure_logging(config)`` once at CLI entry, before any scoring or
ranking work. Library modules only ever use ``logging.getLogger(__name__)``.

Output goes to stderr (stdout carries command results) and, when
``log_file`` is set, to that file as well. With ``json_format = true`` every
record is one JSON object per line::

    {"ts": "2026-03-02T09:15:00Z", "level": "WARNING", "logger": "brand_adapt.service",
     "msg": "Adaptation score alert | brand=acme value=57", "brand_id": "acme"}

Keys passed through ``extra=`` are lifted to the top level of the object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from brand_adapt.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came in via extra=.
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": created.strftime(LOG_DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, val) for key, val in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _handler(
    formatter: logging.Formatter,
    level: int,
    stream: Optional[IO[str]] = None,
    path: Optional[Path] = None,
) -> logging.Handler:
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(path, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(config: "LoggingConfig") -> None:
    """Replace the root logger's handlers according to ``config``."""
    level = logging.getLevelNamesMapping()[config.level.upper()]

    formatter = _formatter(config.json_format)
    handlers = [_handler(formatter, level, stream=sys.stderr)]
    if config.log_file:
        handlers.append(_handler(formatter, level, path=Path(config.log_file)))

    logging.basicConfig(level=level, handlers=handlers, force=True)
