"""
Append-only feedback ledger with per-brand ordering.

The ledger is the one piece of mutable shared state in the core. Events for
the same brand are serialised by that brand's re-entrant lock so weight
updates apply in arrival order; events for different brands use different
locks and never wait on each other.

Nothing is ever removed or rewritten: ``events_for()`` hands out tuples
(snapshots of the log at call time), and ``FeedbackEvent`` itself is frozen.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Generator, Iterable

from brand_adapt.models.feedback import FeedbackEvent

logger = logging.getLogger(__name__)


class FeedbackLedger:
    """In-process, append-only store of ``FeedbackEvent`` objects.

    Args:
        events: Previously persisted events to seed the ledger with, in
            arrival order.
    """

    def __init__(self, events: Iterable[FeedbackEvent] = ()) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.RLock] = {}
        self._events: dict[str, list[FeedbackEvent]] = defaultdict(list)
        for event in events:
            self._events[event.brand_id].append(event)

    def _lock_for(self, brand_id: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(brand_id)
            if lock is None:
                lock = self._locks[brand_id] = threading.RLock()
            return lock

    @contextmanager
    def brand_lock(self, brand_id: str) -> Generator[None, None, None]:
        """Hold ``brand_id``'s ordering lock for the duration of the block.

        Re-entrant, so a holder may call ``record()`` or ``events_for()``
        for the same brand without deadlocking.
        """
        lock = self._lock_for(brand_id)
        with lock:
            yield

    def _bucket(self, brand_id: str) -> list[FeedbackEvent]:
        with self._registry_lock:
            return self._events[brand_id]

    def record(self, event: FeedbackEvent) -> None:
        """Append ``event`` to its brand's log."""
        with self.brand_lock(event.brand_id):
            self._bucket(event.brand_id).append(event)
        logger.info(
            "Recorded feedback brand=%s rec=%s action=%s",
            event.brand_id, event.recommendation_id, event.action.value,
        )

    def events_for(self, brand_id: str) -> tuple[FeedbackEvent, ...]:
        """Events for ``brand_id`` in arrival order."""
        with self.brand_lock(brand_id):
            return tuple(self._events.get(brand_id, ()))

    def brands(self) -> list[str]:
        """Brand ids with at least one recorded event, sorted."""
        with self._registry_lock:
            return sorted(b for b, evs in self._events.items() if evs)

    def __len__(self) -> int:
        return sum(len(evs) for evs in self._events.values())
