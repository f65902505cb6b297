"""
Personalizer: folds a brand's feedback log into per-type ranking multipliers.

Update rule (per event, for the event's recommendation type)
------------------------------------------------------------
    accept : multiplier := min(2.0, multiplier * 1.1)
    reject : multiplier := max(0.1, multiplier * 0.9)
    modify : multiplier := multiplier * 1.0     (audit only, no change)

Unseen types start at 1.0. The bounds keep a type from being amplified
without limit or starved to zero. These weights are the only channel through
which past feedback reaches future rankings; the candidate generator itself
is never retrained.

``Personalizer`` keeps the latest weights per brand together with how many
ledger events they include, and applies only the events it has not seen yet,
under the brand's ledger lock.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from brand_adapt.config import PersonalizationConfig
from brand_adapt.feedback.ledger import FeedbackLedger
from brand_adapt.models.feedback import FeedbackEvent, PersonalizationWeights
from brand_adapt.taxonomy.recommendation_taxonomy import FeedbackAction

logger = logging.getLogger(__name__)


def apply_feedback(
    weights: PersonalizationWeights,
    event: FeedbackEvent,
    config: PersonalizationConfig | None = None,
) -> PersonalizationWeights:
    """Return new weights with ``event`` applied.

    Args:
        weights: Current weights for ``event.brand_id``.
        event:   The feedback event to fold in.
        config:  Update factors and bounds; defaults to ``PersonalizationConfig()``.

    Returns:
        A new ``PersonalizationWeights`` with ``events_applied`` incremented.

    Raises:
        ValueError: If ``event`` belongs to a different brand.
    """
    config = config or PersonalizationConfig()
    if event.brand_id != weights.brand_id:
        raise ValueError(
            f"Event for brand '{event.brand_id}' cannot update weights of '{weights.brand_id}'."
        )

    current = weights.multiplier(event.recommendation_type)
    if event.action is FeedbackAction.ACCEPT:
        updated = min(config.max_multiplier, current * config.accept_factor)
    elif event.action is FeedbackAction.REJECT:
        updated = max(config.min_multiplier, current * config.reject_factor)
    else:
        updated = current * config.modify_factor

    multipliers = dict(weights.per_type_multiplier)
    multipliers[event.recommendation_type] = updated

    return PersonalizationWeights(
        brand_id=weights.brand_id,
        per_type_multiplier=multipliers,
        events_applied=weights.events_applied + 1,
        updated_at=event.timestamp,
    )


class Personalizer:
    """Maintains per-brand weights from a ``FeedbackLedger``.

    Args:
        ledger:  The append-only feedback ledger.
        config:  Update factors and bounds.
        initial: Previously persisted weights keyed by brand id; each must not
            claim more applied events than the ledger holds for its brand.
    """

    def __init__(
        self,
        ledger: FeedbackLedger,
        config: PersonalizationConfig | None = None,
        initial: Optional[Mapping[str, PersonalizationWeights]] = None,
    ) -> None:
        self.ledger = ledger
        self.config = config or PersonalizationConfig()
        self._weights: dict[str, PersonalizationWeights] = {}
        for brand_id, weights in (initial or {}).items():
            if weights.events_applied <= len(ledger.events_for(brand_id)):
                self._weights[brand_id] = weights
            else:
                logger.warning(
                    "Discarding stored weights for brand=%s: %d events applied but "
                    "ledger holds %d; weights will be replayed",
                    brand_id, weights.events_applied, len(ledger.events_for(brand_id)),
                )

    def update_weights(self, brand_id: str) -> PersonalizationWeights:
        """Apply any not-yet-applied ledger events and return the weights."""
        with self.ledger.brand_lock(brand_id):
            weights = self._weights.get(brand_id) or PersonalizationWeights.default(brand_id)
            pending = self.ledger.events_for(brand_id)[weights.events_applied:]
            for event in pending:
                before = weights.multiplier(event.recommendation_type)
                weights = apply_feedback(weights, event, self.config)
                logger.debug(
                    "Weight %s/%s: %.4f -> %.4f (%s)",
                    brand_id, event.recommendation_type.value, before,
                    weights.multiplier(event.recommendation_type), event.action.value,
                )
            self._weights[brand_id] = weights
            return weights

    def record(self, event: FeedbackEvent) -> PersonalizationWeights:
        """Append ``event`` to the ledger and return the updated weights.

        The append and the weight update happen under one hold of the brand
        lock, so concurrent callers observe weights in event-arrival order.
        """
        with self.ledger.brand_lock(event.brand_id):
            self.ledger.record(event)
            return self.update_weights(event.brand_id)

    def weights_for(self, brand_id: str) -> PersonalizationWeights:
        """Current weights for ``brand_id`` (neutral if no feedback yet)."""
        return self.update_weights(brand_id)
