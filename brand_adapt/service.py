"""
Service facade: the operations the core exposes to an application layer.

``BrandAdaptationService`` wires the pure core (score engine, candidate
generator, conflict resolver, ranker) to the SQLite history store and the
in-process feedback ledger:

  score(snapshot)                        → AdaptationScore (appended to history)
  score_history(brand_id, start, end)    → list[AdaptationScore]
  recommendations(snapshot)              → list[Recommendation]
  feedback(brand_id, rec_id, action)     → PersonalizationWeights
  implement(rec_id, snapshot=None)       → ImplementationOutcome

Every call opens its own connection via ``open_store()``, so one service
instance may be shared between threads. Writes for the same brand are
serialised by that brand's ledger lock; different brands never wait on each
other.

Usage::

    from brand_adapt.config import load_config
    from brand_adapt.service import BrandAdaptationService

    service = BrandAdaptationService(load_config())
    score = service.score(snapshot_payload)
    recs = service.recommendations(snapshot_payload)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional

from brand_adapt.config import AppConfig
from brand_adapt.db.connection import open_store
from brand_adapt.db.repositories.feedback_repo import FeedbackRepository, WeightsRepository
from brand_adapt.db.repositories.recommendation_repo import RecommendationRepository
from brand_adapt.db.repositories.score_repo import ScoreRepository
from brand_adapt.errors import InvalidInput, UnknownRecommendation
from brand_adapt.feedback.ledger import FeedbackLedger
from brand_adapt.feedback.personalizer import Personalizer, apply_feedback
from brand_adapt.models.brand import BrandSnapshot
from brand_adapt.models.feedback import FeedbackEvent, PersonalizationWeights
from brand_adapt.models.recommendation import Recommendation
from brand_adapt.models.score import AdaptationScore
from brand_adapt.recommendations.generator import generate_candidates
from brand_adapt.recommendations.ranker import rank
from brand_adapt.recommendations.resolver import resolve
from brand_adapt.scoring.engine import compute_score
from brand_adapt.taxonomy.recommendation_taxonomy import (
    FeedbackAction,
    RecommendationStatus,
    VariationKind,
)
from brand_adapt.utils.time_utils import to_utc, utcnow
from brand_adapt.validation import (
    check_snapshot,
    check_variation_request,
    parse_snapshot,
    require_brand_id,
)

logger = logging.getLogger(__name__)

SnapshotInput = BrandSnapshot | Mapping[str, Any]


@dataclass(frozen=True)
class ImplementationOutcome:
    """Result of ``implement()``.

    Attributes:
        recommendation: The recommendation after the status change.
        score:          The recomputed score when a snapshot was supplied,
                        otherwise ``None`` (the caller scores separately).
    """

    recommendation: Recommendation
    score: Optional[AdaptationScore] = None


class BrandAdaptationService:
    """Facade over the scoring and recommendation core.

    Args:
        config:  Application configuration.
        db_path: SQLite path; defaults to ``config.database.db_path``. Every
            call opens a new connection, so ``":memory:"`` does not persist
            between calls; use a file path.
    """

    def __init__(self, config: AppConfig, db_path: str | None = None) -> None:
        self.config = config
        self.db_path = db_path or config.database.db_path

        with open_store(config.database, self.db_path, ensure_schema=True) as conn:
            events = FeedbackRepository(conn).get_all()
            stored_weights = WeightsRepository(conn).get_all()

        self.ledger = FeedbackLedger(events)
        self.personalizer = Personalizer(
            self.ledger, config.personalization, initial=stored_weights
        )
        logger.debug(
            "Service ready | db=%s | %d feedback event(s) across %d brand(s)",
            self.db_path, len(self.ledger), len(self.ledger.brands()),
        )

    # ── Scores ────────────────────────────────────────────────────────────────

    def score(self, snapshot: SnapshotInput) -> AdaptationScore:
        """Compute the brand's score and append it to the history.

        Raises:
            InvalidInput: Malformed snapshot.
            OutOfRangeCollection: A capped collection is too large.
        """
        snapshot = self._coerce_snapshot(snapshot)
        with self.ledger.brand_lock(snapshot.brand_id):
            with self._connect() as conn:
                repo = ScoreRepository(conn)
                prior = repo.get_latest(snapshot.brand_id)
                score = compute_score(
                    snapshot, [prior] if prior else [], self.config.scoring
                )
                score_id = repo.insert(score)
        if score.alert:
            logger.warning(
                "Adaptation score alert | brand=%s value=%d", score.brand_id, score.value
            )
        return score.model_copy(update={"score_id": score_id})

    def score_history(
        self,
        brand_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[AdaptationScore]:
        """Stored scores for a brand within ``[start, end]``, oldest first.

        Raises:
            InvalidInput: Missing brand id, naive bounds, or ``start > end``.
        """
        brand_id = require_brand_id(brand_id)
        try:
            start = to_utc(start) if start is not None else None
            end = to_utc(end) if end is not None else None
        except ValueError as exc:
            raise InvalidInput(str(exc)) from exc
        if start is not None and end is not None and start > end:
            raise InvalidInput(
                f"History range start {start.isoformat()} is after end {end.isoformat()}."
            )

        with self._connect() as conn:
            return ScoreRepository(conn).get_history(brand_id, start, end)

    # ── Recommendations ───────────────────────────────────────────────────────

    def recommendations(self, snapshot: SnapshotInput) -> list[Recommendation]:
        """Generate, resolve and rank recommendations for a snapshot.

        The score breakdown is computed against the stored history but not
        appended to it, so repeated calls with no intervening feedback or
        snapshot change return the same ordered list.
        """
        snapshot = self._coerce_snapshot(snapshot)
        brand_id = snapshot.brand_id

        with self._connect() as conn:
            prior = ScoreRepository(conn).get_latest(brand_id)
        breakdown = compute_score(snapshot, [prior] if prior else [], self.config.scoring)

        candidates = generate_candidates(snapshot, breakdown, config=self.config.generation)
        resolved = resolve(candidates)

        with self.ledger.brand_lock(brand_id):
            weights = self.personalizer.weights_for(brand_id)
            ranked = rank(resolved, weights)
            with self._connect() as conn:
                merged = RecommendationRepository(conn).upsert_generated(ranked)

        logger.info(
            "Recommendations brand=%s | candidates=%d resolved=%d",
            brand_id, len(candidates), len(merged),
        )
        return merged

    # ── Feedback ──────────────────────────────────────────────────────────────

    def feedback(
        self,
        brand_id: str,
        recommendation_id: str,
        action: FeedbackAction | str,
    ) -> PersonalizationWeights:
        """Record a user action and return the brand's updated weights.

        ``accept`` and ``reject`` also move the recommendation's status when
        the transition is allowed; ``modify`` never does.

        Raises:
            InvalidInput: Missing brand id or unknown action.
            UnknownRecommendation: The id was never generated for this brand.
        """
        brand_id = require_brand_id(brand_id)
        try:
            action = FeedbackAction(action)
        except ValueError as exc:
            raise InvalidInput(
                f"Unknown feedback action '{action}'. Must be one of "
                f"{[a.value for a in FeedbackAction]}."
            ) from exc

        with self.ledger.brand_lock(brand_id):
            with self._connect() as conn:
                recs = RecommendationRepository(conn)
                rec = recs.get(recommendation_id)
                if rec is None or rec.brand_id != brand_id:
                    raise UnknownRecommendation(recommendation_id)

                event = FeedbackEvent(
                    brand_id=brand_id,
                    recommendation_id=rec.id,
                    recommendation_type=rec.type,
                    action=action,
                    timestamp=utcnow(),
                )
                event_id = FeedbackRepository(conn).insert(event)

                target = action.resulting_status
                if target is not None and rec.status.can_transition_to(target):
                    recs.update_status(rec.id, target)
                elif target is not None:
                    logger.debug(
                        "Status of %s stays %s after %s",
                        rec.id, rec.status.value, action.value,
                    )

                stored = event.model_copy(update={"event_id": event_id})
                weights = apply_feedback(
                    self.personalizer.weights_for(brand_id),
                    stored,
                    self.config.personalization,
                )
                WeightsRepository(conn).upsert(weights)

            # Only committed events reach the in-memory ledger.
            weights = self.personalizer.record(stored)

        return weights

    # ── Implementation ────────────────────────────────────────────────────────

    def implement(
        self,
        recommendation_id: str,
        snapshot: Optional[SnapshotInput] = None,
    ) -> ImplementationOutcome:
        """Mark a recommendation implemented, optionally rescoring the brand.

        Implementing an already-implemented recommendation changes nothing.

        Args:
            recommendation_id: Id from a previous ``recommendations()`` call.
            snapshot: The brand's post-implementation snapshot. When given,
                the score is recomputed and appended to the history.

        Raises:
            InvalidInput: Blank id, a rejected recommendation, or a snapshot
                for a different brand.
            UnknownRecommendation: The id was never generated.
        """
        if not recommendation_id or not recommendation_id.strip():
            raise InvalidInput("recommendation_id is required.")
        recommendation_id = recommendation_id.strip()

        parsed = self._coerce_snapshot(snapshot) if snapshot is not None else None

        with self._connect() as conn:
            recs = RecommendationRepository(conn)
            rec = recs.get(recommendation_id)
            if rec is None:
                raise UnknownRecommendation(recommendation_id)
            if parsed is not None and parsed.brand_id != rec.brand_id:
                raise InvalidInput(
                    f"Snapshot is for brand '{parsed.brand_id}' but "
                    f"{recommendation_id} belongs to '{rec.brand_id}'."
                )

            if rec.status is RecommendationStatus.IMPLEMENTED:
                logger.info("Recommendation %s already implemented", rec.id)
            elif rec.status.can_transition_to(RecommendationStatus.IMPLEMENTED):
                recs.update_status(rec.id, RecommendationStatus.IMPLEMENTED)
                rec = rec.with_status(RecommendationStatus.IMPLEMENTED)
                logger.info("Implemented recommendation %s brand=%s", rec.id, rec.brand_id)
            else:
                raise InvalidInput(
                    f"Recommendation {rec.id} is {rec.status.value} and cannot be implemented."
                )

        score = self.score(parsed) if parsed is not None else None
        return ImplementationOutcome(recommendation=rec, score=score)

    # ── Guards ────────────────────────────────────────────────────────────────

    def request_variations(self, kind: VariationKind | str, count: int) -> int:
        """Validate a voice/logo variation request against the configured caps."""
        return check_variation_request(kind, count, self.config.limits)

    # ── Private helpers ───────────────────────────────────────────────────────

    def _connect(self):
        return open_store(self.config.database, self.db_path)

    def _coerce_snapshot(self, snapshot: SnapshotInput) -> BrandSnapshot:
        if isinstance(snapshot, BrandSnapshot):
            return check_snapshot(snapshot, self.config.limits)
        return parse_snapshot(snapshot, self.config.limits)
