"""
Domain errors raised to callers of the brand adaptation core.

Every error carries a machine-checkable ``kind`` string so an API layer can
map it to a response without parsing messages:

  ``invalid_input``            — missing brand id, malformed snapshot, bad
                                 status transition; rejected before any
                                 computation runs.
  ``out_of_range_collection``  — an upstream collection exceeds its fixed cap
                                 (core values, logo variations, voice variants).
  ``unknown_recommendation``   — feedback or implement referencing an id that
                                 was never generated.
"""

from __future__ import annotations

from typing import ClassVar


class BrandAdaptError(RuntimeError):
    """Base class for all brand adaptation domain errors."""

    kind: ClassVar[str] = "brand_adapt_error"


class InvalidInput(BrandAdaptError):
    """Raised when input is rejected before computation."""

    kind: ClassVar[str] = "invalid_input"


class OutOfRangeCollection(BrandAdaptError):
    """Raised when a collection exceeds its fixed cap.

    Attributes:
        collection: Name of the offending collection, e.g. ``"logo_variants"``.
        count:      Number of entries supplied.
        limit:      Maximum allowed entries.
    """

    kind: ClassVar[str] = "out_of_range_collection"

    def __init__(self, collection: str, count: int, limit: int) -> None:
        self.collection = collection
        self.count = count
        self.limit = limit
        super().__init__(
            f"{collection} has {count} entries; at most {limit} are allowed."
        )


class UnknownRecommendation(BrandAdaptError):
    """Raised when a recommendation id is not in the store.

    Attributes:
        recommendation_id: The id that could not be resolved.
    """

    kind: ClassVar[str] = "unknown_recommendation"

    def __init__(self, recommendation_id: str) -> None:
        self.recommendation_id = recommendation_id
        super().__init__(f"Unknown recommendation id '{recommendation_id}'.")
