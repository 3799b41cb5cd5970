"""Persistence and distance ports.

The engine depends on these interfaces only; SQLAlchemy and lookup-table
adapters live under quote_pricing.infrastructure.
"""

from abc import ABC, abstractmethod
from contextlib import nullcontext
from typing import ContextManager, Iterable, Optional, Sequence

from .quote import Quote, RouteDistance
from .results import (
    ALGORITHM_VERSION,
    FeedbackRecord,
    LanePricingStats,
    Match,
    MatchFeedbackSample,
    PricingOutcome,
    PricingRecommendation,
    WeightAdjustment,
)


class QuotePricingError(Exception):
    """Base exception for the pricing engine"""
    pass


class QuoteNotFoundError(QuotePricingError):
    """Requested source quote does not exist"""
    pass


class DistanceLookupError(QuotePricingError):
    """Distance service failed (network, quota, unknown address)"""
    pass


class QuoteRepositoryPort(ABC):
    """Read/write access to quotes, matches, feedback and learned weights.

    Implementations must make bulk_insert_matches an idempotent upsert on
    (source_quote_id, matched_quote_id). No other transactional guarantee
    is expected.
    """

    @abstractmethod
    def get_quote(self, quote_id: int) -> Optional[Quote]:
        pass

    @abstractmethod
    def historical_quotes_with_price(
        self,
        excluding_ids: Iterable[int],
        limit: int
    ) -> list[Quote]:
        """Return priced historical quotes, newest first.

        Args:
            excluding_ids: Quote ids never returned (the batch being priced)
            limit: Maximum number of quotes
        """
        pass

    @abstractmethod
    def feedback_for_quotes(self, quote_ids: Iterable[int]) -> dict[int, FeedbackRecord]:
        pass

    @abstractmethod
    def bulk_insert_matches(
        self,
        matches: Sequence[Match],
        algorithm_version: str = ALGORITHM_VERSION
    ) -> int:
        """Upsert matches. Returns the number of rows written."""
        pass

    @abstractmethod
    def save_recommendation(self, quote_id: int, recommendation: PricingRecommendation) -> None:
        pass

    @abstractmethod
    def match_feedback_samples(self) -> list[MatchFeedbackSample]:
        pass

    @abstractmethod
    def load_learned_weights(self) -> Optional[dict[str, float]]:
        """Return the last persisted learned weight table, or None if never learned."""
        pass

    @abstractmethod
    def save_weight_adjustments(self, adjustments: Sequence[WeightAdjustment]) -> None:
        pass

    @abstractmethod
    def record_pricing_outcome(self, outcome: PricingOutcome) -> None:
        pass

    @abstractmethod
    def lane_pricing_stats(
        self,
        origin_region: str,
        destination_region: str,
        service_category: str
    ) -> Optional[LanePricingStats]:
        pass

    def unit_of_work(self) -> ContextManager:
        """Scope for one quote's writes.

        Writes made inside the block are undone when it raises. Repositories
        without transactions keep the default, which does nothing.
        """
        return nullcontext()


class DistanceServicePort(ABC):
    """Route distance lookup between two free-text locations."""

    @abstractmethod
    def route_distance(self, origin: str, destination: str) -> Optional[RouteDistance]:
        """Return the driving distance, or None when the route cannot be resolved.

        Raises:
            DistanceLookupError: Lookup failed for a transient reason
        """
        pass
