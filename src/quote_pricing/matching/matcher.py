"""Historical quote matching and ranking.

Pipeline per source quote:
1. quality filter (HistoricalQuoteValidator)
2. similarity score plus bounded feedback boost
3. per-service minimum score floor combined with the caller's min_score
4. deterministic ranking, truncation to max_matches
5. IQR outlier removal on suggested prices
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Sequence

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import FeedbackRecord, Match, ScoreResult
from quote_pricing.normalization import ServiceCategory, correct_service_type_by_distance, normalize_service_type
from quote_pricing.observability.metrics import scoring_duration_seconds

from .outliers import DEFAULT_IQR_MULTIPLIER, remove_price_outliers
from .price_suggestion import feedback_adjusted_confidence, suggest_price
from .scorer import SimilarityScorer
from .validation import HistoricalQuoteValidator

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 0.45
DEFAULT_MAX_MATCHES = 10

# Distance/location-sensitive services need closer comparables
SERVICE_MIN_SCORE: dict[ServiceCategory, float] = {
    ServiceCategory.DRAYAGE: 0.60,
    ServiceCategory.AIR: 0.60,
    ServiceCategory.OCEAN: 0.58,
    ServiceCategory.INTERMODAL: 0.55,
    ServiceCategory.GROUND: 0.55,
}

POSITIVE_FEEDBACK_BASE = 0.05
POSITIVE_FEEDBACK_PER_COUNT = 0.02
POSITIVE_FEEDBACK_MAX_BOOST = 0.15
NEGATIVE_FEEDBACK_PER_COUNT = 0.03
NEGATIVE_FEEDBACK_MAX_PENALTY = 0.10
VERIFIED_PRICE_BOOST = 0.08

# Below this pool size thread start-up costs more than it saves
PARALLEL_MIN_CANDIDATES = 64


@dataclass(frozen=True)
class MatchingOptions:
    min_score: float = DEFAULT_MIN_SCORE
    max_matches: int = DEFAULT_MAX_MATCHES


def feedback_boost(feedback: Optional[FeedbackRecord]) -> float:
    """Bounded score adjustment from operator feedback on a historical quote.

    Positive feedback adds 0.05 plus 0.02 per rating, at most 0.15 in total.
    Negative feedback subtracts 0.03 per rating, at most 0.10. Recorded
    actual prices add 0.08.
    """
    if feedback is None:
        return 0.0
    boost = 0.0
    if feedback.positive_count > 0:
        boost += POSITIVE_FEEDBACK_BASE + min(
            feedback.positive_count * POSITIVE_FEEDBACK_PER_COUNT,
            POSITIVE_FEEDBACK_MAX_BOOST - POSITIVE_FEEDBACK_BASE,
        )
    if feedback.negative_count > 0:
        boost -= min(feedback.negative_count * NEGATIVE_FEEDBACK_PER_COUNT, NEGATIVE_FEEDBACK_MAX_PENALTY)
    if feedback.has_verified_prices:
        boost += VERIFIED_PRICE_BOOST
    return boost


def effective_min_score(source: Quote, min_score: float, source_distance: Optional[float] = None) -> float:
    distance = source_distance if source_distance is not None else source.total_distance_miles
    service = correct_service_type_by_distance(
        normalize_service_type(source.service_type), distance, source.cargo_description
    )
    return max(min_score, SERVICE_MIN_SCORE.get(service, min_score))


def ranking_key(match: Match) -> tuple:
    """Score descending, then newest quote, then lowest quote id."""
    date = match.matched_quote_date
    timestamp = date.timestamp() if date is not None else float("-inf")
    return (-match.similarity_score, -timestamp, match.matched_quote_id)


class QuoteMatcher:
    """Find and rank historical comparables for a source quote.

    Args:
        scorer: Similarity scorer
        validator: Historical quote quality filter
        max_workers: Thread pool size for scoring large pools (1 disables it)
        outlier_multiplier: IQR multiplier for price outlier removal
        clock: Reference time source shared by validation, scoring and pricing
    """

    def __init__(
        self,
        scorer: Optional[SimilarityScorer] = None,
        validator: Optional[HistoricalQuoteValidator] = None,
        max_workers: int = 4,
        outlier_multiplier: float = DEFAULT_IQR_MULTIPLIER,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.scorer = scorer or SimilarityScorer(clock=self.clock)
        self.validator = validator or HistoricalQuoteValidator()
        self.max_workers = max(1, max_workers)
        self.outlier_multiplier = outlier_multiplier

    def find_matches(
        self,
        source: Quote,
        historical_pool: Sequence[Quote],
        options: Optional[MatchingOptions] = None,
        source_distance: Optional[float] = None,
        feedback: Optional[Mapping[int, FeedbackRecord]] = None,
        weights: Optional[Mapping[str, float]] = None,
    ) -> list[Match]:
        """Return ranked, outlier-filtered matches for a source quote.

        Args:
            source: Quote being priced
            historical_pool: Priced historical quotes
            options: min_score / max_matches
            source_distance: Route miles for the source quote, if resolved
            feedback: FeedbackRecord per historical quote id
            weights: Active weight table (scorer default with contextual
                overlays when None)

        Returns:
            Matches sorted by score (ties: newest quote, then quote id)
        """
        options = options or MatchingOptions()
        feedback = feedback or {}
        now = self.clock()

        candidates = [
            h for h in historical_pool
            if h.quote_id != source.quote_id and self.validator.validate(h, now).valid
        ]
        logger.debug(
            "Historical pool filtered",
            extra={"quote_id": source.quote_id, "pool": len(historical_pool), "eligible": len(candidates)},
        )

        if weights is None:
            weights = self.scorer.weights_for(source)

        started = time.perf_counter()
        results = self._score_all(source, candidates, source_distance, weights, now)
        scoring_duration_seconds.observe(time.perf_counter() - started)

        floor = effective_min_score(source, options.min_score, source_distance)
        matches: list[Match] = []
        for historical, result in zip(candidates, results):
            quote_feedback = feedback.get(historical.quote_id)
            boost = feedback_boost(quote_feedback)
            adjusted = round(min(1.0, max(0.0, result.score + boost)), 4)
            if adjusted < floor:
                continue

            suggestion = suggest_price(historical, adjusted, source, now)
            if suggestion is None:
                continue

            matches.append(Match(
                source_quote_id=source.quote_id,
                matched_quote_id=historical.quote_id,
                similarity_score=adjusted,
                criteria=result.criteria,
                suggested_price=suggestion.price,
                price_confidence=feedback_adjusted_confidence(suggestion.confidence, quote_feedback),
                price_range=suggestion.price_range,
                price_source=suggestion.source,
                matched_quote_date=historical.effective_date,
                job_won=historical.job_won,
                feedback_adjustment=round(boost, 4),
                metadata={
                    **result.metadata,
                    "raw_score": result.score,
                    "price_multiplier": suggestion.multiplier,
                    "historical_distance_miles": historical.total_distance_miles,
                },
            ))

        matches.sort(key=ranking_key)
        ranked = matches[:options.max_matches]
        kept, _ = remove_price_outliers(ranked, self.outlier_multiplier)

        logger.info(
            "Matches found",
            extra={
                "quote_id": source.quote_id,
                "candidates": len(candidates),
                "above_floor": len(matches),
                "kept": len(kept),
                "min_score": floor,
            },
        )
        return kept

    def _score_all(
        self,
        source: Quote,
        candidates: Sequence[Quote],
        source_distance: Optional[float],
        weights: Optional[Mapping[str, float]],
        now: datetime,
    ) -> list[ScoreResult]:
        def score(historical: Quote) -> ScoreResult:
            return self.scorer.score(
                source,
                historical,
                source_distance=source_distance,
                historical_distance=historical.total_distance_miles,
                weights=weights,
                now=now,
            )

        if self.max_workers == 1 or len(candidates) < PARALLEL_MIN_CANDIDATES:
            return [score(h) for h in candidates]

        # map() yields results in input order regardless of completion order
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="quote-scoring") as pool:
            return list(pool.map(score, candidates))
