"""Quote pricing pipeline.

QuotePricingService ties the engine together:

    historical pool -> QuoteMatcher -> StatisticalPricer (+ lane stats)
                                    -> FallbackRateCard when nothing matches
                    -> AIPricingBlender (optional)

price_quote() is pure apart from logging and metrics. process_quotes() adds
the persistence and distance collaborators around it.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

from quote_pricing.config import Settings, get_settings
from quote_pricing.domain.ai import LLMProviderPort
from quote_pricing.domain.ports import (
    DistanceLookupError,
    DistanceServicePort,
    QuoteNotFoundError,
    QuotePricingError,
    QuoteRepositoryPort,
)
from quote_pricing.domain.quote import Quote, RouteDistance
from quote_pricing.domain.results import (
    FeedbackRecord,
    LanePricingStats,
    Match,
    PricingOutcome,
    PricingRecommendation,
)
from quote_pricing.feedback.weight_store import WeightStore
from quote_pricing.feedback.weights import WeightContext
from quote_pricing.matching import HistoricalQuoteValidator, MatchingOptions, QuoteMatcher
from quote_pricing.normalization import normalize_quote
from quote_pricing.observability import generate_request_id, set_request_id
from quote_pricing.observability.metrics import matches_found, pricing_requests_total

from .ai_blend import AIPricingBlender
from .lane_stats import apply_lane_stats
from .rate_card import FallbackRateCard
from .statistical import StatisticalPricer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingResult:
    """Recommendation plus the ranked matches it was derived from."""
    quote_id: int
    recommendation: PricingRecommendation
    matches: list[Match]
    distance_miles: Optional[float] = None
    distance_source: Optional[str] = None  # route | stored


@dataclass
class BatchPricingResult:
    """Outcome of process_quotes. Failed quote ids appear only in errors."""
    processed: int = 0
    matches_created: int = 0
    results: dict[int, PricingResult] = field(default_factory=dict)
    errors: dict[int, str] = field(default_factory=dict)


class QuotePricingService:
    """Price quotes against the historical pool.

    Args:
        matcher: Historical quote matcher
        statistical_pricer: Tier 1 pricer
        rate_card: Tier 2 fallback pricer
        ai_blender: Optional AI opinion blender (None disables the AI tier)
        weight_store: Learned weight cache (None uses the scorer's baseline)
        repository: Persistence collaborator, required by process_quotes
        distance_service: Optional route distance lookup
        options: Default matching options
        historical_pool_limit: Maximum historical quotes loaded per batch
    """

    def __init__(
        self,
        matcher: Optional[QuoteMatcher] = None,
        statistical_pricer: Optional[StatisticalPricer] = None,
        rate_card: Optional[FallbackRateCard] = None,
        ai_blender: Optional[AIPricingBlender] = None,
        weight_store: Optional[WeightStore] = None,
        repository: Optional[QuoteRepositoryPort] = None,
        distance_service: Optional[DistanceServicePort] = None,
        options: Optional[MatchingOptions] = None,
        historical_pool_limit: int = 2000,
    ):
        self.matcher = matcher or QuoteMatcher()
        self.statistical_pricer = statistical_pricer or StatisticalPricer()
        self.rate_card = rate_card or FallbackRateCard()
        self.ai_blender = ai_blender
        self.weight_store = weight_store
        self.repository = repository
        self.distance_service = distance_service
        self.options = options or MatchingOptions()
        self.historical_pool_limit = historical_pool_limit

    def __enter__(self) -> "QuotePricingService":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        """Release the AI blender's worker threads."""
        if self.ai_blender is not None:
            self.ai_blender.close()

    @classmethod
    def from_settings(
        cls,
        repository: Optional[QuoteRepositoryPort] = None,
        distance_service: Optional[DistanceServicePort] = None,
        llm_provider: Optional[LLMProviderPort] = None,
        settings: Optional[Settings] = None,
    ) -> "QuotePricingService":
        """Wire the service from Settings.

        The AI tier is enabled only when an llm_provider is given and
        AI_PRICING_ENABLED is set.
        """
        settings = settings or get_settings()
        matcher = QuoteMatcher(
            validator=HistoricalQuoteValidator(min_quality_score=settings.MIN_QUALITY_SCORE),
            max_workers=settings.SCORING_WORKERS,
            outlier_multiplier=settings.OUTLIER_IQR_MULTIPLIER,
        )
        weight_store = WeightStore(
            loader=repository.load_learned_weights if repository is not None else None,
            ttl_seconds=settings.WEIGHT_CACHE_TTL_SECONDS,
        )
        ai_blender = None
        if llm_provider is not None and settings.AI_PRICING_ENABLED:
            ai_blender = AIPricingBlender(llm_provider, timeout_seconds=settings.LLM_TIMEOUT_SECONDS)
        return cls(
            matcher=matcher,
            ai_blender=ai_blender,
            weight_store=weight_store,
            repository=repository,
            distance_service=distance_service,
            options=MatchingOptions(
                min_score=settings.MATCH_MIN_SCORE,
                max_matches=settings.MATCH_MAX_MATCHES,
            ),
            historical_pool_limit=settings.HISTORICAL_POOL_LIMIT,
        )

    def price_quote(
        self,
        source: Quote,
        historical_pool: Sequence[Quote],
        route_distance: Optional[RouteDistance] = None,
        feedback: Optional[Mapping[int, FeedbackRecord]] = None,
        options: Optional[MatchingOptions] = None,
        lane_stats: Optional[LanePricingStats] = None,
    ) -> PricingResult:
        """Produce a recommendation and its matches for one quote.

        Never raises for data problems or collaborator failures: the result
        always carries a positive recommended price.

        Args:
            source: Quote being priced
            historical_pool: Priced historical quotes
            route_distance: Pre-computed route distance; the quote's stored
                total_distance_miles is used when None
            feedback: FeedbackRecord per historical quote id
            options: Matching options (service default when None)
            lane_stats: Lane history used to adjust statistical prices
        """
        if route_distance is not None:
            distance_miles, distance_source = route_distance.miles, "route"
        elif source.total_distance_miles:
            distance_miles, distance_source = source.total_distance_miles, "stored"
        else:
            distance_miles, distance_source = None, None

        weights = None
        if self.weight_store is not None:
            weights = self.weight_store.get(WeightContext.for_quote(source))

        matches = self.matcher.find_matches(
            source,
            historical_pool,
            options=options or self.options,
            source_distance=distance_miles,
            feedback=feedback,
            weights=weights,
        )
        matches_found.observe(len(matches))

        recommendation = self.statistical_pricer.recommend(matches)
        if recommendation is not None:
            recommendation = apply_lane_stats(recommendation, lane_stats)
        else:
            logger.info(
                "No matches survived, using rate card",
                extra={"quote_id": source.quote_id, "pool": len(historical_pool)},
            )
            recommendation = self.rate_card.recommend(
                source, distance_miles, distance_source or "route"
            )

        if self.ai_blender is not None:
            recommendation = self.ai_blender.blend(
                source,
                matches,
                recommendation,
                distance_miles=distance_miles,
                distance_from_route=distance_source == "route",
                historical={q.quote_id: q for q in historical_pool},
                feedback=feedback,
            )

        pricing_requests_total.labels(tier=recommendation.tier.value).inc()
        return PricingResult(
            quote_id=source.quote_id,
            recommendation=recommendation,
            matches=matches,
            distance_miles=distance_miles,
            distance_source=distance_source,
        )

    def process_quotes(self, quote_ids: Iterable[int]) -> BatchPricingResult:
        """Price and persist a batch of quotes by id.

        Each quote's matches, recommendation and pricing outcome are written
        through the repository inside its own unit of work. A quote that
        fails has its writes rolled back, is recorded in
        BatchPricingResult.errors, and the batch continues.

        Raises:
            QuotePricingError: No repository is configured
        """
        if self.repository is None:
            raise QuotePricingError("process_quotes requires a repository")

        ids = list(dict.fromkeys(quote_ids))
        batch = BatchPricingResult()
        if not ids:
            return batch

        set_request_id(generate_request_id())
        pool = self.repository.historical_quotes_with_price(
            excluding_ids=ids, limit=self.historical_pool_limit
        )
        feedback = self.repository.feedback_for_quotes([q.quote_id for q in pool])
        logger.info(
            "Processing quote batch",
            extra={"quote_count": len(ids), "pool": len(pool), "with_feedback": len(feedback)},
        )

        for quote_id in ids:
            try:
                with self.repository.unit_of_work():
                    result = self._process_one(quote_id, pool, feedback)
            except QuoteNotFoundError as e:
                batch.errors[quote_id] = str(e)
                logger.warning("Quote not found", extra={"quote_id": quote_id})
                continue
            except Exception as e:
                batch.errors[quote_id] = f"{type(e).__name__}: {e}"
                logger.exception("Failed to price quote", extra={"quote_id": quote_id})
                continue

            batch.processed += 1
            batch.matches_created += len(result.matches)
            batch.results[quote_id] = result

        logger.info(
            "Quote batch complete",
            extra={
                "processed": batch.processed,
                "matches_created": batch.matches_created,
                "errors": len(batch.errors),
            },
        )
        return batch

    def _process_one(
        self,
        quote_id: int,
        pool: Sequence[Quote],
        feedback: Mapping[int, FeedbackRecord],
    ) -> PricingResult:
        source = self.repository.get_quote(quote_id)
        if source is None:
            raise QuoteNotFoundError(f"Quote {quote_id} not found")

        route = self._resolve_distance(source)
        distance = route.miles if route is not None else source.total_distance_miles
        attributes = normalize_quote(source, distance)

        lane = None
        if attributes.origin_region and attributes.destination_region:
            lane = self.repository.lane_pricing_stats(
                attributes.origin_region,
                attributes.destination_region,
                attributes.service_category.value,
            )

        result = self.price_quote(source, pool, route_distance=route, feedback=feedback, lane_stats=lane)
        recommendation = result.recommendation

        self.repository.bulk_insert_matches(result.matches, algorithm_version=recommendation.algorithm_version)
        self.repository.save_recommendation(quote_id, recommendation)
        self.repository.record_pricing_outcome(PricingOutcome(
            quote_id=quote_id,
            recommended_price=recommendation.recommended_price,
            confidence_percentage=recommendation.confidence_percentage,
            match_count=len(result.matches),
            tier=recommendation.tier,
            origin_region=attributes.origin_region,
            destination_region=attributes.destination_region,
            service_category=attributes.service_category.value,
            final_price=source.final_agreed_price,
            job_won=source.job_won,
            algorithm_version=recommendation.algorithm_version,
        ))

        logger.info(
            "Quote priced",
            extra={
                "quote_id": quote_id,
                "tier": recommendation.tier.value,
                "price": recommendation.recommended_price,
                "confidence": recommendation.confidence_percentage,
                "matches": len(result.matches),
            },
        )
        return result

    def _resolve_distance(self, source: Quote) -> Optional[RouteDistance]:
        """Route lookup, or None to fall back to the stored distance."""
        if self.distance_service is None:
            return None
        origin = source.origin_full_address or source.origin_text
        destination = source.destination_full_address or source.destination_text
        if not origin or not destination:
            return None
        try:
            return self.distance_service.route_distance(origin, destination)
        except DistanceLookupError as e:
            logger.warning(
                f"Distance lookup failed, using stored distance: {e}",
                extra={"quote_id": source.quote_id},
            )
            return None
