"""Domain records and ports for quote matching and pricing"""

from .quote import Quote, RouteDistance
from .results import (
    ALGORITHM_VERSION,
    AI_ALGORITHM_VERSION,
    ConfidenceLevel,
    FeedbackRecord,
    LanePricingStats,
    Match,
    MatchCriteria,
    MatchFeedbackSample,
    PriceRange,
    PriceSource,
    PricingOutcome,
    PricingRecommendation,
    PricingTier,
    QuoteValidation,
    ScoreResult,
    WeightAdjustment,
)
from .ports import (
    DistanceLookupError,
    DistanceServicePort,
    QuoteNotFoundError,
    QuotePricingError,
    QuoteRepositoryPort,
)

__all__ = [
    "Quote",
    "RouteDistance",
    "ALGORITHM_VERSION",
    "AI_ALGORITHM_VERSION",
    "ConfidenceLevel",
    "FeedbackRecord",
    "LanePricingStats",
    "Match",
    "MatchCriteria",
    "MatchFeedbackSample",
    "PriceRange",
    "PriceSource",
    "PricingOutcome",
    "PricingRecommendation",
    "PricingTier",
    "QuoteValidation",
    "ScoreResult",
    "WeightAdjustment",
    "DistanceLookupError",
    "DistanceServicePort",
    "QuoteNotFoundError",
    "QuotePricingError",
    "QuoteRepositoryPort",
]
