"""Matching: quality filtering, similarity scoring, ranking and outlier removal."""

from .locations import city_similarity, normalize_city
from .matcher import MatchingOptions, QuoteMatcher, effective_min_score, feedback_boost, ranking_key
from .outliers import percentile, remove_price_outliers
from .price_suggestion import PriceSuggestion, feedback_adjusted_confidence, suggest_price
from .scorer import CRITERIA, SimilarityScorer, distance_similarity, recency_score, service_compatibility
from .validation import HistoricalQuoteValidator

__all__ = [
    "city_similarity",
    "normalize_city",
    "MatchingOptions",
    "QuoteMatcher",
    "effective_min_score",
    "feedback_boost",
    "ranking_key",
    "percentile",
    "remove_price_outliers",
    "PriceSuggestion",
    "feedback_adjusted_confidence",
    "suggest_price",
    "CRITERIA",
    "SimilarityScorer",
    "distance_similarity",
    "recency_score",
    "service_compatibility",
    "HistoricalQuoteValidator",
]
