"""Result types produced by the matching and pricing engine.

All of these are created once and treated as read-only afterwards.
Recommendations are replaced (dataclasses.replace), never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

# criterion name -> sub-score in [0, 1]
MatchCriteria = dict[str, float]

ALGORITHM_VERSION = "v2-enhanced"
AI_ALGORITHM_VERSION = "v2-ai-enhanced"


class ConfidenceLevel(str, Enum):
    """Statistical confidence tier of a recommendation."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    VERY_LOW = "VERY_LOW"

    @property
    def is_low(self) -> bool:
        return self in (ConfidenceLevel.LOW, ConfidenceLevel.VERY_LOW)


class PricingTier(str, Enum):
    """Which pricing path produced the recommended number."""
    STATISTICAL = "statistical"
    RATE_CARD = "rate_card"
    AI_BLENDED = "ai_blended"


class PriceSource(str, Enum):
    FINAL_AGREED = "FINAL_AGREED"
    INITIAL_QUOTE = "INITIAL_QUOTE"


@dataclass(frozen=True)
class PriceRange:
    low: float
    high: float


@dataclass(frozen=True)
class ScoreResult:
    """Output of a single source/historical comparison.

    Attributes:
        score: Final similarity in [0, 1] after post-adjustments
        criteria: One sub-score per criterion in the active weight table
        metadata: Normalized attributes and applied penalties, for debugging
    """
    score: float
    criteria: MatchCriteria
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class QuoteValidation:
    valid: bool
    quality_score: float
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class FeedbackRecord:
    """Operator feedback aggregated per historical quote.

    Attributes:
        quote_id: Historical quote the feedback refers to
        positive_count: Number of thumbs-up ratings on matches to this quote
        negative_count: Number of thumbs-down ratings
        actual_prices_used: Prices operators actually quoted after seeing the match
    """
    quote_id: int
    positive_count: int = 0
    negative_count: int = 0
    actual_prices_used: tuple[float, ...] = ()

    @property
    def has_verified_prices(self) -> bool:
        return len(self.actual_prices_used) > 0


@dataclass(frozen=True)
class Match:
    """A ranked historical comparable for a source quote."""
    source_quote_id: int
    matched_quote_id: int
    similarity_score: float
    criteria: MatchCriteria
    suggested_price: float
    price_confidence: float
    price_range: PriceRange
    price_source: PriceSource
    matched_quote_date: Optional[datetime] = None
    job_won: Optional[bool] = None
    feedback_adjustment: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "source_quote_id": self.source_quote_id,
            "matched_quote_id": self.matched_quote_id,
            "similarity_score": self.similarity_score,
            "criteria": dict(self.criteria),
            "suggested_price": self.suggested_price,
            "price_confidence": self.price_confidence,
            "price_range": {"low": self.price_range.low, "high": self.price_range.high},
            "price_source": self.price_source.value,
            "matched_quote_date": (
                self.matched_quote_date.isoformat() if self.matched_quote_date else None
            ),
            "job_won": self.job_won,
            "feedback_adjustment": self.feedback_adjustment,
        }


@dataclass(frozen=True)
class PricingRecommendation:
    """The single price recommendation returned for a source quote."""
    recommended_price: float
    floor_price: float
    target_price: float
    ceiling_price: float
    confidence_percentage: float
    confidence_level: ConfidenceLevel
    tier: PricingTier
    reasoning: str
    breakdown: dict[str, Any] = field(default_factory=dict)
    market_factors: tuple[str, ...] = ()
    algorithm_version: str = ALGORITHM_VERSION

    def to_dict(self) -> dict:
        return {
            "recommended_price": self.recommended_price,
            "floor_price": self.floor_price,
            "target_price": self.target_price,
            "ceiling_price": self.ceiling_price,
            "confidence_percentage": self.confidence_percentage,
            "confidence_level": self.confidence_level.value,
            "tier": self.tier.value,
            "reasoning": self.reasoning,
            "breakdown": dict(self.breakdown),
            "market_factors": list(self.market_factors),
            "algorithm_version": self.algorithm_version,
        }


@dataclass(frozen=True)
class MatchFeedbackSample:
    """A persisted match criteria breakdown together with its operator rating."""
    criteria: MatchCriteria
    rating: int  # +1 positive, -1 negative


@dataclass(frozen=True)
class WeightAdjustment:
    criteria_name: str
    base_weight: float
    adjusted_weight: float
    adjustment_factor: float
    positive_count: int
    negative_count: int
    total_count: int


@dataclass(frozen=True)
class LanePricingStats:
    """Aggregated outcomes of past recommendations on one lane."""
    origin_region: str
    destination_region: str
    service_category: str
    total_quotes: int
    won_quotes: int
    avg_final_price: Optional[float]

    @property
    def win_rate(self) -> float:
        return self.won_quotes / self.total_quotes if self.total_quotes else 0.0


@dataclass(frozen=True)
class PricingOutcome:
    """Row written to pricing history once a quote has been priced."""
    quote_id: int
    recommended_price: float
    confidence_percentage: float
    match_count: int
    tier: PricingTier
    origin_region: Optional[str]
    destination_region: Optional[str]
    service_category: str
    final_price: Optional[float] = None
    job_won: Optional[bool] = None
    algorithm_version: str = ALGORITHM_VERSION
