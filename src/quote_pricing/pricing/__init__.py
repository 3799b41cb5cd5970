"""Pricing tiers and the quote pricing pipeline."""

from .ai_blend import AIPricingBlender, apply_ai_opinion
from .ai_response import AIPricingOpinion, extract_json_object, parse_ai_pricing
from .lane_stats import apply_lane_stats
from .prompts import build_pricing_prompt, build_repair_prompt
from .rate_card import FallbackRateCard
from .service import BatchPricingResult, PricingResult, QuotePricingService
from .statistical import StatisticalPricer, confidence_level
from .statistics import PriceStatistics, price_statistics

__all__ = [
    "AIPricingBlender",
    "apply_ai_opinion",
    "AIPricingOpinion",
    "extract_json_object",
    "parse_ai_pricing",
    "apply_lane_stats",
    "build_pricing_prompt",
    "build_repair_prompt",
    "FallbackRateCard",
    "BatchPricingResult",
    "PricingResult",
    "QuotePricingService",
    "StatisticalPricer",
    "confidence_level",
    "PriceStatistics",
    "price_statistics",
]
