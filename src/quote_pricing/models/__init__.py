"""SQLAlchemy models for the quote pricing store"""

from .base import Base, PortableJSONB
from .shipping_quote import ShippingQuote
from .quote_match import QuoteMatch, QuoteMatchFeedback
from .pricing import MatchingWeightAdjustment, PricingHistory, PricingRecommendationRecord

__all__ = [
    "Base",
    "PortableJSONB",
    "ShippingQuote",
    "QuoteMatch",
    "QuoteMatchFeedback",
    "MatchingWeightAdjustment",
    "PricingHistory",
    "PricingRecommendationRecord",
]
