"""Suggested price derived from a single historical comparable."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import FeedbackRecord, PriceRange, PriceSource
from quote_pricing.normalization import (
    CONTAINER_PRICING_MULTIPLIERS,
    ContainerType,
    detect_container_type,
    is_oog_cargo,
    is_special_container,
)

WON_FINAL_PRICE_BONUS = 0.15
FINAL_PRICE_BONUS = 0.10
STALE_PENALTY = 0.10        # older than 180 days
VERY_STALE_PENALTY = 0.15   # older than 365 days
MIN_PRICE_CONFIDENCE = 0.1
MAX_RANGE_VARIANCE = 0.25
FEEDBACK_CONFIDENCE_BONUS = 0.1


@dataclass(frozen=True)
class PriceSuggestion:
    price: float
    confidence: float
    price_range: PriceRange
    source: PriceSource
    multiplier: float = 1.0


def oog_pricing_multiplier(container: Optional[ContainerType], is_oog: bool) -> float:
    """Premium for OOG or special container cargo.

    OOG cargo is priced at least like an open top container.
    """
    multiplier = CONTAINER_PRICING_MULTIPLIERS.get(container, 1.0) if container else 1.0
    if is_oog:
        return max(CONTAINER_PRICING_MULTIPLIERS[ContainerType.OPEN_TOP], multiplier)
    return multiplier


def suggest_price(
    historical: Quote,
    similarity: float,
    source: Quote,
    now: datetime,
) -> Optional[PriceSuggestion]:
    """Turn a historical quote's price into a suggestion for the source quote.

    The price is the final agreed price when present, else the initial
    quote. When the source needs OOG or special container handling and the
    historical quote did not, the container premium is applied.

    Args:
        historical: Matched historical quote
        similarity: Similarity score of the match (feedback-adjusted)
        source: Quote being priced
        now: Reference time for the age penalty

    Returns:
        PriceSuggestion, or None when the historical quote has no price
    """
    base_price = historical.price
    if base_price is None:
        return None

    has_final = historical.final_agreed_price is not None and historical.final_agreed_price > 0
    confidence = similarity
    if has_final and historical.job_won:
        confidence += WON_FINAL_PRICE_BONUS
    elif has_final:
        confidence += FINAL_PRICE_BONUS

    quote_date = historical.effective_date
    if quote_date is not None:
        age_days = (now - quote_date).total_seconds() / 86400.0
        if age_days > 365:
            confidence -= VERY_STALE_PENALTY
        elif age_days > 180:
            confidence -= STALE_PENALTY
    confidence = min(1.0, max(MIN_PRICE_CONFIDENCE, confidence))

    source_container = detect_container_type(source.cargo_description, source.service_type)
    historical_container = detect_container_type(historical.cargo_description, historical.service_type)
    source_oog = is_oog_cargo(source.cargo_description, source.cargo_height, source.cargo_width)
    historical_oog = is_oog_cargo(
        historical.cargo_description, historical.cargo_height, historical.cargo_width
    )

    multiplier = 1.0
    if source_oog and not historical_oog:
        multiplier = oog_pricing_multiplier(source_container, True)
    elif is_special_container(source_container) and not is_special_container(historical_container):
        multiplier = CONTAINER_PRICING_MULTIPLIERS.get(source_container, 1.0)

    price = round(base_price * multiplier)
    variance = (1 - confidence) * MAX_RANGE_VARIANCE
    return PriceSuggestion(
        price=price,
        confidence=round(confidence, 4),
        price_range=PriceRange(low=round(price * (1 - variance)), high=round(price * (1 + variance))),
        source=PriceSource.FINAL_AGREED if has_final else PriceSource.INITIAL_QUOTE,
        multiplier=multiplier,
    )


def feedback_adjusted_confidence(confidence: float, feedback: Optional[FeedbackRecord]) -> float:
    """Raise price confidence for comparables operators have vouched for."""
    if feedback is None:
        return confidence
    if feedback.positive_count > feedback.negative_count:
        confidence += FEEDBACK_CONFIDENCE_BONUS
    if feedback.has_verified_prices:
        confidence += FEEDBACK_CONFIDENCE_BONUS
    return round(min(1.0, confidence), 4)
