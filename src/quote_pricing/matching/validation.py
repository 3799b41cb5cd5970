"""Historical quote quality filter.

Data-entry price errors and abandoned quotes must not anchor new pricing.
Quotes without a usable price are rejected outright; other problems lower
the quality score, and only quotes at or above the minimum quality are
eligible as match candidates.
"""

from datetime import datetime, timezone
from typing import Optional

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import QuoteValidation
from quote_pricing.normalization import ServiceCategory, correct_service_type_by_distance, normalize_service_type

MIN_PRICE = 50.0
MAX_PRICE = 1_000_000.0
MIN_QUALITY_SCORE = 0.3

# Plausible $/mile by service; only checked on routes long enough for it to mean anything
PRICE_PER_MILE_RANGES: dict[ServiceCategory, tuple[float, float]] = {
    ServiceCategory.GROUND: (0.80, 25.0),
    ServiceCategory.DRAYAGE: (1.50, 60.0),
    ServiceCategory.INTERMODAL: (0.30, 20.0),
    ServiceCategory.OCEAN: (0.10, 20.0),
    ServiceCategory.TRANSLOAD: (0.50, 60.0),
    ServiceCategory.AIR: (1.00, 100.0),
}
DEFAULT_PRICE_PER_MILE_RANGE = (0.30, 50.0)
PRICE_PER_MILE_MIN_ROUTE = 25.0

IMPLAUSIBLE_RATE_FACTOR = 0.6
MISSING_ENDPOINT_FACTOR = 0.85
STALE_FACTOR = 0.85        # older than 180 days
VERY_STALE_FACTOR = 0.7    # older than 365 days
UNKNOWN_SERVICE_FACTOR = 0.85
VERIFIED_PRICE_BOOST = 1.15


def _has_endpoint(city: Optional[str], state: Optional[str], country: Optional[str]) -> bool:
    return any(v and v.strip() for v in (city, state, country))


class HistoricalQuoteValidator:
    """Score the usability of a historical quote as a pricing comparable."""

    def __init__(self, min_quality_score: float = MIN_QUALITY_SCORE):
        self.min_quality_score = min_quality_score

    def validate(self, quote: Quote, now: Optional[datetime] = None) -> QuoteValidation:
        """Validate one historical quote.

        Args:
            quote: Historical quote
            now: Reference time for age checks

        Returns:
            QuoteValidation; valid is False for rejected quotes and for quotes
            whose quality fell below the eligibility threshold
        """
        now = now or datetime.now(timezone.utc)
        price = quote.price
        if price is None:
            return QuoteValidation(valid=False, quality_score=0.0, warnings=("No usable price",))
        if price < MIN_PRICE:
            return QuoteValidation(
                valid=False, quality_score=0.0, warnings=(f"Price ${price:,.2f} below ${MIN_PRICE:,.0f}",)
            )
        if price > MAX_PRICE:
            return QuoteValidation(
                valid=False, quality_score=0.0, warnings=(f"Price ${price:,.2f} above ${MAX_PRICE:,.0f}",)
            )

        quality = 1.0
        warnings: list[str] = []
        distance = quote.total_distance_miles
        service = correct_service_type_by_distance(
            normalize_service_type(quote.service_type), distance, quote.cargo_description
        )

        if distance is not None and distance >= PRICE_PER_MILE_MIN_ROUTE:
            low, high = PRICE_PER_MILE_RANGES.get(service, DEFAULT_PRICE_PER_MILE_RANGE)
            per_mile = price / distance
            if not low <= per_mile <= high:
                quality *= IMPLAUSIBLE_RATE_FACTOR
                warnings.append(f"Implausible rate ${per_mile:,.2f}/mile for {service.value}")

        if not _has_endpoint(quote.origin_city, quote.origin_state_province, quote.origin_country):
            quality *= MISSING_ENDPOINT_FACTOR
            warnings.append("Missing origin")
        if not _has_endpoint(
            quote.destination_city, quote.destination_state_province, quote.destination_country
        ):
            quality *= MISSING_ENDPOINT_FACTOR
            warnings.append("Missing destination")

        quote_date = quote.effective_date
        if quote_date is not None:
            age_days = (now - quote_date).total_seconds() / 86400.0
            if age_days > 365:
                quality *= VERY_STALE_FACTOR
                warnings.append(f"Quote is {age_days:.0f} days old")
            elif age_days > 180:
                quality *= STALE_FACTOR
                warnings.append(f"Quote is {age_days:.0f} days old")

        if service == ServiceCategory.UNKNOWN:
            quality *= UNKNOWN_SERVICE_FACTOR
            warnings.append("Unknown service type")

        if quote.has_verified_price:
            quality = min(1.0, quality * VERIFIED_PRICE_BOOST)

        quality = round(quality, 4)
        return QuoteValidation(
            valid=quality >= self.min_quality_score,
            quality_score=quality,
            warnings=tuple(warnings),
        )
