"""Statistical pricing from matched comparables.

Confidence tiers:
- HIGH: >= 5 matches, CV < 0.20, best score >= 0.75 -> similarity-weighted average
- MEDIUM: >= 3 matches, CV < 0.35, best score >= 0.60 -> 60/40 weighted average/median
- LOW / VERY_LOW: 70/30 median/trimmed mean

The range is +/- 10% (HIGH) to 25% (VERY_LOW) around the price, tightened to
the observed 15th-85th percentile band when at least four prices exist.
"""

import logging
from typing import Optional, Sequence

from quote_pricing.domain.results import ConfidenceLevel, Match, PricingRecommendation, PricingTier

from .statistics import PriceStatistics, price_statistics

logger = logging.getLogger(__name__)

RANGE_WIDTH: dict[ConfidenceLevel, float] = {
    ConfidenceLevel.HIGH: 0.10,
    ConfidenceLevel.MEDIUM: 0.15,
    ConfidenceLevel.LOW: 0.20,
    ConfidenceLevel.VERY_LOW: 0.25,
}

# (floor, ceiling) of confidence percentage per tier
CONFIDENCE_BANDS: dict[ConfidenceLevel, tuple[float, float]] = {
    ConfidenceLevel.HIGH: (80.0, 95.0),
    ConfidenceLevel.MEDIUM: (60.0, 79.0),
    ConfidenceLevel.LOW: (40.0, 59.0),
    ConfidenceLevel.VERY_LOW: (36.0, 39.0),
}


def confidence_level(stats: PriceStatistics) -> ConfidenceLevel:
    """Tier by match count, price dispersion and best similarity.

    More matches never lower the tier when dispersion and best score hold.
    """
    cv, n, best = stats.coefficient_of_variation, stats.count, stats.best_score
    if n >= 5 and cv < 0.20 and best >= 0.75:
        return ConfidenceLevel.HIGH
    if n >= 3 and cv < 0.35 and best >= 0.60:
        return ConfidenceLevel.MEDIUM
    if n >= 2 and cv < 0.50:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


def confidence_percentage(level: ConfidenceLevel, stats: PriceStatistics) -> float:
    low, high = CONFIDENCE_BANDS[level]
    quality = max(0.0, min(1.0, stats.best_score * (1.0 - min(1.0, stats.coefficient_of_variation))))
    return round(low + (high - low) * quality, 1)


def statistical_price(level: ConfidenceLevel, stats: PriceStatistics) -> float:
    if level == ConfidenceLevel.HIGH:
        return stats.weighted_average
    if level == ConfidenceLevel.MEDIUM:
        return 0.6 * stats.weighted_average + 0.4 * stats.median
    return 0.7 * stats.median + 0.3 * stats.trimmed_mean


def price_band(price: float, level: ConfidenceLevel, stats: PriceStatistics) -> tuple[float, float]:
    """Floor and ceiling around price, intersected with the P15/P85 band."""
    width = RANGE_WIDTH[level]
    floor, ceiling = price * (1 - width), price * (1 + width)
    if stats.p15 is not None and stats.p85 is not None:
        floor = max(floor, stats.p15)
        ceiling = min(ceiling, stats.p85)
    # The recommendation itself always sits inside its band
    return min(floor, price), max(ceiling, price)


class StatisticalPricer:
    """Price a quote from its surviving matches."""

    def recommend(self, matches: Sequence[Match]) -> Optional[PricingRecommendation]:
        """Return a statistical recommendation, or None when there are no matches."""
        stats = price_statistics(matches)
        if stats is None:
            return None

        level = confidence_level(stats)
        price = round(statistical_price(level, stats))
        floor, ceiling = price_band(price, level, stats)
        confidence = confidence_percentage(level, stats)

        logger.debug(
            "Statistical price computed",
            extra={
                "matches": stats.count,
                "confidence_level": level.value,
                "cv": round(stats.coefficient_of_variation, 4),
                "price": price,
            },
        )

        return PricingRecommendation(
            recommended_price=price,
            floor_price=round(floor),
            target_price=price,
            ceiling_price=round(ceiling),
            confidence_percentage=confidence,
            confidence_level=level,
            tier=PricingTier.STATISTICAL,
            reasoning=(
                f"Based on {stats.count} comparable quote{'s' if stats.count != 1 else ''} "
                f"(best match {stats.best_score:.0%}, median ${stats.median:,.0f}, "
                f"price spread {stats.coefficient_of_variation:.0%}). "
                f"{level.value.replace('_', ' ').title()} confidence."
            ),
            breakdown={
                "method": _method_label(level),
                "match_count": stats.count,
                "mean": round(stats.mean, 2),
                "median": round(stats.median, 2),
                "trimmed_mean": round(stats.trimmed_mean, 2),
                "weighted_average": round(stats.weighted_average, 2),
                "std_dev": round(stats.std_dev, 2),
                "coefficient_of_variation": round(stats.coefficient_of_variation, 4),
                "best_score": stats.best_score,
                "p15": stats.p15,
                "p85": stats.p85,
            },
            market_factors=_market_factors(matches),
        )


def _method_label(level: ConfidenceLevel) -> str:
    if level == ConfidenceLevel.HIGH:
        return "weighted_average"
    if level == ConfidenceLevel.MEDIUM:
        return "weighted_average_median_60_40"
    return "median_trimmed_mean_70_30"


def _market_factors(matches: Sequence[Match]) -> tuple[str, ...]:
    factors = []
    won = sum(1 for m in matches if m.job_won)
    if won:
        factors.append(f"{won} of {len(matches)} comparables were won")
    verified = sum(1 for m in matches if m.price_source.value == "FINAL_AGREED")
    if verified:
        factors.append(f"{verified} comparables carry final agreed prices")
    if any(m.metadata.get("price_multiplier", 1.0) > 1.0 for m in matches):
        factors.append("OOG/special container premium applied to standard comparables")
    return tuple(factors)
