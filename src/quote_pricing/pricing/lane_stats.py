"""Lane history adjustment for statistical recommendations."""

import logging
from dataclasses import replace
from typing import Optional

from quote_pricing.domain.results import LanePricingStats, PricingRecommendation

logger = logging.getLogger(__name__)

LANE_DIVERGENCE_THRESHOLD = 0.30
LANE_PULL_FRACTION = 0.10
LOW_WIN_RATE = 0.3
LOW_WIN_RATE_MIN_QUOTES = 10
LOW_WIN_RATE_DISCOUNT = 0.95


def apply_lane_stats(
    recommendation: PricingRecommendation,
    stats: Optional[LanePricingStats],
) -> PricingRecommendation:
    """Nudge a recommendation toward what the lane has actually closed at.

    A price more than 30% away from the lane's average final price moves 10%
    of the way toward it. A lane won less than 30% of the time over more than
    ten priced quotes gets a 5% discount. Floor, target and ceiling move by
    the same factor as the recommended price.
    """
    if stats is None or stats.total_quotes == 0:
        return recommendation

    price = recommendation.recommended_price
    adjusted = price
    factors = list(recommendation.market_factors)

    lane_avg = stats.avg_final_price
    if lane_avg and lane_avg > 0 and price > 0:
        divergence = abs(price - lane_avg) / lane_avg
        if divergence > LANE_DIVERGENCE_THRESHOLD:
            adjusted = adjusted + (lane_avg - adjusted) * LANE_PULL_FRACTION
            factors.append(
                f"Moved toward lane average ${lane_avg:,.0f} "
                f"({divergence:.0%} apart over {stats.total_quotes} quotes)"
            )

    if stats.total_quotes > LOW_WIN_RATE_MIN_QUOTES and stats.win_rate < LOW_WIN_RATE:
        adjusted *= LOW_WIN_RATE_DISCOUNT
        factors.append(f"Low lane win rate ({stats.win_rate:.0%}), priced 5% sharper")

    if adjusted == price:
        return recommendation

    ratio = adjusted / price
    logger.debug(
        "Lane statistics adjustment applied",
        extra={
            "lane": f"{stats.origin_region}->{stats.destination_region}",
            "service": stats.service_category,
            "before": price,
            "after": round(adjusted),
        },
    )
    return replace(
        recommendation,
        recommended_price=round(adjusted),
        target_price=round(recommendation.target_price * ratio),
        floor_price=round(recommendation.floor_price * ratio),
        ceiling_price=round(recommendation.ceiling_price * ratio),
        market_factors=tuple(factors),
        breakdown={
            **recommendation.breakdown,
            "lane_adjustment": {
                "lane_average": lane_avg,
                "win_rate": round(stats.win_rate, 3),
                "total_quotes": stats.total_quotes,
                "factor": round(ratio, 4),
            },
        },
    )
