"""IQR-based price outlier removal among matched comparables."""

import logging
import math
from typing import Sequence

from quote_pricing.domain.results import Match

logger = logging.getLogger(__name__)

DEFAULT_IQR_MULTIPLIER = 1.5
MIN_MATCHES_FOR_OUTLIERS = 4


def percentile(sorted_values: Sequence[float], pct: float) -> float:
    """Linear-interpolation percentile of pre-sorted values (pct in [0, 100])."""
    if not sorted_values:
        raise ValueError("percentile of empty sequence")
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    rank = (pct / 100.0) * (len(sorted_values) - 1)
    lower = math.floor(rank)
    upper = math.ceil(rank)
    if lower == upper:
        return float(sorted_values[lower])
    fraction = rank - lower
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * fraction


def remove_price_outliers(
    matches: Sequence[Match],
    multiplier: float = DEFAULT_IQR_MULTIPLIER,
    min_matches: int = MIN_MATCHES_FOR_OUTLIERS,
) -> tuple[list[Match], list[Match]]:
    """Drop matches whose suggested price falls outside Q1/Q3 -/+ multiplier*IQR.

    Runs only with at least min_matches matches; ranking order is preserved.

    Returns:
        (kept, removed)
    """
    if len(matches) < min_matches:
        return list(matches), []

    prices = sorted(m.suggested_price for m in matches)
    q1 = percentile(prices, 25)
    q3 = percentile(prices, 75)
    iqr = q3 - q1
    low, high = q1 - multiplier * iqr, q3 + multiplier * iqr

    kept = [m for m in matches if low <= m.suggested_price <= high]
    removed = [m for m in matches if not low <= m.suggested_price <= high]
    if removed:
        logger.info(
            "Removed price outliers",
            extra={
                "removed_quote_ids": [m.matched_quote_id for m in removed],
                "bounds": [round(low, 2), round(high, 2)],
            },
        )
    return kept, removed
