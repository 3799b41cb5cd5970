"""Descriptive statistics over matched comparable prices."""

import math
import statistics
from dataclasses import dataclass
from typing import Optional, Sequence

from quote_pricing.domain.results import Match
from quote_pricing.matching.outliers import percentile

TRIM_FRACTION = 0.10


@dataclass(frozen=True)
class PriceStatistics:
    count: int
    mean: float
    median: float
    trimmed_mean: float
    weighted_average: float
    std_dev: float
    coefficient_of_variation: float
    min_price: float
    max_price: float
    best_score: float
    p15: Optional[float] = None
    p85: Optional[float] = None


def trimmed_mean(values: Sequence[float], trim: float = TRIM_FRACTION) -> float:
    """Mean after dropping floor(n * trim) values from each end."""
    ordered = sorted(values)
    k = int(math.floor(len(ordered) * trim))
    core = ordered[k:len(ordered) - k] if k else ordered
    return statistics.fmean(core)


def weighted_average(prices: Sequence[float], weights: Sequence[float]) -> float:
    total = sum(weights)
    if total <= 0:
        return statistics.fmean(prices)
    return sum(p * w for p, w in zip(prices, weights)) / total


def price_statistics(matches: Sequence[Match]) -> Optional[PriceStatistics]:
    """Summarize the suggested prices of a match list; None when empty."""
    if not matches:
        return None

    prices = [float(m.suggested_price) for m in matches]
    ordered = sorted(prices)
    mean = statistics.fmean(prices)
    std_dev = statistics.stdev(prices) if len(prices) > 1 else 0.0
    has_band = len(prices) >= 4

    return PriceStatistics(
        count=len(prices),
        mean=mean,
        median=statistics.median(prices),
        trimmed_mean=trimmed_mean(prices),
        weighted_average=weighted_average(prices, [m.similarity_score for m in matches]),
        std_dev=std_dev,
        coefficient_of_variation=std_dev / mean if mean > 0 else 0.0,
        min_price=ordered[0],
        max_price=ordered[-1],
        best_score=max(m.similarity_score for m in matches),
        p15=percentile(ordered, 15) if has_band else None,
        p85=percentile(ordered, 85) if has_band else None,
    )
