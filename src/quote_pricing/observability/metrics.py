"""Prometheus metrics for the matching and pricing engine."""

from prometheus_client import Counter, Histogram

# Pricing metrics
pricing_requests_total = Counter(
    "quote_pricing_requests_total",
    "Total pricing recommendations produced",
    ["tier"]  # tier: statistical|rate_card|ai_blended
)

matches_found = Histogram(
    "quote_pricing_matches_found",
    "Number of matches surviving ranking and outlier removal",
    buckets=[0, 1, 2, 3, 5, 8, 10, 15, 25]
)

scoring_duration_seconds = Histogram(
    "quote_pricing_scoring_duration_seconds",
    "Time spent scoring the historical pool for one source quote",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# AI blend metrics
ai_blend_total = Counter(
    "quote_pricing_ai_blend_total",
    "AI pricing opinion outcomes",
    ["outcome"]  # outcome: trusted|blended|rejected|failed|unparseable
)

# Weight cache metrics
weight_refresh_total = Counter(
    "quote_pricing_weight_refresh_total",
    "Learned weight table refreshes",
    ["result"]  # result: learned|baseline|error
)
