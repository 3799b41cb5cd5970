"""Observability for the pricing engine: structured logging, run correlation, metrics."""

from .logging_config import configure_logging, JSONFormatter
from .metrics import (
    ai_blend_total,
    matches_found,
    pricing_requests_total,
    scoring_duration_seconds,
    weight_refresh_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    # Metrics
    "ai_blend_total",
    "matches_found",
    "pricing_requests_total",
    "scoring_duration_seconds",
    "weight_refresh_total",
    # Run correlation
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
]
