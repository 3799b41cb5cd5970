"""Feedback-driven matching weights: baseline table, TTL cache and learner."""

from .learner import FeedbackWeightLearner, WeightLearningResult, adjustment_factor
from .weight_store import WeightStore
from .weights import (
    BASELINE_WEIGHTS,
    WeightContext,
    apply_contextual_adjustments,
    merge_learned_weights,
    normalize_weights,
)

__all__ = [
    "FeedbackWeightLearner",
    "WeightLearningResult",
    "adjustment_factor",
    "WeightStore",
    "BASELINE_WEIGHTS",
    "WeightContext",
    "apply_contextual_adjustments",
    "merge_learned_weights",
    "normalize_weights",
]
