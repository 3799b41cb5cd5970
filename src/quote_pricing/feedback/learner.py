"""Periodic learning of matching weights from operator feedback.

For every criterion with enough rated matches, the average criterion score
among positively rated matches is compared with the average among
negatively rated ones:

- positives score clearly higher (by > 0.1) and > 60% of ratings are
  positive: the criterion predicts good matches, weight x1.15
- negatives score clearly higher, or positives score lower while < 40% of
  ratings are positive: weight x0.85
- otherwise unchanged

Factors apply to the baseline weight, never compound across runs. Learned
weights are clamped to [0.01, 0.5] and the table renormalized to sum to 1.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional

from quote_pricing.domain.ports import QuoteRepositoryPort
from quote_pricing.domain.results import MatchFeedbackSample, WeightAdjustment

from .weight_store import WeightStore
from .weights import BASELINE_WEIGHTS, MAX_LEARNED_WEIGHT, MIN_LEARNED_WEIGHT, normalize_weights

logger = logging.getLogger(__name__)

DEFAULT_MIN_SAMPLES = 5
INCREASE_FACTOR = 1.15
DECREASE_FACTOR = 0.85
SCORE_MARGIN = 0.1
HIGH_POSITIVE_RATE = 0.6
LOW_POSITIVE_RATE = 0.4


@dataclass
class CriterionFeedback:
    """Running per-criterion feedback totals."""
    positive_scores: list[float] = field(default_factory=list)
    negative_scores: list[float] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.positive_scores) + len(self.negative_scores)

    @property
    def positive_rate(self) -> float:
        return len(self.positive_scores) / self.total if self.total else 0.0

    @property
    def avg_positive(self) -> float:
        return sum(self.positive_scores) / len(self.positive_scores) if self.positive_scores else 0.0

    @property
    def avg_negative(self) -> float:
        return sum(self.negative_scores) / len(self.negative_scores) if self.negative_scores else 0.0


@dataclass(frozen=True)
class WeightLearningResult:
    """Outcome of one learning run.

    Attributes:
        adjustments: One entry per criterion in the persisted table
        weights: Final normalized weight table
        samples: Number of rated matches considered
    """
    adjustments: list[WeightAdjustment]
    weights: dict[str, float]
    samples: int

    @property
    def changed(self) -> list[WeightAdjustment]:
        return [a for a in self.adjustments if a.adjustment_factor != 1.0]


def adjustment_factor(stats: CriterionFeedback) -> float:
    avg_pos, avg_neg, rate = stats.avg_positive, stats.avg_negative, stats.positive_rate
    if avg_pos > avg_neg + SCORE_MARGIN and rate > HIGH_POSITIVE_RATE:
        return INCREASE_FACTOR
    if avg_neg > avg_pos + SCORE_MARGIN or (avg_pos < avg_neg and rate < LOW_POSITIVE_RATE):
        return DECREASE_FACTOR
    return 1.0


def aggregate_samples(samples: list[MatchFeedbackSample]) -> dict[str, CriterionFeedback]:
    grouped: dict[str, CriterionFeedback] = defaultdict(CriterionFeedback)
    for sample in samples:
        if sample.rating == 0:
            continue
        for name, score in sample.criteria.items():
            if score is None:
                continue
            bucket = grouped[name]
            if sample.rating > 0:
                bucket.positive_scores.append(float(score))
            else:
                bucket.negative_scores.append(float(score))
    return dict(grouped)


class FeedbackWeightLearner:
    """Recompute and persist the learned weight table.

    Args:
        repository: Source of rated matches and sink for the learned table
        weight_store: Cache invalidated after a successful save
        min_samples: Rated matches a criterion needs before it is adjusted
    """

    def __init__(
        self,
        repository: QuoteRepositoryPort,
        weight_store: Optional[WeightStore] = None,
        min_samples: int = DEFAULT_MIN_SAMPLES,
    ):
        self.repository = repository
        self.weight_store = weight_store
        self.min_samples = min_samples

    def learn(self) -> WeightLearningResult:
        """Run one learning pass.

        Returns a result with no adjustments, and persists nothing, when no
        criterion has min_samples rated matches.
        """
        samples = self.repository.match_feedback_samples()
        grouped = aggregate_samples(samples)
        eligible = {
            name: stats for name, stats in grouped.items()
            if name in BASELINE_WEIGHTS and stats.total >= self.min_samples
        }

        if not eligible:
            logger.info(
                "Not enough feedback to adjust weights",
                extra={"samples": len(samples), "min_samples": self.min_samples},
            )
            return WeightLearningResult(adjustments=[], weights=dict(BASELINE_WEIGHTS), samples=len(samples))

        raw: dict[str, float] = {}
        factors: dict[str, float] = {}
        for name, base in BASELINE_WEIGHTS.items():
            stats = eligible.get(name)
            factor = adjustment_factor(stats) if stats is not None else 1.0
            factors[name] = factor
            raw[name] = max(MIN_LEARNED_WEIGHT, min(MAX_LEARNED_WEIGHT, base * factor))

        weights = normalize_weights(raw)
        adjustments = []
        for name, base in BASELINE_WEIGHTS.items():
            stats = eligible.get(name)
            adjustments.append(WeightAdjustment(
                criteria_name=name,
                base_weight=base,
                adjusted_weight=round(weights[name], 6),
                adjustment_factor=factors[name],
                positive_count=len(stats.positive_scores) if stats else 0,
                negative_count=len(stats.negative_scores) if stats else 0,
                total_count=stats.total if stats else 0,
            ))
            if factors[name] != 1.0:
                logger.info(
                    "Criterion weight adjusted",
                    extra={
                        "criterion": name,
                        "base_weight": base,
                        "adjusted_weight": round(weights[name], 4),
                        "factor": factors[name],
                    },
                )

        self.repository.save_weight_adjustments(adjustments)
        if self.weight_store is not None:
            self.weight_store.invalidate()

        result = WeightLearningResult(adjustments=adjustments, weights=weights, samples=len(samples))
        logger.info(
            "Weight learning complete",
            extra={"samples": len(samples), "criteria_adjusted": len(result.changed)},
        )
        return result
