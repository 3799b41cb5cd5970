#!/usr/bin/env python
"""Recompute matching weights from operator feedback.

Run periodically (e.g. nightly from cron). Reads rated matches, adjusts the
weight of each criterion with enough feedback, and stores the normalized
table. Pricing processes pick it up when their weight cache expires.

Usage:
    python scripts/learn_weights.py [--min-samples N]

Environment Variables:
    DATABASE_URL: Quote store connection string
    WEIGHT_LEARNING_MIN_SAMPLES: Default for --min-samples (5)
"""

import argparse
import sys
from pathlib import Path

# Add src to Python path
src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src))

from quote_pricing.config import get_settings
from quote_pricing.database import get_db_session
from quote_pricing.feedback import FeedbackWeightLearner
from quote_pricing.infrastructure.repositories import SqlQuoteRepository
from quote_pricing.observability import configure_logging


def main():
    """Run one weight learning pass."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Learn matching weights from feedback")
    parser.add_argument(
        "--min-samples",
        type=int,
        default=settings.WEIGHT_LEARNING_MIN_SAMPLES,
        help="Rated matches a criterion needs before it is adjusted",
    )
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    try:
        with get_db_session() as session:
            learner = FeedbackWeightLearner(SqlQuoteRepository(session), min_samples=args.min_samples)
            result = learner.learn()
    except Exception as e:
        print(f"ERROR: Weight learning failed: {e}")
        sys.exit(1)

    if not result.adjustments:
        print(f"Not enough feedback yet ({result.samples} rated matches, need {args.min_samples} per criterion)")
        return

    print(f"SUCCESS: {len(result.changed)} criteria adjusted from {result.samples} rated matches")
    for adjustment in result.adjustments:
        marker = "*" if adjustment.adjustment_factor != 1.0 else " "
        print(
            f" {marker} {adjustment.criteria_name:<24} "
            f"{adjustment.base_weight:.3f} -> {adjustment.adjusted_weight:.3f} "
            f"(x{adjustment.adjustment_factor:.2f}, +{adjustment.positive_count}/-{adjustment.negative_count})"
        )


if __name__ == "__main__":
    main()
