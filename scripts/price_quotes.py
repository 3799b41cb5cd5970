#!/usr/bin/env python
"""Price quotes by id and store matches and recommendations.

Usage:
    python scripts/price_quotes.py 101 102 103 [--no-ai] [--distances routes.json]

Environment Variables:
    DATABASE_URL: Quote store connection string
    OPENAI_API_KEY: Enables the AI pricing opinion (with AI_PRICING_ENABLED)
"""

import argparse
import json
import sys
from pathlib import Path

# Add src to Python path
src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src))

from quote_pricing.config import get_settings
from quote_pricing.database import get_db_session
from quote_pricing.infrastructure.ai import OpenAIProvider
from quote_pricing.infrastructure.distance import StaticDistanceTable
from quote_pricing.infrastructure.repositories import SqlQuoteRepository
from quote_pricing.observability import configure_logging
from quote_pricing.pricing import QuotePricingService


def main():
    """Price the given quote ids in one batch."""
    parser = argparse.ArgumentParser(description="Price shipping quotes")
    parser.add_argument("quote_ids", nargs="+", type=int, help="Quote ids to price")
    parser.add_argument("--no-ai", action="store_true", help="Skip the AI pricing opinion")
    parser.add_argument("--distances", type=Path, help="JSON distance table for route lookups")
    args = parser.parse_args()

    settings = get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    llm_provider = None
    if not args.no_ai and settings.AI_PRICING_ENABLED and settings.OPENAI_API_KEY:
        llm_provider = OpenAIProvider()
    distance_service = StaticDistanceTable.from_json(args.distances) if args.distances else None

    try:
        with get_db_session() as session, QuotePricingService.from_settings(
            repository=SqlQuoteRepository(session),
            distance_service=distance_service,
            llm_provider=llm_provider,
            settings=settings,
        ) as service:
            batch = service.process_quotes(args.quote_ids)
    except Exception as e:
        print(f"ERROR: Pricing failed: {e}")
        sys.exit(1)

    output = {
        "processed": batch.processed,
        "matches_created": batch.matches_created,
        "recommendations": {
            str(quote_id): result.recommendation.to_dict()
            for quote_id, result in batch.results.items()
        },
        "errors": {str(quote_id): message for quote_id, message in batch.errors.items()},
    }
    print(json.dumps(output, indent=2))
    if batch.errors:
        sys.exit(2)


if __name__ == "__main__":
    main()
