"""Quote repository for database operations"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session, SessionTransaction

from quote_pricing.domain.ports import QuoteRepositoryPort
from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import (
    AI_ALGORITHM_VERSION,
    ALGORITHM_VERSION,
    FeedbackRecord,
    LanePricingStats,
    Match,
    MatchFeedbackSample,
    PricingOutcome,
    PricingRecommendation,
    WeightAdjustment,
)
from quote_pricing.models import (
    MatchingWeightAdjustment,
    PricingHistory,
    PricingRecommendationRecord,
    QuoteMatch,
    QuoteMatchFeedback,
    ShippingQuote,
)

logger = logging.getLogger(__name__)


class SqlQuoteRepository(QuoteRepositoryPort):
    """SQLAlchemy implementation of QuoteRepositoryPort.

    Writes are flushed, not committed; the caller owns the transaction
    (see database.get_db_session).
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def unit_of_work(self) -> SessionTransaction:
        """SAVEPOINT around one quote's writes.

        A failure rolls back to the savepoint, so the rest of the batch keeps
        a usable session and the caller's commit never sees partial rows.
        """
        return self.db.begin_nested()

    def get_quote(self, quote_id: int) -> Optional[Quote]:
        row = self.db.get(ShippingQuote, quote_id)
        return Quote.from_dict(row.to_dict()) if row is not None else None

    def historical_quotes_with_price(self, excluding_ids: Iterable[int], limit: int) -> list[Quote]:
        """Quotes with a positive initial or final price, newest first.

        Args:
            excluding_ids: Quote ids to leave out (the batch being priced)
            limit: Maximum rows returned
        """
        excluded = list(excluding_ids)
        query = select(ShippingQuote).where(
            or_(
                ShippingQuote.initial_quote_amount > 0,
                ShippingQuote.final_agreed_price > 0,
            )
        )
        if excluded:
            query = query.where(ShippingQuote.quote_id.not_in(excluded))
        query = query.order_by(
            func.coalesce(ShippingQuote.quote_date, ShippingQuote.created_at).desc(),
            ShippingQuote.quote_id.desc(),
        ).limit(limit)

        rows = self.db.execute(query).scalars().all()
        return [Quote.from_dict(row.to_dict()) for row in rows]

    def feedback_for_quotes(self, quote_ids: Iterable[int]) -> dict[int, FeedbackRecord]:
        """Aggregate operator feedback on matches that point at these quotes."""
        ids = list(quote_ids)
        if not ids:
            return {}

        query = (
            select(
                QuoteMatch.matched_quote_id,
                QuoteMatchFeedback.rating,
                QuoteMatchFeedback.actual_price_used,
            )
            .join(QuoteMatchFeedback, QuoteMatchFeedback.match_id == QuoteMatch.match_id)
            .where(QuoteMatch.matched_quote_id.in_(ids))
            .order_by(QuoteMatchFeedback.created_at, QuoteMatchFeedback.id)
        )

        totals: dict[int, dict] = {}
        for matched_id, rating, actual_price in self.db.execute(query):
            entry = totals.setdefault(matched_id, {"positive": 0, "negative": 0, "prices": []})
            if rating > 0:
                entry["positive"] += 1
            elif rating < 0:
                entry["negative"] += 1
            if actual_price is not None and actual_price > 0:
                entry["prices"].append(float(actual_price))

        return {
            quote_id: FeedbackRecord(
                quote_id=quote_id,
                positive_count=entry["positive"],
                negative_count=entry["negative"],
                actual_prices_used=tuple(entry["prices"]),
            )
            for quote_id, entry in totals.items()
        }

    def bulk_insert_matches(
        self,
        matches: Sequence[Match],
        algorithm_version: str = ALGORITHM_VERSION
    ) -> int:
        """Upsert matches on (source_quote_id, matched_quote_id).

        Returns:
            Number of matches written (inserted or updated)
        """
        if not matches:
            return 0

        source_ids = {m.source_quote_id for m in matches}
        existing = {
            (row.source_quote_id, row.matched_quote_id): row
            for row in self.db.execute(
                select(QuoteMatch).where(QuoteMatch.source_quote_id.in_(source_ids))
            ).scalars()
        }

        for match in matches:
            values = {
                "similarity_score": match.similarity_score,
                "match_criteria": dict(match.criteria),
                "suggested_price": match.suggested_price,
                "price_confidence": match.price_confidence,
                "price_range_low": match.price_range.low,
                "price_range_high": match.price_range.high,
                "price_source": match.price_source.value,
                "match_algorithm_version": algorithm_version,
            }
            row = existing.get((match.source_quote_id, match.matched_quote_id))
            if row is None:
                row = QuoteMatch(
                    source_quote_id=match.source_quote_id,
                    matched_quote_id=match.matched_quote_id,
                    **values
                )
                self.db.add(row)
                existing[(match.source_quote_id, match.matched_quote_id)] = row
            else:
                for key, value in values.items():
                    setattr(row, key, value)

        self.db.flush()
        logger.debug("Matches upserted", extra={"count": len(matches), "source_ids": sorted(source_ids)})
        return len(matches)

    def save_recommendation(self, quote_id: int, recommendation: PricingRecommendation) -> None:
        """Upsert the recommendation for a quote."""
        data = recommendation.to_dict()
        row = self.db.execute(
            select(PricingRecommendationRecord).where(PricingRecommendationRecord.quote_id == quote_id)
        ).scalar_one_or_none()
        if row is None:
            row = PricingRecommendationRecord(quote_id=quote_id)
            self.db.add(row)

        row.recommended_price = data["recommended_price"]
        row.floor_price = data["floor_price"]
        row.target_price = data["target_price"]
        row.ceiling_price = data["ceiling_price"]
        row.confidence_percentage = data["confidence_percentage"]
        row.confidence_level = data["confidence_level"]
        row.tier = data["tier"]
        row.reasoning = data["reasoning"]
        row.breakdown = data["breakdown"]
        row.market_factors = data["market_factors"]
        row.algorithm_version = data["algorithm_version"]
        self.db.flush()

    def match_feedback_samples(self) -> list[MatchFeedbackSample]:
        """Criteria breakdowns of rated matches, one sample per rating."""
        query = (
            select(QuoteMatch.match_criteria, QuoteMatchFeedback.rating)
            .join(QuoteMatchFeedback, QuoteMatchFeedback.match_id == QuoteMatch.match_id)
            .where(QuoteMatch.match_algorithm_version.in_([ALGORITHM_VERSION, AI_ALGORITHM_VERSION]))
        )
        samples = []
        for criteria, rating in self.db.execute(query):
            if not isinstance(criteria, dict):
                continue
            cleaned = {}
            for name, value in criteria.items():
                try:
                    cleaned[name] = float(value)
                except (TypeError, ValueError):
                    continue
            samples.append(MatchFeedbackSample(criteria=cleaned, rating=int(rating)))
        return samples

    def load_learned_weights(self) -> Optional[dict[str, float]]:
        rows = self.db.execute(
            select(MatchingWeightAdjustment).where(
                MatchingWeightAdjustment.algorithm_version == ALGORITHM_VERSION
            )
        ).scalars().all()
        if not rows:
            return None
        return {row.criteria_name: float(row.adjusted_weight) for row in rows}

    def save_weight_adjustments(self, adjustments: Sequence[WeightAdjustment]) -> None:
        """Upsert one row per criterion for the current algorithm version."""
        existing = {
            row.criteria_name: row
            for row in self.db.execute(
                select(MatchingWeightAdjustment).where(
                    MatchingWeightAdjustment.algorithm_version == ALGORITHM_VERSION
                )
            ).scalars()
        }
        now = datetime.now(timezone.utc)
        for adjustment in adjustments:
            row = existing.get(adjustment.criteria_name)
            if row is None:
                row = MatchingWeightAdjustment(
                    criteria_name=adjustment.criteria_name,
                    algorithm_version=ALGORITHM_VERSION,
                )
                self.db.add(row)
            row.base_weight = adjustment.base_weight
            row.adjusted_weight = adjustment.adjusted_weight
            row.adjustment_factor = adjustment.adjustment_factor
            row.positive_feedback_count = adjustment.positive_count
            row.negative_feedback_count = adjustment.negative_count
            row.total_matches_count = adjustment.total_count
            row.last_calculated_at = now
        self.db.flush()

    def record_pricing_outcome(self, outcome: PricingOutcome) -> None:
        self.db.add(PricingHistory(
            quote_id=outcome.quote_id,
            recommended_price=outcome.recommended_price,
            confidence_percentage=outcome.confidence_percentage,
            match_count=outcome.match_count,
            tier=outcome.tier.value,
            origin_region=outcome.origin_region,
            destination_region=outcome.destination_region,
            service_category=outcome.service_category,
            final_price=outcome.final_price,
            job_won=outcome.job_won,
            algorithm_version=outcome.algorithm_version,
        ))
        self.db.flush()

    def lane_pricing_stats(
        self,
        origin_region: str,
        destination_region: str,
        service_category: str
    ) -> Optional[LanePricingStats]:
        """Outcomes of quotes previously priced on this lane.

        Outcome columns come from the quote itself, so jobs closed after
        pricing are counted. A quote priced more than once counts once.
        """
        query = (
            select(
                PricingHistory.quote_id,
                ShippingQuote.final_agreed_price,
                ShippingQuote.job_won,
            )
            .join(ShippingQuote, ShippingQuote.quote_id == PricingHistory.quote_id)
            .where(
                and_(
                    PricingHistory.origin_region == origin_region,
                    PricingHistory.destination_region == destination_region,
                    PricingHistory.service_category == service_category,
                )
            )
            .distinct()
        )
        rows = {quote_id: (final, won) for quote_id, final, won in self.db.execute(query)}
        if not rows:
            return None

        finals = [float(final) for final, _ in rows.values() if final is not None and final > 0]
        return LanePricingStats(
            origin_region=origin_region,
            destination_region=destination_region,
            service_category=service_category,
            total_quotes=len(rows),
            won_quotes=sum(1 for _, won in rows.values() if won),
            avg_final_price=sum(finals) / len(finals) if finals else None,
        )
