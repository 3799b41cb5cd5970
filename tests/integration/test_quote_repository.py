"""Integration tests for SqlQuoteRepository against an in-memory SQLite database."""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from quote_pricing.domain.results import (
    ALGORITHM_VERSION,
    ConfidenceLevel,
    Match,
    PriceRange,
    PriceSource,
    PricingOutcome,
    PricingRecommendation,
    PricingTier,
    WeightAdjustment,
)
from quote_pricing.feedback import BASELINE_WEIGHTS
from quote_pricing.infrastructure.repositories import SqlQuoteRepository
from quote_pricing.matching import QuoteMatcher
from quote_pricing.models import (
    PricingHistory,
    PricingRecommendationRecord,
    QuoteMatch,
    QuoteMatchFeedback,
    ShippingQuote,
)
from quote_pricing.pricing import QuotePricingService

pytestmark = pytest.mark.integration


def _row(now, **overrides):
    values = {
        "origin_city": "Houston",
        "origin_state_province": "TX",
        "origin_country": "USA",
        "destination_city": "Dallas",
        "destination_state_province": "TX",
        "destination_country": "USA",
        "cargo_description": "Caterpillar excavator",
        "cargo_weight": 30000,
        "weight_unit": "lbs",
        "number_of_pieces": 1,
        "service_type": "Flatbed",
        "equipment_type_requested": "Flatbed",
        "total_distance_miles": 240,
        "quote_date": now - timedelta(days=30),
        "hazardous_material": False,
    }
    values.update(overrides)
    return ShippingQuote(**values)


def _match(source_id, matched_id, score=0.8, price=1000.0):
    return Match(
        source_quote_id=source_id,
        matched_quote_id=matched_id,
        similarity_score=score,
        criteria={"distance_similarity": 0.9, "hazmat": 1.0},
        suggested_price=price,
        price_confidence=0.8,
        price_range=PriceRange(low=price * 0.9, high=price * 1.1),
        price_source=PriceSource.INITIAL_QUOTE,
    )


def _recommendation(price):
    return PricingRecommendation(
        recommended_price=price,
        floor_price=price * 0.85,
        target_price=price,
        ceiling_price=price * 1.15,
        confidence_percentage=62.0,
        confidence_level=ConfidenceLevel.MEDIUM,
        tier=PricingTier.STATISTICAL,
        reasoning="Based on 4 comparable quotes.",
        breakdown={"method": "weighted_average_median_60_40"},
        market_factors=["Flatbed equipment"],
    )


@pytest.fixture
def seeded(db_session, now):
    """One unpriced source quote (id 1) and four priced historical quotes (ids 10-13)."""
    db_session.add(_row(now, quote_id=1, quote_date=now - timedelta(days=1)))
    for offset, price in enumerate([900, 950, 1000, 1050]):
        db_session.add(_row(
            now,
            quote_id=10 + offset,
            initial_quote_amount=price,
            quote_date=now - timedelta(days=20 + offset),
        ))
    db_session.flush()
    return SqlQuoteRepository(db_session)


class TestQuoteQueries:
    """Reading quotes and the historical pool."""

    def test_get_quote(self, seeded):
        """Rows come back as domain quotes with aware datetimes."""
        quote = seeded.get_quote(10)

        assert quote.quote_id == 10
        assert quote.initial_quote_amount == 900.0
        assert quote.quote_date.tzinfo is not None
        assert seeded.get_quote(999) is None

    def test_pool_excludes_unpriced_and_batch(self, seeded):
        """Only priced quotes outside the batch are returned, newest first."""
        pool = seeded.historical_quotes_with_price(excluding_ids=[11], limit=10)

        assert [q.quote_id for q in pool] == [10, 12, 13]

    def test_pool_limit(self, seeded):
        """The pool is capped at the limit."""
        assert len(seeded.historical_quotes_with_price(excluding_ids=[], limit=2)) == 2

    def test_final_price_counts_as_priced(self, db_session, seeded, now):
        """A quote with only a final agreed price is in the pool."""
        db_session.add(_row(now, quote_id=20, final_agreed_price=1200, quote_date=now))
        db_session.flush()

        pool = seeded.historical_quotes_with_price(excluding_ids=[], limit=10)

        assert pool[0].quote_id == 20
        assert pool[0].price == 1200.0


class TestMatchPersistence:
    """Match upserts and feedback aggregation."""

    def test_bulk_insert_is_idempotent(self, db_session, seeded):
        """Re-running matching updates rows instead of duplicating them."""
        seeded.bulk_insert_matches([_match(1, 10), _match(1, 11)])
        seeded.bulk_insert_matches([_match(1, 10, score=0.9), _match(1, 11)])

        rows = db_session.execute(select(QuoteMatch).order_by(QuoteMatch.matched_quote_id)).scalars().all()
        assert len(rows) == 2
        assert float(rows[0].similarity_score) == pytest.approx(0.9)
        assert rows[0].match_criteria == {"distance_similarity": 0.9, "hazmat": 1.0}
        assert rows[0].match_algorithm_version == ALGORITHM_VERSION

    def test_empty_insert(self, seeded):
        """Nothing to write returns 0."""
        assert seeded.bulk_insert_matches([]) == 0

    def test_feedback_aggregated_per_matched_quote(self, db_session, seeded):
        """Ratings on any match pointing at a quote are summed for it."""
        seeded.bulk_insert_matches([_match(1, 10)])
        match_id = db_session.execute(select(QuoteMatch.match_id)).scalar_one()
        db_session.add_all([
            QuoteMatchFeedback(match_id=match_id, rating=1, actual_price_used=980),
            QuoteMatchFeedback(match_id=match_id, rating=1),
            QuoteMatchFeedback(match_id=match_id, rating=-1),
        ])
        db_session.flush()

        feedback = seeded.feedback_for_quotes([10, 11])

        assert set(feedback) == {10}
        assert feedback[10].positive_count == 2
        assert feedback[10].negative_count == 1
        assert feedback[10].actual_prices_used == (980.0,)
        assert seeded.feedback_for_quotes([]) == {}

    def test_feedback_samples(self, db_session, seeded):
        """Each rating yields one sample carrying the stored criteria."""
        seeded.bulk_insert_matches([_match(1, 10)])
        match_id = db_session.execute(select(QuoteMatch.match_id)).scalar_one()
        db_session.add(QuoteMatchFeedback(match_id=match_id, rating=-1))
        db_session.flush()

        samples = seeded.match_feedback_samples()

        assert len(samples) == 1
        assert samples[0].rating == -1
        assert samples[0].criteria["distance_similarity"] == pytest.approx(0.9)


class TestWeightPersistence:
    """Learned weight table round trip."""

    def test_round_trip_and_upsert(self, db_session, seeded):
        """Saved adjustments load back as a table; saving again updates in place."""
        assert seeded.load_learned_weights() is None

        def adjustments(factor):
            return [
                WeightAdjustment(
                    criteria_name=name,
                    base_weight=base,
                    adjusted_weight=round(base * factor, 6),
                    adjustment_factor=factor,
                    positive_count=3,
                    negative_count=1,
                    total_count=4,
                )
                for name, base in BASELINE_WEIGHTS.items()
            ]

        seeded.save_weight_adjustments(adjustments(1.0))
        seeded.save_weight_adjustments(adjustments(1.15))

        learned = seeded.load_learned_weights()
        assert set(learned) == set(BASELINE_WEIGHTS)
        assert learned["distance_similarity"] == pytest.approx(0.18 * 1.15, abs=1e-5)


class TestPricingPersistence:
    """Recommendations, pricing history and lane statistics."""

    def test_save_recommendation_upserts(self, db_session, seeded):
        """A quote keeps a single latest recommendation."""
        seeded.save_recommendation(1, _recommendation(1000.0))
        seeded.save_recommendation(1, _recommendation(1100.0))

        rows = db_session.execute(select(PricingRecommendationRecord)).scalars().all()
        assert len(rows) == 1
        stored = rows[0].to_dict()
        assert stored["recommended_price"] == 1100.0
        assert stored["tier"] == "statistical"
        assert stored["market_factors"] == ["Flatbed equipment"]

    def test_lane_stats_use_current_quote_outcome(self, db_session, seeded, now):
        """Lane statistics read outcomes from the quotes and count each quote once."""
        db_session.add_all([
            _row(now, quote_id=30, final_agreed_price=1200, job_won=True),
            _row(now, quote_id=31, final_agreed_price=800, job_won=False),
        ])
        db_session.flush()
        for quote_id in (30, 31, 31):
            seeded.record_pricing_outcome(PricingOutcome(
                quote_id=quote_id,
                recommended_price=1000.0,
                confidence_percentage=62.0,
                match_count=4,
                tier=PricingTier.STATISTICAL,
                origin_region="GULF",
                destination_region="CENTRAL",
                service_category="GROUND",
            ))

        stats = seeded.lane_pricing_stats("GULF", "CENTRAL", "GROUND")

        assert stats.total_quotes == 2
        assert stats.won_quotes == 1
        assert stats.avg_final_price == pytest.approx(1000.0)
        assert seeded.lane_pricing_stats("GULF", "WEST", "GROUND") is None


class TestProcessQuotesWithDatabase:
    """The batch pipeline against real tables."""

    def test_end_to_end(self, db_session, seeded, clock):
        """Pricing a quote writes matches, a recommendation and a history row."""
        service = QuotePricingService(matcher=QuoteMatcher(clock=clock, max_workers=1), repository=seeded)

        batch = service.process_quotes([1])

        assert batch.errors == {}
        assert batch.processed == 1
        assert batch.matches_created == 4
        assert db_session.execute(select(func.count()).select_from(QuoteMatch)).scalar_one() == 4
        recommendation = db_session.execute(select(PricingRecommendationRecord)).scalar_one()
        assert 850 <= float(recommendation.recommended_price) <= 1150
        history = db_session.execute(select(PricingHistory)).scalar_one()
        assert history.origin_region == "GULF"
        assert history.service_category == "GROUND"

    def test_failed_quote_leaves_no_partial_writes(self, db_session, seeded, now, clock):
        """A quote failing after its matches were flushed keeps none of its rows."""

        class FailingRecommendationRepository(SqlQuoteRepository):
            def save_recommendation(self, quote_id, recommendation):
                if quote_id == 2:
                    raise RuntimeError("disk full")
                super().save_recommendation(quote_id, recommendation)

        db_session.add(_row(now, quote_id=2, quote_date=now - timedelta(days=1)))
        db_session.flush()
        service = QuotePricingService(
            matcher=QuoteMatcher(clock=clock, max_workers=1),
            repository=FailingRecommendationRepository(db_session),
        )

        batch = service.process_quotes([2, 1])

        assert batch.errors == {2: "RuntimeError: disk full"}
        assert batch.processed == 1
        sources = db_session.execute(select(QuoteMatch.source_quote_id)).scalars().all()
        assert set(sources) == {1}
        assert len(sources) == 4
        assert db_session.execute(select(PricingHistory.quote_id)).scalars().all() == [1]

    def test_database_error_does_not_poison_batch(self, db_session, seeded, now, clock):
        """A constraint violation on one quote is rolled back and later quotes still persist."""

        class BrokenHistoryRepository(SqlQuoteRepository):
            def record_pricing_outcome(self, outcome):
                if outcome.quote_id == 2:
                    self.db.add(PricingHistory(quote_id=2, recommended_price=None, tier="statistical",
                                               service_category="GROUND"))
                    self.db.flush()
                    return
                super().record_pricing_outcome(outcome)

        db_session.add(_row(now, quote_id=2, quote_date=now - timedelta(days=1)))
        db_session.flush()
        service = QuotePricingService(
            matcher=QuoteMatcher(clock=clock, max_workers=1),
            repository=BrokenHistoryRepository(db_session),
        )

        batch = service.process_quotes([2, 1])

        assert batch.errors[2].startswith("IntegrityError")
        assert batch.processed == 1
        recommendations = db_session.execute(select(PricingRecommendationRecord.quote_id)).scalars().all()
        assert recommendations == [1]
        assert db_session.execute(select(PricingHistory.quote_id)).scalars().all() == [1]
