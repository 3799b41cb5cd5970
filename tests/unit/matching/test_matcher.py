"""Unit tests for historical quote matching, ranking and outlier removal."""

from datetime import timedelta

import pytest

from quote_pricing.domain.results import FeedbackRecord, Match, PriceRange, PriceSource
from quote_pricing.matching import (
    MatchingOptions,
    QuoteMatcher,
    effective_min_score,
    feedback_boost,
    percentile,
    ranking_key,
    remove_price_outliers,
)


@pytest.fixture
def matcher(clock):
    return QuoteMatcher(clock=clock, max_workers=1)


def _match(quote_id, price, score=0.8, quote_date=None):
    return Match(
        source_quote_id=1,
        matched_quote_id=quote_id,
        similarity_score=score,
        criteria={},
        suggested_price=price,
        price_confidence=0.8,
        price_range=PriceRange(low=price * 0.9, high=price * 1.1),
        price_source=PriceSource.INITIAL_QUOTE,
        matched_quote_date=quote_date,
    )


class TestFeedbackBoost:
    """Bounded score adjustment from operator feedback."""

    def test_no_feedback(self):
        """No feedback, no boost."""
        assert feedback_boost(None) == 0.0

    def test_positive_feedback(self):
        """One positive rating adds 0.05 + 0.02."""
        assert feedback_boost(FeedbackRecord(quote_id=2, positive_count=1)) == pytest.approx(0.07)

    def test_positive_feedback_capped(self):
        """Positive feedback adds at most 0.15."""
        assert feedback_boost(FeedbackRecord(quote_id=2, positive_count=50)) == pytest.approx(0.15)

    def test_negative_feedback_capped(self):
        """Negative feedback subtracts at most 0.10."""
        assert feedback_boost(FeedbackRecord(quote_id=2, negative_count=50)) == pytest.approx(-0.10)

    def test_verified_prices(self):
        """Recorded actual prices add 0.08 on top of the rating boost."""
        record = FeedbackRecord(quote_id=2, positive_count=50, actual_prices_used=(950.0,))

        assert feedback_boost(record) == pytest.approx(0.23)


class TestEffectiveMinScore:
    """Per-service floors combined with the caller's minimum."""

    def test_drayage_floor(self, make_quote):
        """Drayage needs at least 0.60."""
        assert effective_min_score(make_quote(service_type="Drayage"), 0.45) == 0.60

    def test_unknown_service_uses_caller_minimum(self, make_quote):
        """Services without a floor use min_score."""
        assert effective_min_score(make_quote(service_type=None), 0.45) == 0.45

    def test_caller_minimum_wins_when_higher(self, make_quote):
        """The floor never lowers the caller's minimum."""
        assert effective_min_score(make_quote(service_type="Drayage"), 0.7) == 0.7

    def test_corrected_service_decides(self, make_quote):
        """Ocean on a short route takes the drayage floor."""
        quote = make_quote(service_type="Ocean", cargo_description="40ft container")

        assert effective_min_score(quote, 0.45, source_distance=12.0) == 0.60


class TestRanking:
    """Deterministic ordering of matches."""

    def test_ties_break_by_recency_then_id(self, now):
        """Equal scores rank newest first, then lowest quote id."""
        older = _match(5, 1000.0, 0.8, now - timedelta(days=60))
        newer = _match(9, 1000.0, 0.8, now - timedelta(days=10))
        same_day_low_id = _match(3, 1000.0, 0.8, now - timedelta(days=10))
        best = _match(7, 1000.0, 0.9, now - timedelta(days=300))
        undated = _match(1, 1000.0, 0.8, None)

        ranked = sorted([older, undated, newer, best, same_day_low_id], key=ranking_key)

        assert [m.matched_quote_id for m in ranked] == [7, 3, 9, 5, 1]


class TestOutliers:
    """IQR outlier removal."""

    def test_percentile_interpolates(self):
        """Linear interpolation between ranks."""
        assert percentile([1.0, 2.0, 3.0, 4.0], 50) == pytest.approx(2.5)
        assert percentile([5.0], 85) == 5.0

    def test_high_outlier_removed(self):
        """A $9,000 comparable among ~$1,000 ones is dropped."""
        matches = [_match(i, p) for i, p in enumerate([900.0, 950.0, 1000.0, 1050.0, 9000.0], start=2)]

        kept, removed = remove_price_outliers(matches)

        assert [m.suggested_price for m in removed] == [9000.0]
        assert len(kept) == 4

    def test_needs_four_matches(self):
        """Fewer than four matches are never filtered."""
        matches = [_match(2, 100.0), _match(3, 1000.0), _match(4, 9000.0)]

        kept, removed = remove_price_outliers(matches)

        assert len(kept) == 3
        assert removed == []


class TestQuoteMatcher:
    """End-to-end matching against a historical pool."""

    def _pool(self, make_quote, now, prices):
        return [
            make_quote(quote_id=10 + i, initial_quote_amount=price, quote_date=now - timedelta(days=20 + i))
            for i, price in enumerate(prices)
        ]

    def test_outlier_excluded_from_matches(self, matcher, make_quote, now):
        """The $9,000 comparable never reaches pricing."""
        pool = self._pool(make_quote, now, [900.0, 950.0, 1000.0, 1050.0, 9000.0])

        matches = matcher.find_matches(make_quote(quote_id=1), pool)

        assert len(matches) == 4
        assert all(m.suggested_price < 2000 for m in matches)
        assert 14 not in {m.matched_quote_id for m in matches}

    def test_source_never_matches_itself(self, matcher, make_quote, now):
        """The source quote is excluded from its own pool."""
        pool = self._pool(make_quote, now, [900.0, 950.0]) + [make_quote(quote_id=1)]

        matches = matcher.find_matches(make_quote(quote_id=1), pool)

        assert 1 not in {m.matched_quote_id for m in matches}

    def test_ranked_and_truncated(self, matcher, make_quote, now):
        """Matches are sorted by score and cut to max_matches."""
        pool = self._pool(make_quote, now, [900.0, 950.0, 1000.0, 1050.0])
        pool.append(make_quote(quote_id=30, cargo_description="Steel coils", initial_quote_amount=980.0))

        matches = matcher.find_matches(make_quote(quote_id=1), pool, MatchingOptions(max_matches=3))

        assert len(matches) == 3
        scores = [m.similarity_score for m in matches]
        assert scores == sorted(scores, reverse=True)

    def test_min_score_filters(self, matcher, make_quote, now):
        """Nothing survives an impossible minimum."""
        pool = self._pool(make_quote, now, [900.0, 950.0])

        assert matcher.find_matches(make_quote(quote_id=1), pool, MatchingOptions(min_score=0.999)) == []

    def test_invalid_historical_quotes_skipped(self, matcher, make_quote, now):
        """Quotes under $50 are filtered before scoring."""
        pool = self._pool(make_quote, now, [900.0, 40.0])

        matches = matcher.find_matches(make_quote(quote_id=1), pool)

        assert [m.matched_quote_id for m in matches] == [10]

    def test_feedback_boost_applied_and_capped(self, matcher, make_quote, now):
        """Feedback raises the score but never above 1."""
        pool = self._pool(make_quote, now, [900.0, 950.0])
        feedback = {11: FeedbackRecord(quote_id=11, positive_count=20, actual_prices_used=(940.0,))}

        matches = matcher.find_matches(make_quote(quote_id=1), pool, feedback=feedback)

        boosted = next(m for m in matches if m.matched_quote_id == 11)
        assert boosted.similarity_score == 1.0
        assert boosted.feedback_adjustment == pytest.approx(0.23)
        assert matches[0].matched_quote_id == 11

    def test_parallel_scoring_matches_serial(self, clock, make_quote, now):
        """The thread pool returns the same matches as serial scoring."""
        pool = [
            make_quote(
                quote_id=100 + i,
                initial_quote_amount=900.0 + i,
                quote_date=now - timedelta(days=10 + i),
            )
            for i in range(80)
        ]
        source = make_quote(quote_id=1)

        serial = QuoteMatcher(clock=clock, max_workers=1).find_matches(source, pool)
        parallel = QuoteMatcher(clock=clock, max_workers=4).find_matches(source, pool)

        assert [m.matched_quote_id for m in parallel] == [m.matched_quote_id for m in serial]
        assert [m.similarity_score for m in parallel] == [m.similarity_score for m in serial]
