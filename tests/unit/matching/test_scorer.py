"""Unit tests for multi-criteria similarity scoring."""

import pytest

from quote_pricing.feedback.weights import BASELINE_WEIGHTS, WeightContext, apply_contextual_adjustments
from quote_pricing.matching import SimilarityScorer, distance_similarity, recency_score


@pytest.fixture
def scorer(clock):
    return SimilarityScorer(clock=clock)


class TestDistanceSimilarity:
    """Banded route length similarity."""

    @pytest.mark.parametrize("source,historical,expected", [
        (100, 95, 1.0),
        (100, 80, 0.85),
        (100, 70, 0.60),
        (100, 50, 0.40),
        (100, 30, 0.20),
        (100, 10, 0.05),
    ])
    def test_bands(self, source, historical, expected):
        """Percent difference against the longer route selects the band."""
        assert distance_similarity(source, historical) == expected

    @pytest.mark.parametrize("source,historical", [(None, 100), (100, None), (0, 100)])
    def test_unknown_distance_is_penalized(self, source, historical):
        """Unknown distance scores low rather than neutral."""
        assert distance_similarity(source, historical) == 0.2


class TestRecency:
    """Exponential decay with a 75-day half life."""

    def test_decay(self, now):
        """Same day is 1, 75 days is one half, very old floors at 0.05."""
        from datetime import timedelta

        assert recency_score(now, now) == pytest.approx(1.0)
        assert recency_score(now - timedelta(days=75), now) == pytest.approx(0.5)
        assert recency_score(now - timedelta(days=1000), now) == 0.05

    def test_unknown_date(self, now):
        """Missing quote date scores 0.25."""
        assert recency_score(None, now) == 0.25


class TestSimilarityScorer:
    """Full source/historical comparison."""

    def test_near_identical_quote_scores_high(self, scorer, make_quote):
        """Same lane, cargo and service scores close to 1."""
        result = scorer.score(make_quote(quote_id=1), make_quote(quote_id=2))

        assert result.score > 0.95
        assert set(result.criteria) == set(BASELINE_WEIGHTS)

    def test_deterministic(self, scorer, make_quote):
        """Identical inputs give identical scores."""
        source = make_quote(quote_id=1)
        historical = make_quote(quote_id=2, destination_city="Austin", cargo_weight=45000.0)

        first = scorer.score(source, historical)
        second = scorer.score(source, historical)

        assert first.score == second.score
        assert first.criteria == second.criteria

    def test_scores_bounded(self, scorer, make_quote):
        """Score and every criterion stay within [0, 1]."""
        source = make_quote(quote_id=1)
        historical = make_quote(
            quote_id=2,
            origin_city="Seattle",
            origin_state_province="WA",
            cargo_description="Grain",
            service_type="Reefer",
            total_distance_miles=2200.0,
        )

        result = scorer.score(source, historical)

        assert 0.0 <= result.score <= 1.0
        assert all(0.0 <= value <= 1.0 for value in result.criteria.values())

    def test_lane_type_mismatch_halves_score(self, scorer, make_quote):
        """An international comparable for a domestic quote scores at most half."""
        source = make_quote(quote_id=1)
        historical = make_quote(
            quote_id=2,
            destination_city="Shanghai",
            destination_state_province=None,
            destination_country="China",
        )

        result = scorer.score(source, historical)

        assert result.metadata["penalties"]["lane_type_mismatch"] == 0.5
        assert result.criteria["service_compatibility"] == 0.0
        assert result.score <= result.metadata["score_before_lane_penalty"] * 0.5 + 1e-4

    def test_not_symmetric_for_long_haul_ground(self, scorer, make_quote):
        """Long-haul penalties key off the source quote only."""
        long_haul = make_quote(quote_id=1, total_distance_miles=800.0)
        shorter = make_quote(quote_id=2, total_distance_miles=400.0, cargo_description="Steel coils")

        forward = scorer.score(long_haul, shorter)
        backward = scorer.score(shorter, long_haul)

        assert forward.metadata["penalties"] == {"long_haul_distance": 0.8, "long_haul_cargo": 0.85}
        assert backward.metadata["penalties"] == {}
        assert forward.score < backward.score

    def test_unknown_criteria_skipped(self, scorer, make_quote):
        """Weights for criteria the scorer does not know are ignored."""
        result = scorer.score(
            make_quote(quote_id=1),
            make_quote(quote_id=2),
            weights={"distance_similarity": 1.0, "moon_phase": 5.0},
        )

        assert result.criteria == {"distance_similarity": 1.0}
        assert result.score == 1.0

    def test_default_weights_follow_source_context(self, scorer, make_quote):
        """Without explicit weights a hazmat source doubles the hazmat weight."""
        source = make_quote(quote_id=1, hazardous_material=True)
        historical = make_quote(quote_id=2)
        overlay = apply_contextual_adjustments(BASELINE_WEIGHTS, WeightContext.for_quote(source))

        default = scorer.score(source, historical)

        assert overlay["hazmat"] > BASELINE_WEIGHTS["hazmat"]
        assert default.score == scorer.score(source, historical, weights=overlay).score
        assert default.score < scorer.score(source, historical, weights=BASELINE_WEIGHTS).score

    def test_explicit_distances_override_stored(self, scorer, make_quote):
        """Caller-supplied distances replace stored ones."""
        result = scorer.score(
            make_quote(quote_id=1),
            make_quote(quote_id=2),
            source_distance=100.0,
            historical_distance=10.0,
            weights={"distance_similarity": 1.0},
        )

        assert result.criteria["distance_similarity"] == 0.05


class TestServiceCompatibility:
    """Cross-service compatibility rules."""

    def test_ground_and_drayage_short_haul(self, scorer, make_quote):
        """GROUND and DRAYAGE are compatible when both legs are short."""
        source = make_quote(quote_id=1, service_type="Drayage", total_distance_miles=40.0)
        historical = make_quote(quote_id=2, service_type="FTL", total_distance_miles=45.0)

        result = scorer.score(source, historical, weights={"service_compatibility": 1.0})

        assert result.criteria["service_compatibility"] == 0.8

    def test_ground_and_drayage_long_haul(self, scorer, make_quote):
        """GROUND and DRAYAGE are not compatible on long legs."""
        source = make_quote(quote_id=1, service_type="Drayage", total_distance_miles=300.0)
        historical = make_quote(quote_id=2, service_type="FTL", total_distance_miles=300.0)

        result = scorer.score(source, historical, weights={"service_compatibility": 1.0})

        assert result.criteria["service_compatibility"] == 0.0

    def test_ocean_and_intermodal(self, scorer, make_quote):
        """OCEAN and INTERMODAL are compatible on the same lane type."""
        source = make_quote(quote_id=1, service_type="Ocean", total_distance_miles=2500.0)
        historical = make_quote(quote_id=2, service_type="Intermodal", total_distance_miles=2500.0)

        result = scorer.score(source, historical, weights={"service_compatibility": 1.0})

        assert result.criteria["service_compatibility"] == 0.8

    def test_unknown_services(self, scorer, make_quote):
        """Two unknown services are half compatible."""
        source = make_quote(quote_id=1, service_type=None)
        historical = make_quote(quote_id=2, service_type="white glove")

        result = scorer.score(source, historical, weights={"service_compatibility": 1.0})

        assert result.criteria["service_compatibility"] == 0.5
