"""Unit tests for weight tables and the learned weight cache."""

import pytest

from quote_pricing.feedback import (
    BASELINE_WEIGHTS,
    WeightContext,
    WeightStore,
    apply_contextual_adjustments,
    merge_learned_weights,
    normalize_weights,
)
from quote_pricing.normalization import CargoCategory


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class CountingLoader:
    def __init__(self, table=None, error=None):
        self.table = table
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.table


class TestWeightTables:
    """Baseline, merge and normalization."""

    def test_baseline_sums_to_one(self):
        """The baseline table is already normalized."""
        assert sum(BASELINE_WEIGHTS.values()) == pytest.approx(1.0, abs=1e-9)
        assert len(BASELINE_WEIGHTS) == 15

    def test_all_zero_falls_back_to_baseline(self):
        """A degenerate table is replaced by the baseline."""
        assert normalize_weights({"recency": 0.0, "hazmat": -1.0}) == BASELINE_WEIGHTS

    def test_merge_ignores_unknown_criteria(self):
        """Learned criteria the baseline does not know are dropped."""
        merged = merge_learned_weights({"distance_similarity": 0.5, "moon_phase": 0.9})

        assert "moon_phase" not in merged
        assert set(merged) == set(BASELINE_WEIGHTS)
        assert sum(merged.values()) == pytest.approx(1.0, abs=1e-6)
        assert merged["distance_similarity"] > BASELINE_WEIGHTS["distance_similarity"]

    @pytest.mark.parametrize("context", [
        None,
        WeightContext(),
        WeightContext(is_international=True),
        WeightContext(cargo_category=CargoCategory.MACHINERY),
        WeightContext(is_hazmat=True),
        WeightContext(is_international=True, cargo_category=CargoCategory.MACHINERY, is_hazmat=True),
    ])
    def test_contextual_tables_sum_to_one(self, context):
        """Every context yields a table summing to 1."""
        weights = apply_contextual_adjustments(BASELINE_WEIGHTS, context)

        assert sum(weights.values()) == pytest.approx(1.0, abs=1e-6)

    def test_hazmat_context_doubles_relative_weight(self):
        """Hazmat sources weight the hazmat criterion up."""
        weights = apply_contextual_adjustments(BASELINE_WEIGHTS, WeightContext(is_hazmat=True))

        assert weights["hazmat"] > BASELINE_WEIGHTS["hazmat"]
        assert weights["recency"] < BASELINE_WEIGHTS["recency"]

    def test_context_from_quote(self, make_quote):
        """Contexts are derived from the source quote."""
        context = WeightContext.for_quote(make_quote(destination_country="Mexico", hazardous_material=True))

        assert context.is_international is True
        assert context.cargo_category == CargoCategory.MACHINERY
        assert context.is_hazmat is True


class TestWeightStore:
    """TTL cache of learned weights."""

    def test_no_loader_uses_baseline(self):
        """Without a loader the baseline is served."""
        weights = WeightStore().get()

        assert weights == pytest.approx(BASELINE_WEIGHTS)

    def test_cached_within_ttl(self):
        """The loader runs once per TTL window."""
        clock = FakeClock()
        loader = CountingLoader({"distance_similarity": 0.3})
        store = WeightStore(loader, ttl_seconds=300, clock=clock)

        store.get()
        clock.advance(299)
        store.get()
        assert loader.calls == 1

        clock.advance(2)
        store.get()
        assert loader.calls == 2

    def test_invalidate_forces_reload(self):
        """invalidate() makes the next read reload."""
        loader = CountingLoader({"distance_similarity": 0.3})
        store = WeightStore(loader, ttl_seconds=300, clock=FakeClock())

        store.get()
        store.invalidate()
        store.get()

        assert loader.calls == 2

    def test_loader_error_serves_baseline_uncached(self):
        """A failing loader yields the baseline and is retried next time."""
        loader = CountingLoader(error=RuntimeError("db down"))
        store = WeightStore(loader, ttl_seconds=300, clock=FakeClock())

        assert store.get() == pytest.approx(BASELINE_WEIGHTS)
        store.get()

        assert loader.calls == 2

    def test_returned_tables_are_independent(self):
        """Callers may mutate what they get without touching the cache."""
        store = WeightStore(CountingLoader({"hazmat": 0.2}), clock=FakeClock())

        first = store.get()
        first["hazmat"] = 99.0

        assert store.get()["hazmat"] < 1.0

    def test_learned_table_applied(self):
        """Learned weights shift the served table."""
        store = WeightStore(CountingLoader({"distance_similarity": 0.4}), clock=FakeClock())

        weights = store.get(WeightContext())

        assert weights["distance_similarity"] > BASELINE_WEIGHTS["distance_similarity"]
        assert sum(weights.values()) == pytest.approx(1.0, abs=1e-6)
