"""Learned weight cache.

WeightStore is the only shared mutable state in the engine. Reads return a
fresh dict built from an immutable snapshot; the snapshot is replaced (never
mutated) under a lock when it goes stale or is invalidated. Two threads that
both see a stale snapshot may both reload; the second reload simply replaces
the first with an equivalent table.
"""

import logging
import threading
import time
from types import MappingProxyType
from typing import Callable, Mapping, Optional

from quote_pricing.observability.metrics import weight_refresh_total

from .weights import WeightContext, apply_contextual_adjustments, merge_learned_weights

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0

WeightLoader = Callable[[], Optional[Mapping[str, float]]]


class WeightStore:
    """TTL cache of the learned weight table with contextual overlays.

    Args:
        loader: Returns the persisted learned table, or None when nothing has
            been learned yet. Exceptions are logged and the baseline is used.
        ttl_seconds: Maximum age of a cached table
        clock: Monotonic time source in seconds (injectable for tests)
    """

    def __init__(
        self,
        loader: Optional[WeightLoader] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._snapshot: Optional[Mapping[str, float]] = None
        self._loaded_at: Optional[float] = None

    def get(self, context: Optional[WeightContext] = None) -> dict[str, float]:
        """Return the active weight table for a source quote context.

        The result sums to 1 and is a new dict the caller may keep.
        """
        return apply_contextual_adjustments(self._current(), context)

    def invalidate(self) -> None:
        """Drop the cached table so the next get() reloads it."""
        with self._lock:
            self._snapshot = None
            self._loaded_at = None

    def _fresh(self, now: float) -> bool:
        return (
            self._snapshot is not None
            and self._loaded_at is not None
            and now - self._loaded_at < self._ttl
        )

    def _current(self) -> Mapping[str, float]:
        snapshot = self._snapshot
        if snapshot is not None and self._fresh(self._clock()):
            return snapshot

        with self._lock:
            now = self._clock()
            if self._fresh(now):
                return self._snapshot
            table = self._load()
            if table is None:
                # Not cached: retry the loader on the next call
                return MappingProxyType(merge_learned_weights(None))
            self._snapshot = MappingProxyType(table)
            self._loaded_at = now
            return self._snapshot

    def _load(self) -> Optional[dict[str, float]]:
        if self._loader is None:
            weight_refresh_total.labels(result="baseline").inc()
            return merge_learned_weights(None)
        try:
            learned = self._loader()
        except Exception as e:
            logger.warning("Failed to load learned weights, using baseline", extra={"error": str(e)})
            weight_refresh_total.labels(result="error").inc()
            return None
        weight_refresh_total.labels(result="learned" if learned else "baseline").inc()
        return merge_learned_weights(learned)
