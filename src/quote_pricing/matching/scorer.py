"""Multi-criteria similarity scoring between a source and a historical quote.

score = sum(sub_score[c] * weight[c]) / sum(weight[c]) over the criteria in
the active weight table, followed by two multiplicative post-adjustments:

- long-haul GROUND (> 500 mi): x0.8 when distance similarity < 0.85 and
  x0.85 when the cargo category is not an exact match
- lane type mismatch (one international, one domestic): x0.5

The score is deterministic for fixed inputs, weights and clock. It is not
symmetric: the long-haul adjustment and the distance-based service
correction key off the source quote.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import MatchCriteria, ScoreResult
from quote_pricing.feedback.weights import BASELINE_WEIGHTS, WeightContext, apply_contextual_adjustments
from quote_pricing.normalization import (
    NormalizedAttributes,
    ServiceCategory,
    cargo_similarity,
    container_similarity,
    equipment_similarity,
    normalize_quote,
)

from .locations import city_similarity

logger = logging.getLogger(__name__)

SHORT_HAUL_MILES = 150
LONG_HAUL_MILES = 500
RECENCY_HALF_LIFE_DAYS = 75.0
RECENCY_FLOOR = 0.05
UNKNOWN_RECENCY = 0.25
UNKNOWN_DISTANCE_SIMILARITY = 0.2
UNKNOWN_WEIGHT_RANGE = 0.35
UNKNOWN_ACTUAL_WEIGHT = 0.3
UNKNOWN_PIECES = 0.5
COMPATIBLE_SERVICE = 0.8
LANE_MISMATCH_FACTOR = 0.5
LONG_HAUL_DISTANCE_FACTOR = 0.8
LONG_HAUL_CARGO_FACTOR = 0.85

# (max percent difference, score)
DISTANCE_BANDS = ((0.10, 1.0), (0.20, 0.85), (0.35, 0.60), (0.50, 0.40), (0.75, 0.20))
DISTANCE_FLOOR = 0.05

ACTUAL_WEIGHT_BANDS = ((0.15, 1.0), (0.30, 0.7), (0.50, 0.4))
ACTUAL_WEIGHT_FLOOR = 0.1

WEIGHT_RANGE_SCORES = {0: 1.0, 1: 0.65, 2: 0.25}

_OCEAN_LIKE = {ServiceCategory.OCEAN, ServiceCategory.INTERMODAL}


@dataclass(frozen=True)
class _Comparison:
    source: Quote
    historical: Quote
    src: NormalizedAttributes
    hist: NormalizedAttributes
    source_miles: Optional[float]
    historical_miles: Optional[float]
    now: datetime

    @property
    def lane_mismatch(self) -> bool:
        return self.src.is_international != self.hist.is_international


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _known(miles: Optional[float]) -> bool:
    return miles is not None and miles > 0


def distance_similarity(source_miles: Optional[float], historical_miles: Optional[float]) -> float:
    """Banded similarity of two route lengths; unknown distance is a risk, not neutral."""
    if not _known(source_miles) or not _known(historical_miles):
        return UNKNOWN_DISTANCE_SIMILARITY
    longer = max(source_miles, historical_miles)
    diff = abs(source_miles - historical_miles) / longer
    for limit, score in DISTANCE_BANDS:
        if diff <= limit:
            return score
    return DISTANCE_FLOOR


def recency_score(quote_date: Optional[datetime], now: datetime) -> float:
    if quote_date is None:
        return UNKNOWN_RECENCY
    age_days = max(0.0, (now - quote_date).total_seconds() / 86400.0)
    return max(RECENCY_FLOOR, 0.5 ** (age_days / RECENCY_HALF_LIFE_DAYS))


def service_compatibility(c: _Comparison) -> float:
    """Compatibility of the two corrected service categories.

    GROUND and DRAYAGE are interchangeable only when both legs are short
    haul. OCEAN and INTERMODAL are interchangeable on the same lane type.
    A lane type mismatch zeroes compatibility.
    """
    s, h = c.src.service_category, c.hist.service_category
    if c.lane_mismatch:
        return 0.0
    if s == h:
        return 0.5 if s == ServiceCategory.UNKNOWN else 1.0

    pair = {s, h}
    if pair == {ServiceCategory.GROUND, ServiceCategory.DRAYAGE}:
        both_short = all(
            _known(m) and m < SHORT_HAUL_MILES for m in (c.source_miles, c.historical_miles)
        )
        return COMPATIBLE_SERVICE if both_short else 0.0
    if pair == _OCEAN_LIKE:
        return COMPATIBLE_SERVICE
    if pair == {ServiceCategory.TRANSLOAD, ServiceCategory.DRAYAGE}:
        return COMPATIBLE_SERVICE
    return 0.0


def _service_type(c: _Comparison) -> float:
    s, h = c.src.service_category, c.hist.service_category
    if s == h and s != ServiceCategory.UNKNOWN:
        return 1.0
    return service_compatibility(c)


def _region(source: Optional[str], historical: Optional[str]) -> float:
    return 1.0 if source is not None and source == historical else 0.0


def _weight_range(c: _Comparison) -> float:
    if c.src.weight_range is None or c.hist.weight_range is None:
        return UNKNOWN_WEIGHT_RANGE
    bands_apart = abs(c.src.weight_range.index - c.hist.weight_range.index)
    return WEIGHT_RANGE_SCORES.get(bands_apart, 0.0)


def _actual_weight(c: _Comparison) -> float:
    a, b = c.src.weight_lbs, c.hist.weight_lbs
    if a is None or b is None:
        return UNKNOWN_ACTUAL_WEIGHT
    diff = abs(a - b) / max(a, b)
    for limit, score in ACTUAL_WEIGHT_BANDS:
        if diff <= limit:
            return score
    return ACTUAL_WEIGHT_FLOOR


def _pieces(c: _Comparison) -> float:
    a, b = c.source.number_of_pieces, c.historical.number_of_pieces
    if not a or not b or a <= 0 or b <= 0:
        return UNKNOWN_PIECES
    if a == b:
        return 1.0
    ratio = min(a, b) / max(a, b)
    if ratio >= 0.8:
        return 0.8
    if ratio >= 0.5:
        return 0.5
    return 0.2


CRITERIA: dict[str, Callable[[_Comparison], float]] = {
    "origin_region": lambda c: _region(c.src.origin_region, c.hist.origin_region),
    "origin_city": lambda c: city_similarity(
        c.source.origin_city, c.historical.origin_city,
        c.source.origin_state_province, c.historical.origin_state_province,
    ),
    "destination_region": lambda c: _region(c.src.destination_region, c.hist.destination_region),
    "destination_city": lambda c: city_similarity(
        c.source.destination_city, c.historical.destination_city,
        c.source.destination_state_province, c.historical.destination_state_province,
    ),
    "cargo_category": lambda c: cargo_similarity(c.src.cargo_category, c.hist.cargo_category),
    "cargo_weight_range": _weight_range,
    "actual_weight": _actual_weight,
    "number_of_pieces": _pieces,
    "service_type": _service_type,
    "service_compatibility": service_compatibility,
    "hazmat": lambda c: 1.0 if bool(c.source.hazardous_material) == bool(c.historical.hazardous_material) else 0.0,
    "container_type": lambda c: container_similarity(c.src.container_type, c.hist.container_type),
    "equipment_type": lambda c: equipment_similarity(c.src.equipment_type, c.hist.equipment_type),
    "recency": lambda c: recency_score(c.historical.effective_date, c.now),
    "distance_similarity": lambda c: distance_similarity(c.source_miles, c.historical_miles),
}


class SimilarityScorer:
    """Score historical quotes against a source quote.

    Args:
        weights: Default weight table (baseline when omitted)
        clock: Returns "now" for recency; injectable for deterministic tests
    """

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.weights = dict(weights or BASELINE_WEIGHTS)
        self.clock = clock

    def weights_for(self, source: Quote) -> dict[str, float]:
        """Default table with the source quote's contextual overlays applied."""
        return apply_contextual_adjustments(self.weights, WeightContext.for_quote(source))

    def score(
        self,
        source: Quote,
        historical: Quote,
        source_distance: Optional[float] = None,
        historical_distance: Optional[float] = None,
        weights: Optional[Mapping[str, float]] = None,
        now: Optional[datetime] = None,
    ) -> ScoreResult:
        """Compare one historical quote to the source quote.

        Args:
            source: Quote being priced
            historical: Candidate comparable
            source_distance: Route miles for the source (stored distance when None)
            historical_distance: Route miles for the candidate (stored distance when None)
            weights: Weight table used as given; when None the scorer default is
                adjusted for the source quote (see weights_for)
            now: Reference time for recency (clock() when None)

        Returns:
            ScoreResult with score in [0, 1] and one criterion entry per weight
        """
        table = weights if weights is not None else self.weights_for(source)
        source_miles = source_distance if source_distance is not None else source.total_distance_miles
        historical_miles = (
            historical_distance if historical_distance is not None else historical.total_distance_miles
        )
        c = _Comparison(
            source=source,
            historical=historical,
            src=normalize_quote(source, source_miles),
            hist=normalize_quote(historical, historical_miles),
            source_miles=source_miles,
            historical_miles=historical_miles,
            now=now or self.clock(),
        )

        criteria: MatchCriteria = {}
        total_score = 0.0
        total_weight = 0.0
        for name, weight in table.items():
            scorer = CRITERIA.get(name)
            if scorer is None:
                logger.debug("Skipping unknown match criterion", extra={"criterion": name})
                continue
            value = min(1.0, max(0.0, scorer(c)))
            criteria[name] = round(value, 4)
            total_score += value * weight
            total_weight += weight

        score = total_score / total_weight if total_weight > 0 else 0.0

        penalties: dict[str, float] = {}
        is_long_haul_ground = (
            c.src.service_category == ServiceCategory.GROUND
            and _known(source_miles)
            and source_miles > LONG_HAUL_MILES
        )
        if is_long_haul_ground:
            if distance_similarity(source_miles, historical_miles) < 0.85:
                score *= LONG_HAUL_DISTANCE_FACTOR
                penalties["long_haul_distance"] = LONG_HAUL_DISTANCE_FACTOR
            if cargo_similarity(c.src.cargo_category, c.hist.cargo_category) < 1.0:
                score *= LONG_HAUL_CARGO_FACTOR
                penalties["long_haul_cargo"] = LONG_HAUL_CARGO_FACTOR

        score_before_lane_penalty = score
        if c.lane_mismatch:
            score *= LANE_MISMATCH_FACTOR
            penalties["lane_type_mismatch"] = LANE_MISMATCH_FACTOR

        return ScoreResult(
            score=round(min(1.0, max(0.0, score)), 4),
            criteria=criteria,
            metadata={
                "source_service": c.src.service_category.value,
                "historical_service": c.hist.service_category.value,
                "source_cargo": c.src.cargo_category.value,
                "historical_cargo": c.hist.cargo_category.value,
                "source_origin_region": c.src.origin_region,
                "source_destination_region": c.src.destination_region,
                "source_international": c.src.is_international,
                "historical_international": c.hist.is_international,
                "score_before_lane_penalty": round(min(1.0, score_before_lane_penalty), 4),
                "penalties": penalties,
            },
        )
