"""Matching weight tables.

A weight table maps criterion name to a non-negative weight. Tables handed
to the scorer always sum to 1.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

from quote_pricing.domain.quote import Quote
from quote_pricing.normalization import CargoCategory, classify_cargo, get_region, is_international_lane

BASELINE_WEIGHTS: dict[str, float] = {
    "origin_region": 0.07,
    "origin_city": 0.03,
    "destination_region": 0.08,
    "destination_city": 0.03,
    "cargo_category": 0.12,
    "cargo_weight_range": 0.06,
    "actual_weight": 0.05,
    "number_of_pieces": 0.02,
    "service_type": 0.13,
    "service_compatibility": 0.04,
    "hazmat": 0.06,
    "container_type": 0.04,
    "equipment_type": 0.04,
    "recency": 0.05,
    "distance_similarity": 0.18,
}

MIN_LEARNED_WEIGHT = 0.01
MAX_LEARNED_WEIGHT = 0.5


@dataclass(frozen=True)
class WeightContext:
    """Source-quote traits that shift the weight table at read time."""
    is_international: bool = False
    cargo_category: Optional[CargoCategory] = None
    is_hazmat: bool = False

    @classmethod
    def for_quote(cls, quote: Quote) -> "WeightContext":
        origin = get_region(quote.origin_city, quote.origin_state_province, quote.origin_country)
        destination = get_region(
            quote.destination_city, quote.destination_state_province, quote.destination_country
        )
        return cls(
            is_international=is_international_lane(origin, destination),
            cargo_category=classify_cargo(quote.cargo_description),
            is_hazmat=bool(quote.hazardous_material),
        )


def normalize_weights(weights: Mapping[str, float]) -> dict[str, float]:
    """Scale weights to sum to 1; an all-zero table falls back to the baseline."""
    cleaned = {k: max(0.0, float(v)) for k, v in weights.items()}
    total = sum(cleaned.values())
    if total <= 0:
        return dict(BASELINE_WEIGHTS)
    return {k: v / total for k, v in cleaned.items()}


def merge_learned_weights(learned: Optional[Mapping[str, float]]) -> dict[str, float]:
    """Overlay learned weights onto the baseline.

    Criteria the baseline does not know are ignored; criteria never learned
    keep their baseline weight.
    """
    merged = dict(BASELINE_WEIGHTS)
    for name, weight in (learned or {}).items():
        if name in merged and weight is not None and weight >= 0:
            merged[name] = float(weight)
    return normalize_weights(merged)


def apply_contextual_adjustments(
    weights: Mapping[str, float],
    context: Optional[WeightContext],
) -> dict[str, float]:
    """Shift weights for the source quote's lane and cargo, then renormalize.

    International lanes weight regions up (x1.2) and service type down (x0.9).
    MACHINERY weights cargo category (x1.3) and weight (x1.2) up. Hazmat
    sources double the hazmat weight.
    """
    adjusted = dict(weights)
    if context is None:
        return normalize_weights(adjusted)

    def scale(name: str, factor: float) -> None:
        if name in adjusted:
            adjusted[name] *= factor

    if context.is_international:
        scale("origin_region", 1.2)
        scale("destination_region", 1.2)
        scale("service_type", 0.9)

    if context.cargo_category == CargoCategory.MACHINERY:
        scale("cargo_category", 1.3)
        scale("cargo_weight_range", 1.2)
        scale("actual_weight", 1.2)

    if context.is_hazmat:
        scale("hazmat", 2.0)

    return normalize_weights(adjusted)
