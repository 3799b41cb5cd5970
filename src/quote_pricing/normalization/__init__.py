"""Normalization of free-text quote fields.

Pure functions with no I/O. NormalizedAttributes are derived fresh for every
comparison and never cached on a quote, because the service-type correction
depends on the route distance used in that comparison.
"""

from dataclasses import dataclass
from typing import Optional

from quote_pricing.domain.quote import Quote

from .cargo import CargoCategory, cargo_similarity, classify_cargo
from .equipment import (
    CONTAINER_PRICING_MULTIPLIERS,
    ContainerType,
    EquipmentType,
    container_similarity,
    detect_container_type,
    detect_equipment_type,
    equipment_similarity,
    is_special_container,
)
from .oog import OOGAnalysis, analyze_oog_cargo, is_oog_cargo
from .regions import OTHER, OTHER_US, get_region, is_international_lane
from .service_type import ServiceCategory, correct_service_type_by_distance, normalize_service_type
from .units import WeightRange, convert_to_feet, convert_to_lbs, distance_category, weight_range


@dataclass(frozen=True)
class NormalizedAttributes:
    service_category: ServiceCategory
    origin_region: Optional[str]
    destination_region: Optional[str]
    cargo_category: CargoCategory
    equipment_type: Optional[EquipmentType]
    weight_range: Optional[WeightRange]
    weight_lbs: Optional[float]
    container_type: Optional[ContainerType]
    is_out_of_gauge: bool
    is_international: bool


def normalize_quote(quote: Quote, distance_miles: Optional[float] = None) -> NormalizedAttributes:
    """Derive normalized attributes for one side of a comparison.

    Args:
        quote: Quote to normalize
        distance_miles: Route distance used for this comparison; falls back to
            the quote's stored total_distance_miles
    """
    distance = distance_miles if distance_miles is not None else quote.total_distance_miles
    service = correct_service_type_by_distance(
        normalize_service_type(quote.service_type), distance, quote.cargo_description
    )
    origin_region = get_region(quote.origin_city, quote.origin_state_province, quote.origin_country)
    destination_region = get_region(
        quote.destination_city, quote.destination_state_province, quote.destination_country
    )
    return NormalizedAttributes(
        service_category=service,
        origin_region=origin_region,
        destination_region=destination_region,
        cargo_category=classify_cargo(quote.cargo_description),
        equipment_type=detect_equipment_type(quote.equipment_type_requested, quote.cargo_description),
        weight_range=weight_range(quote.cargo_weight, quote.weight_unit),
        weight_lbs=convert_to_lbs(quote.cargo_weight, quote.weight_unit),
        container_type=detect_container_type(quote.cargo_description, quote.service_type),
        is_out_of_gauge=is_oog_cargo(quote.cargo_description, quote.cargo_height, quote.cargo_width),
        is_international=is_international_lane(origin_region, destination_region),
    )


__all__ = [
    "NormalizedAttributes",
    "normalize_quote",
    "CargoCategory",
    "classify_cargo",
    "cargo_similarity",
    "ContainerType",
    "CONTAINER_PRICING_MULTIPLIERS",
    "EquipmentType",
    "container_similarity",
    "detect_container_type",
    "detect_equipment_type",
    "equipment_similarity",
    "is_special_container",
    "OOGAnalysis",
    "analyze_oog_cargo",
    "is_oog_cargo",
    "OTHER",
    "OTHER_US",
    "get_region",
    "is_international_lane",
    "ServiceCategory",
    "correct_service_type_by_distance",
    "normalize_service_type",
    "WeightRange",
    "convert_to_feet",
    "convert_to_lbs",
    "distance_category",
    "weight_range",
]
