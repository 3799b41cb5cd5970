"""Fallback rate-card pricing for quotes with no surviving comparables.

price = miles x per-mile rate x regional x cargo x equipment multipliers
        + weight surcharge + equipment flat charge + OOG permits + hazmat,
floored at the service minimum and rounded to the nearest $25.

Confidence stays between 25% and 35%: nothing here is anchored to a real
transaction, so a rate-card price is a starting point for an operator.
"""

import logging
from typing import Optional

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import ConfidenceLevel, PricingRecommendation, PricingTier
from quote_pricing.normalization import (
    CargoCategory,
    EquipmentType,
    OTHER,
    OTHER_US,
    ServiceCategory,
    analyze_oog_cargo,
    classify_cargo,
    convert_to_lbs,
    correct_service_type_by_distance,
    detect_equipment_type,
    distance_category,
    get_region,
    normalize_service_type,
)
from quote_pricing.normalization.regions import is_domestic_region

logger = logging.getLogger(__name__)

# (max miles, $/mile); ground rates taper with length of haul
GROUND_RATE_TIERS: list[tuple[float, float]] = [
    (250, 5.50),
    (500, 4.50),
    (1000, 4.00),
    (float("inf"), 3.60),
]

PER_MILE_RATES: dict[ServiceCategory, float] = {
    ServiceCategory.DRAYAGE: 6.00,
    ServiceCategory.INTERMODAL: 2.25,
    ServiceCategory.OCEAN: 1.80,
    ServiceCategory.TRANSLOAD: 4.00,
    ServiceCategory.AIR: 9.00,
    ServiceCategory.STORAGE: 3.00,
    ServiceCategory.UNKNOWN: 3.50,
}

REGIONAL_MULTIPLIERS: dict[str, float] = {
    "WEST_COAST": 1.10,
    "NORTHEAST": 1.12,
    "GULF": 0.97,
    "CENTRAL": 0.95,
}
INTERNATIONAL_REGION_MULTIPLIER = 1.25

CARGO_MULTIPLIERS: dict[CargoCategory, float] = {
    CargoCategory.MACHINERY: 1.35,
    CargoCategory.VEHICLES: 1.15,
    CargoCategory.OVERSIZED: 1.45,
    CargoCategory.HAZMAT: 1.30,
    CargoCategory.INDUSTRIAL: 1.10,
    CargoCategory.AGRICULTURAL: 0.95,
    CargoCategory.UNKNOWN: 1.05,
}

EQUIPMENT_MULTIPLIERS: dict[EquipmentType, float] = {
    EquipmentType.FLATBED: 1.15,
    EquipmentType.STEP_DECK: 1.20,
    EquipmentType.RGN: 1.45,
    EquipmentType.LOWBOY: 1.45,
    EquipmentType.DOUBLE_DROP: 1.40,
    EquipmentType.REEFER: 1.25,
    EquipmentType.CONESTOGA: 1.20,
    EquipmentType.DRY_VAN: 1.00,
    EquipmentType.POWER_ONLY: 0.85,
}

EQUIPMENT_FLAT_CHARGES: dict[EquipmentType, float] = {
    EquipmentType.RGN: 350.0,
    EquipmentType.LOWBOY: 350.0,
    EquipmentType.DOUBLE_DROP: 350.0,
    EquipmentType.STEP_DECK: 150.0,
}

HEAVY_WEIGHT_THRESHOLD_LBS = 45_000
HEAVY_WEIGHT_BASE_SURCHARGE = 150.0
HEAVY_WEIGHT_PER_1000_LBS = 10.0
OOG_PERMIT_CHARGE = 250.0
PILOT_CAR_CHARGE = 500.0
HAZMAT_SURCHARGE = 250.0

MINIMUM_CHARGES: dict[ServiceCategory, float] = {
    ServiceCategory.GROUND: 350.0,
    ServiceCategory.DRAYAGE: 450.0,
    ServiceCategory.INTERMODAL: 900.0,
    ServiceCategory.OCEAN: 1500.0,
    ServiceCategory.TRANSLOAD: 400.0,
    ServiceCategory.AIR: 500.0,
    ServiceCategory.STORAGE: 250.0,
    ServiceCategory.UNKNOWN: 400.0,
}

# Distance assumed when neither a route lookup nor a stored distance exists
ASSUMED_DISTANCE_MILES: dict[ServiceCategory, float] = {
    ServiceCategory.DRAYAGE: 40.0,
    ServiceCategory.TRANSLOAD: 25.0,
    ServiceCategory.STORAGE: 25.0,
    ServiceCategory.GROUND: 300.0,
    ServiceCategory.INTERMODAL: 800.0,
    ServiceCategory.OCEAN: 3000.0,
    ServiceCategory.AIR: 1000.0,
    ServiceCategory.UNKNOWN: 250.0,
}

CONFIDENCE_ROUTE_DISTANCE = 35.0
CONFIDENCE_STORED_DISTANCE = 30.0
CONFIDENCE_ASSUMED_DISTANCE = 25.0
RATE_CARD_RANGE = 0.25
ROUNDING_INCREMENT = 25


def per_mile_rate(service: ServiceCategory, miles: float) -> float:
    if service == ServiceCategory.GROUND:
        for max_miles, rate in GROUND_RATE_TIERS:
            if miles < max_miles:
                return rate
    return PER_MILE_RATES.get(service, PER_MILE_RATES[ServiceCategory.UNKNOWN])


def regional_multiplier(origin_region: Optional[str], destination_region: Optional[str]) -> float:
    """Average of the origin and destination region multipliers."""
    def one(region: Optional[str]) -> float:
        if region is None or region == OTHER_US:
            return 1.0
        if region == OTHER or not is_domestic_region(region):
            return INTERNATIONAL_REGION_MULTIPLIER
        return REGIONAL_MULTIPLIERS.get(region, 1.0)

    return (one(origin_region) + one(destination_region)) / 2


def weight_surcharge(weight_lbs: Optional[float]) -> float:
    if weight_lbs is None or weight_lbs <= HEAVY_WEIGHT_THRESHOLD_LBS:
        return 0.0
    extra_thousands = (weight_lbs - HEAVY_WEIGHT_THRESHOLD_LBS) / 1000.0
    return HEAVY_WEIGHT_BASE_SURCHARGE + extra_thousands * HEAVY_WEIGHT_PER_1000_LBS


def round_to_increment(value: float, increment: int = ROUNDING_INCREMENT) -> float:
    return float(round(value / increment) * increment)


class FallbackRateCard:
    """Price a quote from a static rate card."""

    def recommend(
        self,
        source: Quote,
        distance_miles: Optional[float] = None,
        distance_source: str = "route",
    ) -> PricingRecommendation:
        """Always returns a positive price.

        Args:
            source: Quote being priced
            distance_miles: Resolved route distance, if any
            distance_source: "route" for a distance-service lookup, "stored"
                for the quote's total_distance_miles
        """
        service = correct_service_type_by_distance(
            normalize_service_type(source.service_type), distance_miles, source.cargo_description
        )

        if distance_miles is not None and distance_miles > 0:
            miles = distance_miles
            confidence = (
                CONFIDENCE_ROUTE_DISTANCE if distance_source == "route" else CONFIDENCE_STORED_DISTANCE
            )
            distance_note = f"{miles:,.0f} mi ({distance_category(miles)})"
        else:
            miles = ASSUMED_DISTANCE_MILES[service]
            confidence = CONFIDENCE_ASSUMED_DISTANCE
            distance_note = f"distance unknown, assumed {miles:,.0f} mi for {service.value}"

        origin_region = get_region(
            source.origin_city, source.origin_state_province, source.origin_country
        )
        destination_region = get_region(
            source.destination_city, source.destination_state_province, source.destination_country
        )
        cargo = classify_cargo(source.cargo_description)
        if source.hazardous_material:
            cargo = CargoCategory.HAZMAT if cargo in (CargoCategory.GENERAL, CargoCategory.UNKNOWN) else cargo
        equipment = detect_equipment_type(source.equipment_type_requested, source.cargo_description)
        weight_lbs = convert_to_lbs(source.cargo_weight, source.weight_unit)
        oog = analyze_oog_cargo(
            source.cargo_description,
            source.cargo_length,
            source.cargo_width,
            source.cargo_height,
            source.dimension_unit,
            source.cargo_weight,
            source.weight_unit,
        )

        rate = per_mile_rate(service, miles)
        region_mult = regional_multiplier(origin_region, destination_region)
        cargo_mult = CARGO_MULTIPLIERS.get(cargo, 1.0)
        equipment_mult = EQUIPMENT_MULTIPLIERS.get(equipment, 1.0) if equipment else 1.0

        linehaul = miles * rate * region_mult * cargo_mult * equipment_mult
        surcharges = {
            "weight": round(weight_surcharge(weight_lbs), 2),
            "equipment": EQUIPMENT_FLAT_CHARGES.get(equipment, 0.0) if equipment else 0.0,
            "oog_permits": OOG_PERMIT_CHARGE if oog.requires_permits else 0.0,
            "pilot_car": PILOT_CAR_CHARGE if oog.requires_pilot_car else 0.0,
            "hazmat": HAZMAT_SURCHARGE if source.hazardous_material else 0.0,
        }
        raw_total = linehaul + sum(surcharges.values())
        minimum = MINIMUM_CHARGES[service]
        price = round_to_increment(max(raw_total, minimum))

        logger.info(
            "Rate card price computed",
            extra={
                "quote_id": source.quote_id,
                "service": service.value,
                "miles": round(miles, 1),
                "distance_source": distance_source if distance_miles else "assumed",
                "price": price,
            },
        )

        factors = [f"Distance: {distance_note}", f"Service: {service.value} at ${rate:.2f}/mi"]
        if cargo_mult != 1.0:
            factors.append(f"Cargo {cargo.value} x{cargo_mult:.2f}")
        if equipment_mult != 1.0:
            factors.append(f"Equipment {equipment.value} x{equipment_mult:.2f}")
        if oog.is_oog:
            factors.append("Out-of-gauge: " + "; ".join(oog.reasons))
        if raw_total < minimum:
            factors.append(f"Minimum charge ${minimum:,.0f} applied")

        return PricingRecommendation(
            recommended_price=price,
            floor_price=round_to_increment(price * (1 - RATE_CARD_RANGE)),
            target_price=price,
            ceiling_price=round_to_increment(price * (1 + RATE_CARD_RANGE)),
            confidence_percentage=confidence,
            confidence_level=ConfidenceLevel.VERY_LOW,
            tier=PricingTier.RATE_CARD,
            reasoning=(
                f"No comparable historical quotes; rate card estimate for {service.value} "
                f"over {distance_note}. Verify before quoting."
            ),
            breakdown={
                "method": "rate_card",
                "miles": round(miles, 1),
                "per_mile_rate": rate,
                "regional_multiplier": round(region_mult, 4),
                "cargo_multiplier": cargo_mult,
                "equipment_multiplier": equipment_mult,
                "linehaul": round(linehaul, 2),
                "surcharges": surcharges,
                "minimum_charge": minimum,
            },
            market_factors=tuple(factors),
        )
