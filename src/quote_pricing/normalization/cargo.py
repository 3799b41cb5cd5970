"""Cargo classification and compatibility."""

from enum import Enum
from typing import Optional

from .keyword_rules import RuleTable, rule_overrides


class CargoCategory(str, Enum):
    MACHINERY = "MACHINERY"
    VEHICLES = "VEHICLES"
    CONTAINERS = "CONTAINERS"
    INDUSTRIAL = "INDUSTRIAL"
    AGRICULTURAL = "AGRICULTURAL"
    OVERSIZED = "OVERSIZED"
    HAZMAT = "HAZMAT"
    GENERAL = "GENERAL"
    UNKNOWN = "UNKNOWN"


# Order matters: first category with any keyword hit wins
CARGO_CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "MACHINERY": [
        "machine", "equipment", "excavator", "loader", "dozer", "crane", "forklift",
        "tractor", "generator", "compressor", "jlg", "caterpillar", "cat", "komatsu",
        "jcb", "bobcat", "hitachi", "volvo", "deere", "heat exchanger",
    ],
    "VEHICLES": ["vehicle", "car", "truck", "bus", "trailer", "automobile", "auto", "suv", "van"],
    "CONTAINERS": [
        "container", "20ft", "40ft", "20'", "40'", "high cube", "hc", "soc", "coc",
        "flat rack", "open top",
    ],
    "INDUSTRIAL": ["steel", "metal", "pipe", "coil", "beam", "plate", "iron", "aluminum"],
    "AGRICULTURAL": ["grain", "feed", "fertilizer", "seed", "agricultural", "farm"],
    "OVERSIZED": [
        "overweight", "overdimensional", "heavy haul", "project cargo", "breakbulk",
        "oog", "out of gauge",
    ],
    "HAZMAT": ["hazardous", "dangerous", "chemical", "flammable", "corrosive", "explosive"],
    "GENERAL": ["general cargo", "pallets", "boxes", "cartons", "freight"],
}

# Pairs that can never price alike
INCOMPATIBLE_CARGO = frozenset({
    frozenset({CargoCategory.AGRICULTURAL, CargoCategory.MACHINERY}),
    frozenset({CargoCategory.AGRICULTURAL, CargoCategory.VEHICLES}),
    frozenset({CargoCategory.AGRICULTURAL, CargoCategory.HAZMAT}),
    frozenset({CargoCategory.AGRICULTURAL, CargoCategory.OVERSIZED}),
})

NEUTRAL_CARGO = frozenset({CargoCategory.GENERAL, CargoCategory.UNKNOWN})


def _cargo_table() -> RuleTable:
    mapping = rule_overrides().get("cargo_categories") or CARGO_CATEGORY_KEYWORDS
    return RuleTable.from_mapping(mapping, default=CargoCategory.GENERAL.value)


def classify_cargo(description: Optional[str]) -> CargoCategory:
    """Classify a free-text cargo description.

    Empty descriptions are UNKNOWN; descriptions with no keyword hit are GENERAL.
    """
    if not description or not description.strip():
        return CargoCategory.UNKNOWN
    return CargoCategory(_cargo_table().classify(description))


def cargo_similarity(source: CargoCategory, historical: CargoCategory) -> float:
    if source == historical:
        return 1.0
    if frozenset({source, historical}) in INCOMPATIBLE_CARGO:
        return 0.0
    if source in NEUTRAL_CARGO or historical in NEUTRAL_CARGO:
        return 0.3
    return 0.15
