"""Trailer equipment and container type detection."""

import re
from enum import Enum
from typing import Optional

from .keyword_rules import RuleTable, rule_overrides


class EquipmentType(str, Enum):
    FLATBED = "FLATBED"
    STEP_DECK = "STEP_DECK"
    DOUBLE_DROP = "DOUBLE_DROP"
    RGN = "RGN"
    LOWBOY = "LOWBOY"
    CONESTOGA = "CONESTOGA"
    REEFER = "REEFER"
    DRY_VAN = "DRY_VAN"
    HOTSHOT = "HOTSHOT"
    POWER_ONLY = "POWER_ONLY"
    CONTAINER_CHASSIS = "CONTAINER_CHASSIS"


# Most specific trailers first: "step deck flatbed" is a step deck
EQUIPMENT_KEYWORDS: dict[str, list[str]] = {
    "RGN": ["rgn", "removable gooseneck", "removable goose neck"],
    "LOWBOY": ["lowboy", "low boy", "lowbed", "low bed"],
    "DOUBLE_DROP": ["double drop", "double-drop"],
    "STEP_DECK": ["step deck", "stepdeck", "drop deck", "single drop"],
    "CONESTOGA": ["conestoga", "curtain side", "curtainside"],
    "FLATBED": ["flatbed", "flat bed", "flat-bed"],
    "REEFER": ["reefer", "refrigerated", "temperature controlled", "temp controlled"],
    "HOTSHOT": ["hotshot", "hot shot"],
    "POWER_ONLY": ["power only", "power-only"],
    "CONTAINER_CHASSIS": ["chassis", "container drayage"],
    "DRY_VAN": ["dry van", "van trailer", "53' van", "53ft van", "box trailer"],
}

OPEN_DECK = frozenset({
    EquipmentType.FLATBED,
    EquipmentType.STEP_DECK,
    EquipmentType.DOUBLE_DROP,
    EquipmentType.RGN,
    EquipmentType.LOWBOY,
    EquipmentType.CONESTOGA,
    EquipmentType.HOTSHOT,
})


def _equipment_table() -> RuleTable:
    return RuleTable.from_mapping(rule_overrides().get("equipment_types") or EQUIPMENT_KEYWORDS)


def detect_equipment_type(
    requested: Optional[str],
    cargo_description: Optional[str] = None,
) -> Optional[EquipmentType]:
    """Infer trailer equipment from the requested-equipment field, else the cargo text."""
    table = _equipment_table()
    for text in (requested, cargo_description):
        found = table.classify(text)
        if found:
            return EquipmentType(found)
    return None


def equipment_similarity(source: Optional[EquipmentType], historical: Optional[EquipmentType]) -> float:
    if source is None or historical is None:
        return 0.5
    if source == historical:
        return 1.0
    if source in OPEN_DECK and historical in OPEN_DECK:
        return 0.6
    return 0.2


class ContainerType(str, Enum):
    REEFER = "REEFER"
    FLAT_RACK = "FLAT_RACK"
    OPEN_TOP = "OPEN_TOP"
    HC_40 = "40HC"
    STD_40 = "40STD"
    STD_20 = "20STD"
    RORO = "RORO"


CONTAINER_PRICING_MULTIPLIERS: dict[ContainerType, float] = {
    ContainerType.OPEN_TOP: 1.40,
    ContainerType.FLAT_RACK: 1.75,
    ContainerType.REEFER: 1.40,
    ContainerType.HC_40: 1.05,
    ContainerType.STD_40: 1.00,
    ContainerType.STD_20: 1.00,
    ContainerType.RORO: 1.20,
}

_FLAT_RACK = re.compile(r"\bfr\b")
_OPEN_TOP = re.compile(r"\b40\s*ot\b|\boog\b|\bot\b.*container")
_HIGH_CUBE = re.compile(r"\bhc\b|high\s*cube")


def detect_container_type(
    description: Optional[str],
    service_type: Optional[str] = None,
) -> Optional[ContainerType]:
    """Infer the container type from cargo description and service text.

    Checked in order: reefer, flat rack, open top (including OOG and out of
    gauge), 40' high cube, 40', 20', ro-ro. Reefer is checked first because
    "refrigerated" contains "fr".
    """
    if not description and not service_type:
        return None
    text = f"{description or ''} {service_type or ''}".lower()

    if "reefer" in text or "refrigerated" in text:
        return ContainerType.REEFER
    if "flat rack" in text or "flatrack" in text or _FLAT_RACK.search(text):
        return ContainerType.FLAT_RACK
    if (
        "open top" in text
        or "open-top" in text
        or "out of gauge" in text
        or "top loaded" in text
        or "top-loaded" in text
        or _OPEN_TOP.search(text)
    ):
        return ContainerType.OPEN_TOP
    if "40" in text and _HIGH_CUBE.search(text):
        return ContainerType.HC_40
    if "40" in text:
        return ContainerType.STD_40
    if "20" in text:
        return ContainerType.STD_20
    if "roro" in text or "ro-ro" in text:
        return ContainerType.RORO
    return None


def container_similarity(source: Optional[ContainerType], historical: Optional[ContainerType]) -> float:
    if source is None or historical is None:
        return 0.7
    return 1.0 if source == historical else 0.5


def is_special_container(container: Optional[ContainerType]) -> bool:
    return container is not None and CONTAINER_PRICING_MULTIPLIERS.get(container, 1.0) > 1.0
