"""Service type normalization and distance-based correction."""

import re
from enum import Enum
from typing import Optional

from .keyword_rules import contains_keyword, rule_overrides


class ServiceCategory(str, Enum):
    GROUND = "GROUND"
    DRAYAGE = "DRAYAGE"
    OCEAN = "OCEAN"
    INTERMODAL = "INTERMODAL"
    TRANSLOAD = "TRANSLOAD"
    AIR = "AIR"
    STORAGE = "STORAGE"
    UNKNOWN = "UNKNOWN"


SERVICE_TYPE_KEYWORDS: dict[str, list[str]] = {
    "GROUND": ["ground", "ftl", "ltl", "trucking", "flatbed", "dry van", "truckload", "otr"],
    "DRAYAGE": [
        "drayage", "port drayage", "rail drayage", "container drayage",
        "container pickup", "container delivery", "port pickup", "pier pickup", "terminal",
    ],
    "OCEAN": ["ocean", "sea freight", "fcl", "lcl", "roro", "ro-ro", "breakbulk"],
    "INTERMODAL": ["intermodal", "multimodal"],
    "TRANSLOAD": [
        "transloading", "transload", "cross-dock", "cross dock", "devanning",
        "stripping", "stuffing", "container loading",
    ],
    "AIR": ["air freight", "air cargo", "air"],
    "STORAGE": ["storage", "warehousing", "warehouse"],
}

_SEPARATORS = re.compile(r"[/,;+&]+")

# Oversize or heavy-equipment vocabulary: short "ocean" moves of this cargo
# behave like specialized ground, not container drayage
OVERSIZE_EQUIPMENT_PATTERN = re.compile(
    r"\b(oversize(?:d)?|over\s*size|overweight|over\s*weight|heavy\s*haul|oog|out\s*of\s*gauge"
    r"|low\s*boy|lowboy|step\s*deck|stepdeck|flat\s*bed|flatbed|excavator|backhoe|bulldozer|dozer"
    r"|crane|forklift|skid\s*steer|compactor|caterpillar|cat|komatsu|daewoo|hamm|press\s*brake"
    r"|transformer|generator)\b",
    re.IGNORECASE,
)

OCEAN_MIN_ROUTE_MILES = 150
OCEAN_DIRECT_MIN_ROUTE_MILES = 300


def _patterns() -> list[tuple[str, ServiceCategory]]:
    table = rule_overrides().get("service_types") or SERVICE_TYPE_KEYWORDS
    pairs = [
        (keyword.lower(), ServiceCategory(category))
        for category, keywords in table.items()
        for keyword in keywords
    ]
    # Longest match first so "container drayage" wins over shorter fragments
    return sorted(pairs, key=lambda pair: len(pair[0]), reverse=True)


def normalize_service_type(text: Optional[str]) -> ServiceCategory:
    """Map free-text service type onto a ServiceCategory.

    The text is split on / , ; + & and each part is matched separately.
    OCEAN combined with GROUND or DRAYAGE is INTERMODAL; GROUND combined with
    DRAYAGE is GROUND. Unmapped text is UNKNOWN.

    Args:
        text: Service type as written in the quote ("FTL / Drayage", "Ocean FCL")

    Returns:
        ServiceCategory
    """
    if not text:
        return ServiceCategory.UNKNOWN

    patterns = _patterns()
    found: list[ServiceCategory] = []
    for part in _SEPARATORS.split(text.lower()):
        part = part.strip()
        if not part:
            continue
        for pattern, category in patterns:
            if contains_keyword(part, pattern):
                if category not in found:
                    found.append(category)
                break

    if not found:
        return ServiceCategory.UNKNOWN
    if len(found) == 1:
        return found[0]

    trucking = {ServiceCategory.GROUND, ServiceCategory.DRAYAGE}
    if ServiceCategory.OCEAN in found and trucking & set(found):
        return ServiceCategory.INTERMODAL
    if trucking <= set(found):
        return ServiceCategory.GROUND
    return found[0]


def correct_service_type_by_distance(
    category: ServiceCategory,
    distance_miles: Optional[float],
    cargo_text: Optional[str] = None,
) -> ServiceCategory:
    """Override a labeled service type when the route length rules it out.

    OCEAN or INTERMODAL under 150 miles becomes GROUND for oversize/heavy
    equipment cargo and DRAYAGE otherwise. OCEAN under 300 miles becomes
    INTERMODAL. Unknown or non-positive distances leave the label alone.
    """
    if not distance_miles or distance_miles <= 0:
        return category

    if category in (ServiceCategory.OCEAN, ServiceCategory.INTERMODAL) and distance_miles < OCEAN_MIN_ROUTE_MILES:
        if cargo_text and OVERSIZE_EQUIPMENT_PATTERN.search(cargo_text):
            return ServiceCategory.GROUND
        return ServiceCategory.DRAYAGE

    if category == ServiceCategory.OCEAN and distance_miles < OCEAN_DIRECT_MIN_ROUTE_MILES:
        return ServiceCategory.INTERMODAL

    return category
