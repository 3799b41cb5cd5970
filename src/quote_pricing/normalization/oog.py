"""Out-of-gauge (OOG) cargo analysis.

Converted cargo dimensions are compared against US legal load limits. Height
is checked as cargo height plus trailer deck height: a load that is over the
limit even on the lowest deck we can offer needs a height permit, and one
that only fits on a low deck dictates the equipment.
"""

import re
from dataclasses import dataclass
from typing import Optional

from .units import convert_to_feet, convert_to_lbs

LEGAL_MAX_HEIGHT_FT = 13.5
LEGAL_MAX_WIDTH_FT = 8.5
LEGAL_MAX_LENGTH_FT = 53.0
LEGAL_MAX_GROSS_WEIGHT_LBS = 80000.0
# Gross limit minus tractor and trailer tare
LEGAL_MAX_CARGO_WEIGHT_LBS = 48000.0
PILOT_CAR_WIDTH_FT = 12.0

TRAILER_DECK_HEIGHTS_FT = {
    "FLATBED": 5.0,
    "STEP_DECK": 3.5,
    "DOUBLE_DROP": 2.0,
    "RGN": 2.0,
    "LOWBOY": 1.5,
}
LOWEST_DECK_HEIGHT_FT = min(TRAILER_DECK_HEIGHTS_FT.values())

OOG_TEXT_PATTERN = re.compile(
    r"\boog\b|out of gauge|oversized|overdimensional|over[\s-]?dimensional|overheight|overwidth"
    r"|\b40\s*ot\b|open[\s-]top|top[\s-]loaded",
    re.IGNORECASE,
)

# Container interior limits, used when dimensions are given without a unit
CONTAINER_MAX_INCHES = 102


@dataclass(frozen=True)
class OOGAnalysis:
    """Verdict on whether a load exceeds legal or trailer limits.

    Attributes:
        is_oog: Any limit exceeded or the description says OOG
        reasons: Human-readable reasons, one per exceeded limit
        requires_permits: Oversize/overweight permits needed
        requires_pilot_car: Width above 12 ft
        recommended_equipment: Trailer that can carry the load legally, if any
        height_ft, width_ft, length_ft, weight_lbs: Converted measurements
    """
    is_oog: bool
    reasons: tuple[str, ...] = ()
    requires_permits: bool = False
    requires_pilot_car: bool = False
    recommended_equipment: Optional[str] = None
    height_ft: Optional[float] = None
    width_ft: Optional[float] = None
    length_ft: Optional[float] = None
    weight_lbs: Optional[float] = None


def analyze_oog_cargo(
    description: Optional[str] = None,
    length: Optional[float] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    dimension_unit: Optional[str] = None,
    weight: Optional[float] = None,
    weight_unit: Optional[str] = None,
) -> OOGAnalysis:
    """Compare a load against legal and trailer limits.

    Args:
        description: Cargo description, checked for OOG vocabulary
        length, width, height: Dimensions as written on the quote
        dimension_unit: Unit for the dimensions (heuristic when missing)
        weight: Cargo weight as written
        weight_unit: Unit for the weight (heuristic when missing)

    Returns:
        OOGAnalysis
    """
    length_ft = convert_to_feet(length, dimension_unit)
    width_ft = convert_to_feet(width, dimension_unit)
    height_ft = convert_to_feet(height, dimension_unit)
    weight_lbs = convert_to_lbs(weight, weight_unit)

    reasons: list[str] = []
    permits = False
    equipment: Optional[str] = None

    if description and OOG_TEXT_PATTERN.search(description):
        reasons.append("Description indicates out-of-gauge cargo")

    if width_ft is not None and width_ft > LEGAL_MAX_WIDTH_FT:
        reasons.append(f"Width {width_ft:.1f} ft exceeds legal {LEGAL_MAX_WIDTH_FT} ft")
        permits = True

    if length_ft is not None and length_ft > LEGAL_MAX_LENGTH_FT:
        reasons.append(f"Length {length_ft:.1f} ft exceeds legal {LEGAL_MAX_LENGTH_FT:.0f} ft")
        permits = True

    if height_ft is not None:
        if height_ft + LOWEST_DECK_HEIGHT_FT > LEGAL_MAX_HEIGHT_FT:
            reasons.append(
                f"Height {height_ft:.1f} ft exceeds legal {LEGAL_MAX_HEIGHT_FT} ft on any trailer"
            )
            permits = True
            equipment = "LOWBOY"
        else:
            # Lowest-deck trailer that keeps the load legal
            for name, deck in sorted(TRAILER_DECK_HEIGHTS_FT.items(), key=lambda kv: -kv[1]):
                if height_ft + deck <= LEGAL_MAX_HEIGHT_FT:
                    if name != "FLATBED":
                        reasons.append(
                            f"Height {height_ft:.1f} ft requires {name.replace('_', ' ').lower()} trailer"
                        )
                        equipment = name
                    break

    if weight_lbs is not None and weight_lbs > LEGAL_MAX_CARGO_WEIGHT_LBS:
        reasons.append(
            f"Weight {weight_lbs:,.0f} lbs exceeds legal cargo limit {LEGAL_MAX_CARGO_WEIGHT_LBS:,.0f} lbs"
        )
        permits = True
        equipment = equipment or "RGN"

    return OOGAnalysis(
        is_oog=bool(reasons),
        reasons=tuple(reasons),
        requires_permits=permits,
        requires_pilot_car=width_ft is not None and width_ft > PILOT_CAR_WIDTH_FT,
        recommended_equipment=equipment,
        height_ft=height_ft,
        width_ft=width_ft,
        length_ft=length_ft,
        weight_lbs=weight_lbs,
    )


def is_oog_cargo(
    description: Optional[str],
    height: Optional[float] = None,
    width: Optional[float] = None,
) -> bool:
    """Quick OOG test used for container pricing multipliers.

    Dimensions here are raw values assumed to be inches, compared against the
    102 in container interior.
    """
    if description and OOG_TEXT_PATTERN.search(description):
        return True
    return any(v is not None and v > CONTAINER_MAX_INCHES for v in (height, width))
