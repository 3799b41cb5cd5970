"""Unit conversion for weights, dimensions and distances.

When a value carries no unit the magnitude decides: dimensions above 20 are
taken as inches, weights under 100 as (short) tons and under 5,000 as
kilograms. These thresholds are ambiguous by nature; pricing multipliers
downstream are tuned against them, so they are kept exactly as they are.
"""

from enum import Enum
from typing import Optional

KG_TO_LBS = 2.20462
SHORT_TON_LBS = 2000.0
METRIC_TONNE_LBS = 2204.62
LBS_TO_KG = 0.453592

UNITLESS_INCHES_ABOVE = 20
UNITLESS_TONS_BELOW = 100
UNITLESS_KG_BELOW = 5000


class WeightRange(str, Enum):
    """Weight classes by cargo weight in kilograms.

    The ordering is significant: band distance drives the weight criterion.
    """
    LIGHT = "LIGHT"            # < 500 kg
    MEDIUM = "MEDIUM"          # < 2,000 kg
    HEAVY = "HEAVY"            # < 10,000 kg
    VERY_HEAVY = "VERY_HEAVY"  # < 25,000 kg
    PROJECT = "PROJECT"

    @property
    def index(self) -> int:
        return list(WeightRange).index(self)


WEIGHT_RANGE_UPPER_KG = (
    (WeightRange.LIGHT, 500.0),
    (WeightRange.MEDIUM, 2000.0),
    (WeightRange.HEAVY, 10000.0),
    (WeightRange.VERY_HEAVY, 25000.0),
)


def convert_to_lbs(value: Optional[float], unit: Optional[str] = None) -> Optional[float]:
    """Convert a weight to pounds.

    Args:
        value: Weight as written on the quote
        unit: lb/lbs/pounds, kg/kilograms, t/tonne/mt/metric ton, ton/tons

    Returns:
        Weight in pounds, or None for missing/non-positive values
    """
    if value is None or value <= 0:
        return None

    u = (unit or "").strip().lower()
    if u:
        if "lb" in u or "pound" in u:
            return value
        if "kg" in u or "kilo" in u:
            return value * KG_TO_LBS
        if "tonne" in u or u in ("t", "mt") or "metric" in u:
            return value * METRIC_TONNE_LBS
        if "ton" in u:
            return value * SHORT_TON_LBS

    if value < UNITLESS_TONS_BELOW:
        return value * SHORT_TON_LBS
    if value < UNITLESS_KG_BELOW:
        return value * KG_TO_LBS
    return value


def convert_to_feet(value: Optional[float], unit: Optional[str] = None) -> Optional[float]:
    """Convert a dimension to feet.

    Args:
        value: Dimension as written on the quote
        unit: ft/feet, in/inches, m/meters, cm, mm

    Returns:
        Dimension in feet, or None for missing/non-positive values
    """
    if value is None or value <= 0:
        return None

    u = (unit or "").strip().lower()
    if u:
        if u in ("ft", "feet", "foot", "'"):
            return value
        if u in ("in", "inch", "inches", '"'):
            return value / 12.0
        if u in ("mm", "millimeter", "millimeters", "millimetre", "millimetres"):
            return value / 304.8
        if u in ("cm", "centimeter", "centimeters", "centimetre", "centimetres"):
            return value / 30.48
        if u in ("m", "meter", "meters", "metre", "metres"):
            return value * 3.28084

    if value > UNITLESS_INCHES_ABOVE:
        return value / 12.0
    return value


def weight_range(value: Optional[float], unit: Optional[str] = None) -> Optional[WeightRange]:
    lbs = convert_to_lbs(value, unit)
    if lbs is None:
        return None
    kg = lbs * LBS_TO_KG
    for band, upper in WEIGHT_RANGE_UPPER_KG:
        if kg < upper:
            return band
    return WeightRange.PROJECT


def distance_category(miles: Optional[float]) -> str:
    """Human-readable distance class used in prompts and reasoning text."""
    if miles is None or miles <= 0:
        return "Unknown distance"
    if miles <= 50:
        return "Local (0-50 mi)"
    if miles <= 100:
        return "Short haul (51-100 mi)"
    if miles <= 200:
        return "Medium haul (101-200 mi)"
    if miles <= 350:
        return "Extended haul (201-350 mi)"
    if miles <= 500:
        return "Long haul (351-500 mi)"
    return "Cross-country (500+ mi)"
