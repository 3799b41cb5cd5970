"""City name normalization and similarity."""

import re
from typing import Optional

CITY_ALIASES: dict[str, str] = {
    "la": "los angeles",
    "l a": "los angeles",
    "lax": "los angeles",
    "nyc": "new york",
    "ny": "new york",
    "new york city": "new york",
    "sf": "san francisco",
    "sfo": "san francisco",
    "philly": "philadelphia",
    "nola": "new orleans",
    "kc": "kansas city",
    "dfw": "dallas",
    "vegas": "las vegas",
    "stl": "st louis",
    "saint louis": "st louis",
    "saint paul": "st paul",
    "ft worth": "fort worth",
    "ft lauderdale": "fort lauderdale",
    "slc": "salt lake",
    "salt lake city": "salt lake",
}

_SUFFIXES = re.compile(r"\b(city|port|port of|harbor|harbour|terminal)\b")
_PREFIXES = re.compile(r"^(port of|city of)\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9 ]+")
_SPACES = re.compile(r"\s+")

MIN_PREFIX_LENGTH = 4


def normalize_city(city: Optional[str]) -> str:
    """Case-fold, drop punctuation and port/city affixes, resolve aliases."""
    if not city:
        return ""
    text = _SPACES.sub(" ", _NON_ALNUM.sub(" ", city.lower())).strip()
    if text in CITY_ALIASES:
        return CITY_ALIASES[text]
    text = _PREFIXES.sub("", text)
    stripped = _SPACES.sub(" ", _SUFFIXES.sub(" ", text)).strip()
    # A bare "Port" or "City" keeps its name
    text = stripped or text
    return CITY_ALIASES.get(text, text)


def city_similarity(
    source_city: Optional[str],
    historical_city: Optional[str],
    source_state: Optional[str] = None,
    historical_state: Optional[str] = None,
) -> float:
    """Score two city names.

    Exact match after normalization (aliases included) is 1.0. Cities in the
    same state where one name is a prefix of the other, at least four
    characters long, score 0.7. Anything else scores 0.0.
    """
    a = normalize_city(source_city)
    b = normalize_city(historical_city)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    same_state = (
        bool(source_state)
        and bool(historical_state)
        and source_state.strip().lower() == historical_state.strip().lower()
    )
    shorter, longer = sorted((a, b), key=len)
    if same_state and len(shorter) >= MIN_PREFIX_LENGTH and longer.startswith(shorter):
        return 0.7
    return 0.0
