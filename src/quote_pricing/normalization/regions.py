"""Region lookup for quote origins and destinations.

US locations map onto six freight regions (or OTHER_US); locations abroad
map onto international blocs (or OTHER). A lane is international when
either endpoint resolves outside the US.
"""

from typing import Optional

from .keyword_rules import contains_keyword, rule_overrides

OTHER_US = "OTHER_US"
OTHER = "OTHER"

US_REGION_KEYWORDS: dict[str, list[str]] = {
    "NORTHEAST": [
        "new york", "newark", "boston", "philadelphia", "baltimore", "pittsburgh",
        "new jersey", "pennsylvania", "massachusetts", "connecticut", "maryland",
        "ny", "nj", "pa", "ma", "ct", "ri", "nh", "vt", "me", "md", "de",
    ],
    "SOUTHEAST": [
        "savannah", "charleston", "jacksonville", "miami", "tampa", "atlanta", "norfolk",
        "charlotte", "georgia", "florida", "south carolina", "north carolina", "virginia",
        "ga", "fl", "sc", "nc", "va",
    ],
    "GULF": [
        "houston", "new orleans", "mobile", "galveston", "beaumont", "corpus christi",
        "texas", "louisiana", "alabama", "mississippi",
        "tx", "la", "al", "ms",
    ],
    "WEST_COAST": [
        "los angeles", "long beach", "oakland", "seattle", "tacoma", "portland",
        "san francisco", "san diego", "california", "washington", "oregon",
        "ca", "wa", "or",
    ],
    "MIDWEST": [
        "chicago", "detroit", "cleveland", "cincinnati", "st. louis", "st louis", "milwaukee",
        "minneapolis", "indianapolis", "columbus", "waukesha", "illinois", "ohio", "michigan",
        "indiana", "wisconsin", "minnesota", "iowa", "missouri",
        "il", "oh", "mi", "in", "wi", "mn", "ia", "mo",
    ],
    "CENTRAL": [
        "dallas", "kansas city", "denver", "memphis", "nashville", "oklahoma", "tulsa", "omaha",
        "tennessee", "kansas", "colorado", "nebraska", "arkansas",
        "tn", "ks", "co", "ok", "ne", "ar",
    ],
}

INTL_REGION_KEYWORDS: dict[str, list[str]] = {
    "ASIA_PACIFIC": [
        "china", "japan", "korea", "taiwan", "vietnam", "thailand", "singapore",
        "malaysia", "indonesia", "philippines", "india", "bangladesh", "australia",
    ],
    "EUROPE": [
        "germany", "france", "uk", "united kingdom", "spain", "italy",
        "netherlands", "belgium", "poland",
    ],
    "MIDDLE_EAST": ["uae", "saudi arabia", "qatar", "jordan", "israel", "turkey", "egypt"],
    "LATIN_AMERICA": [
        "mexico", "brazil", "colombia", "chile", "peru", "argentina",
        "panama", "costa rica", "guatemala",
    ],
    "AFRICA": ["south africa", "morocco", "nigeria", "kenya", "ghana", "tanzania"],
    "CANADA": ["canada", "ontario", "quebec", "british columbia", "alberta"],
}

US_COUNTRY_NAMES = frozenset({"us", "usa", "u.s.", "u.s.a.", "united states", "united states of america", "america"})

US_STATE_CODES = frozenset({
    "al", "ak", "az", "ar", "ca", "co", "ct", "de", "fl", "ga", "hi", "id", "il", "in", "ia",
    "ks", "ky", "la", "me", "md", "ma", "mi", "mn", "ms", "mo", "mt", "ne", "nv", "nh", "nj",
    "nm", "ny", "nc", "nd", "oh", "ok", "or", "pa", "ri", "sc", "sd", "tn", "tx", "ut", "vt",
    "va", "wa", "wv", "wi", "wy", "dc",
})

# "New Mexico" must not resolve to LATIN_AMERICA
US_STATE_NAMES_SHADOWING_COUNTRIES = frozenset({"new mexico"})


def _tables() -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    overrides = rule_overrides()
    return (
        overrides.get("us_regions") or US_REGION_KEYWORDS,
        overrides.get("intl_regions") or INTL_REGION_KEYWORDS,
    )


def _us_region(city: str, state: str) -> Optional[str]:
    us_table, _ = _tables()
    place_keywords = sorted(
        ((k, region) for region, keywords in us_table.items() for k in keywords if len(k) > 2),
        key=lambda pair: len(pair[0]),
        reverse=True,
    )
    for keyword, region in place_keywords:
        if (city and contains_keyword(city, keyword)) or (state and contains_keyword(state, keyword)):
            return region

    for region, keywords in us_table.items():
        if state in (k for k in keywords if len(k) == 2):
            return region
    return None


def _intl_region(text: str) -> Optional[str]:
    if not text or text in US_STATE_NAMES_SHADOWING_COUNTRIES:
        return None
    _, intl_table = _tables()
    keywords = sorted(
        ((k, region) for region, ks in intl_table.items() for k in ks),
        key=lambda pair: len(pair[0]),
        reverse=True,
    )
    for keyword, region in keywords:
        if contains_keyword(text, keyword):
            return region
    return None


def get_region(
    city: Optional[str],
    state: Optional[str],
    country: Optional[str] = None,
) -> Optional[str]:
    """Resolve a location to a US region or international bloc.

    Args:
        city: City name
        state: State or province (code or full name)
        country: Country name or code; empty means "probably US"

    Returns:
        Region name, OTHER_US / OTHER when nothing in the tables matched,
        or None when the location is entirely blank.
    """
    city_key = (city or "").strip().lower()
    state_key = (state or "").strip().lower()
    country_key = (country or "").strip().lower()
    if not (city_key or state_key or country_key):
        return None

    if country_key and country_key not in US_COUNTRY_NAMES:
        return _intl_region(country_key) or _intl_region(state_key) or OTHER

    region = _us_region(city_key, state_key)
    if region:
        return region
    if not country_key and state_key not in US_STATE_CODES:
        abroad = _intl_region(state_key) or _intl_region(city_key)
        if abroad:
            return abroad
    return OTHER_US


def is_domestic_region(region: Optional[str]) -> bool:
    us_table, _ = _tables()
    return region is not None and (region in us_table or region == OTHER_US)


def is_international_lane(origin_region: Optional[str], destination_region: Optional[str]) -> bool:
    """True when either resolved endpoint lies outside the US."""
    return any(
        region is not None and not is_domestic_region(region)
        for region in (origin_region, destination_region)
    )
