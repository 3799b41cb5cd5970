"""Quote record and route distance value types.

A Quote arrives from the persistence layer or from the email ingestion
collaborator with its free-text fields already populated. Values are parsed
leniently: numbers may come in as strings with currency symbols, dates as
ISO strings. Nothing here raises on bad data; unusable values become None.
"""

from dataclasses import dataclass, fields
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class RouteDistance:
    """Route distance between two quote endpoints.

    Attributes:
        miles: Driving distance in miles
        km: Driving distance in kilometres
        duration_text: Human-readable drive time (e.g. "4 hours 12 mins")
    """
    miles: float
    km: Optional[float] = None
    duration_text: Optional[str] = None

    @classmethod
    def from_miles(cls, miles: float) -> "RouteDistance":
        return cls(miles=miles, km=round(miles * 1.609344, 1))


@dataclass(frozen=True)
class Quote:
    """A shipment pricing request or historical record.

    Quotes are immutable once scored. Only quote_id is required; every other
    field is optional because historical data is frequently incomplete.
    """
    quote_id: int
    origin_city: Optional[str] = None
    origin_state_province: Optional[str] = None
    origin_country: Optional[str] = None
    origin_full_address: Optional[str] = None
    destination_city: Optional[str] = None
    destination_state_province: Optional[str] = None
    destination_country: Optional[str] = None
    destination_full_address: Optional[str] = None
    cargo_description: Optional[str] = None
    cargo_weight: Optional[float] = None
    weight_unit: Optional[str] = None
    cargo_length: Optional[float] = None
    cargo_width: Optional[float] = None
    cargo_height: Optional[float] = None
    dimension_unit: Optional[str] = None
    number_of_pieces: Optional[int] = None
    hazardous_material: bool = False
    service_type: Optional[str] = None
    equipment_type_requested: Optional[str] = None
    quote_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    initial_quote_amount: Optional[float] = None
    final_agreed_price: Optional[float] = None
    job_won: Optional[bool] = None
    quote_status: Optional[str] = None
    total_distance_miles: Optional[float] = None

    def __post_init__(self):
        # Naive datetimes are UTC; age arithmetic needs aware values throughout
        for name in ("quote_date", "created_at"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, parse_datetime(value))

    @property
    def effective_date(self) -> Optional[datetime]:
        return self.quote_date or self.created_at

    @property
    def price(self) -> Optional[float]:
        """Best available price: final agreed price, else the initial quote."""
        if self.final_agreed_price is not None and self.final_agreed_price > 0:
            return self.final_agreed_price
        if self.initial_quote_amount is not None and self.initial_quote_amount > 0:
            return self.initial_quote_amount
        return None

    @property
    def has_verified_price(self) -> bool:
        """True when the customer accepted a final price."""
        accepted = self.job_won is True or (self.quote_status or "").lower() in ACCEPTED_STATUSES
        return accepted and self.final_agreed_price is not None and self.final_agreed_price > 0

    @property
    def origin_text(self) -> str:
        return _join_location(self.origin_city, self.origin_state_province, self.origin_country)

    @property
    def destination_text(self) -> str:
        return _join_location(
            self.destination_city, self.destination_state_province, self.destination_country
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Quote":
        """Build a Quote from a loosely typed row (ORM dict, JSON payload, CSV row).

        Unknown keys are ignored. Accepts `id` as an alias for `quote_id`.
        """
        values: dict[str, Any] = {}
        for f in fields(cls):
            if f.name in data:
                values[f.name] = data[f.name]
        if "quote_id" not in values and "id" in data:
            values["quote_id"] = data["id"]

        for key in _FLOAT_FIELDS:
            if key in values:
                values[key] = parse_number(values[key])
        if "number_of_pieces" in values:
            pieces = parse_number(values["number_of_pieces"])
            values["number_of_pieces"] = int(pieces) if pieces is not None else None
        for key in ("quote_date", "created_at"):
            if key in values:
                values[key] = parse_datetime(values[key])
        if "hazardous_material" in values:
            values["hazardous_material"] = parse_bool(values["hazardous_material"]) or False
        if "job_won" in values:
            values["job_won"] = parse_bool(values["job_won"])

        values["quote_id"] = int(values["quote_id"])
        return cls(**values)


ACCEPTED_STATUSES = frozenset({"accepted", "booked", "won", "completed", "delivered"})

_FLOAT_FIELDS = (
    "cargo_weight",
    "cargo_length",
    "cargo_width",
    "cargo_height",
    "initial_quote_amount",
    "final_agreed_price",
    "total_distance_miles",
)


def _join_location(*parts: Optional[str]) -> str:
    return ", ".join(p.strip() for p in parts if p and p.strip())


def parse_number(value: Any) -> Optional[float]:
    """Parse a number that may carry currency symbols or thousands separators."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace("$", "").replace(",", "")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ("true", "yes", "y", "1", "t"):
        return True
    if text in ("false", "no", "n", "0", "f"):
        return False
    return None
