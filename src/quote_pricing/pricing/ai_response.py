"""Pydantic schema and lenient parser for AI pricing opinions.

LLM output is untrusted text. The parser finds the first balanced JSON
object (ignoring markdown fences and surrounding prose), validates it
against AIPricingOpinion, and returns None rather than raising when the
text cannot be used.
"""

import json
import logging
import math
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

logger = logging.getLogger(__name__)

CONFIDENCE_LABELS: dict[str, float] = {
    "HIGH": 85.0,
    "MEDIUM": 65.0,
    "LOW": 40.0,
}


def _as_price(value: Any) -> Optional[float]:
    """Finite positive number, accepting "$1,250.00" style strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


class RecommendedQuote(BaseModel):
    """Price points the AI proposes."""

    initial_amount: Optional[float] = None
    floor_price: Optional[float] = None
    target_price: Optional[float] = None
    stretch_price: Optional[float] = None

    @field_validator("initial_amount", "floor_price", "target_price", "stretch_price", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> Optional[float]:
        return _as_price(v)


class AIPricingOpinion(BaseModel):
    """Validated AI pricing opinion.

    Accepts either the nested `recommended_quote.initial_amount` shape or a
    flat top-level `recommended_price`. Confidence may be a label
    (HIGH/MEDIUM/LOW) or a number; fractions in (0, 1] are read as shares.
    """

    recommended_quote: RecommendedQuote = Field(default_factory=RecommendedQuote)
    recommended_price: Optional[float] = None
    confidence: Optional[float] = None
    market_factors: list[str] = Field(default_factory=list)
    negotiation_notes: Optional[str] = None
    reasoning: Optional[str] = None

    @field_validator("recommended_price", mode="before")
    @classmethod
    def parse_price(cls, v: Any) -> Optional[float]:
        return _as_price(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def parse_confidence(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        percent = False
        if isinstance(v, str):
            label = v.strip().upper()
            if label in CONFIDENCE_LABELS:
                return CONFIDENCE_LABELS[label]
            percent = label.endswith("%")
            v = label.rstrip("%").strip()
        try:
            number = float(v)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(number) or number < 0:
            return None
        # 0..1 exclusive is a fraction; 1 and above are already percentages
        if number < 1 and not percent:
            number *= 100
        return min(number, 100.0)

    @field_validator("market_factors", mode="before")
    @classmethod
    def parse_factors(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [str(item) for item in v if item is not None]

    @model_validator(mode="after")
    def require_price(self) -> "AIPricingOpinion":
        if self.price is None:
            raise ValueError("no finite positive recommended price")
        return self

    @property
    def price(self) -> Optional[float]:
        return self.recommended_quote.initial_amount or self.recommended_price


def strip_code_fences(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} object in text, honoring JSON strings."""
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return None


def parse_ai_pricing(text: Optional[str]) -> Optional[AIPricingOpinion]:
    """Parse an AI response into a validated opinion, or None if unusable."""
    if not text:
        return None
    candidate = extract_json_object(strip_code_fences(text))
    if candidate is None:
        logger.warning("AI pricing response contains no JSON object", extra={"length": len(text)})
        return None
    try:
        data = json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"AI pricing JSON decode failed: {e}")
        return None
    if not isinstance(data, dict):
        return None
    try:
        return AIPricingOpinion.model_validate(data)
    except ValidationError as e:
        logger.warning(f"AI pricing schema validation failed: {e.error_count()} errors")
        return None
