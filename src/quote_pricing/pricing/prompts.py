"""LLM prompt templates for AI pricing opinions."""

import statistics
from typing import Mapping, Optional, Sequence

from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import FeedbackRecord, Match, PricingRecommendation
from quote_pricing.normalization import (
    CargoCategory,
    analyze_oog_cargo,
    classify_cargo,
    detect_container_type,
    distance_category,
)

from .statistics import trimmed_mean

MAX_PROMPT_COMPARABLES = 5
REPAIR_TAIL_CHARS = 3000
OUTLIER_LOW_RATIO = 0.6
OUTLIER_HIGH_RATIO = 1.8
PROJECT_CARGO_MIN_MILES = 400

PRICING_V1_SYSTEM = """You are a senior pricing analyst at a drayage and transportation company with 15+ years of experience.
Your job: recommend a competitive but profitable total price for a new freight quote request.
Rules:
- Ground the price in the historical comparables and the algorithmic baseline below.
- Prefer median/trimmed mean over the single best match when comparables disagree.
- Do not invent charges that the request does not call for.
- Output ONLY JSON matching the OUTPUT FORMAT. No markdown. No prose. No $ signs in numeric fields."""

RATE_GUIDANCE_V1 = """## MARKET RATE REFERENCE
- Drayage (port/rail to warehouse): $300-600 local (0-50 mi), $500-900 short (51-100 mi),
  $800-1400 medium (101-200 mi), $1200-2000 extended (201-350 mi), $1800-3000 long (351-500 mi)
- Ground FTL per mile: $4.50-6.50 under 250 mi, $3.75-5.25 250-500 mi,
  $3.25-4.75 500-1000 mi, $3.00-4.25 over 1000 mi
- Project cargo (machinery/oversized, long haul): $7-12 per mile
- Flatbed +10-20%, step deck +15-25% over dry van
- Oversize permits $50-300 per state; hazmat +25%"""

OUTPUT_FORMAT_V1 = """## OUTPUT FORMAT
{
  "recommended_quote": {
    "initial_amount": number,
    "floor_price": number,
    "target_price": number,
    "stretch_price": number
  },
  "confidence": "HIGH|MEDIUM|LOW",
  "market_factors": [string],
  "negotiation_notes": string,
  "reasoning": string
}"""

REPAIR_V1_INSTRUCTION = """IMPORTANT: Your previous response was not valid JSON or was missing a usable recommended_quote.initial_amount.
Return ONLY a valid JSON object matching the OUTPUT FORMAT. No markdown, no prose.

PREVIOUS RESPONSE (tail):
<<<
{{previous_response}}
>>>"""


def _value(value, suffix: str = "") -> str:
    if value is None or value == "":
        return "Not specified"
    return f"{value}{(' ' + suffix) if suffix else ''}".strip()


def _money(value: Optional[float]) -> str:
    return f"${value:,.0f}" if value else "N/A"


def _quote_section(source: Quote, distance_miles: Optional[float], distance_from_route: bool) -> str:
    container = detect_container_type(source.cargo_description, source.service_type)
    lines = [
        "## NEW QUOTE REQUEST",
        f"- Route: {source.origin_text or 'Unknown'} -> {source.destination_text or 'Unknown'}",
        f"- Origin Address: {_value(source.origin_full_address)}",
        f"- Destination Address: {_value(source.destination_full_address)}",
    ]
    if distance_miles:
        origin = "route lookup" if distance_from_route else "from database"
        lines.append(f"- Route Distance: {distance_miles:,.0f} miles ({origin})")
        lines.append(f"- Distance Category: {distance_category(distance_miles)}")
    lines += [
        f"- Service Type: {_value(source.service_type)}",
        f"- Cargo Description: {_value(source.cargo_description)}",
        f"- Weight: {_value(source.cargo_weight, source.weight_unit or '')}",
        f"- Pieces: {_value(source.number_of_pieces)}",
        f"- Hazmat: {'Yes' if source.hazardous_material else 'No'}",
        (
            f"- Dimensions (LxWxH): {source.cargo_length or 'N/A'}x{source.cargo_width or 'N/A'}"
            f"x{source.cargo_height or 'N/A'} {source.dimension_unit or ''}".rstrip()
        ),
        f"- Equipment Requested: {_value(source.equipment_type_requested)}",
        f"- Container Type: {container.value if container else 'Standard/Not specified'}",
    ]
    return "\n".join(lines)


def _oog_section(source: Quote) -> str:
    oog = analyze_oog_cargo(
        source.cargo_description,
        source.cargo_length,
        source.cargo_width,
        source.cargo_height,
        source.dimension_unit,
        source.cargo_weight,
        source.weight_unit,
    )
    if not oog.is_oog:
        return ""
    lines = [
        "## OUT OF GAUGE CARGO",
        "- This cargo is out of gauge: apply a 1.35-1.45x multiplier to standard rates",
    ]
    lines += [f"- {reason}" for reason in oog.reasons]
    if oog.recommended_equipment:
        lines.append(f"- Recommended equipment: {oog.recommended_equipment}")
    if oog.requires_permits:
        lines.append("- State permits required ($50-300+ per state)")
    if oog.requires_pilot_car:
        lines.append("- Pilot car required")
    return "\n".join(lines)


def _project_cargo_section(source: Quote, distance_miles: Optional[float]) -> str:
    category = classify_cargo(source.cargo_description)
    if category not in (CargoCategory.MACHINERY, CargoCategory.OVERSIZED):
        return ""
    if distance_miles is None or distance_miles < PROJECT_CARGO_MIN_MILES:
        return ""
    missing_weight = not source.cargo_weight or source.cargo_weight <= 0
    missing_dims = any(
        not value or value <= 0
        for value in (source.cargo_length, source.cargo_width, source.cargo_height)
    )
    if not (missing_weight or missing_dims):
        return ""
    return "\n".join([
        "## PROJECT CARGO PRICING NOTE",
        f"- Cargo appears to be {category.value} on a long-haul route.",
        "- Weight/dimensions are missing; do NOT assume light general freight.",
        "- Avoid the minimum project cargo rate and include a buffer for unknown specs.",
    ])


def _comparables_section(
    matches: Sequence[Match],
    historical: Mapping[int, Quote],
    feedback: Mapping[int, FeedbackRecord],
) -> str:
    if not matches:
        return "## HISTORICAL COMPARABLES\n- None found; rely on the market rate reference."

    lines = ["## HISTORICAL COMPARABLES"]
    for i, match in enumerate(matches[:MAX_PROMPT_COMPARABLES], start=1):
        quote = historical.get(match.matched_quote_id)
        parts = [f"{i}. score {match.similarity_score:.2f}, suggested {_money(match.suggested_price)}"]
        if quote is not None:
            parts.append(f"{quote.origin_text or 'Unknown'} -> {quote.destination_text or 'Unknown'}")
            parts.append(f"service {_value(quote.service_type)}")
            parts.append(f"cargo {_value(quote.cargo_description)}")
            if quote.total_distance_miles:
                parts.append(f"{quote.total_distance_miles:,.0f} mi")
            parts.append(f"quoted {_money(quote.initial_quote_amount)}, final {_money(quote.final_agreed_price)}")
        if match.job_won:
            parts.append("WON")
        record = feedback.get(match.matched_quote_id)
        if record is not None:
            parts.append(f"feedback +{record.positive_count}/-{record.negative_count}")
            if record.actual_prices_used:
                parts.append(f"actual price used {_money(record.actual_prices_used[-1])}")
        lines.append(" | ".join(parts))

    with_feedback = [
        m for m in matches[:MAX_PROMPT_COMPARABLES]
        if m.matched_quote_id in feedback
    ]
    verified = [m for m in with_feedback if feedback[m.matched_quote_id].has_verified_prices]
    if with_feedback:
        lines += [
            "",
            "## FEEDBACK INSIGHTS",
            f"- Matches with operator feedback: {len(with_feedback)}",
            f"- Matches with verified actual prices: {len(verified)}",
        ]
        if verified:
            lines.append("- Weight verified actual prices more heavily; customers accepted them.")
    return "\n".join(lines)


def _price_stats_section(matches: Sequence[Match]) -> str:
    prices = [m.suggested_price for m in matches if m.suggested_price and m.suggested_price > 0]
    if not prices:
        return ""
    median = statistics.median(prices)
    best = prices[0]
    lines = [
        "## HISTORICAL PRICE STATS",
        f"- count_prices: {len(prices)}",
        f"- best_match_price: {best:.0f}",
        f"- min_price: {min(prices):.0f}",
        f"- median_price: {median:.0f}",
        f"- trimmed_mean_price: {trimmed_mean(prices):.0f}",
        f"- max_price: {max(prices):.0f}",
    ]
    if len(prices) > 1:
        lines.append(f"- stddev_price: {statistics.stdev(prices):.0f}")
    if median > 0:
        ratio = best / median
        lines.append(f"- best_vs_median_ratio: {ratio:.2f}")
        if ratio < OUTLIER_LOW_RATIO:
            lines.append("- outlier_warning: best match price looks TOO LOW vs median; downweight it")
        elif ratio > OUTLIER_HIGH_RATIO:
            lines.append("- outlier_warning: best match price looks TOO HIGH vs median; downweight it")
    return "\n".join(lines)


def _baseline_section(baseline: PricingRecommendation) -> str:
    return "\n".join([
        "## ALGORITHMIC BASELINE (REFERENCE)",
        f"- recommended_price: {baseline.recommended_price:.0f}",
        f"- floor_price: {baseline.floor_price:.0f}",
        f"- ceiling_price: {baseline.ceiling_price:.0f}",
        f"- confidence: {baseline.confidence_level.value} ({baseline.confidence_percentage:.0f}%)",
        f"- method: {baseline.tier.value}",
        "",
        "CONSTRAINTS:",
        "- recommended_quote.initial_amount MUST be within [floor_price, ceiling_price]"
        " unless a factor in the NEW QUOTE REQUEST justifies otherwise; name that factor.",
    ])


def build_pricing_prompt(
    source: Quote,
    matches: Sequence[Match],
    baseline: PricingRecommendation,
    distance_miles: Optional[float] = None,
    distance_from_route: bool = False,
    historical: Optional[Mapping[int, Quote]] = None,
    feedback: Optional[Mapping[int, FeedbackRecord]] = None,
) -> str:
    """Build the pricing opinion prompt.

    Args:
        source: Quote being priced
        matches: Ranked matches used for the baseline
        baseline: Algorithmic recommendation (statistical or rate card)
        distance_miles: Resolved route distance, if any
        distance_from_route: True when distance came from a route lookup
        historical: Historical quotes by id, for comparable details
        feedback: Feedback per historical quote id

    Returns:
        Complete prompt text
    """
    sections = [
        PRICING_V1_SYSTEM,
        _quote_section(source, distance_miles, distance_from_route),
        _oog_section(source),
        _project_cargo_section(source, distance_miles),
        _comparables_section(matches, historical or {}, feedback or {}),
        _price_stats_section(matches),
        _baseline_section(baseline),
        RATE_GUIDANCE_V1,
        OUTPUT_FORMAT_V1,
    ]
    return "\n\n".join(section for section in sections if section)


def build_repair_prompt(original_prompt: str, previous_response: str) -> str:
    """Original prompt plus an explicit JSON-only instruction and the failed output tail."""
    instruction = REPAIR_V1_INSTRUCTION.replace(
        "{{previous_response}}", (previous_response or "")[-REPAIR_TAIL_CHARS:]
    )
    return f"{original_prompt}\n\n{instruction}"
