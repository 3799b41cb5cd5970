"""Unit tests for AI pricing prompt construction."""

from quote_pricing.domain.results import (
    ConfidenceLevel,
    FeedbackRecord,
    Match,
    PriceRange,
    PriceSource,
    PricingRecommendation,
    PricingTier,
)
from quote_pricing.pricing import build_pricing_prompt, build_repair_prompt
from quote_pricing.pricing.prompts import REPAIR_TAIL_CHARS


def _baseline():
    return PricingRecommendation(
        recommended_price=1000.0,
        floor_price=850.0,
        target_price=1000.0,
        ceiling_price=1150.0,
        confidence_percentage=62.0,
        confidence_level=ConfidenceLevel.MEDIUM,
        tier=PricingTier.STATISTICAL,
        reasoning="",
    )


def _match(quote_id, price, score=0.8):
    return Match(
        source_quote_id=1,
        matched_quote_id=quote_id,
        similarity_score=score,
        criteria={},
        suggested_price=price,
        price_confidence=0.8,
        price_range=PriceRange(low=price, high=price),
        price_source=PriceSource.INITIAL_QUOTE,
    )


class TestBuildPricingPrompt:
    """Prompt sections."""

    def test_core_sections(self, make_quote):
        """Request, baseline, rate guidance and output format are always present."""
        prompt = build_pricing_prompt(make_quote(), [], _baseline(), distance_miles=240.0, distance_from_route=True)

        assert "## NEW QUOTE REQUEST" in prompt
        assert "- Route: Houston, TX, USA -> Dallas, TX, USA" in prompt
        assert "240 miles (route lookup)" in prompt
        assert "Extended haul (201-350 mi)" in prompt
        assert "## ALGORITHMIC BASELINE (REFERENCE)" in prompt
        assert "- floor_price: 850" in prompt
        assert "## MARKET RATE REFERENCE" in prompt
        assert "## OUTPUT FORMAT" in prompt
        assert "None found" in prompt

    def test_comparables_and_feedback(self, make_quote):
        """Comparables list historical details and feedback insights."""
        historical = {2: make_quote(quote_id=2, initial_quote_amount=980.0, job_won=True)}
        matches = [_match(2, 980.0, 0.91)]
        feedback = {2: FeedbackRecord(quote_id=2, positive_count=3, actual_prices_used=(990.0,))}

        prompt = build_pricing_prompt(make_quote(), matches, _baseline(), historical=historical, feedback=feedback)

        assert "1. score 0.91, suggested $980" in prompt
        assert "feedback +3/-0" in prompt
        assert "actual price used $990" in prompt
        assert "## FEEDBACK INSIGHTS" in prompt
        assert "- Matches with verified actual prices: 1" in prompt

    def test_low_outlier_warning(self, make_quote):
        """A best match far below the median is flagged."""
        matches = [_match(2, 300.0, 0.95), _match(3, 1000.0), _match(4, 1000.0), _match(5, 1050.0)]

        prompt = build_pricing_prompt(make_quote(), matches, _baseline())

        assert "## HISTORICAL PRICE STATS" in prompt
        assert "TOO LOW" in prompt

    def test_oog_section(self, make_quote):
        """Out-of-gauge cargo gets its own section."""
        quote = make_quote(cargo_width=12.5, cargo_height=9.0, dimension_unit="ft")

        prompt = build_pricing_prompt(quote, [], _baseline())

        assert "## OUT OF GAUGE CARGO" in prompt
        assert "Pilot car required" in prompt

    def test_project_cargo_note(self, make_quote):
        """Long-haul machinery with missing specs gets a project cargo note."""
        quote = make_quote(cargo_weight=None)

        assert "## PROJECT CARGO PRICING NOTE" in build_pricing_prompt(quote, [], _baseline(), distance_miles=650.0)
        assert "## PROJECT CARGO PRICING NOTE" not in build_pricing_prompt(
            quote, [], _baseline(), distance_miles=120.0
        )


class TestBuildRepairPrompt:
    """JSON repair prompt."""

    def test_includes_instruction_and_tail(self):
        """The repair prompt keeps the original and quotes the failed tail."""
        previous = "x" * (REPAIR_TAIL_CHARS + 500) + "END"

        prompt = build_repair_prompt("ORIGINAL PROMPT", previous)

        assert prompt.startswith("ORIGINAL PROMPT")
        assert "Return ONLY a valid JSON object matching the OUTPUT FORMAT" in prompt
        assert previous[-REPAIR_TAIL_CHARS:] in prompt
        assert previous not in prompt
