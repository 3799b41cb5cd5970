"""Unit tests for blending AI pricing opinions onto algorithmic prices."""

import json

import pytest

from quote_pricing.domain.ai import LLMRateLimitError, LLMServiceError
from quote_pricing.domain.results import (
    AI_ALGORITHM_VERSION,
    ConfidenceLevel,
    PricingRecommendation,
    PricingTier,
)
from quote_pricing.observability import get_request_id, request_id_var
from quote_pricing.pricing import AIPricingBlender, apply_ai_opinion


def _baseline(level=ConfidenceLevel.MEDIUM, price=1000.0, floor=850.0, ceiling=1150.0):
    return PricingRecommendation(
        recommended_price=price,
        floor_price=floor,
        target_price=price,
        ceiling_price=ceiling,
        confidence_percentage=65.0,
        confidence_level=level,
        tier=PricingTier.STATISTICAL,
        reasoning="Based on 3 comparable quotes.",
        breakdown={"method": "weighted_average_median_60_40"},
    )


def _response(price, confidence="MEDIUM"):
    return json.dumps({"recommended_quote": {"initial_amount": price}, "confidence": confidence})


class TestApplyAIOpinion:
    """Blend rules."""

    def test_out_of_range_ai_ignored_for_medium_baseline(self, make_quote):
        """A $5,000 AI price against a MEDIUM $1,000 baseline changes nothing."""
        baseline = _baseline()

        rec, outcome = apply_ai_opinion(baseline, 5000.0, 65.0, make_quote())

        assert outcome == "rejected"
        assert rec is baseline
        assert rec.recommended_price == 1000.0

    def test_in_range_ai_blended_85_15(self, make_quote):
        """Accepted AI prices get 15% weight on a MEDIUM baseline."""
        rec, outcome = apply_ai_opinion(_baseline(), 1100.0, 65.0, make_quote())

        assert outcome == "blended"
        assert rec.recommended_price == 1015
        assert rec.tier == PricingTier.AI_BLENDED
        assert rec.algorithm_version == AI_ALGORITHM_VERSION
        assert rec.breakdown["ai"]["ai_weight"] == 0.15
        assert rec.breakdown["method"] == "weighted_average_median_60_40"

    def test_low_baseline_clamps_ai_to_band(self, make_quote):
        """On a LOW baseline the AI price is clamped to the ceiling, then blended 70/30."""
        rec, outcome = apply_ai_opinion(_baseline(ConfidenceLevel.LOW), 5000.0, 40.0, make_quote())

        assert outcome == "blended"
        assert rec.recommended_price == 1045
        assert rec.floor_price == 850.0
        assert rec.ceiling_price == 1150.0

    def test_project_cargo_leans_on_ai(self, make_quote):
        """Long-haul machinery on a low-confidence baseline weights the AI 75%."""
        rec, _ = apply_ai_opinion(
            _baseline(ConfidenceLevel.VERY_LOW), 1100.0, 40.0, make_quote(), distance_miles=650.0
        )

        assert rec.recommended_price == 1075
        assert rec.breakdown["ai"]["ai_weight"] == 0.75

    def test_short_machinery_move_uses_low_confidence_weight(self, make_quote):
        """Machinery under 400 miles is not project cargo."""
        rec, _ = apply_ai_opinion(
            _baseline(ConfidenceLevel.VERY_LOW), 1100.0, 40.0, make_quote(), distance_miles=240.0
        )

        assert rec.breakdown["ai"]["ai_weight"] == 0.30

    def test_confident_ai_used_directly(self, make_quote):
        """AI confidence of 80% or more uses the AI price and widens the band."""
        rec, outcome = apply_ai_opinion(_baseline(), 1400.0, 85.0, make_quote())

        assert outcome == "trusted"
        assert rec.recommended_price == 1400
        assert rec.ceiling_price == 1400
        assert rec.floor_price == 850.0

    def test_missing_ai_confidence(self, make_quote):
        """No AI confidence falls through to the ratio rules."""
        _, outcome = apply_ai_opinion(_baseline(), 1050.0, None, make_quote())

        assert outcome == "blended"


class TestAIPricingBlender:
    """Provider calls, JSON repair and failure handling."""

    def test_valid_response_blended(self, fake_llm, make_quote):
        """A single usable response is blended."""
        provider = fake_llm([_response(1100)])
        blender = AIPricingBlender(provider, timeout_seconds=5.0)

        rec = blender.blend(make_quote(), [], _baseline())
        blender.close()

        assert rec.recommended_price == 1015
        assert len(provider.prompts) == 1
        assert "## ALGORITHMIC BASELINE (REFERENCE)" in provider.prompts[0]

    def test_one_repair_attempt(self, fake_llm, make_quote):
        """An unparseable first answer triggers exactly one repair call."""
        provider = fake_llm(["The price should be about $1,100.", _response(1100)])
        blender = AIPricingBlender(provider, timeout_seconds=5.0)

        rec = blender.blend(make_quote(), [], _baseline())
        blender.close()

        assert rec.tier == PricingTier.AI_BLENDED
        assert len(provider.prompts) == 2
        assert "Return ONLY a valid JSON object" in provider.prompts[1]
        assert "The price should be about $1,100." in provider.prompts[1]
        assert provider.options[1].temperature == 0.0

    def test_malformed_twice_returns_baseline(self, fake_llm, make_quote):
        """Two unusable answers fall back to the algorithmic price."""
        baseline = _baseline()
        provider = fake_llm(["not json", '{"recommended_price": "TBD"}'])
        blender = AIPricingBlender(provider, timeout_seconds=5.0)

        rec = blender.blend(make_quote(), [], baseline)
        blender.close()

        assert rec is baseline
        assert len(provider.prompts) == 2

    @pytest.mark.parametrize("error", [LLMServiceError("503"), LLMRateLimitError("429")])
    def test_provider_error_returns_baseline(self, fake_llm, make_quote, error):
        """Provider failures never fail pricing."""
        baseline = _baseline()
        blender = AIPricingBlender(fake_llm([error]), timeout_seconds=5.0)

        rec = blender.blend(make_quote(), [], baseline)
        blender.close()

        assert rec is baseline

    def test_timeout_returns_baseline(self, fake_llm, make_quote):
        """A slow provider is abandoned after the timeout."""
        baseline = _baseline()
        blender = AIPricingBlender(fake_llm([_response(1100)], delay=1.0), timeout_seconds=0.05)

        rec = blender.blend(make_quote(), [], baseline)
        blender.close()

        assert rec is baseline

    def test_provider_call_keeps_request_id(self, fake_llm, make_quote):
        """The worker thread running the provider sees the caller's run id."""

        class RecordingProvider(fake_llm):
            seen = None

            def generate_response(self, prompt, options=None):
                RecordingProvider.seen = get_request_id()
                return super().generate_response(prompt, options)

        token = request_id_var.set("run-42")
        try:
            blender = AIPricingBlender(RecordingProvider([_response(1100)]), timeout_seconds=5.0)
            blender.blend(make_quote(), [], _baseline())
            blender.close()
        finally:
            request_id_var.reset(token)

        assert RecordingProvider.seen == "run-42"
