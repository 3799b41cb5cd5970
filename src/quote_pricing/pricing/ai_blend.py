"""AI pricing opinion blended onto an algorithmic recommendation.

The AI is optional. Any provider error, timeout, or unusable response
returns the algorithmic recommendation unchanged, so a price is always
produced without it.

Blend rules (apply_ai_opinion):
- AI confidence >= 80%: the AI price is used directly
- algorithmic confidence MEDIUM/HIGH: the raw AI/algorithmic ratio must lie in
  0.85..1.15, else the AI is ignored; accepted prices blend 85/15
- algorithmic confidence LOW/VERY_LOW: the AI price is clamped to the
  floor/ceiling band, then blended 70/30 (algorithmic/AI), or 25/75 for
  machinery/oversized cargo moving 400+ miles
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import replace
from typing import Mapping, Optional, Sequence

from quote_pricing.domain.ai import GenerationOptions, LLMProviderError, LLMProviderPort
from quote_pricing.domain.quote import Quote
from quote_pricing.domain.results import (
    AI_ALGORITHM_VERSION,
    FeedbackRecord,
    Match,
    PricingRecommendation,
    PricingTier,
)
from quote_pricing.normalization import CargoCategory, classify_cargo
from quote_pricing.observability.metrics import ai_blend_total

from .ai_response import AIPricingOpinion, parse_ai_pricing
from .prompts import PROJECT_CARGO_MIN_MILES, build_pricing_prompt, build_repair_prompt

logger = logging.getLogger(__name__)

TRUST_AI_CONFIDENCE = 80.0
MIN_ACCEPTED_RATIO = 0.85
MAX_ACCEPTED_RATIO = 1.15
DEFAULT_AI_WEIGHT = 0.15
LOW_CONFIDENCE_AI_WEIGHT = 0.30
PROJECT_CARGO_AI_WEIGHT = 0.75

DEFAULT_OPTIONS = GenerationOptions(temperature=0.2, top_p=0.9, max_output_tokens=4096, json_output=True)
REPAIR_OPTIONS = GenerationOptions(temperature=0.0, top_p=0.9, max_output_tokens=4096, json_output=True)


def apply_ai_opinion(
    baseline: PricingRecommendation,
    ai_price: float,
    ai_confidence: Optional[float],
    source: Quote,
    distance_miles: Optional[float] = None,
) -> tuple[PricingRecommendation, str]:
    """Combine a validated AI price with the algorithmic baseline.

    Args:
        baseline: Algorithmic recommendation
        ai_price: Finite positive AI price
        ai_confidence: AI self-reported confidence percentage, if any
        source: Quote being priced (cargo category drives the project-cargo rule)
        distance_miles: Resolved route distance

    Returns:
        (recommendation, outcome) where outcome is trusted, blended or rejected
    """
    algorithmic = baseline.recommended_price

    if ai_confidence is not None and ai_confidence >= TRUST_AI_CONFIDENCE:
        price = round(ai_price)
        return _ai_recommendation(
            baseline,
            price,
            ai_weight=1.0,
            ai_price=ai_price,
            note=f"AI price ${price:,.0f} used directly (AI confidence {ai_confidence:.0f}%).",
            floor=min(baseline.floor_price, price),
            ceiling=max(baseline.ceiling_price, price),
        ), "trusted"

    ratio = ai_price / algorithmic if algorithmic > 0 else float("inf")
    if not baseline.confidence_level.is_low and not MIN_ACCEPTED_RATIO <= ratio <= MAX_ACCEPTED_RATIO:
        logger.info(
            "AI adjustment ignored",
            extra={
                "confidence_level": baseline.confidence_level.value,
                "ratio": round(ratio, 2) if ratio != float("inf") else None,
            },
        )
        return baseline, "rejected"

    guarded = min(baseline.ceiling_price, max(baseline.floor_price, ai_price))

    if baseline.confidence_level.is_low:
        cargo = classify_cargo(source.cargo_description)
        project_cargo = (
            cargo in (CargoCategory.MACHINERY, CargoCategory.OVERSIZED)
            and distance_miles is not None
            and distance_miles >= PROJECT_CARGO_MIN_MILES
        )
        ai_weight = PROJECT_CARGO_AI_WEIGHT if project_cargo else LOW_CONFIDENCE_AI_WEIGHT
    else:
        ai_weight = DEFAULT_AI_WEIGHT

    price = round(algorithmic * (1 - ai_weight) + guarded * ai_weight)
    return _ai_recommendation(
        baseline,
        price,
        ai_weight=ai_weight,
        ai_price=ai_price,
        note=(
            f"AI-adjusted: AI suggested ${ai_price:,.0f}, guarded to ${guarded:,.0f}, "
            f"blended {1 - ai_weight:.0%}/{ai_weight:.0%} algorithmic/AI."
        ),
        floor=baseline.floor_price,
        ceiling=baseline.ceiling_price,
    ), "blended"


def _ai_recommendation(
    baseline: PricingRecommendation,
    price: float,
    ai_weight: float,
    ai_price: float,
    note: str,
    floor: float,
    ceiling: float,
) -> PricingRecommendation:
    return replace(
        baseline,
        recommended_price=price,
        target_price=price,
        floor_price=floor,
        ceiling_price=ceiling,
        tier=PricingTier.AI_BLENDED,
        algorithm_version=AI_ALGORITHM_VERSION,
        reasoning=f"{baseline.reasoning} {note}",
        breakdown={
            **baseline.breakdown,
            "ai": {
                "ai_price": round(ai_price, 2),
                "ai_weight": ai_weight,
                "algorithmic_price": baseline.recommended_price,
                "algorithmic_tier": baseline.tier.value,
            },
        },
    )


class AIPricingBlender:
    """Request an AI pricing opinion and blend it onto the baseline.

    Args:
        llm_provider: LLM collaborator
        timeout_seconds: Upper bound on each provider call; the pipeline does
            not wait longer than this for an opinion
    """

    def __init__(self, llm_provider: LLMProviderPort, timeout_seconds: float = 30.0):
        self.llm_provider = llm_provider
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="ai-pricing")

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    def blend(
        self,
        source: Quote,
        matches: Sequence[Match],
        baseline: PricingRecommendation,
        distance_miles: Optional[float] = None,
        distance_from_route: bool = False,
        historical: Optional[Mapping[int, Quote]] = None,
        feedback: Optional[Mapping[int, FeedbackRecord]] = None,
    ) -> PricingRecommendation:
        """Return the AI-enhanced recommendation, or baseline on any failure."""
        prompt = build_pricing_prompt(
            source,
            matches,
            baseline,
            distance_miles=distance_miles,
            distance_from_route=distance_from_route,
            historical=historical,
            feedback=feedback,
        )

        try:
            opinion = self._request_opinion(prompt)
        except FuturesTimeoutError:
            logger.warning(
                "AI pricing timed out, using algorithmic price",
                extra={"quote_id": source.quote_id, "timeout_seconds": self.timeout_seconds},
            )
            ai_blend_total.labels(outcome="failed").inc()
            return baseline
        except LLMProviderError as e:
            logger.warning(
                f"AI pricing unavailable, using algorithmic price: {e}",
                extra={"quote_id": source.quote_id, "error_type": type(e).__name__},
            )
            ai_blend_total.labels(outcome="failed").inc()
            return baseline

        if opinion is None:
            logger.warning(
                "AI pricing response unusable after repair, using algorithmic price",
                extra={"quote_id": source.quote_id},
            )
            ai_blend_total.labels(outcome="unparseable").inc()
            return baseline

        recommendation, outcome = apply_ai_opinion(
            baseline, opinion.price, opinion.confidence, source, distance_miles
        )
        ai_blend_total.labels(outcome=outcome).inc()
        logger.info(
            "AI pricing opinion applied",
            extra={
                "quote_id": source.quote_id,
                "outcome": outcome,
                "algorithmic_price": baseline.recommended_price,
                "ai_price": opinion.price,
                "final_price": recommendation.recommended_price,
            },
        )
        return recommendation

    def _request_opinion(self, prompt: str) -> Optional[AIPricingOpinion]:
        """One call plus at most one JSON repair call.

        Raises:
            LLMProviderError: Provider failure on either call
            concurrent.futures.TimeoutError: A call exceeded timeout_seconds
        """
        response = self._call(prompt, DEFAULT_OPTIONS)
        opinion = parse_ai_pricing(response)
        if opinion is not None:
            return opinion

        logger.info("AI pricing response not parseable, attempting one JSON repair")
        repaired = self._call(build_repair_prompt(prompt, response), REPAIR_OPTIONS)
        return parse_ai_pricing(repaired)

    def _call(self, prompt: str, options: GenerationOptions) -> str:
        context = contextvars.copy_context()
        future = self._executor.submit(context.run, self.llm_provider.generate_response, prompt, options)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FuturesTimeoutError:
            future.cancel()
            raise
