"""
OpenAI Provider - Concrete implementation of LLMProviderPort for OpenAI.

Sends pricing prompts to an OpenAI chat model and returns the raw text.
Parsing and validation happen in the pricing layer.
"""

import logging
import time
from typing import Optional

from openai import OpenAI, APIError, RateLimitError, APIConnectionError, APITimeoutError, AuthenticationError

from quote_pricing.config import get_settings
from quote_pricing.domain.ai.ports import (
    GenerationOptions,
    LLMProviderPort,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError
)

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProviderPort):
    """
    OpenAI implementation of LLMProviderPort.

    Uses the OpenAI Python SDK (v1.x+); JSON mode is requested when the
    caller's GenerationOptions ask for JSON output.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[OpenAI] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key (defaults to Settings.OPENAI_API_KEY)
            model: Chat model (defaults to Settings.LLM_MODEL)
            timeout: Request timeout in seconds (defaults to Settings.LLM_TIMEOUT_SECONDS)
            client: Pre-built SDK client (tests)

        Raises:
            ValueError: If no API key is available and no client is given
        """
        settings = get_settings()
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT_SECONDS

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or settings.OPENAI_API_KEY
        if not self.api_key:
            raise ValueError("OpenAI API key not provided. Set OPENAI_API_KEY environment variable.")
        self.client = OpenAI(api_key=self.api_key)

    def generate_response(self, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        """
        Send a single-turn prompt and return the model's text.

        Raises:
            LLMTimeoutError, LLMRateLimitError, LLMAuthError, LLMServiceError,
            LLMInvalidResponseError
        """
        options = options or GenerationOptions()
        request = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": options.temperature,
            "top_p": options.top_p,
            "max_tokens": options.max_output_tokens,
            "timeout": self.timeout,
        }
        if options.json_output:
            request["response_format"] = {"type": "json_object"}

        start_time = time.perf_counter()
        try:
            response = self.client.chat.completions.create(**request)

        except APITimeoutError as e:
            raise LLMTimeoutError(f"OpenAI API timeout: {str(e)}")

        except RateLimitError as e:
            raise LLMRateLimitError(f"OpenAI rate limit exceeded: {str(e)}")

        except AuthenticationError as e:
            raise LLMAuthError(f"OpenAI authentication failed: {str(e)}")

        except (APIConnectionError, APIError) as e:
            raise LLMServiceError(f"OpenAI service error: {str(e)}")

        latency_ms = int((time.perf_counter() - start_time) * 1000)

        if not response.choices:
            raise LLMInvalidResponseError("OpenAI returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise LLMInvalidResponseError("OpenAI returned an empty response")

        usage = response.usage
        logger.info(
            "OpenAI pricing call completed",
            extra={
                "model": self.model,
                "latency_ms": latency_ms,
                "tokens_in": usage.prompt_tokens if usage else None,
                "tokens_out": usage.completion_tokens if usage else None,
            },
        )
        return content
