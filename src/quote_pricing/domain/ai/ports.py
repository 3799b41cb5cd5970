"""
LLM Provider Port - Abstract interface for LLM providers.

The pricing engine only needs one capability from a language model: turn a
prompt into raw text, optionally asking for JSON output. Everything the text
contains is treated as untrusted and validated by the caller before use.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GenerationOptions:
    """
    Decoding options for a single generation call.

    Attributes:
        temperature: Sampling temperature
        top_p: Nucleus sampling cutoff
        max_output_tokens: Upper bound on generated tokens
        json_output: Ask the provider for a JSON object response
    """
    temperature: float = 0.2
    top_p: float = 0.9
    max_output_tokens: int = 4096
    json_output: bool = True


class LLMProviderPort(ABC):
    """
    Abstract interface for LLM providers.

    Implementations must handle:
    - API authentication
    - Request formatting for provider
    - Error mapping onto the LLMProviderError hierarchy
    """

    @abstractmethod
    def generate_response(self, prompt: str, options: Optional[GenerationOptions] = None) -> str:
        """
        Generate a text completion for a prompt.

        Args:
            prompt: Full prompt text
            options: Decoding options (defaults to GenerationOptions())

        Returns:
            Raw response text (caller must parse/validate)

        Raises:
            LLMTimeoutError: Request timed out
            LLMRateLimitError: Rate limit exceeded
            LLMAuthError: Authentication failed
            LLMServiceError: Provider service unavailable
            LLMInvalidResponseError: Provider returned no usable text
        """
        pass


class LLMProviderError(Exception):
    """Base exception for LLM operations"""
    pass


class LLMTimeoutError(LLMProviderError):
    """LLM request timed out"""
    pass


class LLMRateLimitError(LLMProviderError):
    """Rate limit exceeded"""
    pass


class LLMAuthError(LLMProviderError):
    """Authentication failed"""
    pass


class LLMServiceError(LLMProviderError):
    """Provider service unavailable or returned error"""
    pass


class LLMInvalidResponseError(LLMProviderError):
    """Provider returned invalid/unexpected response"""
    pass
