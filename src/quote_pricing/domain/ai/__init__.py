"""AI domain layer - port and errors for LLM providers"""

from .ports import (
    GenerationOptions,
    LLMProviderPort,
    LLMProviderError,
    LLMTimeoutError,
    LLMRateLimitError,
    LLMAuthError,
    LLMServiceError,
    LLMInvalidResponseError,
)

__all__ = [
    "GenerationOptions",
    "LLMProviderPort",
    "LLMProviderError",
    "LLMTimeoutError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMServiceError",
    "LLMInvalidResponseError",
]
