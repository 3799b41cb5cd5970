"""AI Infrastructure - Adapters for LLM providers.

This module contains concrete implementations of AI domain ports.
"""

from .openai_provider import OpenAIProvider

__all__ = [
    "OpenAIProvider",
]
