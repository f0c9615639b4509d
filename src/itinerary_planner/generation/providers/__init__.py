"""LLM providers — OpenAI and an alternate OpenAI-compatible endpoint."""

from .base import LLMProvider, RetryPolicy
from .response_text import extract_response_text

__all__ = [
    "LLMProvider",
    "RetryPolicy",
    "extract_response_text",
]
