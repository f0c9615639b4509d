"""Custom exception hierarchy for itinerary-planner.

All itinerary-planner exceptions inherit from ItineraryPlannerError, allowing
callers to catch broad or specific errors:

    try:
        text = await provider.complete(prompt)
    except ProviderTimeoutError as e:
        print(f"Provider too slow: {e}")
    except ProviderError as e:
        print(f"Provider problem (HTTP {e.status_code}): {e}")
    except ItineraryPlannerError as e:
        print(f"itinerary-planner error: {e}")
"""

from __future__ import annotations


class ItineraryPlannerError(Exception):
    """Base exception for all itinerary-planner errors."""


class ProviderError(ItineraryPlannerError):
    """Raised when an LLM provider call fails."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """Raised when provider authentication fails (invalid API key)."""


class ProviderRateLimitError(ProviderError):
    """Raised when a provider rate-limits the request."""


class ProviderTimeoutError(ProviderError):
    """Raised when a single provider attempt exceeds its deadline."""


class GenerationError(ItineraryPlannerError):
    """Raised when no usable itinerary JSON could be produced.

    ``reason`` is the short diagnostic surfaced to HTTP clients.
    """

    def __init__(self, reason: str, provider: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.provider = provider


class ConfigError(ItineraryPlannerError):
    """Raised when configuration is invalid or missing."""
