"""itinerary-planner — LLM travel itineraries with tolerant JSON recovery."""

__version__ = "0.3.0"

from .exceptions import (
    ConfigError,
    GenerationError,
    ItineraryPlannerError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

__all__ = [
    "__version__",
    "ItineraryPlannerError",
    "ProviderError",
    "ProviderAuthError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "GenerationError",
    "ConfigError",
]
