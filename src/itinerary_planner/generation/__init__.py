"""Generation — itinerary prompts, LLM providers, and tolerant JSON recovery."""

from .json_extract import (
    ParseOutcome,
    extract_balanced_object,
    is_likely_truncated,
    parse_tolerant,
    sanitize,
)
from .recovery import GenerationResult, ItineraryGenerator, RecoveryStrategy

__all__ = [
    "GenerationResult",
    "ItineraryGenerator",
    "ParseOutcome",
    "RecoveryStrategy",
    "extract_balanced_object",
    "is_likely_truncated",
    "parse_tolerant",
    "sanitize",
]
