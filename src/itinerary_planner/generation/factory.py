"""Provider factory — creates the configured providers in preference order."""

from __future__ import annotations

import logging

from ..config import PlannerConfig
from .providers.base import LLMProvider, RetryPolicy
from .recovery import ItineraryGenerator

logger = logging.getLogger("itinerary-planner")


def create_providers(config: PlannerConfig) -> list[LLMProvider]:
    """Create every configured provider, alternate endpoint first.

    Providers missing their required settings are skipped; an empty list
    means generation falls back to the mock itinerary.
    """
    providers: list[LLMProvider] = []

    alt = config.alternate
    if alt.configured:
        from .providers.alternate import AlternateProvider

        providers.append(
            AlternateProvider(
                api_url=alt.api_url,
                api_key=alt.api_key,
                model=alt.model,
                api_key_header=alt.api_key_header,
                temperature=alt.temperature,
                max_tokens=alt.max_tokens,
                retry=RetryPolicy(
                    max_retries=alt.max_retries,
                    timeout=alt.timeout_seconds,
                    timeout_step=alt.timeout_step_seconds,
                    backoff_base=alt.backoff_base_seconds,
                ),
            )
        )
    elif alt.api_url or alt.api_key:
        logger.warning("Alternate provider needs both api_url and api_key; skipping it")

    oa = config.openai
    if oa.configured:
        from .providers.openai_compat import OpenAIProvider

        providers.append(
            OpenAIProvider(
                api_key=oa.api_key,
                model=oa.model,
                base_url=oa.base_url or None,
                temperature=oa.temperature,
                max_tokens=oa.max_tokens,
                retry=RetryPolicy(
                    max_retries=oa.max_retries,
                    timeout=oa.timeout_seconds,
                    timeout_step=oa.timeout_step_seconds,
                    backoff_base=oa.backoff_base_seconds,
                ),
            )
        )

    return providers


def create_generator(config: PlannerConfig) -> ItineraryGenerator:
    """Create the generator wired to every configured provider."""
    return ItineraryGenerator(
        create_providers(config),
        recovery_max_retries=config.generation.recovery_max_retries,
        log_preview_chars=config.generation.log_preview_chars,
    )
