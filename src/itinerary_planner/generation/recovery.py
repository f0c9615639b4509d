"""Itinerary generation — orchestrates LLM calls and JSON recovery.

Per provider the pipeline is:

  generate → extract balanced object → tolerant parse
           └─ on failure, at most one recovery hop:
                completion (output started a JSON object and looks truncated)
                reformat   (no JSON object found at all)
              → tolerant parse of the recovered text

If the preferred provider's whole pipeline fails, the next configured
provider runs it once more. With no provider configured, the caller gets the
deterministic mock itinerary.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..exceptions import GenerationError, ProviderError
from ..models import TripRequest
from .json_extract import (
    ParseOutcome,
    extract_balanced_object,
    is_likely_truncated,
    parse_tolerant,
)
from .mock import build_mock_itinerary
from .prompts import (
    build_completion_prompt,
    build_itinerary_prompt,
    build_reformat_prompt,
)
from .providers.base import LLMProvider

logger = logging.getLogger("itinerary-planner")


class RecoveryStrategy(str, Enum):
    NONE = "none"
    REFORMAT = "reformat"
    COMPLETION = "completion"


def choose_recovery(raw_output: str, candidate: str | None) -> RecoveryStrategy:
    """Pick the recovery hop for output that did not parse.

    Completion when a JSON object was started and the text looks cut off;
    reformat when no object was found; otherwise the failure is terminal.
    """
    if "{" in raw_output and is_likely_truncated(raw_output):
        return RecoveryStrategy.COMPLETION
    if candidate is None:
        return RecoveryStrategy.REFORMAT
    return RecoveryStrategy.NONE


@dataclass
class GenerationResult:
    """A parsed itinerary plus how it was obtained."""

    itinerary: Any
    provider: str
    model: str = ""
    recovery: RecoveryStrategy = RecoveryStrategy.NONE
    mock: bool = False


class ItineraryGenerator:
    """Multi-provider itinerary generation with bounded JSON recovery."""

    def __init__(
        self,
        providers: list[LLMProvider] | None = None,
        recovery_max_retries: int = 2,
        log_preview_chars: int = 2000,
    ):
        self._providers = list(providers or [])
        self._recovery_max_retries = recovery_max_retries
        self._log_preview_chars = log_preview_chars

    @property
    def providers(self) -> list[LLMProvider]:
        return list(self._providers)

    @property
    def has_provider(self) -> bool:
        return bool(self._providers)

    @property
    def provider_info(self) -> list[dict]:
        return [
            {"provider": p.provider_name, "model": p.model_name}
            for p in self._providers
        ]

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()

    async def generate(self, trip: TripRequest) -> GenerationResult:
        """Produce an itinerary for ``trip``.

        Raises GenerationError when every configured provider failed.
        """
        if not self._providers:
            logger.info("No LLM provider configured, returning mock itinerary")
            return GenerationResult(
                itinerary=build_mock_itinerary(trip), provider="mock", mock=True
            )

        prompt = build_itinerary_prompt(trip)
        last_error: GenerationError | None = None
        for provider in self._providers:
            try:
                return await self.run_pipeline(provider, prompt)
            except GenerationError as e:
                logger.error("%s generation failed: %s", provider.provider_name, e.reason)
                last_error = e

        if last_error is None:
            raise GenerationError("no provider produced an itinerary")
        raise last_error

    async def run_pipeline(self, provider: LLMProvider, prompt: str) -> GenerationResult:
        """Generate, extract, parse, and recover once against one provider."""
        name = provider.provider_name
        try:
            content = await provider.complete(prompt)
        except ProviderError as e:
            raise GenerationError(str(e), provider=name) from e

        candidate = extract_balanced_object(content)
        if candidate is not None:
            outcome = parse_tolerant(candidate)
            if outcome.ok:
                return GenerationResult(outcome.value, provider=name, model=provider.model_name)
            self._log_unparseable(name, candidate, outcome)

        strategy = choose_recovery(content, candidate)
        if strategy is RecoveryStrategy.NONE:
            raise GenerationError(f"{name} output JSON could not be parsed", provider=name)

        outcome = await self.recover(provider, strategy, content, prompt)
        if not outcome.ok:
            raise GenerationError(
                f"{name} output could not be recovered ({strategy.value}): {outcome.error}",
                provider=name,
            )
        return GenerationResult(
            outcome.value, provider=name, model=provider.model_name, recovery=strategy
        )

    async def recover(
        self,
        provider: LLMProvider,
        strategy: RecoveryStrategy,
        raw_output: str,
        original_prompt: str,
    ) -> ParseOutcome:
        """Run one recovery hop and parse its output. Never recurses."""
        if strategy is RecoveryStrategy.COMPLETION:
            logger.warning("%s: output looks truncated, asking for completion", provider.provider_name)
            prompt = build_completion_prompt(raw_output, original_prompt)
        else:
            logger.warning("%s: no JSON object in output, asking for a reformat", provider.provider_name)
            prompt = build_reformat_prompt(raw_output)

        try:
            recovered = await provider.complete(prompt, max_retries=self._recovery_max_retries)
        except ProviderError as e:
            logger.error("%s recovery call failed: %s", provider.provider_name, e)
            return ParseOutcome.failure(f"recovery call failed: {e}")

        outcome = parse_tolerant(recovered)
        if not outcome.ok:
            self._log_unparseable(provider.provider_name, recovered, outcome)
        return outcome

    def _log_unparseable(self, name: str, text: str, outcome: ParseOutcome) -> None:
        logger.error(
            "%s: JSON parse failed (%s), snippet length=%d", name, outcome.error, len(text)
        )
        logger.debug("%s: snippet preview: %s", name, text[: self._log_preview_chars])
