"""LLM provider abstraction — all chat-completion providers implement this interface."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

from ...exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

logger = logging.getLogger("itinerary-planner")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget, deadlines and backoff for one ``complete`` call.

    ``max_retries`` counts retries, so a call makes ``max_retries + 1``
    attempts at most.
    """

    max_retries: int = 2
    timeout: float = 15.0
    timeout_step: float = 0.0
    backoff_base: float = 0.5

    def timeout_for(self, attempt: int) -> float:
        return self.timeout + attempt * self.timeout_step

    def delay_for(self, attempt: int) -> float:
        return self.backoff_base * (2**attempt)

    def with_retries(self, max_retries: int) -> RetryPolicy:
        return RetryPolicy(
            max_retries=max_retries,
            timeout=self.timeout,
            timeout_step=self.timeout_step,
            backoff_base=self.backoff_base,
        )


def error_for_status(provider: str, status: int, body: str) -> ProviderError:
    """Map a non-2xx HTTP status to the matching ProviderError subclass."""
    message = f"{provider} error: {status} {body}".strip()
    if status in (401, 403):
        return ProviderAuthError(message, status_code=status)
    if status == 429:
        return ProviderRateLimitError(message, status_code=status)
    return ProviderError(message, status_code=status)


class LLMProvider(ABC):
    """Abstract chat-completion provider with a shared retry loop.

    Subclasses implement ``_request`` for a single attempt; ``complete``
    wraps it with the per-attempt deadline and exponential backoff.
    """

    def __init__(self, retry: RetryPolicy | None = None, sleep: SleepFunc | None = None):
        self._retry = retry or RetryPolicy()
        self._sleep = sleep or asyncio.sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry

    @abstractmethod
    async def _request(self, prompt: str, timeout: float) -> str:
        """Send one chat-completion request and return the text content."""
        ...

    async def complete(self, prompt: str, max_retries: int | None = None) -> str:
        """Send ``prompt`` and return the model's text, retrying on failure.

        Raises the last ProviderError once the attempt budget is spent.
        """
        policy = self._retry if max_retries is None else self._retry.with_retries(max_retries)
        last_error: ProviderError | None = None

        for attempt in range(policy.max_retries + 1):
            timeout = policy.timeout_for(attempt)
            try:
                return await asyncio.wait_for(
                    self._request(prompt, timeout), timeout=timeout
                )
            except asyncio.TimeoutError:
                last_error = ProviderTimeoutError(
                    f"{self.provider_name} request timed out after {timeout:.0f}s "
                    f"(attempt {attempt + 1})"
                )
            except ProviderError as e:
                last_error = e

            if attempt < policy.max_retries:
                delay = policy.delay_for(attempt)
                logger.warning(
                    "%s attempt %d/%d failed (%s), retrying in %.1fs",
                    self.provider_name,
                    attempt + 1,
                    policy.max_retries + 1,
                    last_error,
                    delay,
                )
                await self._sleep(delay)

        if last_error is None:
            raise ProviderError(f"{self.provider_name}: no attempts were made")
        raise last_error

    async def close(self) -> None:
        """Release network resources. Override in subclasses that hold sessions."""

    @property
    def api_key(self) -> str:
        """Secret used by this provider, for redaction in error messages."""
        return ""

    @property
    @abstractmethod
    def provider_name(self) -> str: ...

    @property
    @abstractmethod
    def model_name(self) -> str: ...
