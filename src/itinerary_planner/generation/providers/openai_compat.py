"""OpenAI chat-completions provider.

The default commercial provider. Uses the OpenAI SDK with its own retries
disabled so the shared retry loop in ``LLMProvider.complete`` owns the
attempt budget and deadlines.
"""

from __future__ import annotations

from .base import LLMProvider, RetryPolicy, SleepFunc, error_for_status
from ...exceptions import ProviderError, ProviderTimeoutError


class OpenAIProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        base_url: str | None = None,
        temperature: float = 0.6,
        max_tokens: int = 1500,
        retry: RetryPolicy | None = None,
        sleep: SleepFunc | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ImportError(
                "OpenAI SDK not installed. Run: pip install itinerary-planner"
            )
        kwargs: dict = {"api_key": api_key, "max_retries": 0}
        if base_url:
            kwargs["base_url"] = base_url
        self._client = AsyncOpenAI(**kwargs)
        self._api_key = api_key
        self._model = model
        self._base_url = base_url
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def _request(self, prompt: str, timeout: float) -> str:
        import openai

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise ProviderTimeoutError(f"OpenAI request timed out: {e}") from e
        except openai.APIStatusError as e:
            raise error_for_status("OpenAI", e.status_code, str(e)) from e
        except openai.APIError as e:
            raise ProviderError(f"OpenAI error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            # Refusals and length-0 completions come back as None/""
            raise ProviderError("OpenAI returned empty content")
        return content

    async def close(self) -> None:
        await self._client.close()

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def provider_name(self) -> str:
        if self._base_url:
            return f"openai-compatible ({self._base_url})"
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model
