"""Alternate OpenAI-compatible provider over raw HTTP.

Covers endpoints that speak roughly the OpenAI chat format but disagree on
details: DashScope, self-hosted gateways, proxies. Two accommodations:

- The API key header is configurable. ``Authorization`` gets a Bearer
  token; any other header name carries the raw key.
- When the endpoint answers 400 "required body invalid", the same attempt
  is retried with alternative request bodies before it counts as failed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from .base import LLMProvider, RetryPolicy, SleepFunc, error_for_status
from .response_text import extract_response_text
from ...exceptions import ProviderError

logger = logging.getLogger("itinerary-planner")

INVALID_BODY_MARKER = "required body invalid"


def alternative_bodies(model: str, prompt: str) -> list[dict[str, Any]]:
    """Request shapes tried, in order, after an invalid-body rejection."""
    return [
        {"model": model, "prompt": prompt},
        {"model": model, "input": prompt},
        {
            "model": model,
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]}
            ],
        },
        {
            "model": model,
            "messages": [{"role": "user", "content": {"type": "text", "text": prompt}}],
        },
    ]


class AlternateProvider(LLMProvider):
    """Chat completions against any configured URL with a configurable key header."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        model: str = "gpt-3.5-turbo",
        api_key_header: str = "Authorization",
        temperature: float = 0.6,
        max_tokens: int = 1500,
        retry: RetryPolicy | None = None,
        sleep: SleepFunc | None = None,
    ):
        super().__init__(retry=retry, sleep=sleep)
        self._api_url = api_url
        self._api_key = api_key
        self._api_key_header = api_key_header or "Authorization"
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key_header == "Authorization":
            headers["Authorization"] = f"Bearer {self._api_key}"
        else:
            headers[self._api_key_header] = self._api_key
        return headers

    def _build_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }

    @staticmethod
    async def _read_content(resp: aiohttp.ClientResponse) -> str:
        """JSON bodies go through response-shape probing; anything else is text."""
        if "application/json" in resp.headers.get("Content-Type", ""):
            data = await resp.json(content_type=None)
            return extract_response_text(data)
        return await resp.text()

    async def _post(self, body: dict[str, Any], timeout: float) -> tuple[int, str]:
        """POST ``body``; return (status, text) where text is the content on 2xx."""
        session = self._get_session()
        async with session.post(
            self._api_url,
            json=body,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=timeout),
        ) as resp:
            if resp.status >= 400:
                return resp.status, await resp.text()
            return resp.status, await self._read_content(resp)

    async def _try_alternative_bodies(self, prompt: str, timeout: float) -> str | None:
        for body in alternative_bodies(self._model, prompt):
            shape = ",".join(k for k in body if k != "model")
            try:
                status, text = await self._post(body, timeout)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                # ValueError: JSON content type with a body that did not decode
                logger.debug("Alternative body (%s) failed: %s", shape, e)
                continue
            if status >= 400:
                logger.debug("Alternative body (%s) rejected: HTTP %d", shape, status)
                continue
            logger.info("%s accepted alternative request body (%s)", self.provider_name, shape)
            return text
        return None

    async def _request(self, prompt: str, timeout: float) -> str:
        try:
            status, text = await self._post(self._build_body(prompt), timeout)
            if status == 400 and INVALID_BODY_MARKER in text.lower():
                logger.info(
                    "%s rejected the chat body, trying alternative shapes",
                    self.provider_name,
                )
                alt = await self._try_alternative_bodies(prompt, timeout)
                if alt is not None:
                    return alt
        except aiohttp.ClientError as e:
            raise ProviderError(f"{self.provider_name} connection error: {e}") from e
        except ValueError as e:
            # Content-Type said JSON but the body did not decode
            raise ProviderError(f"{self.provider_name} returned malformed JSON: {e}") from e

        if status >= 400:
            raise error_for_status(self.provider_name, status, text[:500])
        if not text.strip():
            raise ProviderError(f"{self.provider_name} returned empty content")
        return text

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session:
            await self._session.close()
            self._session = None

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def provider_name(self) -> str:
        return "alternate"

    @property
    def model_name(self) -> str:
        return self._model
