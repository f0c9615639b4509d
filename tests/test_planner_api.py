"""Tests for the planner HTTP API."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp.test_utils import TestClient, TestServer

from itinerary_planner.api import create_planner_routes
from itinerary_planner.config import PlannerConfig
from itinerary_planner.exceptions import (
    GenerationError,
    ProviderAuthError,
    ProviderError,
)
from itinerary_planner.generation.recovery import GenerationResult, ItineraryGenerator
from itinerary_planner.store import PlannerStore

TRIP_BODY = {"destination": "Kyoto", "days": 3, "budget": 5000, "partySize": 2}
SECRET = "sk-live-abcdef1234567890"


def _mock_provider(reply: str = "pong", error: Exception | None = None) -> MagicMock:
    provider = MagicMock()
    provider.provider_name = "alternate"
    provider.model_name = "qwen-plus"
    provider.api_key = SECRET
    provider.close = AsyncMock()
    if error is not None:
        provider.complete = AsyncMock(side_effect=error)
    else:
        provider.complete = AsyncMock(return_value=reply)
    return provider


def _make_state(generator=None, store=None, config: PlannerConfig | None = None) -> dict:
    state: dict = {"config": config or PlannerConfig(), "generator": generator}
    if store is not None:
        state["store"] = store
    return state


@pytest.fixture
def store(tmp_path):
    return PlannerStore(str(tmp_path / "data.yaml"))


@pytest_asyncio.fixture
async def mock_client():
    """No provider configured: generation returns mock itineraries."""
    app = create_planner_routes(_make_state(generator=ItineraryGenerator()))
    async with TestClient(TestServer(app)) as client:
        yield client


@pytest_asyncio.fixture
async def store_client(store):
    app = create_planner_routes(_make_state(generator=ItineraryGenerator(), store=store))
    async with TestClient(TestServer(app)) as client:
        yield client


async def _client_for(state: dict) -> TestClient:
    client = TestClient(TestServer(create_planner_routes(state)))
    await client.start_server()
    return client


# ── Index ─────────────────────────────────────────────────────


class TestIndex:
    @pytest.mark.asyncio
    async def test_overview(self, mock_client):
        resp = await mock_client.get("/")
        assert resp.status == 200
        data = await resp.json()
        assert data["name"] == "itinerary-planner"
        assert "POST /api/generate" in data["endpoints"]
        assert data["providers"] == []

    @pytest.mark.asyncio
    async def test_cors_headers(self, mock_client):
        resp = await mock_client.get("/")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_options_preflight(self, mock_client):
        resp = await mock_client.options("/api/generate")
        assert resp.status == 200
        assert "POST" in resp.headers["Access-Control-Allow-Methods"]


# ── Generate ──────────────────────────────────────────────────


class TestGenerate:
    @pytest.mark.asyncio
    async def test_invalid_json_body(self, mock_client):
        resp = await mock_client.post(
            "/api/generate", data="not json", headers={"Content-Type": "application/json"}
        )
        assert resp.status == 400
        assert (await resp.json())["code"] == "invalid_json"

    @pytest.mark.asyncio
    async def test_validation_lists_every_problem(self, mock_client):
        resp = await mock_client.post(
            "/api/generate", json={"destination": " ", "days": 0, "partySize": 99}
        )
        assert resp.status == 400
        data = await resp.json()
        assert data["code"] == "validation_failed"
        assert "destination must not be empty" in data["details"]
        assert "days must be an integer between 1 and 30" in data["details"]
        assert "partySize must be an integer between 1 and 50" in data["details"]

    @pytest.mark.asyncio
    async def test_no_provider_returns_mock(self, mock_client):
        resp = await mock_client.post("/api/generate", json=TRIP_BODY)
        assert resp.status == 200
        data = await resp.json()
        assert len(data["itinerary"]) == 3
        assert data["summary"] == "3-day itinerary for Kyoto (mock data)"
        assert data["totalEstimatedCost"] == 650 * 3

    @pytest.mark.asyncio
    async def test_missing_generator_still_returns_mock(self):
        client = await _client_for(_make_state(generator=None))
        try:
            resp = await client.post("/api/generate", json=TRIP_BODY)
            assert resp.status == 200
            assert "(mock data)" in (await resp.json())["summary"]
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_returns_generated_itinerary(self):
        generator = MagicMock()
        generator.providers = []
        generator.close = AsyncMock()
        generator.generate = AsyncMock(
            return_value=GenerationResult({"summary": "Kyoto temples"}, provider="alternate")
        )
        client = await _client_for(_make_state(generator=generator))
        try:
            resp = await client.post("/api/generate", json=TRIP_BODY)
            assert resp.status == 200
            assert await resp.json() == {"summary": "Kyoto temples"}
            trip = generator.generate.call_args.args[0]
            assert trip.destination == "Kyoto"
            assert trip.party_size == 2
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_generation_failure_is_502_and_redacted(self):
        cause = ProviderAuthError(f"alternate error: 401 bad key {SECRET}", status_code=401)
        error = GenerationError(str(cause), provider="alternate")
        error.__cause__ = cause

        provider = _mock_provider()
        generator = MagicMock()
        generator.providers = [provider]
        generator.close = AsyncMock()
        generator.generate = AsyncMock(side_effect=error)

        client = await _client_for(_make_state(generator=generator))
        try:
            resp = await client.post("/api/generate", json=TRIP_BODY)
            assert resp.status == 502
            data = await resp.json()
            assert data["code"] == "generation_failed"
            assert data["message"] == "LLM provider rejected the API key"
            assert SECRET not in data["detail"]
            assert "***" in data["detail"]
            assert data["fix"]
        finally:
            await client.close()


# ── Debug endpoints ───────────────────────────────────────────


class TestGenerateDebug:
    @pytest.mark.asyncio
    async def test_missing_raw_text(self, mock_client):
        resp = await mock_client.post("/api/generate-debug", json={})
        assert resp.status == 400
        assert (await resp.json())["code"] == "missing_fields"

    @pytest.mark.asyncio
    async def test_reports_each_stage(self, mock_client):
        raw = 'Here you go:\n```json\n{"summary": "Kyoto",}\n```'
        resp = await mock_client.post("/api/generate-debug", json={"rawText": raw})
        assert resp.status == 200
        data = await resp.json()
        assert data["rawPreview"] == raw
        assert "```" not in data["sanitizedPreview"]
        assert data["extractedFromRaw"] == '{"summary": "Kyoto",}'
        assert data["extractedFromSanitized"] == '{"summary": "Kyoto"}'
        assert data["parsedSanitized"] == {"ok": True, "preview": {"summary": "Kyoto"}}
        assert data["parsedRaw"]["ok"] is True
        assert data["likelyTruncated"] is True

    @pytest.mark.asyncio
    async def test_truncated_input(self, mock_client):
        raw = '{"itinerary": [{"day": 1,'
        resp = await mock_client.post("/api/generate-debug", json={"rawText": raw})
        data = await resp.json()
        assert data["extractedFromRaw"] is None
        assert data["likelyTruncated"] is True

    @pytest.mark.asyncio
    async def test_previews_are_bounded(self):
        config = PlannerConfig()
        config.generation.debug_preview_chars = 10
        client = await _client_for(_make_state(config=config))
        try:
            resp = await client.post("/api/generate-debug", json={"rawText": "x" * 50})
            data = await resp.json()
            assert data["rawPreview"] == "x" * 10 + "...<truncated>"
        finally:
            await client.close()


class TestDebugEnv:
    @pytest.mark.asyncio
    async def test_reports_flags_without_secrets(self, store):
        config = PlannerConfig()
        config.openai.api_key = SECRET
        client = await _client_for(_make_state(config=config, store=store))
        try:
            resp = await client.get("/api/debug-env")
            text = await resp.text()
            assert SECRET not in text
            assert await resp.json() == {
                "hasOpenAI": True,
                "hasAlternate": False,
                "hasStorage": True,
            }
        finally:
            await client.close()


class TestProviderCheck:
    @pytest.mark.asyncio
    async def test_no_provider(self, mock_client):
        resp = await mock_client.get("/api/provider-check")
        assert resp.status == 400
        assert (await resp.json())["ok"] is False

    @pytest.mark.asyncio
    async def test_ok(self):
        provider = _mock_provider(reply="pong")
        client = await _client_for(_make_state(generator=ItineraryGenerator([provider])))
        try:
            resp = await client.get("/api/provider-check")
            assert resp.status == 200
            data = await resp.json()
            assert data["ok"] is True
            assert data["info"]["provider"] == "alternate"
            assert data["info"]["bodyPreview"] == "pong"
            assert data["info"]["latency_ms"] >= 0
            provider.complete.assert_awaited_once_with("ping", max_retries=0)
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_error_is_redacted(self):
        provider = _mock_provider(
            error=ProviderError(f"alternate error: 500 key={SECRET}", status_code=500)
        )
        client = await _client_for(_make_state(generator=ItineraryGenerator([provider])))
        try:
            resp = await client.get("/api/provider-check")
            assert resp.status == 500
            data = await resp.json()
            assert data["ok"] is False
            assert data["name"] == "ProviderError"
            assert data["status"] == 500
            assert SECRET not in data["error"]
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_timeout(self, monkeypatch):
        import itinerary_planner.api as api_module

        async def slow(prompt, max_retries=None):
            await asyncio.sleep(5)

        provider = _mock_provider()
        provider.complete = slow
        monkeypatch.setattr(api_module, "PROVIDER_CHECK_TIMEOUT", 0.05)
        client = await _client_for(_make_state(generator=ItineraryGenerator([provider])))
        try:
            resp = await client.get("/api/provider-check")
            assert resp.status == 500
            assert (await resp.json())["name"] == "TimeoutError"
        finally:
            await client.close()


# ── Persistence ───────────────────────────────────────────────


class TestSave:
    @pytest.mark.asyncio
    async def test_requires_itinerary(self, store_client):
        resp = await store_client.post("/api/save", json={"title": "x"})
        assert resp.status == 400
        assert (await resp.json())["code"] == "missing_fields"

    @pytest.mark.asyncio
    async def test_save_then_list(self, store_client, store):
        itinerary = {"itinerary": [{"day": 1, "activities": []}], "summary": "Kyoto"}
        resp = await store_client.post(
            "/api/save", json={"itinerary": itinerary, "title": "Kyoto trip", "summary": "Temples"}
        )
        assert resp.status == 200
        saved = (await resp.json())["data"][0]
        assert saved["id"].startswith("it_")
        assert saved["title"] == "Kyoto trip"
        assert len(store.load_itineraries()) == 1

        resp = await store_client.get("/api/itineraries")
        data = (await resp.json())["data"]
        assert len(data) == 1
        assert data[0]["itinerary"] == itinerary

    @pytest.mark.asyncio
    async def test_without_store_acknowledges(self, mock_client):
        resp = await mock_client.post("/api/save", json={"itinerary": {"summary": "x"}})
        assert resp.status == 200
        assert await resp.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_list_without_store_is_empty(self, mock_client):
        resp = await mock_client.get("/api/itineraries")
        assert await resp.json() == {"ok": True, "data": []}


class TestExpenses:
    @pytest.mark.asyncio
    async def test_requires_amount_and_category(self, store_client):
        resp = await store_client.post("/api/expenses", json={"amount": 12})
        assert resp.status == 400
        assert (await resp.json())["code"] == "missing_fields"

    @pytest.mark.asyncio
    async def test_rejects_non_numeric_amount(self, store_client):
        resp = await store_client.post("/api/expenses", json={"amount": "lots", "category": "food"})
        assert resp.status == 400
        assert (await resp.json())["code"] == "invalid_amount"

    @pytest.mark.asyncio
    async def test_add_then_list_newest_first(self, store_client):
        await store_client.post(
            "/api/expenses",
            json={"amount": 30, "category": "food", "date": "2026-05-01T12:00:00+00:00"},
        )
        await store_client.post(
            "/api/expenses",
            json={"amount": "45.5", "category": "transport", "note": "taxi",
                  "date": "2026-05-02T09:00:00+00:00"},
        )
        resp = await store_client.get("/api/expenses")
        data = (await resp.json())["data"]
        assert [e["category"] for e in data] == ["transport", "food"]
        assert data[0]["amount"] == 45.5
        assert data[0]["note"] == "taxi"


# ── Auth ──────────────────────────────────────────────────────


class TestAuth:
    @pytest_asyncio.fixture
    async def auth_client(self):
        config = PlannerConfig()
        config.server.auth_token = "secret-token"
        app = create_planner_routes(_make_state(generator=ItineraryGenerator(), config=config))
        async with TestClient(TestServer(app)) as client:
            yield client

    @pytest.mark.asyncio
    async def test_rejects_missing_token(self, auth_client):
        resp = await auth_client.post("/api/generate", json=TRIP_BODY)
        assert resp.status == 401
        assert (await resp.json())["code"] == "unauthorized"

    @pytest.mark.asyncio
    async def test_accepts_bearer_token(self, auth_client):
        resp = await auth_client.post(
            "/api/generate", json=TRIP_BODY, headers={"Authorization": "Bearer secret-token"}
        )
        assert resp.status == 200

    @pytest.mark.asyncio
    async def test_index_is_public(self, auth_client):
        resp = await auth_client.get("/")
        assert resp.status == 200
