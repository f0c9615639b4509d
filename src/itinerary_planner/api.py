"""HTTP API — itinerary generation, debugging, and persistence.

Endpoints:
    GET  /                    → API overview
    POST /api/generate        → Generate an itinerary from trip parameters
    POST /api/generate-debug  → Show sanitizer/extractor/parser intermediates
    GET  /api/debug-env       → Which providers/storage are configured (no secrets)
    GET  /api/provider-check  → Ping the preferred provider
    POST /api/save            → Save an itinerary
    GET  /api/itineraries     → Recently saved itineraries
    GET  /api/expenses        → Recent expenses
    POST /api/expenses        → Record an expense
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any

from aiohttp import web

from .exceptions import GenerationError, ProviderError
from .friendly_errors import friendly_generation_error, redact
from .generation.json_extract import (
    extract_balanced_object,
    is_likely_truncated,
    parse_tolerant,
    sanitize,
)
from .generation.recovery import ItineraryGenerator
from .models import Expense, SavedItinerary, TripRequest

logger = logging.getLogger("itinerary-planner")

PROVIDER_CHECK_TIMEOUT = 10.0


def _json_error(status: int, code: str, message: str, **extra: Any) -> web.Response:
    """Consistent JSON error payload."""
    payload: dict[str, Any] = {"code": code, "message": message}
    payload.update(extra)
    return web.json_response(payload, status=status)


def _preview(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "...<truncated>"
    return text


def _safe_parse_json(value: Any) -> Any:
    """Stored itinerary text back to JSON; the raw string if it does not parse."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            logger.warning("Stored itinerary is not JSON, returning raw text: %s", value[:120])
            return value
    return value


def _provider_secrets(generator: ItineraryGenerator | None) -> list[str]:
    if generator is None:
        return []
    return [p.api_key for p in generator.providers if p.api_key]


async def _read_json_body(request: web.Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


def create_planner_routes(state: dict[str, Any]) -> web.Application:
    """Create aiohttp app with planner API routes.

    Args:
        state: Shared state dict. Contains ``config`` (PlannerConfig),
            ``generator`` (ItineraryGenerator) and optionally ``store``
            (PlannerStore); without a store, writes are acknowledged only.
    """
    routes = web.RouteTableDef()
    config = state.get("config")
    preview_chars = config.generation.debug_preview_chars if config else 20000
    detail_chars = config.generation.error_detail_chars if config else 300

    @routes.get("/")
    async def index(request: web.Request) -> web.Response:
        """API overview with configured providers and endpoints."""
        generator: ItineraryGenerator | None = state.get("generator")
        return web.json_response(
            {
                "name": "itinerary-planner",
                "description": "LLM travel itinerary API",
                "providers": generator.provider_info if generator else [],
                "storage": state.get("store") is not None,
                "endpoints": {
                    "POST /api/generate": "Generate an itinerary from trip parameters",
                    "POST /api/generate-debug": "Inspect JSON recovery on raw model text",
                    "GET /api/debug-env": "Configured providers/storage (no secrets)",
                    "GET /api/provider-check": "Ping the preferred LLM provider",
                    "POST /api/save": "Save an itinerary",
                    "GET /api/itineraries": "Recently saved itineraries",
                    "GET /api/expenses": "Recent expenses",
                    "POST /api/expenses": "Record an expense",
                },
            }
        )

    # ── Generation ─────────────────────────────────────

    @routes.post("/api/generate")
    async def generate(request: web.Request) -> web.Response:
        """Generate an itinerary.

        JSON body: {destination, days, budget?, partySize?, preferences?, transcript?}
        """
        body = await _read_json_body(request)
        if body is None:
            return _json_error(400, "invalid_json", "Request body must be a JSON object")

        trip, errors = TripRequest.from_body(body)
        if trip is None:
            return _json_error(
                400, "validation_failed", "Invalid trip parameters", details=errors
            )

        generator: ItineraryGenerator | None = state.get("generator")
        if generator is None:
            generator = ItineraryGenerator()

        try:
            result = await generator.generate(trip)
        except GenerationError as e:
            friendly = friendly_generation_error(e, _provider_secrets(generator), detail_chars)
            return _json_error(
                502,
                "generation_failed",
                friendly.title,
                detail=friendly.message,
                fix=friendly.fix,
            )

        logger.info(
            "Generated %d-day itinerary for %s via %s (recovery=%s)",
            trip.days,
            trip.destination,
            result.provider,
            result.recovery.value,
        )
        return web.json_response(result.itinerary)

    @routes.post("/api/generate-debug")
    async def generate_debug(request: web.Request) -> web.Response:
        """Run the recovery steps on raw model text and return each intermediate.

        JSON body: {rawText}
        """
        body = await _read_json_body(request)
        raw_text = str((body or {}).get("rawText") or "")
        if not raw_text:
            return _json_error(400, "missing_fields", "rawText is required in body")

        sanitized = sanitize(raw_text)
        return web.json_response(
            {
                "rawPreview": _preview(raw_text, preview_chars),
                "sanitizedPreview": _preview(sanitized, preview_chars),
                "extractedFromRaw": extract_balanced_object(raw_text),
                "extractedFromSanitized": extract_balanced_object(sanitized),
                "parsedRaw": parse_tolerant(raw_text).to_dict(),
                "parsedSanitized": parse_tolerant(sanitized).to_dict(),
                "likelyTruncated": is_likely_truncated(raw_text),
            }
        )

    @routes.get("/api/debug-env")
    async def debug_env(request: web.Request) -> web.Response:
        """Report which integrations are configured. Never returns secret values."""
        return web.json_response(
            {
                "hasOpenAI": bool(config and config.openai.configured),
                "hasAlternate": bool(config and config.alternate.configured),
                "hasStorage": state.get("store") is not None,
            }
        )

    @routes.get("/api/provider-check")
    async def provider_check(request: web.Request) -> web.Response:
        """Send a tiny prompt to the preferred provider and report the outcome."""
        generator: ItineraryGenerator | None = state.get("generator")
        if generator is None or not generator.has_provider:
            return web.json_response(
                {"ok": False, "reason": "No LLM provider configured"}, status=400
            )

        provider = generator.providers[0]
        info: dict[str, Any] = {
            "provider": provider.provider_name,
            "model": provider.model_name,
        }
        started = time.monotonic()
        try:
            reply = await asyncio.wait_for(
                provider.complete("ping", max_retries=0),
                timeout=PROVIDER_CHECK_TIMEOUT,
            )
        except asyncio.TimeoutError:
            info.update(error=f"timed out after {PROVIDER_CHECK_TIMEOUT:.0f}s", name="TimeoutError")
            return web.json_response({"ok": False, **info}, status=500)
        except ProviderError as e:
            info.update(
                error=redact(str(e), [provider.api_key], detail_chars),
                name=type(e).__name__,
            )
            if e.status_code is not None:
                info["status"] = e.status_code
            return web.json_response({"ok": False, **info}, status=500)

        info["latency_ms"] = int((time.monotonic() - started) * 1000)
        info["bodyPreview"] = redact(reply, [provider.api_key], 2000)
        return web.json_response({"ok": True, "info": info})

    # ── Persistence ────────────────────────────────────

    @routes.post("/api/save")
    async def save_itinerary(request: web.Request) -> web.Response:
        """Save an itinerary.

        JSON body: {itinerary, summary?, title?}
        """
        body = await _read_json_body(request)
        if body is None:
            return _json_error(400, "invalid_json", "Request body must be a JSON object")
        itinerary = body.get("itinerary")
        if not itinerary:
            return _json_error(400, "missing_fields", "itinerary is required")

        title = body.get("title")
        record = SavedItinerary(
            itinerary=json.dumps(itinerary, ensure_ascii=False),
            summary=body.get("summary") or None,
            title=title if isinstance(title, str) else None,
        )
        store = state.get("store")
        if store is None:
            logger.info("Saving itinerary (no storage configured): %s", record.title or record.id)
            return web.json_response({"ok": True})

        try:
            store.add_itinerary(record)
        except OSError as e:
            logger.error("Could not save itinerary: %s", e)
            return _json_error(500, "storage_error", str(e))
        return web.json_response({"ok": True, "data": [record.model_dump(mode="json")]})

    @routes.get("/api/itineraries")
    async def list_itineraries(request: web.Request) -> web.Response:
        """Most recent saved itineraries, itinerary text parsed back to JSON."""
        store = state.get("store")
        if store is None:
            return web.json_response({"ok": True, "data": []})
        data = []
        for record in store.recent_itineraries(limit=50):
            item = record.model_dump(mode="json")
            item["itinerary"] = _safe_parse_json(item["itinerary"])
            data.append(item)
        return web.json_response({"ok": True, "data": data})

    @routes.get("/api/expenses")
    async def list_expenses(request: web.Request) -> web.Response:
        """Most recent expenses."""
        store = state.get("store")
        if store is None:
            return web.json_response({"ok": True, "data": []})
        data = [e.model_dump(mode="json") for e in store.recent_expenses(limit=100)]
        return web.json_response({"ok": True, "data": data})

    @routes.post("/api/expenses")
    async def add_expense(request: web.Request) -> web.Response:
        """Record an expense.

        JSON body: {amount, category, note?, date?}
        """
        body = await _read_json_body(request)
        if body is None:
            return _json_error(400, "invalid_json", "Request body must be a JSON object")
        amount = body.get("amount")
        category = body.get("category")
        if not amount or not category:
            return _json_error(400, "missing_fields", "amount and category are required")

        try:
            kwargs: dict[str, Any] = {
                "amount": float(amount),
                "category": str(category),
                "note": body.get("note") or None,
            }
        except (TypeError, ValueError):
            return _json_error(400, "invalid_amount", "amount must be a number")
        if body.get("date"):
            kwargs["created_at"] = str(body["date"])
        record = Expense(**kwargs)

        store = state.get("store")
        if store is None:
            logger.info("Recording expense (no storage configured): %s %s", record.amount, record.category)
            return web.json_response({"ok": True})

        try:
            store.add_expense(record)
        except OSError as e:
            logger.error("Could not save expense: %s", e)
            return _json_error(500, "storage_error", str(e))
        return web.json_response({"ok": True, "data": [record.model_dump(mode="json")]})

    # ── Auth middleware ─────────────────────────────────
    auth_token = (config.server.auth_token if config else "") or ""

    @web.middleware
    async def auth_middleware(
        request: web.Request,
        handler: Any,
    ) -> web.Response:
        """Optional bearer token authentication."""
        if not auth_token or request.method == "OPTIONS" or request.path == "/":
            return await handler(request)
        auth_header = request.headers.get("Authorization", "")
        if auth_header == f"Bearer {auth_token}":
            return await handler(request)
        return _json_error(401, "unauthorized", "Invalid or missing auth token")

    # ── CORS middleware ──────────────────────────────────
    @web.middleware
    async def cors_middleware(
        request: web.Request,
        handler: Any,
    ) -> web.Response:
        """Allow any origin; the trip form may be served from elsewhere."""
        if request.method == "OPTIONS":
            resp = web.Response()
        else:
            resp = await handler(request)
        resp.headers["Access-Control-Allow-Origin"] = "*"
        resp.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        resp.headers["Access-Control-Allow-Headers"] = "*, Authorization"
        return resp

    async def _close_generator(app: web.Application) -> None:
        generator = state.get("generator")
        if generator is not None:
            await generator.close()

    app = web.Application(middlewares=[cors_middleware, auth_middleware])
    app.add_routes(routes)
    app.on_cleanup.append(_close_generator)
    return app
