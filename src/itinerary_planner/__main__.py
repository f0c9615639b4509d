"""CLI entry point for itinerary-planner."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import click

from . import __version__


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_state(config_path: str | None) -> dict:
    """Config, generator and store, constructed once per process.

    Exits with status 1 when the config file cannot be loaded.
    """
    from .config import load_config
    from .exceptions import ConfigError
    from .friendly_errors import format_friendly_error, friendly_config_error
    from .generation.factory import create_generator
    from .store import PlannerStore

    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(format_friendly_error(friendly_config_error(e)), err=True)
        raise SystemExit(1)
    state: dict = {"config": config, "generator": create_generator(config)}
    if config.storage.enabled:
        state["store"] = PlannerStore(config.storage.data_file)
    return state


# ── CLI Commands ─────────────────────────────────────────


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="itinerary-planner")
@click.option("--config", "config_path", default=None, help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """itinerary-planner — LLM travel itineraries over HTTP."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@main.command()
@click.option("--host", default=None, help="Override bind host")
@click.option("--port", default=None, type=int, help="Override HTTP port")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None) -> None:
    """Run the HTTP API."""
    from aiohttp import web

    from .api import create_planner_routes

    state = _build_state(ctx.obj.get("config_path"))
    config = state["config"]
    if host:
        config.server.host = host
    if port:
        config.server.port = port

    providers = state["generator"].provider_info
    if providers:
        for info in providers:
            click.echo(f"LLM provider: {info['provider']} / {info['model']}")
    else:
        click.echo("LLM provider: none (mock itineraries)")

    app = create_planner_routes(state)
    web.run_app(app, host=config.server.host, port=config.server.port)


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show configuration without revealing secrets."""
    from .config import DEFAULT_CONFIG_PATH

    config_path = ctx.obj.get("config_path")
    state = _build_state(config_path)
    config = state["config"]

    click.echo("itinerary-planner status")
    click.echo("=" * 40)
    config_file = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
    if config_file.exists():
        click.echo(f"Config:    {config_file}")
    else:
        click.echo("Config:    environment variables / defaults")

    click.echo(f"Alternate: {'configured' if config.alternate.configured else 'not configured'}")
    click.echo(f"OpenAI:    {'configured' if config.openai.configured else 'not configured'}")
    if not state["generator"].has_provider:
        click.echo("           (no provider: /api/generate returns mock itineraries)")
    store = state.get("store")
    click.echo(f"Storage:   {store.path if store else 'disabled'}")
    click.echo(f"Listen:    http://{config.server.host}:{config.server.port}")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def parse(path: str) -> None:
    """Run JSON recovery on a saved model output and print each stage."""
    from .generation.json_extract import (
        extract_balanced_object,
        is_likely_truncated,
        parse_tolerant,
        sanitize,
    )

    raw = Path(path).read_text(encoding="utf-8")
    sanitized = sanitize(raw)
    candidate = extract_balanced_object(sanitized)
    outcome = parse_tolerant(raw)

    click.echo(f"Length:          {len(raw)}")
    click.echo(f"Likely truncated: {is_likely_truncated(raw)}")
    click.echo(f"Candidate:       {'found' if candidate else 'none'}")
    if outcome.ok:
        click.echo("Parsed:          ok")
        click.echo(json.dumps(outcome.value, ensure_ascii=False, indent=2))
    else:
        click.echo(f"Parsed:          failed ({outcome.error})", err=True)
        raise SystemExit(1)


@main.command()
@click.option("--destination", required=True, help="Where to go")
@click.option("--days", required=True, type=int, help="Trip length in days")
@click.option("--budget", default=None, type=float, help="Total budget")
@click.option("--party-size", default=1, type=int, help="Number of travellers")
@click.option("--preferences", default="", help="Free-text preferences")
@click.pass_context
def generate(
    ctx: click.Context,
    destination: str,
    days: int,
    budget: float | None,
    party_size: int,
    preferences: str,
) -> None:
    """Generate one itinerary and print it as JSON."""
    from .exceptions import GenerationError
    from .models import TripRequest

    trip, errors = TripRequest.from_body(
        {
            "destination": destination,
            "days": days,
            "budget": budget,
            "partySize": party_size,
            "preferences": preferences,
        }
    )
    if trip is None:
        for err in errors:
            click.echo(f"Invalid input: {err}", err=True)
        raise SystemExit(2)

    generator = _build_state(ctx.obj.get("config_path"))["generator"]

    async def _run() -> dict:
        try:
            result = await generator.generate(trip)
        finally:
            await generator.close()
        return result.itinerary

    try:
        itinerary = asyncio.run(_run())
    except GenerationError as e:
        click.echo(f"Generation failed: {e.reason}", err=True)
        raise SystemExit(1)
    click.echo(json.dumps(itinerary, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
