"""Client-facing error messages for generation and configuration failures.

Maps provider and pipeline errors to short messages that are safe to send
to the browser: API keys are redacted and provider bodies are truncated.
Configuration errors are formatted for the terminal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .exceptions import (
    ConfigError,
    GenerationError,
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")
_SK_KEY_RE = re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}")


@dataclass
class FriendlyError:
    """A client-safe error with a fix suggestion."""

    title: str
    message: str
    fix: str


def redact(text: str, secrets: list[str] | tuple[str, ...] = (), limit: int = 300) -> str:
    """Strip API keys and bearer tokens from ``text`` and bound its length."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, "***")
    text = _BEARER_RE.sub(r"\1***", text)
    text = _SK_KEY_RE.sub("sk-***", text)
    if len(text) > limit:
        text = text[:limit] + "..."
    return text


def friendly_generation_error(
    error: Exception, secrets: list[str] | tuple[str, ...] = (), limit: int = 300
) -> FriendlyError:
    """Convert a generation failure to a client-safe message."""
    detail = redact(str(error), secrets, limit)
    cause = error.__cause__ if isinstance(error, GenerationError) else error

    if isinstance(cause, ProviderAuthError):
        return FriendlyError(
            title="LLM provider rejected the API key",
            message=detail,
            fix="Check the provider API key and key header in the server configuration.",
        )
    if isinstance(cause, ProviderRateLimitError):
        return FriendlyError(
            title="LLM provider is rate limiting requests",
            message=detail,
            fix="Wait a minute and try again, or check your provider quota.",
        )
    if isinstance(cause, ProviderTimeoutError):
        return FriendlyError(
            title="LLM provider timed out",
            message=detail,
            fix="The provider is slow right now. Try again, or raise timeout_seconds.",
        )
    if isinstance(cause, ProviderError):
        return FriendlyError(
            title="LLM provider error",
            message=detail,
            fix="Try again. If it persists, call /api/provider-check for diagnostics.",
        )
    return FriendlyError(
        title="Could not read the generated itinerary",
        message=detail,
        fix="Try again, or paste the model output into /api/generate-debug to see where parsing fails.",
    )


def friendly_config_error(error: ConfigError) -> FriendlyError:
    """Convert a configuration error to a message for the terminal."""
    msg = str(error).lower()

    if msg.startswith("invalid yaml"):
        return FriendlyError(
            title="Configuration file error",
            message="The configuration file is not valid YAML.",
            fix=(
                "Check ~/.itinerary-planner/config.yaml for syntax errors. "
                "Common issues:\n"
                "- Missing spaces after colons (use 'key: value' not 'key:value')\n"
                "- Incorrect indentation (use 2 spaces, not tabs)\n"
                "Run 'itinerary-planner status' after editing to validate it."
            ),
        )

    return FriendlyError(
        title="Configuration error",
        message=redact(str(error), limit=500),
        fix="Compare the file against the settings listed in README.md, or delete it to use environment variables.",
    )


def format_friendly_error(err: FriendlyError) -> str:
    """Format a FriendlyError for display in the terminal."""
    lines = [err.title, f"  {err.message}", "", "How to fix:"]
    for line in err.fix.split("\n"):
        lines.append(f"  {line}")
    return "\n".join(lines)
