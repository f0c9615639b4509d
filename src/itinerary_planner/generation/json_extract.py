"""Tolerant JSON extraction from free-form LLM output.

The parser shares a 4-stage fallback:
  1. Strict parse of the raw text
  2. Strict parse of the sanitized text (fences, smart quotes, control
     characters, trailing commas, raw newlines inside strings)
  3. Strict parse of the first balanced { } span of the sanitized text
  4. JSON5 parse (single quotes, trailing commas, comments, unquoted
     keys). JSON5 never closes an unterminated structure, so truncated
     output still fails here

Nothing here performs I/O or raises past ``parse_tolerant``; the recovery
orchestrator decides what to do with a failed outcome.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

import json5

logger = logging.getLogger("itinerary-planner")

_FENCE_RE = re.compile(r"```\s*json|```", re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]+")
_TRAILING_COMMA_RE = re.compile(r",\s*(?=[}\]])")
# A double-quoted span, including escaped characters and raw newlines.
_STRING_SPAN_RE = re.compile(r'"([^"\\]*(\\[\s\S][^"\\]*)*)"')
_NEWLINE_RE = re.compile(r"\r?\n")


@dataclass(frozen=True)
class ParseOutcome:
    """Result of ``parse_tolerant``: either a value or a failure reason."""

    ok: bool
    value: Any = None
    error: str = ""

    @classmethod
    def success(cls, value: Any) -> ParseOutcome:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> ParseOutcome:
        return cls(ok=False, error=reason or "parse failed")

    def to_dict(self) -> dict:
        if self.ok:
            return {"ok": True, "preview": self.value}
        return {"ok": False, "error": self.error}


def strip_control_chars(text: str) -> str:
    """Drop non-printable control characters, keeping tab/CR/LF."""
    return _CONTROL_CHARS_RE.sub("", text)


def escape_newlines_in_strings(text: str) -> str:
    """Replace literal newlines inside double-quoted spans with ``\\n``.

    Best-effort: quote pairing is positional, so an unbalanced quote shifts
    every later span. If the regex engine gives up on an input the text is
    returned unchanged.
    """
    try:
        return _STRING_SPAN_RE.sub(
            lambda m: _NEWLINE_RE.sub(r"\\n", m.group(0)), text
        )
    except (re.error, RecursionError) as e:
        logger.debug("Newline escaping skipped: %s", e)
        return text


def sanitize(text: str, escape_newlines: bool = True) -> str:
    """Normalize raw model output into something ``json.loads`` accepts more often."""
    t = _FENCE_RE.sub("", text).strip()
    t = t.replace("“", '"').replace("”", '"')
    t = t.replace("‘", "'").replace("’", "'")
    t = strip_control_chars(t)
    t = _TRAILING_COMMA_RE.sub("", t)
    if escape_newlines:
        t = escape_newlines_in_strings(t)
    return t


def extract_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` span of ``text``, or None.

    Braces are counted without regard to string literals, so a ``{`` or
    ``}`` inside a JSON string value can move the split point. None also
    means the object never closed, which callers read as likely truncation.
    """
    if not text:
        return None
    first = text.find("{")
    if first == -1:
        return None
    depth = 0
    for i in range(first, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if depth == 0:
            return text[first : i + 1]
    return None


def is_likely_truncated(text: str) -> bool:
    """Heuristic: does this look like output cut off before the JSON closed?"""
    if not text:
        return False
    if text.count("{") > text.count("}"):
        return True
    trimmed = text.strip()
    if trimmed.endswith((",", "[")):
        return True
    # Whitespace-only text counts: it does not end in a closing brace
    return not trimmed.endswith("}")


def _permissive_loads(text: str) -> Any:
    """Parse as JSON5; only objects and arrays count as a result."""
    value = json5.loads(text)
    if isinstance(value, (dict, list)):
        return value
    raise ValueError("permissive parse found no JSON object or array")


def parse_tolerant(raw: str) -> ParseOutcome:
    """Parse LLM output into JSON, trying progressively looser strategies."""
    if not raw or not raw.strip():
        return ParseOutcome.failure("empty input")

    # Strategy 1: Direct parse
    try:
        return ParseOutcome.success(json.loads(raw))
    except json.JSONDecodeError as e:
        last_error = str(e)

    # Strategy 2: Sanitized parse
    cleaned = sanitize(raw)
    try:
        return ParseOutcome.success(json.loads(cleaned))
    except json.JSONDecodeError as e:
        last_error = str(e)

    # Strategy 3: Balanced { } span of the sanitized text
    candidate = extract_balanced_object(cleaned)
    if candidate is not None:
        try:
            return ParseOutcome.success(json.loads(candidate))
        except json.JSONDecodeError as e:
            last_error = str(e)

    # Strategy 4: Permissive parse as a last resort
    try:
        return ParseOutcome.success(_permissive_loads(strip_control_chars(cleaned)))
    except (ValueError, TypeError, RecursionError) as e:
        last_error = str(e)

    return ParseOutcome.failure(last_error)
