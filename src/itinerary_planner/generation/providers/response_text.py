"""Pull the generated text out of a provider response of unknown shape.

Providers disagree on where the completion lives. Each extractor below
looks in one known location; the first non-empty string wins.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Optional

TextExtractor = Callable[[Any], Optional[str]]


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _choice_message_content(data: Any) -> str | None:
    """OpenAI chat: choices[0].message.content"""
    if not isinstance(data, dict):
        return None
    choice = _first(data.get("choices"))
    if not isinstance(choice, dict):
        return None
    message = choice.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
    return None


def _choice_text(data: Any) -> str | None:
    """Legacy completions: choices[0].text"""
    if not isinstance(data, dict):
        return None
    choice = _first(data.get("choices"))
    if isinstance(choice, dict) and isinstance(choice.get("text"), str):
        return choice["text"]
    return None


def _data_text(data: Any) -> str | None:
    """data[0].text"""
    if not isinstance(data, dict):
        return None
    item = _first(data.get("data"))
    if isinstance(item, dict) and isinstance(item.get("text"), str):
        return item["text"]
    return None


RESPONSE_TEXT_EXTRACTORS: tuple[TextExtractor, ...] = (
    _choice_message_content,
    _choice_text,
    _data_text,
)


def extract_response_text(data: Any) -> str:
    """Return the completion text from a decoded JSON response body.

    A bare string body is returned as-is. When no known location holds
    text the whole response is serialized, so callers still get something
    to run through the tolerant parser.
    """
    if isinstance(data, str):
        return data
    for extractor in RESPONSE_TEXT_EXTRACTORS:
        text = extractor(data)
        if text:
            return text
    return json.dumps(data, ensure_ascii=False)
