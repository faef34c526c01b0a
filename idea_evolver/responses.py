"""
Helpers for turning raw provider text into structured data.
"""

import json
import re
from typing import Any, Iterable

_FENCE_RE = re.compile(r"^```(?:json)?\s*|```\s*$", re.IGNORECASE)


class ResponseFormatError(ValueError):
    """The provider answered, but not with something we can use."""


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text.strip()).strip()


def parse_json_response(text: Any) -> Any:
    if not isinstance(text, str) or not text.strip():
        raise ResponseFormatError("Empty response from LLM provider")

    cleaned = strip_code_fences(text)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ResponseFormatError(f"Invalid JSON response from API: {e}") from e


def require_keys(data: Any, keys: Iterable[str], label: str = "response") -> dict:
    if not isinstance(data, dict):
        raise ResponseFormatError(f"Expected a JSON object for {label}, got {type(data).__name__}")
    missing = [k for k in keys if k not in data]
    if missing:
        raise ResponseFormatError(f"Missing required fields in {label}: {', '.join(missing)}")
    return data
