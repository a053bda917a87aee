"""Lenient scalar parsing shared by the pipeline stages.

Spreadsheet cells and stored settings arrive as loosely typed strings. These
helpers read them the way a spreadsheet user expects: a leading number is
accepted even when followed by text (``"12 items"`` -> 12), booleans accept
``true``/``false`` in any case, and anything else yields ``None`` so callers
can fall back to the next candidate.
"""

from __future__ import annotations

import json
import re
from typing import Any

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)")
_WHITESPACE = re.compile(r"\s+")
_NON_IDENTIFIER = re.compile(r"[^\w]")


def parse_leading_int(value: Any) -> int | None:
    """Parse the leading integer of ``value`` or return None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return None if value != value else int(value)  # NaN check
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def parse_leading_float(value: Any) -> float | None:
    """Parse the leading decimal number of ``value`` or return None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
        return None if number != number else number
    match = _LEADING_FLOAT.match(str(value))
    return float(match.group(1)) if match else None


def parse_positive_int(value: Any) -> int | None:
    """Parse a strictly positive integer, else None."""
    parsed = parse_leading_int(value)
    return parsed if parsed is not None and parsed > 0 else None


def parse_bool(value: Any) -> bool | None:
    """Accept real booleans and the strings ``true``/``false``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def is_blank(value: Any) -> bool:
    """None, or a string that is empty after stripping."""
    return value is None or (isinstance(value, str) and value.strip() == "")


def clamp(value: float, low: float, high: float) -> float:
    """Bound ``value`` to ``[low, high]``."""
    return max(low, min(high, value))


def normalize_key(key: Any) -> str:
    """Normalize a field key: collapse whitespace to ``_``, strip symbols, lowercase."""
    text = _WHITESPACE.sub("_", str(key).strip())
    return _NON_IDENTIFIER.sub("", text).lower()


def collapse_whitespace(value: Any) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE.sub(" ", "" if value is None else str(value)).strip()


def safe_json_loads(text: str) -> Any | None:
    """Parse JSON text, returning None instead of raising."""
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None
