"""Normalization of tool settings into the ``NoTool | WebSearchTool`` union.

A tool may be configured as a plain name (``"web_search"``, ``"none"``), as a
mapping, or as a JSON string holding a mapping. Structured values name the
tool with one of ``name``/``type``/``tool`` and carry parameters under
``parameters``/``args``/``arguments``/``web_search``; any remaining top-level
primitive keys are folded into the parameters.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from sheets_gpt.constants import TOOL_PARAM_MAX_DEPTH, TOOL_PARAM_MAX_ITEMS, WEB_SEARCH
from sheets_gpt.core.parsing import is_blank
from sheets_gpt.core.types import NO_TOOL, NoTool, ToolSpec, WebSearchTool
from sheets_gpt.exceptions import BadToolSpecError, UnknownToolError

_NAME_KEYS = ("name", "type", "tool")
_PARAM_KEYS = ("parameters", "args", "arguments", "web_search")
_PRIMITIVES = (str, int, float, bool, type(None))
_DROP = object()


def parse_tool_spec(value: Any) -> ToolSpec:
    """Parse a raw tool setting into a tool specification.

    Args:
        value: None, a tool name, a mapping, or a JSON string.

    Returns:
        ``NO_TOOL`` or a ``WebSearchTool`` with sanitized parameters.

    Raises:
        UnknownToolError: If the tool name is not ``web_search``/``none``.
        BadToolSpecError: If a structured value is unparsable or unnamed.
    """
    if isinstance(value, NoTool | WebSearchTool):
        return value
    if value is None:
        return NO_TOOL
    if isinstance(value, Mapping):
        return _from_mapping(value)

    text = str(value).strip()
    if not text:
        return NO_TOOL
    if text[0] in "{[":
        return _from_mapping(_load_structured(text))
    return _from_name(text, {})


def sanitize_parameters(parameters: Mapping[str, Any]) -> dict[str, Any]:
    """Drop non-primitive values, bound nesting depth and array length."""
    sanitized = _sanitize(parameters, 1)
    return sanitized if isinstance(sanitized, dict) else {}


# --- Internal helpers ---


def _from_name(name: str, parameters: dict[str, Any]) -> ToolSpec:
    normalized = name.strip().lower()
    if normalized in ("", "none"):
        return NO_TOOL
    if normalized == WEB_SEARCH:
        return WebSearchTool(parameters=sanitize_parameters(parameters))
    raise UnknownToolError(f"Unsupported tool: {name}")


def _load_structured(text: str) -> Mapping[str, Any]:
    try:
        data = json.loads(text)
    except ValueError as e:
        raise BadToolSpecError(f"Tool specification is not valid JSON: {e}") from e

    # A one-element array mirrors the completion service's ``tools`` list
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, Mapping):
        raise BadToolSpecError("Tool specification must be a JSON object.")
    return data


def _from_mapping(spec: Mapping[str, Any]) -> ToolSpec:
    name: str | None = None
    for key in _NAME_KEYS:
        candidate = spec.get(key)
        if not is_blank(candidate) and isinstance(candidate, _PRIMITIVES):
            name = str(candidate)
            break
    if name is None:
        raise BadToolSpecError(
            "Unable to determine tool name; provide a 'name', 'type' or 'tool' key."
        )

    merged: dict[str, Any] = {}
    for key, value in spec.items():
        if key in _NAME_KEYS or key in _PARAM_KEYS:
            continue
        if isinstance(value, _PRIMITIVES):
            merged[str(key)] = value
    # Explicit parameter blocks win over loose top-level keys
    for key in _PARAM_KEYS:
        block = spec.get(key)
        if isinstance(block, Mapping):
            merged.update({str(k): v for k, v in block.items()})

    return _from_name(name, merged)


def _sanitize(value: Any, depth: int) -> Any:
    if isinstance(value, _PRIMITIVES):
        return value
    if depth > TOOL_PARAM_MAX_DEPTH:
        return _DROP
    if isinstance(value, Mapping):
        result: dict[str, Any] = {}
        for key, item in value.items():
            cleaned = _sanitize(item, depth + 1)
            if cleaned is not _DROP:
                result[str(key)] = cleaned
        return result
    if isinstance(value, list | tuple):
        items = []
        for item in list(value)[:TOOL_PARAM_MAX_ITEMS]:
            cleaned = _sanitize(item, depth + 1)
            if cleaned is not _DROP:
                items.append(cleaned)
        return items
    return _DROP
