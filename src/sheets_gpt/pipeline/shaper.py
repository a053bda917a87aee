"""Shaper: converts raw completion text into typed intermediate items.

Record candidates are parsed by trying, in order, a direct JSON parse, a
``{...}`` substring reparse, and ``key: value`` lines. The first method that
yields a mapping wins and the mapping is projected onto the schema.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
import re
from typing import Any

from sheets_gpt.config import ResolvedConfig
from sheets_gpt.core.parsing import normalize_key, safe_json_loads
from sheets_gpt.core.types import Schema, ShapedItems, Shape
from sheets_gpt.exceptions import BadSchemaError, InternalShapeError, JsonParseFailure

log = logging.getLogger(__name__)

_LIST_MARKER = re.compile(r"^\s*(?:[-•*]+|\d+[.)](?=\s|$))\s*")
_LINE_BREAK = re.compile(r"\r?\n")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_CODE_FENCE = re.compile(r"^\s*```[\w-]*\s*$")


def shape_completion(
    shape: Shape,
    content: str,
    config: ResolvedConfig,
    *,
    target_count: int,
    schema: Schema | None = None,
) -> ShapedItems:
    """Split and parse ``content`` according to ``shape``.

    Raises:
        JsonParseFailure: In strict mode, for an unparsable record candidate.
        BadSchemaError: For a record shape without a schema.
        InternalShapeError: For an unknown shape.
    """
    content = content or ""
    if shape is Shape.TEXT:
        return ShapedItems(items=(content,))
    if shape is Shape.LIST:
        return shape_list(content, target_count)
    if shape in (Shape.RECORD, Shape.RECORD_LIST):
        if schema is None:
            raise BadSchemaError("Schema is required for record outputs.")
        if shape is Shape.RECORD:
            return shape_record(content, schema, strict=config.strict)
        return shape_record_list(content, schema, target_count, strict=config.strict)
    raise InternalShapeError(f"Unsupported shape: {shape!r}")


def shape_list(content: str, target_count: int) -> ShapedItems:
    """One item per non-empty line, bullets and numbering stripped."""
    lines = [_LIST_MARKER.sub("", line).strip() for line in _LINE_BREAK.split(content)]
    items = [line for line in lines if line]
    if not items and content.strip():
        items = [content.strip()]
    log.debug("Shaped list: requested=%d received=%d", target_count, len(items))
    return ShapedItems(
        items=tuple(items),
        diagnostics={"requested": target_count, "received": len(items)},
    )


def shape_record(content: str, schema: Schema, *, strict: bool = False) -> ShapedItems:
    """Parse the whole content as a single record."""
    record = parse_record(content, schema, strict=strict)
    return ShapedItems(
        items=(record,) if record is not None else (),
        diagnostics={"record_fields": len(schema.fields)},
    )


def shape_record_list(
    content: str, schema: Schema, target_count: int, *, strict: bool = False
) -> ShapedItems:
    """Parse one record per line, falling back to the whole content."""
    records = []
    for line in _LINE_BREAK.split(content):
        if not line.strip() or _CODE_FENCE.match(line):
            continue
        record = parse_record(line, schema, strict=strict)
        if record is not None:
            records.append(record)

    if not records:
        fallback = parse_record(content, schema, strict=strict)
        if fallback is not None:
            records = [fallback]

    log.debug("Shaped records: requested=%d received=%d", target_count, len(records))
    return ShapedItems(
        items=tuple(records),
        diagnostics={"requested": target_count, "received": len(records)},
    )


def parse_record(
    text: str, schema: Schema, *, strict: bool = False
) -> dict[str, Any] | None:
    """Parse one candidate into a schema-projected mapping.

    Returns None for an unparsable candidate unless ``strict`` is set.

    Raises:
        JsonParseFailure: If ``strict`` and no parse method succeeds.
    """
    trimmed = (text or "").strip()
    if not trimmed:
        return None

    source = _as_object(safe_json_loads(trimmed))
    if source is None:
        match = _OBJECT_SPAN.search(trimmed)
        if match:
            source = _as_object(safe_json_loads(match.group(0)))
    if source is None:
        source = parse_key_values(trimmed)
    if source is not None:
        return project_schema(source, schema)

    if strict:
        raise JsonParseFailure("Unable to parse record output.")
    return None


def parse_key_values(text: str) -> dict[str, str] | None:
    """Parse ``key: value`` lines; None when no line has a key."""
    result = {}
    for line in _LINE_BREAK.split(text):
        key, sep, value = line.partition(":")
        if not sep or not key.strip():
            continue
        result[normalize_key(key)] = value.strip()
    return result or None


def project_schema(source: Mapping[str, Any], schema: Schema) -> dict[str, Any]:
    """Project ``source`` onto the schema keys; missing fields become ``""``."""
    normalized = {normalize_key(k): v for k, v in source.items()}
    projected: dict[str, Any] = {}
    for field in schema.fields:
        if field.key in source:
            projected[field.key] = source[field.key]
        elif field.key in normalized:
            projected[field.key] = normalized[field.key]
        else:
            projected[field.key] = ""
    return projected


def _as_object(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None
