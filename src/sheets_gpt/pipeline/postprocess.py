"""Post-processing: dedupe, cap, coerce and render items as a string grid.

Every cell of the returned grid is a string and the grid always has at least
one row; empty results render as a placeholder row.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
import json
import logging
import math
import re
from typing import Any

from dateutil import parser as date_parser

from sheets_gpt.config import ResolvedConfig
from sheets_gpt.constants import EMPTY_RECORD, NO_DATA, NO_RESULTS
from sheets_gpt.core.parsing import parse_leading_float
from sheets_gpt.core.types import FieldType, Grid, Item, Schema, Shape
from sheets_gpt.exceptions import BadSchemaError, InternalShapeError

log = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[\W_]+")
_CURRENCY_PREFIX = re.compile(r"^\s*([+-]?)\s*[$€£¥]\s*")
_THOUSANDS = re.compile(r"(?<=\d),(?=\d{3}\b)")
_TRUE_WORDS = ("true", "yes")
_FALSE_WORDS = ("false", "no")


def postprocess(
    shape: Shape,
    items: Sequence[Item],
    config: ResolvedConfig,
    *,
    target_count: int,
    schema: Schema | None = None,
) -> Grid:
    """Render shaped items as a single-column grid of strings.

    Raises:
        BadSchemaError: For a record shape without a schema.
        InternalShapeError: For an unknown shape.
    """
    if shape is Shape.TEXT:
        return [[_cell(items[0]) if items else ""]]
    if shape is Shape.LIST:
        return [[item] for item in apply_list_rules(items, target_count, config.hard_count_cap)]
    if shape in (Shape.RECORD, Shape.RECORD_LIST):
        if schema is None:
            raise BadSchemaError("Schema is required for record outputs.")
        if shape is Shape.RECORD:
            record = items[0] if items else None
            return render_record(record if isinstance(record, Mapping) else None, schema)
        records = [r for r in items if isinstance(r, Mapping)]
        lines = render_record_lines(records, schema, target_count, config.hard_count_cap)
        return [[line] for line in lines]
    raise InternalShapeError(f"Unknown shape: {shape!r}")


def apply_list_rules(items: Sequence[Item], target_count: int, hard_cap: int) -> list[str]:
    """Dedupe on a case/punctuation-folded key, cap, then truncate."""
    kept: list[str] = []
    seen: set[str] = set()
    for raw in items:
        item = _cell(raw).strip()
        if not item:
            continue
        key = dedupe_key(item)
        if key in seen:
            continue
        seen.add(key)
        kept.append(item)
        if len(kept) >= hard_cap:
            break
    kept = kept[:target_count]
    if len(kept) < len(items):
        log.debug("List trimmed from %d to %d items", len(items), len(kept))
    return kept or [NO_RESULTS]


def dedupe_key(item: str) -> str:
    """Lowercase and collapse runs of non-alphanumerics to single spaces."""
    return _NON_ALNUM.sub(" ", item.lower()).strip()


def render_record(record: Mapping[str, Any] | None, schema: Schema) -> Grid:
    """One ``key: value`` row per schema field."""
    if record is None:
        return [[NO_DATA]]
    rows = []
    for field in schema.fields:
        coerced = coerce_field(record.get(field.key), field.type)
        rows.append([f"{field.key}: {format_value(coerced, field.type)}"])
    return rows or [[NO_DATA]]


def render_record_lines(
    records: Sequence[Mapping[str, Any]],
    schema: Schema,
    target_count: int,
    hard_cap: int,
) -> list[str]:
    """Serialize records as compact JSON lines in schema field order."""
    lines: list[str] = []
    seen: set[str] = set()
    for record in records:
        line = json.dumps(
            coerce_record(record, schema), ensure_ascii=False, separators=(",", ":")
        )
        if line in seen:
            continue
        seen.add(line)
        lines.append(line)
        if len(lines) >= hard_cap:
            break
    return lines[:target_count] or [EMPTY_RECORD]


def coerce_record(record: Mapping[str, Any], schema: Schema) -> dict[str, Any]:
    coerced = {}
    for field in schema.fields:
        value = coerce_field(record.get(field.key), field.type)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        coerced[field.key] = value
    return coerced


def coerce_field(value: Any, field_type: FieldType) -> Any:
    """Coerce a raw value to its schema type; None when it does not parse."""
    if field_type == "number":
        return _to_number(value)
    if field_type == "currency":
        if isinstance(value, str):
            value = _THOUSANDS.sub("", _CURRENCY_PREFIX.sub(r"\1", value))
        return _to_number(value)
    if field_type == "boolean":
        return _to_bool(value)
    if field_type == "date":
        return _to_iso_date(value)
    return "" if value is None else _cell(value)


def format_value(value: Any, field_type: FieldType) -> str:
    """Format a coerced value for a ``key: value`` row."""
    if value is None:
        return ""
    if field_type == "currency":
        return f"${float(value):.2f}"
    if field_type == "number":
        return _format_number(value)
    if field_type == "date":
        return str(value).split("T")[0]
    if field_type == "boolean":
        return "true" if value else "false"
    return _cell(value)


# --- Internal helpers ---


def _to_number(value: Any) -> float | None:
    number = parse_leading_float(value)
    if number is None or math.isinf(number):
        return None
    return number


def _to_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return None


def _to_iso_date(value: Any) -> str | None:
    if not isinstance(value, datetime) and not (isinstance(value, str) and value.strip()):
        return None
    try:
        parsed = value if isinstance(value, datetime) else date_parser.parse(value.strip())
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        iso = parsed.astimezone(UTC).isoformat(timespec="milliseconds")
    except (ValueError, OverflowError):
        return None
    return iso.replace("+00:00", "Z")


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, Mapping | list):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)
