"""Argument parsing for the formula surfaces.

Turns the positional argument list of a formula call into a ``ParsedRequest``:

    text, [schema], system_message, model, max_tokens, temperature, tool

Position 0 is always the instruction text. Record shapes take the schema at
position 1; every later position is optional and ignored when blank.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import logging
import re
from typing import Any

from sheets_gpt.constants import DEFAULT_INFERRED_COUNT, INTERNAL_HARD_CAP
from sheets_gpt.core.parsing import (
    is_blank,
    normalize_key,
    parse_leading_float,
    parse_positive_int,
)
from sheets_gpt.core.types import (
    FIELD_TYPES,
    CallOverrides,
    ParsedRequest,
    Schema,
    SchemaField,
    Shape,
)
from sheets_gpt.exceptions import BadSchemaError, MissingInputError

log = logging.getLogger(__name__)

COUNT_PHRASES: tuple[tuple[str, int], ...] = (
    ("a few", 3),
    ("a couple", 2),
    ("a dozen", 12),
    ("dozen", 12),
)

_COUNT_PATTERN = re.compile(
    r"\b(?:top\s+(\d+)|(\d+)\s+(?:[a-z]+)|list\s+(\d+))\b", re.IGNORECASE
)
_CJK_COUNT_PATTERN = re.compile(r"([一二三四五六七八九十百千两]+)(名字|新闻|个|条|项|名)")
_BARE_DIGITS = re.compile(r"\d{1,3}")
_LIST_KEYWORDS = re.compile(
    r"(ideas|items|names|options|headlines|examples|questions|facts|insights|products|suggestions)",
    re.IGNORECASE,
)
_CJK_NUMERALS = {
    "一": 1,
    "二": 2,
    "两": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
    "十": 10,
}


def parse_arguments(shape: Shape | str, args: Sequence[Any] | None) -> ParsedRequest:
    """Parse a formula's positional arguments into a structured request.

    Args:
        shape: The output shape of the calling formula.
        args: Raw positional arguments as received from the spreadsheet.

    Returns:
        ParsedRequest with text, optional schema, overrides and inferred count.

    Raises:
        MissingInputError: If the instruction text is absent or blank.
        BadSchemaError: If a record shape has a missing or invalid schema.
    """
    shape = Shape(shape)
    values = list(args or ())
    if not values or is_blank(values[0]):
        raise MissingInputError("Missing prompt text.")

    text = str(values[0])
    position = 1
    schema: Schema | None = None
    if shape.is_record:
        schema = parse_schema(values[1] if len(values) > 1 else None)
        position = 2

    def at(offset: int) -> Any:
        index = position + offset
        return values[index] if index < len(values) else None

    overrides = CallOverrides(
        system_message=_optional_text(at(0)),
        model=_optional_text(at(1)),
        max_tokens=None if is_blank(at(2)) else parse_positive_int(at(2)),
        temperature=None if is_blank(at(3)) else parse_leading_float(at(3)),
        tool=_optional_tool(at(4)),
    )
    inferred = infer_count(text)
    log.debug("Parsed %s request: inferred_count=%d", shape.value, inferred)
    return ParsedRequest(
        shape=shape,
        text=text,
        inferred_count=inferred,
        schema=schema,
        overrides=overrides,
    )


def parse_schema(source: Any) -> Schema:
    """Parse a ``"name:type; name:type"`` schema string.

    Raises:
        BadSchemaError: On a missing schema, empty key, or unknown type.
    """
    if is_blank(source):
        raise BadSchemaError("Schema is required for record outputs.")

    segments = [s.strip() for s in str(source).split(";")]
    segments = [s for s in segments if s]
    if not segments:
        raise BadSchemaError('Provide fields using "name:type;" syntax.')

    fields = []
    for segment in segments:
        parts = segment.split(":")
        key = normalize_key(parts[0])
        if not key:
            raise BadSchemaError(f"Missing field name in schema segment: {segment}")
        field_type = "string"
        if len(parts) > 1 and parts[1].strip():
            field_type = parts[1].strip().lower()
            if field_type not in FIELD_TYPES:
                raise BadSchemaError(f"Unsupported field type: {parts[1].strip()}")
        fields.append(SchemaField(key=key, type=field_type))  # type: ignore[arg-type]
    return Schema(fields=tuple(fields))


def infer_count(text: str) -> int:
    """Infer how many items the instruction asks for.

    Rules are tried in a fixed order and the first match wins: count phrases,
    ``top N``/``N <word>``/``list N``, a CJK numeral with a classifier, and
    finally the last bare number when a list noun is present.
    """
    if not text:
        return DEFAULT_INFERRED_COUNT

    lowered = text.lower()
    for phrase, value in COUNT_PHRASES:
        if phrase in lowered:
            return _clamp_count(value)

    match = _COUNT_PATTERN.search(text)
    if match:
        return _clamp_count(int(next(g for g in match.groups() if g)))

    cjk = _CJK_COUNT_PATTERN.search(text)
    if cjk:
        mapped = cjk_numeral_to_int(cjk.group(1))
        if mapped:
            return _clamp_count(mapped)

    digits = _BARE_DIGITS.findall(text)
    if digits and _LIST_KEYWORDS.search(text):
        return _clamp_count(int(digits[-1]))

    return DEFAULT_INFERRED_COUNT


def cjk_numeral_to_int(numeral: str) -> int:
    """Convert a CJK numeral between 1 and 99; 0 when unsupported."""
    if not numeral:
        return 0
    if len(numeral) == 1:
        return _CJK_NUMERALS.get(numeral, 0)
    if "十" in numeral:
        tens_part, _, ones_part = numeral.partition("十")
        tens = _CJK_NUMERALS.get(tens_part, 0) if tens_part else 1
        ones = _CJK_NUMERALS.get(ones_part, 0) if ones_part else 0
        if (tens_part and not tens) or (ones_part and not ones):
            return 0
        return tens * 10 + ones
    return 0


# --- Internal helpers ---


def _clamp_count(value: int) -> int:
    if value < 1:
        return 1
    return min(value, INTERNAL_HARD_CAP)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    trimmed = str(value).strip()
    return trimmed or None


def _optional_tool(value: Any) -> str | Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    return _optional_text(value)
