"""Core data types that flow through the generation pipeline.

This module defines the immutable data structures that represent a formula
request as it moves through the pipeline stages: the parsed request, the tool
specification, the assembled prompt, the completion, and the shaped items.
Each stage produces a new value; none of them is mutated after construction.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from types import MappingProxyType
import typing

# --- Minimal guard helpers (clarity > boilerplate) ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None.

    Accepts dict or Mapping; wraps dicts in MappingProxyType while preserving type.
    """
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Shapes and schemas ---


class Shape(str, Enum):
    """Requested output structure of a formula call."""

    TEXT = "text"
    LIST = "list"
    RECORD = "record"
    RECORD_LIST = "record_list"

    @property
    def is_record(self) -> bool:
        """Whether this shape requires a schema."""
        return self in (Shape.RECORD, Shape.RECORD_LIST)


FieldType = typing.Literal["string", "number", "boolean", "date", "currency"]
FIELD_TYPES: tuple[str, ...] = typing.get_args(FieldType)


@dataclasses.dataclass(frozen=True, slots=True)
class SchemaField:
    """A single normalized field declaration of a record schema."""

    key: str
    type: FieldType = "string"

    def __post_init__(self) -> None:
        """Validate key and type."""
        _require(
            condition=isinstance(self.key, str) and self.key != "",
            message="must be a non-empty str",
            field_name="key",
        )
        _require(
            condition=self.type in FIELD_TYPES,
            message=f"must be one of {list(FIELD_TYPES)}, got {self.type!r}",
            field_name="type",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class Schema:
    """Ordered field declarations used to validate and coerce records.

    Duplicate keys are allowed; when projecting, the last declaration wins.
    """

    fields: tuple[SchemaField, ...]

    def __post_init__(self) -> None:
        """Validate that the schema holds at least one field."""
        _require(
            condition=isinstance(self.fields, tuple)
            and all(isinstance(f, SchemaField) for f in self.fields),
            message="must be a tuple[SchemaField, ...]",
            field_name="fields",
            exc=TypeError,
        )
        _require(
            condition=len(self.fields) > 0,
            message="must contain at least one field",
            field_name="fields",
        )

    @property
    def keys(self) -> tuple[str, ...]:
        """Field keys in declaration order."""
        return tuple(f.key for f in self.fields)

    def describe(self) -> str:
        """Render as ``key: type, key: type`` for prompt instructions."""
        return ", ".join(f"{f.key}: {f.type}" for f in self.fields)


# --- Tool specification (tagged union) ---


@dataclasses.dataclass(frozen=True, slots=True)
class NoTool:
    """No auxiliary tool was requested."""

    name: typing.ClassVar[str] = "none"


@dataclasses.dataclass(frozen=True, slots=True)
class WebSearchTool:
    """The web search capability with sanitized, immutable parameters."""

    parameters: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=dict
    )
    name: typing.ClassVar[str] = "web_search"

    def __post_init__(self) -> None:
        """Freeze parameters to prevent downstream mutation."""
        object.__setattr__(self, "parameters", _freeze_mapping(self.parameters))


ToolSpec = NoTool | WebSearchTool

NO_TOOL = NoTool()


# --- Request and prompt ---


@dataclasses.dataclass(frozen=True, slots=True)
class CallOverrides:
    """Optional per-call configuration overrides from formula arguments.

    ``None`` means "not provided"; the resolver then falls back to stored
    settings and internal defaults.
    """

    system_message: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    tool: str | typing.Mapping[str, typing.Any] | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ParsedRequest:
    """Structured request produced by the argument parser."""

    shape: Shape
    text: str
    inferred_count: int
    schema: Schema | None = None
    overrides: CallOverrides = dataclasses.field(default_factory=CallOverrides)

    def __post_init__(self) -> None:
        """Validate text, count and schema presence for record shapes."""
        _require(
            condition=isinstance(self.text, str) and self.text.strip() != "",
            message="must be a non-empty str",
            field_name="text",
        )
        _require(
            condition=isinstance(self.inferred_count, int)
            and self.inferred_count >= 1,
            message="must be an int >= 1",
            field_name="inferred_count",
        )
        if self.shape.is_record:
            _require(
                condition=self.schema is not None,
                message=f"is required for shape {self.shape.value!r}",
                field_name="schema",
            )


Role = typing.Literal["system", "user"]


@dataclasses.dataclass(frozen=True, slots=True)
class Message:
    """A single role/content message sent to the completion service."""

    role: Role
    content: str

    def to_payload(self) -> dict[str, str]:
        """Serialize for the completion request ``input`` list."""
        return {"role": self.role, "content": self.content}


@dataclasses.dataclass(frozen=True, slots=True)
class Prompt:
    """Assembled messages: an optional system message plus one user message."""

    messages: tuple[Message, ...]

    def __post_init__(self) -> None:
        """Exactly one user message, always last."""
        _require(
            condition=len(self.messages) > 0 and self.messages[-1].role == "user",
            message="must end with a user message",
            field_name="messages",
        )
        _require(
            condition=sum(1 for m in self.messages if m.role == "user") == 1,
            message="must contain exactly one user message",
            field_name="messages",
        )

    @property
    def system(self) -> str | None:
        """The system message content, if any."""
        for message in self.messages:
            if message.role == "system":
                return message.content
        return None

    @property
    def user(self) -> str:
        """The user message content."""
        return self.messages[-1].content


# --- Stage outputs ---


@dataclasses.dataclass(frozen=True, slots=True)
class ToolResult:
    """Context gathered by the tool runner for the prompt."""

    context_text: str = ""
    diagnostics: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=dict
    )
    tool_spec: WebSearchTool | None = None

    def __post_init__(self) -> None:
        """Freeze diagnostics."""
        object.__setattr__(self, "diagnostics", _freeze_mapping(self.diagnostics))


@dataclasses.dataclass(frozen=True, slots=True)
class Completion:
    """Normalized completion returned by the model client."""

    content: str
    model: str
    usage: typing.Mapping[str, typing.Any] | None = None
    tool_used: bool = False
    retried_without_tool: bool = False
    attempts: int = 1

    def diagnostics(self) -> dict[str, typing.Any]:
        """Observational fields merged into pipeline diagnostics."""
        data: dict[str, typing.Any] = {"attempts": self.attempts}
        if self.retried_without_tool:
            data["tool_downgraded"] = True
        if self.usage:
            total = self.usage.get("total_tokens")
            if total is not None:
                data["total_tokens"] = total
        return data


Item = str | typing.Mapping[str, typing.Any]


@dataclasses.dataclass(frozen=True, slots=True)
class ShapedItems:
    """Typed intermediate items produced by the shaper."""

    items: tuple[Item, ...]
    diagnostics: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=dict
    )


Grid = list[list[str]]


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationResult:
    """Final output of one pipeline invocation."""

    shape: Shape
    grid: Grid
    target_count: int
    diagnostics: typing.Mapping[str, typing.Any] = dataclasses.field(
        default_factory=dict
    )
    config: typing.Any = None

    def __post_init__(self) -> None:
        """The grid is never empty and every cell is a string."""
        _require(
            condition=len(self.grid) > 0
            and all(
                isinstance(row, list) and all(isinstance(c, str) for c in row)
                for row in self.grid
            ),
            message="must be a non-empty list of string rows",
            field_name="grid",
            exc=TypeError,
        )
