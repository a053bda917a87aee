"""Prompt assembly for the completion request.

This module implements the pure function that turns a parsed request, the
resolved configuration and the tool context into an immutable ``Prompt``: an
optional system message followed by exactly one user message.
"""

from __future__ import annotations

from sheets_gpt.config import ResolvedConfig
from sheets_gpt.core.types import Message, ParsedRequest, Prompt, Schema, Shape
from sheets_gpt.exceptions import InternalShapeError

_SEPARATOR = "\n\n"


def build_prompt(
    request: ParsedRequest,
    config: ResolvedConfig,
    *,
    target_count: int,
    tool_context: str = "",
) -> Prompt:
    """Assemble the system and user messages for one formula call.

    The system message joins the configured system message, the tool context
    and the shape-specific formatting instruction with blank lines. It is
    omitted entirely when all three are empty.

    Args:
        request: Parsed formula request.
        config: Resolved configuration for this invocation.
        target_count: Number of items requested from the model.
        tool_context: Context text produced by the tool runner.

    Returns:
        Prompt with one user message, preceded by a system message if any.
    """
    system_parts = []
    if config.system_message:
        system_parts.append(config.system_message)
    if tool_context:
        system_parts.append(f"Tool context:\n{tool_context}")
    instruction = shape_instruction(request.shape, target_count, request.schema)
    if instruction:
        system_parts.append(instruction)

    messages = []
    if system_parts:
        messages.append(Message(role="system", content=_SEPARATOR.join(system_parts)))
    messages.append(Message(role="user", content=_user_content(request, target_count)))
    return Prompt(messages=tuple(messages))


def shape_instruction(shape: Shape, count: int, schema: Schema | None = None) -> str:
    """Formatting instruction for ``shape``; empty for free text.

    Raises:
        InternalShapeError: For a record shape without a schema.
    """
    if shape is Shape.TEXT:
        return ""
    if shape is Shape.LIST:
        return (
            f"Return a list with {count} items. Respond with one item per line "
            "without numbering or bullet characters."
        )
    if schema is None:
        raise InternalShapeError(f"Shape {shape.value!r} requires a schema.")
    if shape is Shape.RECORD:
        return (
            f"Return a JSON object that follows this schema: {{ {schema.describe()} }}. "
            "Respond only with valid JSON, without commentary or code fences."
        )
    return (
        f"Return structured JSON objects that follow this schema: {{ {schema.describe()} }}. "
        "Respond only with valid JSON, without commentary or code fences.\n"
        f"Return exactly {count} JSON lines, each line representing one object."
    )


def _user_content(request: ParsedRequest, count: int) -> str:
    parts = [request.text]
    if request.shape is Shape.LIST:
        parts.append(f"Number of items needed: {count}.")
    elif request.shape is Shape.RECORD_LIST:
        parts.append(f"Produce {count} entries as JSON lines.")
    return _SEPARATOR.join(parts)
