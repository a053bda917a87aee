"""Tool runner: turns a tool specification into prompt context.

The only registered capability is ``web_search``. The runner does not perform
the search itself; it sanitizes the search preferences, describes them to the
model, and forwards a tool specification so the completion service can run
the search. Failures here never fail the pipeline.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import json
import logging
from typing import Any

from sheets_gpt.constants import (
    MAX_QUERY_LENGTH,
    MAX_RECENCY_LENGTH,
    MAX_RESULTS_RANGE,
    WEB_SEARCH,
)
from sheets_gpt.core.parsing import (
    clamp,
    collapse_whitespace,
    is_blank,
    parse_leading_int,
)
from sheets_gpt.core.types import NoTool, ToolResult, ToolSpec, WebSearchTool
from sheets_gpt.exceptions import UnknownToolError

log = logging.getLogger(__name__)

_QUERY_KEYS = ("search_query", "query", "q")
_HANDLED_KEYS = frozenset((*_QUERY_KEYS, "max_results", "recency_filter", "include_images"))
_PRIMITIVES = (str, int, float, bool, type(None))

PROMPT_LIMIT = 300
SUMMARY_VALUE_LIMIT = 60

ToolHandler = Callable[[WebSearchTool, str], ToolResult]


class ToolRunner:
    """Registry of tool handlers keyed by tool name."""

    def __init__(self) -> None:
        """Register the built-in ``web_search`` handler."""
        self._handlers: dict[str, ToolHandler] = {WEB_SEARCH: prepare_web_search}

    def register(self, name: str, handler: ToolHandler) -> None:
        """Register (or replace) the handler for ``name``."""
        self._handlers[name] = handler

    def run(self, tool: ToolSpec, text: str) -> ToolResult:
        """Prepare context for ``tool``.

        Returns an empty result for ``NoTool``. Handler failures are logged
        and degraded into a fallback context with ``tool_mode="stub"``.

        Raises:
            UnknownToolError: If no handler is registered for the tool name.
        """
        if isinstance(tool, NoTool):
            return ToolResult()

        handler = self._handlers.get(tool.name)
        if handler is None:
            raise UnknownToolError(f"Unsupported tool: {tool.name}")

        try:
            return handler(tool, text)
        except Exception as e:
            log.warning("Tool '%s' failed, continuing without context: %s", tool.name, e)
            return ToolResult(
                context_text=build_fallback_context(text),
                diagnostics={
                    "tool_error": str(e),
                    "tool_used": tool.name,
                    "tool_mode": "stub",
                },
                tool_spec=None,
            )


def prepare_web_search(tool: WebSearchTool, text: str) -> ToolResult:
    """Sanitize search parameters and describe the requested search."""
    parameters = sanitize_search_parameters(tool.parameters, text)
    query = parameters.get("search_query", "")
    log.debug("Prepared web search context for query %r", query)
    return ToolResult(
        context_text=build_search_context(text, query, parameters),
        diagnostics={
            "tool_used": WEB_SEARCH,
            "tool_mode": "openai",
            "tool_query": query,
            "tool_parameters": json.dumps(parameters, ensure_ascii=False),
        },
        tool_spec=WebSearchTool(parameters=parameters),
    )


def sanitize_search_parameters(
    raw: Mapping[str, Any] | None, prompt_text: str
) -> dict[str, Any]:
    """Normalize web search preferences.

    The query comes from ``search_query``/``query``/``q`` and falls back to the
    instruction text. Known keys are bounded; other primitive keys pass through.
    """
    params = dict(raw or {})
    normalized: dict[str, Any] = {}

    candidate = next((params[k] for k in _QUERY_KEYS if not _empty(params.get(k))), None)
    query = _bound_query(prompt_text if candidate is None else candidate)
    if not query:
        query = _bound_query(prompt_text)
    if query:
        normalized["search_query"] = query

    if "max_results" in params:
        parsed = parse_leading_int(params["max_results"])
        if parsed is not None:
            normalized["max_results"] = int(clamp(parsed, *MAX_RESULTS_RANGE))

    if "recency_filter" in params and params["recency_filter"] is not None:
        recency = collapse_whitespace(params["recency_filter"])[:MAX_RECENCY_LENGTH]
        if recency:
            normalized["recency_filter"] = recency

    if "include_images" in params:
        normalized["include_images"] = _truthy(params["include_images"])

    for key, value in params.items():
        if key in _HANDLED_KEYS:
            continue
        if isinstance(value, _PRIMITIVES):
            normalized[key] = value
    return normalized


def build_search_context(
    prompt_text: str, query: str, parameters: Mapping[str, Any]
) -> str:
    """Describe the requested search and the general-knowledge fallback."""
    prompt = (prompt_text or "")[:PROMPT_LIMIT] or query[:200]
    parts = [
        "A live web search has been requested for real-time data.",
        f'Query: "{query[:200]}".',
    ]
    summary = summarize_parameters(parameters)
    if summary:
        parts.append(f"Preferences: {summary}.")
    parts.append(
        "If the web search tool is unavailable, rely on your general knowledge "
        f"to answer the prompt: {prompt}"
    )
    return " ".join(parts)


def build_fallback_context(prompt_text: str) -> str:
    return (
        "Web search context could not be retrieved. Use your general knowledge "
        f"to answer the prompt: {(prompt_text or '')[:PROMPT_LIMIT]}"
    )


def summarize_parameters(parameters: Mapping[str, Any]) -> str:
    parts = []
    if "max_results" in parameters:
        parts.append(f"max results {parameters['max_results']}")
    if parameters.get("recency_filter"):
        parts.append(f"recency filter {str(parameters['recency_filter'])[:SUMMARY_VALUE_LIMIT]}")
    if "include_images" in parameters:
        parts.append("include images" if parameters["include_images"] else "text-only results")
    for key, value in parameters.items():
        if key in ("search_query", "max_results", "recency_filter", "include_images"):
            continue
        if _empty(value):
            continue
        parts.append(f"{key}: {_display(value)[:SUMMARY_VALUE_LIMIT]}")
    return ", ".join(parts)


# --- Internal helpers ---


def _bound_query(value: Any) -> str:
    return collapse_whitespace(value)[:MAX_QUERY_LENGTH]


def _empty(value: Any) -> bool:
    return value is None or value == ""


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "false", "0", "no")
    return bool(value)


def _display(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return "" if is_blank(value) else str(value)
