"""Tests for the tool runner and web search preparation."""

import json

import pytest

from sheets_gpt.core.types import NO_TOOL, WebSearchTool
from sheets_gpt.exceptions import UnknownToolError
from sheets_gpt.pipeline.tools import (
    ToolRunner,
    sanitize_search_parameters,
    summarize_parameters,
)

pytestmark = pytest.mark.unit


class TestToolRunner:
    def test_no_tool_yields_empty_result(self):
        result = ToolRunner().run(NO_TOOL, "anything")

        assert result.context_text == ""
        assert dict(result.diagnostics) == {}
        assert result.tool_spec is None

    def test_web_search_context_and_diagnostics(self):
        tool = WebSearchTool(parameters={"max_results": 3, "recency_filter": "week"})

        result = ToolRunner().run(tool, "Latest   AI\nheadlines")

        assert result.context_text == (
            "A live web search has been requested for real-time data. "
            'Query: "Latest AI headlines". '
            "Preferences: max results 3, recency filter week. "
            "If the web search tool is unavailable, rely on your general knowledge "
            "to answer the prompt: Latest   AI\nheadlines"
        )
        assert result.diagnostics["tool_used"] == "web_search"
        assert result.diagnostics["tool_mode"] == "openai"
        assert result.diagnostics["tool_query"] == "Latest AI headlines"
        assert json.loads(result.diagnostics["tool_parameters"]) == {
            "search_query": "Latest AI headlines",
            "max_results": 3,
            "recency_filter": "week",
        }
        assert isinstance(result.tool_spec, WebSearchTool)
        assert result.tool_spec.parameters["search_query"] == "Latest AI headlines"

    def test_handler_failure_degrades_to_stub(self, caplog):
        def broken(tool, text):
            raise RuntimeError("search backend down")

        runner = ToolRunner()
        runner.register("web_search", broken)

        with caplog.at_level("WARNING"):
            result = runner.run(WebSearchTool(), "Who won yesterday?")

        assert result.context_text == (
            "Web search context could not be retrieved. Use your general knowledge "
            "to answer the prompt: Who won yesterday?"
        )
        assert dict(result.diagnostics) == {
            "tool_error": "search backend down",
            "tool_used": "web_search",
            "tool_mode": "stub",
        }
        assert result.tool_spec is None
        assert "search backend down" in caplog.text

    def test_unregistered_tool_name(self):
        runner = ToolRunner()
        runner._handlers.clear()

        with pytest.raises(UnknownToolError):
            runner.run(WebSearchTool(), "x")


class TestSanitizeSearchParameters:
    def test_query_falls_back_to_instruction(self):
        assert sanitize_search_parameters({}, "  best  pizza ") == {"search_query": "best pizza"}

    @pytest.mark.parametrize("key", ["search_query", "query", "q"])
    def test_query_aliases(self, key):
        params = sanitize_search_parameters({key: "explicit"}, "prompt")

        assert params["search_query"] == "explicit"

    def test_blank_query_uses_instruction(self):
        assert sanitize_search_parameters({"query": "   "}, "prompt")["search_query"] == "prompt"

    def test_query_is_bounded(self):
        params = sanitize_search_parameters({"q": "x" * 1000}, "prompt")

        assert len(params["search_query"]) == 400

    @pytest.mark.parametrize(("raw", "expected"), [("50", 25), (0, 1), ("7 please", 7), (3.9, 3)])
    def test_max_results_is_clamped(self, raw, expected):
        assert sanitize_search_parameters({"max_results": raw}, "p")["max_results"] == expected

    def test_unparsable_max_results_is_dropped(self):
        assert "max_results" not in sanitize_search_parameters({"max_results": "many"}, "p")

    def test_recency_is_bounded(self):
        params = sanitize_search_parameters({"recency_filter": "r" * 50}, "p")

        assert params["recency_filter"] == "r" * 32

    def test_recency_whitespace_is_collapsed_before_bounding(self):
        params = sanitize_search_parameters({"recency_filter": "  past \n\t  week  "}, "p")

        assert params["recency_filter"] == "past week"

    def test_blank_recency_is_dropped(self):
        assert "recency_filter" not in sanitize_search_parameters({"recency_filter": " \n "}, "p")

    @pytest.mark.parametrize(
        ("raw", "expected"), [(True, True), ("false", False), ("yes", True), (0, False), ("", False)]
    )
    def test_include_images_is_strict_boolean(self, raw, expected):
        assert sanitize_search_parameters({"include_images": raw}, "p")["include_images"] is expected

    def test_other_primitives_pass_through(self):
        params = sanitize_search_parameters({"region": "de", "safe": True, "nested": {"x": 1}}, "p")

        assert params["region"] == "de"
        assert params["safe"] is True
        assert "nested" not in params


def test_summary_mentions_images_and_extra_keys():
    summary = summarize_parameters(
        {"search_query": "q", "include_images": False, "region": "de", "empty": ""}
    )

    assert summary == "text-only results, region: de"
