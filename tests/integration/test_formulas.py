"""Formula surfaces always return a grid, even when the pipeline fails."""

import pytest

from sheets_gpt import GPT, GPT_LIST, GPT_RECORD, GPT_RECORDS

pytestmark = pytest.mark.integration


def test_gpt_returns_single_cell(make_pipeline, fake_service):
    fake_service.reply_text("Paris is the capital of France.")

    assert GPT("Capital of France?", pipeline=make_pipeline()) == [
        ["Paris is the capital of France."]
    ]


def test_gpt_list_returns_one_item_per_row(make_pipeline, fake_service):
    fake_service.reply_text("1. red\n2. green")

    assert GPT_LIST("2 colors", pipeline=make_pipeline()) == [["red"], ["green"]]


def test_gpt_record_renders_field_rows(make_pipeline, fake_service):
    fake_service.reply_text('{"name": "Ada", "born": "1815-12-10"}')

    grid = GPT_RECORD("Who wrote the first program?", "name; born:date", pipeline=make_pipeline())

    assert grid == [["name: Ada"], ["born: 1815-12-10"]]


def test_gpt_records_renders_json_rows(make_pipeline, fake_service):
    fake_service.reply_text('{"name": "Ada"}\n{"name": "Grace"}')

    grid = GPT_RECORDS("2 programmers", "name", pipeline=make_pipeline())

    assert grid == [['{"name":"Ada"}'], ['{"name":"Grace"}']]


@pytest.mark.parametrize(
    ("call", "expected"),
    [
        (lambda p: GPT("", pipeline=p), [["#GPT_MISSING_INPUT Missing prompt text."]]),
        (
            lambda p: GPT_RECORD("Describe Paris", pipeline=p),
            [["#GPT_BAD_SCHEMA Schema is required for record outputs."]],
        ),
        (
            lambda p: GPT_RECORDS("Cities", "name:color", pipeline=p),
            [["#GPT_BAD_SCHEMA Unsupported field type: color"]],
        ),
        (
            lambda p: GPT_LIST("ideas", "", "", "", "", "browser", pipeline=p),
            [["#GPT_TOOL_UNKNOWN Unsupported tool: browser"]],
        ),
    ],
)
def test_errors_render_as_a_tagged_cell(make_pipeline, fake_service, call, expected):
    assert call(make_pipeline()) == expected
    assert fake_service.requests == []


def test_missing_key_renders_as_a_cell(make_pipeline):
    assert GPT("hello", pipeline=make_pipeline(with_key=False)) == [
        ["#GPT_NO_KEY Add your OpenAI API key via the settings sidebar."]
    ]


def test_upstream_failure_renders_as_a_cell(make_pipeline, fake_service, sleeps):
    error = {"error": {"message": "Rate limit reached"}}
    fake_service.reply(429, error).reply(429, error)

    assert GPT("hello", pipeline=make_pipeline()) == [["#GPT_RATE_LIMIT Rate limit reached"]]
    assert sleeps == [0.6]
