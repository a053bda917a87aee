"""Tests for error tags and cell rendering."""

import pytest

from sheets_gpt.exceptions import (
    APIError,
    BadSchemaError,
    BadToolSpecError,
    InternalShapeError,
    JsonParseFailure,
    MissingInputError,
    NoCredentialError,
    RateLimitedError,
    RequestTimeoutError,
    SettingsError,
    SheetsGPTError,
    UnknownToolError,
    UpstreamError,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    ("error_type", "tag"),
    [
        (MissingInputError, "#GPT_MISSING_INPUT"),
        (BadSchemaError, "#GPT_BAD_SCHEMA"),
        (UnknownToolError, "#GPT_TOOL_UNKNOWN"),
        (BadToolSpecError, "#GPT_TOOL_BAD_SPEC"),
        (NoCredentialError, "#GPT_NO_KEY"),
        (JsonParseFailure, "#GPT_JSON_PARSE"),
        (InternalShapeError, "#GPT_INTERNAL"),
        (RateLimitedError, "#GPT_RATE_LIMIT"),
        (RequestTimeoutError, "#GPT_TIMEOUT"),
        (UpstreamError, "#GPT_UPSTREAM"),
        (SettingsError, "#GPT_SETTINGS"),
    ],
)
def test_every_error_has_a_stable_tag(error_type, tag):
    error = error_type("details")

    assert isinstance(error, SheetsGPTError)
    assert error.tag == tag
    assert str(error) == f"{tag} details"
    assert error.to_cell() == [[f"{tag} details"]]


def test_tag_alone_when_message_is_empty():
    assert str(MissingInputError()) == "#GPT_MISSING_INPUT"


def test_api_errors_keep_status_code():
    error = RateLimitedError("slow down", status_code=429)

    assert isinstance(error, APIError)
    assert error.status_code == 429
    assert error.message == "slow down"
