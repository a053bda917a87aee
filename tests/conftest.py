"""
Global test configuration: environment isolation, markers and fakes.
"""

from collections.abc import Callable
import json
import logging
import os
from typing import Any

import httpx
import pytest

from sheets_gpt.config import MappingSettingsStore, SettingsSources
from sheets_gpt.executor import Pipeline

TEST_API_KEY = "sk-test1234567890abcdefghijklmnop"


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_sheets_gpt_env(request, monkeypatch):
    """Ensure a clean SHEETS_GPT_* environment for each test.

    Removes SHEETS_GPT_* variables, the API key and debug toggles so that
    tests only see state they set explicitly.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the environment.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("SHEETS_GPT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with a mocked transport",
        "allow_env_pollution: Keep the process environment untouched",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


@pytest.fixture
def api_key() -> str:
    """A fake API key in the accepted format."""
    return TEST_API_KEY


@pytest.fixture
def make_sources(api_key) -> Callable[..., SettingsSources]:
    """Factory for fixture settings tiers.

    Usage:
        sources = make_sources(document={"OPENAI_MODEL": "doc-model"})
    """

    def _make(
        *,
        document: dict[str, Any] | None = None,
        installation: dict[str, Any] | None = None,
        user: dict[str, Any] | None = None,
        with_key: bool = True,
    ) -> SettingsSources:
        user_values = {"OPENAI_API_KEY": api_key} if with_key else {}
        user_values.update(user or {})
        return SettingsSources(
            document=MappingSettingsStore(document),
            installation=MappingSettingsStore(installation),
            user=MappingSettingsStore(user_values),
        )

    return _make


class FakeCompletionService:
    """Scripted completion endpoint for ``httpx.MockTransport``.

    Each queued reply is ``(status, body)``, or an exception to raise from the
    transport. Every request payload is recorded in ``requests``.
    """

    def __init__(self) -> None:
        self.replies: list[tuple[int, Any] | Exception] = []
        self.requests: list[dict[str, Any]] = []
        self.headers: list[httpx.Headers] = []

    def reply_text(self, text: str, **extra: Any) -> "FakeCompletionService":
        body = {"model": "gpt-4.1-mini", "output_text": text, **extra}
        self.replies.append((200, body))
        return self

    def reply(self, status: int, body: Any) -> "FakeCompletionService":
        self.replies.append((status, body))
        return self

    def fail(self, error: Exception) -> "FakeCompletionService":
        self.replies.append(error)
        return self

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.headers.append(request.headers)
        if request.content:
            self.requests.append(json.loads(request.content))
        if not self.replies:
            raise AssertionError("Unexpected request: no scripted reply left")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        status, body = reply
        if body is None:
            return httpx.Response(status)
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def fake_service() -> FakeCompletionService:
    """A fresh scripted completion service."""
    return FakeCompletionService()


@pytest.fixture
def http_client(fake_service) -> httpx.Client:
    """An httpx client routed to the fake completion service."""
    client = httpx.Client(transport=httpx.MockTransport(fake_service))
    yield client
    client.close()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects backoff delays instead of sleeping."""
    return []


@pytest.fixture
def make_pipeline(make_sources, http_client, sleeps) -> Callable[..., Pipeline]:
    """Factory for a pipeline wired to fixture stores and the fake service."""

    def _make(sources: SettingsSources | None = None, **store_values: Any) -> Pipeline:
        return Pipeline(
            sources or make_sources(**store_values),
            http_client=http_client,
            sleep=sleeps.append,
        )

    return _make
