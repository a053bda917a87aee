"""Model client for the completion service, built on httpx."""

from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import Any

import httpx

from sheets_gpt.config import Credential, ResolvedConfig
from sheets_gpt.constants import (
    MAX_RETRIES,
    NETWORK_TIMEOUT,
    RETRY_BACKOFF,
    WEB_SEARCH,
)
from sheets_gpt.core.types import Completion, Prompt, WebSearchTool
from sheets_gpt.exceptions import APIError, NoCredentialError, UpstreamError
from sheets_gpt.telemetry import TelemetryContext, TelemetryContextProtocol

from .content_processor import extract_text, extract_usage
from .error_handler import error_from_response, error_from_transport, is_tool_rejection

log = logging.getLogger(__name__)


class ModelClient:
    """Sends assembled prompts to the completion service.

    Two independent recovery paths apply to one ``complete`` call:

    - Tool downgrade: when the service rejects the ``web_search`` capability,
      the request is repeated immediately without it. This happens at most
      once and does not consume the retry budget.
    - Generic retry: any other failure is retried ``max_retries`` times after
      a fixed backoff.

    The HTTP client and the sleep function are injectable for tests.
    """

    def __init__(
        self,
        credential: Credential,
        *,
        http_client: httpx.Client | None = None,
        telemetry_context: TelemetryContextProtocol | None = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = NETWORK_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        retry_backoff: float = RETRY_BACKOFF,
    ):
        self.credential = credential
        self.http_client = http_client
        self.tele = telemetry_context or TelemetryContext()
        self.sleep = sleep
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

    def complete(
        self,
        prompt: Prompt,
        config: ResolvedConfig,
        tool: WebSearchTool | None = None,
    ) -> Completion:
        """Request a completion for ``prompt``.

        Args:
            prompt: Assembled system/user messages.
            config: Resolved model, temperature and token budget.
            tool: Tool specification to offer the service, if any.

        Returns:
            Completion with the extracted text and usage accounting.

        Raises:
            NoCredentialError: If no API key is configured (before any request).
            RateLimitedError: On HTTP 429 after retries are exhausted.
            RequestTimeoutError: On HTTP 408 or a transport timeout.
            UpstreamError: On any other failure or an unusable response body.
        """
        if not self.credential.api_key:
            raise NoCredentialError(
                "Add your OpenAI API key via the settings sidebar."
            )

        with_tool = tool is not None
        downgraded = False
        retries_left = self.max_retries
        attempts = 0

        while True:
            attempts += 1
            try:
                body = self._send(self._build_payload(prompt, config, with_tool))
                content = extract_text(body)
                if content is None:
                    raise UpstreamError("Unexpected response from completion service.")
            except APIError as error:
                if with_tool and is_tool_rejection(error):
                    with_tool = False
                    downgraded = True
                    self.tele.count("client.tool_downgrade")
                    log.warning(
                        "Completion service rejected the web_search tool; "
                        "retrying without it: %s",
                        error.message,
                    )
                    continue
                if retries_left <= 0:
                    log.debug("Completion failed after %d attempt(s).", attempts)
                    raise
                retries_left -= 1
                self.tele.count("client.retry")
                log.warning(
                    "Completion request failed (%s). Retrying in %.2fs (attempt %d).",
                    error,
                    self.retry_backoff,
                    attempts + 1,
                )
                self.sleep(self.retry_backoff)
                continue

            log.debug(
                "Completion received: attempts=%d tool_used=%s", attempts, with_tool
            )
            return Completion(
                content=content,
                model=str(body.get("model") or config.model),
                usage=extract_usage(body),
                tool_used=with_tool,
                retried_without_tool=downgraded,
                attempts=attempts,
            )

    # --- Internal helpers ---

    def _build_payload(
        self, prompt: Prompt, config: ResolvedConfig, with_tool: bool
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": config.model,
            "input": [m.to_payload() for m in prompt.messages],
            "temperature": config.temperature,
            "max_output_tokens": config.max_tokens,
        }
        if with_tool:
            payload["tools"] = [{"type": WEB_SEARCH}]
        return payload

    def _send(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "Authorization": f"Bearer {self.credential.api_key}",
            "Content-Type": "application/json",
        }
        try:
            if self.http_client is not None:
                response = self.http_client.post(
                    self.credential.api_base,
                    json=payload,
                    headers=headers,
                    timeout=self.timeout,
                )
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.credential.api_base, json=payload, headers=headers
                    )
        except httpx.HTTPError as e:
            raise error_from_transport(e) from e

        if not response.is_success:
            raise error_from_response(response)

        try:
            body = response.json() if response.content else None
        except ValueError as e:
            raise UpstreamError("Completion service returned invalid JSON.") from e
        if not isinstance(body, dict) or not body:
            raise UpstreamError("Empty response from completion service.")
        return body
