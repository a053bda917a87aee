"""Error classification for completion service responses."""

import re

import httpx

from sheets_gpt.core.parsing import safe_json_loads
from sheets_gpt.exceptions import (
    APIError,
    RateLimitedError,
    RequestTimeoutError,
    UpstreamError,
)

_TOOL_NAME = re.compile(r"web_search", re.IGNORECASE)
_REJECTION_MARKER = re.compile(
    r"invalid value|supported values|unsupported|not supported|unknown tool",
    re.IGNORECASE,
)


def error_from_response(response: httpx.Response) -> APIError:
    """Map a non-success HTTP response onto the API error hierarchy."""
    status = response.status_code
    message = upstream_message(response) or f"HTTP {status} from completion service."
    if status == 429:
        return RateLimitedError(message, status_code=status)
    if status == 408:
        return RequestTimeoutError(message, status_code=status)
    return UpstreamError(message, status_code=status)


def error_from_transport(error: httpx.HTTPError) -> APIError:
    """Map a transport-level failure (no HTTP status) onto the hierarchy."""
    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError(f"Completion request timed out: {error}")
    return UpstreamError(f"Completion request failed: {error}")


def upstream_message(response: httpx.Response) -> str | None:
    """Return ``error.message`` from an error body, if present."""
    body = safe_json_loads(response.text)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
    return None


def is_tool_rejection(error: Exception) -> bool:
    """Whether ``error`` reports the web search capability as not accepted.

    Matches messages such as ``Invalid value: 'web_search'. Supported values
    are: ...``. Rate limits and timeouts never qualify.
    """
    if isinstance(error, RateLimitedError | RequestTimeoutError):
        return False
    text = getattr(error, "message", None) or str(error)
    return bool(_TOOL_NAME.search(text) and _REJECTION_MARKER.search(text))
