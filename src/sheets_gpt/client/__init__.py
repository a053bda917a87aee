"""HTTP client for the completion service."""

from .content_processor import extract_text, extract_usage
from .error_handler import error_from_response, error_from_transport, is_tool_rejection
from .model_client import ModelClient

__all__ = [
    "ModelClient",
    "error_from_response",
    "error_from_transport",
    "extract_text",
    "extract_usage",
    "is_tool_rejection",
]
