"""Text and usage extraction from completion service response bodies.

The service may answer in one of three layouts, checked in this order:

1. A flat ``output_text`` string.
2. An ``output`` list of items whose ``content`` blocks carry ``text``.
3. The legacy ``choices[0].message.content`` field.
"""

from collections.abc import Mapping
from typing import Any

_TEXT_BLOCK_TYPES = ("output_text", "text")


def extract_text(body: Mapping[str, Any]) -> str | None:
    """Return the completion text, or None when no layout yields any."""
    flat = body.get("output_text")
    if isinstance(flat, str) and flat.strip():
        return flat

    output = body.get("output")
    if isinstance(output, list):
        pieces = [piece for item in output for piece in _block_texts(item)]
        joined = "\n".join(p for p in pieces if p)
        if joined.strip():
            return joined

    choices = body.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
        message = choices[0].get("message")
        if isinstance(message, Mapping):
            content = message.get("content")
            if isinstance(content, str) and content.strip():
                return content
    return None


def extract_usage(body: Mapping[str, Any]) -> dict[str, Any] | None:
    """Usage accounting, with ``total_tokens`` filled in when derivable."""
    usage = body.get("usage")
    if not isinstance(usage, Mapping):
        return None
    data = dict(usage)
    if "total_tokens" not in data:
        prompt = data.get("input_tokens", data.get("prompt_tokens"))
        completion = data.get("output_tokens", data.get("completion_tokens"))
        if isinstance(prompt, int) and isinstance(completion, int):
            data["total_tokens"] = prompt + completion
    return data


def _block_texts(item: Any) -> list[str]:
    if not isinstance(item, Mapping):
        return []
    if isinstance(item.get("text"), str) and item.get("type") in _TEXT_BLOCK_TYPES:
        return [item["text"]]
    content = item.get("content")
    if isinstance(content, str):
        return [content]
    if not isinstance(content, list):
        return []
    texts = []
    for block in content:
        if (
            isinstance(block, Mapping)
            and block.get("type", "output_text") in _TEXT_BLOCK_TYPES
            and isinstance(block.get("text"), str)
        ):
            texts.append(block["text"])
    return texts
