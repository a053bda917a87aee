"""Configuration resolution with precedence handling.

This module implements the core resolution algorithm that merges configuration
from multiple layers according to the documented precedence order:
Call-level override > Document settings > Installation settings > Defaults

The precedence itself is a single pure function, ``first_present``, applied to
an explicit list of candidates per field. Clamps are applied once, after all
fields are merged.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
import logging
from typing import Any, TypeVar

from sheets_gpt import constants as C
from sheets_gpt.core.parsing import (
    clamp,
    is_blank,
    parse_bool,
    parse_leading_float,
    parse_positive_int,
)
from sheets_gpt.core.types import CallOverrides

from .audit import SourceTracker
from .stores import (
    API_BASE_KEY,
    API_KEY,
    DOCUMENT_KEYS,
    INSTALLATION_KEYS,
    SettingsSources,
)
from .tools import parse_tool_spec
from .types import ConfigOrigin, Credential, ResolvedConfig

log = logging.getLogger(__name__)

T = TypeVar("T")

Candidate = tuple[ConfigOrigin, Any]

INTERNAL_DEFAULTS: dict[str, Any] = {
    "model": C.DEFAULT_MODEL,
    "max_tokens": C.DEFAULT_MAX_TOKENS,
    "temperature": C.DEFAULT_TEMPERATURE,
    "system_message": C.DEFAULT_SYSTEM_MESSAGE,
    "tool": C.DEFAULT_TOOL,
    "default_inferred_count": C.DEFAULT_INFERRED_COUNT,
    "hard_count_cap": C.DEFAULT_HARD_COUNT_CAP,
    "strict": C.DEFAULT_STRICT,
}


def first_present(
    candidates: Iterable[Candidate],
    parse: Callable[[Any], T | None],
) -> tuple[T, ConfigOrigin] | None:
    """Return the first candidate that is present and parses.

    A candidate is present when it is not None and not a blank string. The
    ``parse`` callable doubles as the presence test for typed fields: a value
    it maps to None is skipped and the next candidate is tried.

    Args:
        candidates: ``(origin, raw value)`` pairs in precedence order.
        parse: Converts a raw value, returning None when unusable.

    Returns:
        ``(value, origin)`` of the winning candidate, or None if none qualifies.
    """
    for origin, raw in candidates:
        if is_blank(raw):
            continue
        value = parse(raw)
        if value is not None:
            return value, origin
    return None


def _parse_text(raw: Any) -> str | None:
    return raw if isinstance(raw, str) else str(raw)


def _passthrough(raw: Any) -> Any:
    return raw


class ConfigResolver:
    """Resolves configuration from the settings tiers with proper precedence.

    The settings tiers are injected explicitly, so a resolver built on fixture
    stores is fully deterministic.
    """

    def __init__(self, sources: SettingsSources | None = None) -> None:
        """Initialize the resolver over read-only settings sources."""
        self.sources = sources or SettingsSources()

    def resolve(
        self,
        overrides: CallOverrides | None = None,
        *,
        inferred_count: int | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all tiers with proper precedence.

        Args:
            overrides: Call-level overrides parsed from formula arguments.
            inferred_count: Count inferred from the instruction text; acts as
                the call-level candidate for ``default_inferred_count``.

        Returns:
            ResolvedConfig with clamped values and source tracking.

        Raises:
            UnknownToolError: If the winning tool setting names an unknown tool.
            BadToolSpecError: If the winning tool setting is malformed.
        """
        overrides = overrides or CallOverrides()
        tracker = SourceTracker()

        def pick(name: str, call_value: Any, parse: Callable[[Any], Any]) -> Any:
            picked = first_present(self._candidates(name, call_value), parse)
            # Blank internal defaults (system message) are still the fallback
            value, origin = picked or (INTERNAL_DEFAULTS[name], "default")
            tracker.set_origin(name, origin)
            return value

        model = pick("model", overrides.model, _parse_text)
        max_tokens = pick("max_tokens", overrides.max_tokens, parse_positive_int)
        temperature = pick("temperature", overrides.temperature, parse_leading_float)
        system_message = pick(
            "system_message", overrides.system_message, _parse_text
        )
        tool_raw = first_present(self._candidates("tool", overrides.tool), _passthrough)
        default_count = pick(
            "default_inferred_count", inferred_count, parse_positive_int
        )
        hard_cap = pick("hard_count_cap", None, parse_positive_int)
        strict = pick("strict", None, parse_bool)

        if tool_raw is None:
            tool = parse_tool_spec(None)
            tracker.set_origin("tool", "default")
        else:
            tool = parse_tool_spec(tool_raw[0])
            tracker.set_origin("tool", tool_raw[1])

        hard_cap = int(clamp(hard_cap, *C.HARD_COUNT_CAP_RANGE))
        resolved = ResolvedConfig(
            model=model,
            max_tokens=int(clamp(max_tokens, *C.MAX_TOKENS_RANGE)),
            temperature=float(clamp(temperature, *C.TEMPERATURE_RANGE)),
            system_message=system_message,
            tool=tool,
            default_inferred_count=int(clamp(default_count, 1, hard_cap)),
            hard_count_cap=hard_cap,
            strict=strict,
            origin=tracker.get_source_map(),
        )
        log.debug("Resolved configuration: %s", resolved.to_dict())
        return resolved

    def resolve_credential(self) -> Credential:
        """Read the API credential (user tier) and endpoint (installation tier)."""
        api_key = self.sources.user.get(API_KEY)
        api_base = self.sources.installation.get(API_BASE_KEY)
        return Credential(
            api_key=None if is_blank(api_key) else str(api_key).strip(),
            api_base=C.DEFAULT_API_BASE if is_blank(api_base) else str(api_base).strip(),
        )

    # --- Internal helpers ---

    def _candidates(self, name: str, call_value: Any) -> list[Candidate]:
        return [
            ("call", call_value),
            ("document", self.sources.document.get(DOCUMENT_KEYS[name])),
            ("installation", self.sources.installation.get(INSTALLATION_KEYS[name])),
            ("default", INTERNAL_DEFAULTS[name]),
        ]
