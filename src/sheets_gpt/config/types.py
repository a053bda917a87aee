"""Core configuration data types for the sheets-gpt pipeline.

This module defines the fundamental data structures used throughout the
configuration system, following the resolve-once, freeze-then-flow pattern:
one ``ResolvedConfig`` is created per formula invocation and never mutated.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Literal

from sheets_gpt.constants import DEFAULT_API_BASE
from sheets_gpt.core.types import NO_TOOL, ToolSpec

# --- Source Tracking Types ---

ConfigOrigin = Literal["call", "document", "installation", "default"]
SourceMap = Mapping[str, ConfigOrigin]

# Field display order for audits and CLI output
FIELD_ORDER: tuple[str, ...] = (
    "model",
    "max_tokens",
    "temperature",
    "system_message",
    "tool",
    "default_inferred_count",
    "hard_count_cap",
    "strict",
)

# --- Core Configuration Data ---


@dataclass(frozen=True)
class ResolvedConfig:
    """Fully-specified, clamped configuration for one pipeline invocation.

    This represents the merged result of call-level overrides, document
    settings, installation settings and internal defaults. It carries audit
    metadata (``origin``) recording which layer supplied each field.

    Invariants (enforced by the resolver's clamps):
        ``0 <= temperature <= 2``, ``1 <= max_tokens <= 32768``,
        ``1 <= hard_count_cap <= 1000`` and
        ``1 <= default_inferred_count <= hard_count_cap``.
    """

    model: str
    max_tokens: int
    temperature: float
    system_message: str
    tool: ToolSpec = NO_TOOL
    default_inferred_count: int = 10
    hard_count_cap: int = 200
    strict: bool = False

    # Audit metadata - tracks where each field value came from
    origin: SourceMap = field(default_factory=dict, compare=False)

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with call-level overrides applied.

        This is useful for test setup. Unknown fields are ignored and no clamps
        are re-applied.
        """
        known = {k: v for k, v in overrides.items() if k in FIELD_ORDER}
        new_origin = dict(self.origin)
        for name in known:
            new_origin[name] = "call"
        return replace(self, **known, origin=new_origin)  # type: ignore[arg-type]

    def to_dict(self) -> dict[str, object]:
        """Plain mapping of field values (tool rendered by name)."""
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "system_message": self.system_message,
            "tool": self.tool.name,
            "default_inferred_count": self.default_inferred_count,
            "hard_count_cap": self.hard_count_cap,
            "strict": self.strict,
        }

    def audit(self) -> str:
        """Generate a report showing the origin of each field.

        Returns:
            Human-readable report, one ``field: origin:value`` line per field.
        """
        values = self.to_dict()
        lines = []
        for name in FIELD_ORDER:
            origin = self.origin.get(name, "default")
            lines.append(f"{name}: {origin}:{values[name]!r}")
        return "\n".join(lines)


@dataclass(frozen=True)
class Credential:
    """API credential and endpoint, read from the narrower user tier."""

    api_key: str | None
    api_base: str = DEFAULT_API_BASE

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return f"Credential(api_key={api_key_display!r}, api_base={self.api_base!r})"

    def __repr__(self) -> str:
        """Repr with redacted API key for safe debugging."""
        return self.__str__()
