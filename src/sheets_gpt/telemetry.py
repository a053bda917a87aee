"""Telemetry context and reporter interfaces.

Provides a no-op context when disabled and scoped timings plus metrics when
enabled via ``SHEETS_GPT_TELEMETRY=1`` (or ``DEBUG=1``) and at least one
reporter is supplied.
"""

from collections import deque
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
import logging
import os
import time
from types import TracebackType
from typing import Any, Protocol, Self, TypeAlias, runtime_checkable

log = logging.getLogger(__name__)

# Context-aware state for thread/async safety
_scope_stack_var: ContextVar[tuple[str, ...]] = ContextVar(
    "scope_stack",
    default=(),
)

# Evaluated once at import time
_TELEMETRY_ENABLED = (
    os.getenv("SHEETS_GPT_TELEMETRY") == "1" or os.getenv("DEBUG") == "1"
)


@runtime_checkable
class TelemetryReporter(Protocol):
    """Duck-typed protocol for telemetry reporters."""

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None: ...  # noqa: D102
    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None: ...  # noqa: D102


@dataclass(frozen=True, slots=True)
class _NoOpTelemetryContext:
    """An immutable and stateless no-op context."""

    def __call__(self, name: str, **metadata: Any) -> Self:  # noqa: ARG002
        return self

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        return None

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        pass

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        pass


class _EnabledTelemetryContext:
    """Times nested pipeline scopes and fans records out to reporters.

    Scope names nest through a context variable, so ``pipeline.complete``
    entered inside ``pipeline`` reports as ``pipeline.complete``.
    """

    __slots__ = ("reporters",)

    def __init__(self, *reporters: TelemetryReporter):
        self.reporters = reporters

    @contextmanager
    def __call__(self, name: str, **metadata: Any) -> Iterator["_EnabledTelemetryContext"]:
        if not name or not isinstance(name, str):
            raise ValueError("Scope name must be a non-empty string")
        parents = _scope_stack_var.get()
        token = _scope_stack_var.set((*parents, name))
        started = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - started
            _scope_stack_var.reset(token)
            self._dispatch("record_timing", parents, name, elapsed, metadata)

    def metric(self, name: str, value: Any, **metadata: Any) -> None:
        """Record ``value`` under the current scope path."""
        self._dispatch("record_metric", _scope_stack_var.get(), name, value, metadata)

    def count(self, name: str, increment: int = 1, **metadata: Any) -> None:
        """Record a counter increment (``client.retry``, ``client.tool_downgrade``)."""
        self.metric(name, increment, metric_type="counter", **metadata)

    def _dispatch(
        self,
        method: str,
        parents: tuple[str, ...],
        name: str,
        value: Any,
        metadata: dict[str, Any],
    ) -> None:
        scope = ".".join((*parents, name))
        context = {
            "depth": len(parents),
            "parent_scope": ".".join(parents) or None,
            **metadata,
        }
        for reporter in self.reporters:
            try:
                getattr(reporter, method)(scope, value, **context)
            except Exception:
                log.exception("Telemetry reporter %s failed", type(reporter).__name__)


_NO_OP_SINGLETON = _NoOpTelemetryContext()

TelemetryContextProtocol: TypeAlias = _EnabledTelemetryContext | _NoOpTelemetryContext


def TelemetryContext(*reporters: TelemetryReporter) -> TelemetryContextProtocol:  # noqa: N802
    """Return a telemetry context.

    Returns a full context only when telemetry is enabled and reporters are
    given; otherwise the shared no-op instance.
    """
    if _TELEMETRY_ENABLED and reporters:
        return _EnabledTelemetryContext(*reporters)
    return _NO_OP_SINGLETON


class SimpleReporter:
    """In-memory reporter for development use.

    Collects timings and metrics per scope; ``get_report()`` renders them.
    """

    def __init__(self, max_entries_per_scope: int = 1000):
        self.max_entries = max_entries_per_scope
        self.timings: dict[str, deque[tuple[float, dict[str, Any]]]] = {}
        self.metrics: dict[str, deque[tuple[Any, dict[str, Any]]]] = {}

    def record_timing(self, scope: str, duration: float, **metadata: Any) -> None:
        self.timings.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (duration, metadata)
        )

    def record_metric(self, scope: str, value: Any, **metadata: Any) -> None:
        self.metrics.setdefault(scope, deque(maxlen=self.max_entries)).append(
            (value, metadata)
        )

    def get_report(self) -> str:
        """Render timings and metric totals, one scope per line."""
        lines = ["=== Telemetry Report ===", "", "--- Timings ---"]
        for scope, values in sorted(self.timings.items()):
            durations = [v[0] for v in values]
            lines.append(
                f"{scope:<30} | Calls: {len(durations):<4} | "
                f"Avg: {sum(durations) / len(durations):.4f}s | "
                f"Total: {sum(durations):.4f}s"
            )
        if self.metrics:
            lines.append("")
            lines.append("--- Metrics ---")
            for scope, entries in sorted(self.metrics.items()):
                total = sum(v[0] for v in entries if isinstance(v[0], int | float))
                lines.append(
                    f"{scope:<30} | Count: {len(entries):<4} | Total: {total:,.0f}"
                )
        return "\n".join(lines)
