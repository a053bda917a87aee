"""The primary entry point for the generation pipeline.

One invocation runs the stages in a fixed order, synchronously:

    parse -> resolve -> tools -> prompt -> complete -> shape -> postprocess

Each stage consumes the previous stage's immutable output. Errors from every
stage except the tool runner propagate unchanged; the formula surfaces decide
how to render them.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
import time
from typing import Any

import httpx

from sheets_gpt.client import ModelClient
from sheets_gpt.config import ConfigResolver, SettingsSources
from sheets_gpt.core.types import GenerationResult, Grid, Shape
from sheets_gpt.pipeline.arguments import parse_arguments
from sheets_gpt.pipeline.postprocess import postprocess
from sheets_gpt.pipeline.prompts import build_prompt
from sheets_gpt.pipeline.shaper import shape_completion
from sheets_gpt.pipeline.tools import ToolRunner
from sheets_gpt.telemetry import TelemetryContext, TelemetryContextProtocol

log = logging.getLogger(__name__)


class Pipeline:
    """Runs formula requests through the generation stages.

    Settings tiers, the HTTP client and the sleep function are injected so a
    pipeline built on fixture stores and a mock transport is deterministic.
    """

    def __init__(
        self,
        sources: SettingsSources | None = None,
        *,
        http_client: httpx.Client | None = None,
        telemetry_context: TelemetryContextProtocol | None = None,
        sleep: Callable[[float], None] = time.sleep,
        tool_runner: ToolRunner | None = None,
    ):
        """Initialize the pipeline.

        Args:
            sources: Document, installation and user settings tiers. Defaults
                to empty in-memory stores.
            http_client: Client used for completion requests.
            telemetry_context: Telemetry context; defaults to the env-driven one.
            sleep: Backoff function used between retries.
            tool_runner: Tool registry; defaults to the built-in runner.
        """
        self.sources = sources or SettingsSources()
        self.resolver = ConfigResolver(self.sources)
        self.http_client = http_client
        self.tele = telemetry_context or TelemetryContext()
        self.sleep = sleep
        self.tool_runner = tool_runner or ToolRunner()

    def run(self, shape: Shape | str, args: Sequence[Any] | None) -> GenerationResult:
        """Execute one formula request end to end.

        Args:
            shape: Output shape of the calling formula.
            args: Positional formula arguments.

        Returns:
            GenerationResult with the grid, target count and diagnostics.

        Raises:
            SheetsGPTError: Any pipeline error, with its tag and message.
        """
        shape = Shape(shape)
        with self.tele("pipeline.parse"):
            request = parse_arguments(shape, args)
        with self.tele("pipeline.resolve"):
            config = self.resolver.resolve(
                request.overrides, inferred_count=request.inferred_count
            )
        target_count = min(config.default_inferred_count, config.hard_count_cap)
        log.debug("Running %s request with target count %d", shape.value, target_count)

        with self.tele("pipeline.tools", tool=config.tool.name):
            tool_result = self.tool_runner.run(config.tool, request.text)
        with self.tele("pipeline.prompt"):
            prompt = build_prompt(
                request,
                config,
                target_count=target_count,
                tool_context=tool_result.context_text,
            )
        with self.tele("pipeline.complete", model=config.model):
            client = ModelClient(
                self.resolver.resolve_credential(),
                http_client=self.http_client,
                telemetry_context=self.tele,
                sleep=self.sleep,
            )
            completion = client.complete(prompt, config, tool_result.tool_spec)
        with self.tele("pipeline.shape"):
            shaped = shape_completion(
                shape,
                completion.content,
                config,
                target_count=target_count,
                schema=request.schema,
            )
        with self.tele("pipeline.postprocess"):
            grid = postprocess(
                shape,
                shaped.items,
                config,
                target_count=target_count,
                schema=request.schema,
            )

        diagnostics = {
            **tool_result.diagnostics,
            **completion.diagnostics(),
            **shaped.diagnostics,
        }
        log.debug("Pipeline diagnostics: %s", diagnostics)
        return GenerationResult(
            shape=shape,
            grid=grid,
            target_count=target_count,
            diagnostics=diagnostics,
            config=config,
        )

    def generate(self, shape: Shape | str, args: Sequence[Any] | None) -> Grid:
        """Execute a request and return only the grid."""
        return self.run(shape, args).grid
