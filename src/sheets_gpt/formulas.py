"""Spreadsheet formula surfaces.

Each function takes the formula's positional arguments and always returns a
two-dimensional, single-column grid of strings. Pipeline errors are rendered
as a single ``"<tag> <message>"`` cell instead of being raised.
"""

from __future__ import annotations

import logging
from typing import Any

from sheets_gpt.config import SettingsSources
from sheets_gpt.core.types import Grid, Shape
from sheets_gpt.exceptions import SheetsGPTError
from sheets_gpt.executor import Pipeline

log = logging.getLogger(__name__)


def GPT(*args: Any, pipeline: Pipeline | None = None) -> Grid:  # noqa: N802
    """Free-text answer in a single cell."""
    return _run(Shape.TEXT, args, pipeline)


def GPT_LIST(*args: Any, pipeline: Pipeline | None = None) -> Grid:  # noqa: N802
    """One item per row."""
    return _run(Shape.LIST, args, pipeline)


def GPT_RECORD(*args: Any, pipeline: Pipeline | None = None) -> Grid:  # noqa: N802
    """One ``field: value`` row per schema field."""
    return _run(Shape.RECORD, args, pipeline)


def GPT_RECORDS(*args: Any, pipeline: Pipeline | None = None) -> Grid:  # noqa: N802
    """One compact JSON object per row."""
    return _run(Shape.RECORD_LIST, args, pipeline)


def _run(shape: Shape, args: tuple[Any, ...], pipeline: Pipeline | None) -> Grid:
    runner = pipeline or Pipeline(SettingsSources.from_environment())
    try:
        return runner.generate(shape, list(args))
    except SheetsGPTError as e:
        log.debug("Formula %s failed: %s", shape.value, e)
        return e.to_cell()