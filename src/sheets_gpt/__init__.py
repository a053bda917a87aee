"""Spreadsheet formulas that turn model completions into shaped cell grids."""

import importlib.metadata
import logging

from sheets_gpt.config import (
    ConfigResolver,
    MappingSettingsStore,
    ResolvedConfig,
    SettingsSources,
    SettingsStore,
    TomlSettingsStore,
)
from sheets_gpt.core.types import GenerationResult, Shape
from sheets_gpt.exceptions import (
    APIError,
    BadSchemaError,
    BadToolSpecError,
    InternalShapeError,
    JsonParseFailure,
    MissingInputError,
    NoCredentialError,
    RateLimitedError,
    RequestTimeoutError,
    SettingsError,
    SheetsGPTError,
    UnknownToolError,
    UpstreamError,
)
from sheets_gpt.executor import Pipeline
from sheets_gpt.formulas import GPT, GPT_LIST, GPT_RECORD, GPT_RECORDS
from sheets_gpt.settings import SettingsService
from sheets_gpt.telemetry import TelemetryContext, TelemetryReporter

# Version handling
try:
    __version__ = importlib.metadata.version("sheets-gpt")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Prevents 'No handler found' warnings when the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Formula surfaces
    "GPT",
    "GPT_LIST",
    "GPT_RECORD",
    "GPT_RECORDS",
    # Pipeline
    "Pipeline",
    "GenerationResult",
    "Shape",
    # Configuration
    "ConfigResolver",
    "ResolvedConfig",
    "SettingsSources",
    "SettingsStore",
    "MappingSettingsStore",
    "TomlSettingsStore",
    "SettingsService",
    # Telemetry (extension points)
    "TelemetryContext",
    "TelemetryReporter",
    # Exceptions
    "SheetsGPTError",
    "MissingInputError",
    "BadSchemaError",
    "UnknownToolError",
    "BadToolSpecError",
    "NoCredentialError",
    "JsonParseFailure",
    "InternalShapeError",
    "APIError",
    "RateLimitedError",
    "RequestTimeoutError",
    "UpstreamError",
    "SettingsError",
]
