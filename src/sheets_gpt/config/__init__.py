"""Configuration management for sheets-gpt.

Configuration is resolved once per formula invocation from four layers
(call > document > installation > default) and then flows through the
pipeline as an immutable ``ResolvedConfig``.

Key components:
- ConfigResolver: ordered-fallback resolution over injected settings stores
- ResolvedConfig: clamped configuration with per-field origin tracking
- SettingsSources: the document, installation and user settings tiers
"""

from .audit import SourceTracker, generate_telemetry_summary
from .resolver import INTERNAL_DEFAULTS, ConfigResolver, first_present
from .schema import InstallationSettings, UserSettings
from .stores import (
    API_BASE_KEY,
    API_KEY,
    DOCUMENT_KEYS,
    ENVIRONMENT_KEY,
    INSTALLATION_KEYS,
    ConfigFileError,
    EnvironmentSettingsStore,
    MappingSettingsStore,
    SettingsSources,
    SettingsStore,
    TomlSettingsStore,
)
from .tools import parse_tool_spec, sanitize_parameters
from .types import ConfigOrigin, Credential, ResolvedConfig, SourceMap

__all__ = [  # noqa: RUF022
    # Resolution
    "ConfigResolver",
    "first_present",
    "INTERNAL_DEFAULTS",
    "ResolvedConfig",
    "Credential",
    "ConfigOrigin",
    "SourceMap",
    "SourceTracker",
    "generate_telemetry_summary",
    # Stores
    "SettingsStore",
    "SettingsSources",
    "MappingSettingsStore",
    "EnvironmentSettingsStore",
    "TomlSettingsStore",
    "ConfigFileError",
    "InstallationSettings",
    "UserSettings",
    "DOCUMENT_KEYS",
    "INSTALLATION_KEYS",
    "API_KEY",
    "API_BASE_KEY",
    "ENVIRONMENT_KEY",
    # Tools
    "parse_tool_spec",
    "sanitize_parameters",
]
