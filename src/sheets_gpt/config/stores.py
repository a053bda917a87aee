"""Read-only settings stores for the document, installation and user tiers.

The resolver never reaches for ambient state: every tier is injected as a
``SettingsStore`` through a ``SettingsSources`` bundle. Stores are snapshots;
the pipeline reads them and never writes back.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
import tomllib
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from .schema import InstallationSettings, UserSettings

# --- Key names per tier ---

DOCUMENT_KEYS = {
    "model": "OPENAI_MODEL",
    "max_tokens": "OPENAI_MAX_TOKENS",
    "temperature": "OPENAI_TEMPERATURE",
    "system_message": "OPENAI_SYSTEM_MESSAGE",
    "tool": "OPENAI_DEFAULT_TOOL",
    "default_inferred_count": "OPENAI_DEFAULT_COUNT",
    "hard_count_cap": "OPENAI_HARD_COUNT_CAP",
    "strict": "OPENAI_STRICT_MODE",
}

INSTALLATION_KEYS = {
    "model": "DEFAULT_MODEL",
    "max_tokens": "DEFAULT_MAX_TOKENS",
    "temperature": "DEFAULT_TEMPERATURE",
    "system_message": "DEFAULT_SYSTEM_MESSAGE",
    "tool": "DEFAULT_TOOL",
    "default_inferred_count": "DEFAULT_COUNT",
    "hard_count_cap": "HARD_COUNT_CAP",
    "strict": "STRICT_MODE",
}

API_KEY = "OPENAI_API_KEY"
API_BASE_KEY = "OPENAI_API_BASE"
ENVIRONMENT_KEY = "ENVIRONMENT"


class ConfigFileError(Exception):
    """Raised when a settings file exists but cannot be loaded."""

    def __init__(
        self, file_path: Path, message: str, cause: Exception | None = None
    ) -> None:
        """Initialize with file path, message, and optional cause."""
        self.file_path = file_path
        self.message = message
        self.cause = cause
        super().__init__(f"Config file error in {file_path}: {message}")


@runtime_checkable
class SettingsStore(Protocol):
    """Read-only key/value lookup for one settings tier."""

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key``, or None when absent."""
        ...


def _to_setting(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class MappingSettingsStore:
    """In-memory store backed by a plain dict.

    This is the fixture store used in tests and the writable store the
    settings service persists into.
    """

    def __init__(self, values: Mapping[str, Any] | None = None) -> None:
        """Copy ``values`` into a private dict."""
        self._values: dict[str, str] = {}
        for key, value in (values or {}).items():
            setting = _to_setting(value)
            if setting is not None:
                self._values[key] = setting

    def get(self, key: str) -> str | None:
        """Return the stored value for ``key``."""
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        setting = _to_setting(value)
        if setting is None:
            self._values.pop(key, None)
        else:
            self._values[key] = setting

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        self._values.pop(key, None)

    def as_dict(self) -> dict[str, str]:
        """Copy of the stored values."""
        return dict(self._values)


class EnvironmentSettingsStore:
    """Store view over a pydantic-settings model.

    Keys are matched case-insensitively against the model's field names.
    """

    def __init__(self, settings: BaseModel) -> None:
        """Wrap an already-loaded settings model (a snapshot of the env)."""
        self._settings = settings

    @classmethod
    def installation(cls, env_file: str | Path | None = None) -> EnvironmentSettingsStore:
        """Load the installation tier from ``SHEETS_GPT_*`` variables."""
        return cls(InstallationSettings(_env_file=env_file))  # type: ignore[call-arg]

    @classmethod
    def user(cls, env_file: str | Path | None = None) -> EnvironmentSettingsStore:
        """Load the user tier (API credential) from the environment."""
        return cls(UserSettings(_env_file=env_file))  # type: ignore[call-arg]

    def get(self, key: str) -> str | None:
        """Return the field value for ``key`` or None."""
        return _to_setting(getattr(self._settings, key.lower(), None))


class TomlSettingsStore:
    """Document tier read from a table of a TOML file.

    Example file::

        [sheets_gpt]
        OPENAI_MODEL = "gpt-4.1"
        OPENAI_HARD_COUNT_CAP = 50
    """

    def __init__(self, path: str | Path, table: str = "sheets_gpt") -> None:
        """Load ``table`` from ``path``. A missing file yields an empty store.

        Raises:
            ConfigFileError: If the file exists but is not valid TOML, or the
                table is not a TOML table.
        """
        self.path = Path(path)
        self._values: dict[str, str] = {}
        if not self.path.exists():
            return

        try:
            with self.path.open(mode="rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigFileError(self.path, f"Failed to parse TOML: {e}", cause=e) from e

        section = data.get(table, {})
        if not isinstance(section, dict):
            raise ConfigFileError(self.path, f"[{table}] must be a table")
        for key, value in section.items():
            setting = _to_setting(value)
            if setting is not None:
                self._values[str(key).upper()] = setting

    def get(self, key: str) -> str | None:
        """Return the value for ``key`` (case-insensitive)."""
        return self._values.get(key.upper())


@dataclass(frozen=True)
class SettingsSources:
    """The three settings tiers consumed by one pipeline invocation."""

    document: SettingsStore = field(default_factory=MappingSettingsStore)
    installation: SettingsStore = field(default_factory=MappingSettingsStore)
    user: SettingsStore = field(default_factory=MappingSettingsStore)

    @classmethod
    def from_environment(
        cls,
        *,
        document_path: str | Path | None = None,
        env_file: str | Path | None = None,
    ) -> SettingsSources:
        """Build sources from the process environment and an optional TOML file."""
        document: SettingsStore = (
            TomlSettingsStore(document_path)
            if document_path is not None
            else MappingSettingsStore()
        )
        return cls(
            document=document,
            installation=EnvironmentSettingsStore.installation(env_file),
            user=EnvironmentSettingsStore.user(env_file),
        )
