"""Environment-backed settings schemas using Pydantic.

The installation tier is read from ``SHEETS_GPT_*`` environment variables (and
an optional ``.env`` file). Values are kept as raw strings: presence testing,
parsing and clamping belong to the resolver so that every tier is treated the
same way.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class InstallationSettings(BaseSettings):
    """Per-installation settings shared by every document.

    Each field maps to an installation-tier key by upper-casing its name
    (``default_model`` -> ``DEFAULT_MODEL``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SHEETS_GPT_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore unknown env vars for forward compatibility
    )

    default_model: str | None = Field(default=None, description="Model name")
    default_max_tokens: str | None = Field(default=None, description="Max tokens")
    default_temperature: str | None = Field(default=None, description="Temperature")
    default_system_message: str | None = Field(
        default=None, description="System message prepended to every prompt"
    )
    default_tool: str | None = Field(
        default=None, description="Tool name or JSON tool specification"
    )
    default_count: str | None = Field(default=None, description="Default item count")
    hard_count_cap: str | None = Field(default=None, description="Hard item cap")
    strict_mode: str | None = Field(default=None, description="Strict record parsing")
    openai_api_base: str | None = Field(
        default=None, description="Completion endpoint URL"
    )
    environment: str | None = Field(
        default=None, description="Deployment environment ('dev' enables debug logs)"
    )

    @field_validator("*", mode="before")
    @classmethod
    def stringify(cls, v: object) -> object:
        """Keep scalar values as strings so the resolver sees raw settings."""
        if isinstance(v, bool):
            return "true" if v else "false"
        if isinstance(v, int | float):
            return str(v)
        return v


class UserSettings(BaseSettings):
    """Per-user secrets. Only the API credential lives here."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    openai_api_key: str | None = Field(default=None, description="OpenAI API key")

    def __repr__(self) -> str:
        """Repr with redacted API key for safe debugging."""
        shown = "[REDACTED]" if self.openai_api_key else None
        return f"UserSettings(openai_api_key={shown!r})"

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        return self.__repr__()
