"""Settings service backing the settings sidebar.

Reads and writes the user-tier API key and the document-tier model,
temperature and max-token settings. This is the only component that writes
settings; the generation pipeline only reads them.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from sheets_gpt import constants as C
from sheets_gpt.config import (
    API_KEY,
    DOCUMENT_KEYS,
    INSTALLATION_KEYS,
    MappingSettingsStore,
    SettingsStore,
)
from sheets_gpt.core.parsing import clamp, parse_leading_float, parse_leading_int
from sheets_gpt.exceptions import SettingsError

log = logging.getLogger(__name__)

API_KEY_PATTERN = re.compile(r"^sk-[A-Za-z0-9]{20,}$")


@runtime_checkable
class WritableSettingsStore(SettingsStore, Protocol):
    """A settings store that also accepts writes."""

    def set(self, key: str, value: Any) -> None: ...  # noqa: D102
    def delete(self, key: str) -> None: ...  # noqa: D102


class SettingsPayload(BaseModel):
    """Settings submitted from the sidebar."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    api_key: str = ""
    retain_existing_key: bool = False
    model: str | None = None
    temperature: Any = None
    max_tokens: Any = None

    @field_validator("api_key", mode="before")
    @classmethod
    def validate_api_key(cls, v: Any) -> str:
        """Trim the key and check its format when one is given."""
        key = "" if v is None else str(v).strip()
        if key and not API_KEY_PATTERN.match(key):
            raise ValueError('Enter a valid OpenAI API key (starts with "sk-").')
        return key


def mask_api_key(key: str | None) -> str:
    """Mask all but the last four characters."""
    if not key:
        return ""
    return "*" * max(0, len(key) - 4) + key[-4:]


def normalize_temperature(value: Any, fallback: float) -> float:
    parsed = parse_leading_float(value)
    if parsed is None:
        return fallback
    return round(clamp(parsed, *C.TEMPERATURE_RANGE), 2)


def normalize_max_tokens(value: Any, fallback: int) -> int:
    parsed = parse_leading_int(value)
    if parsed is None:
        return fallback
    return int(clamp(parsed, *C.MAX_TOKENS_RANGE))


class SettingsService:
    """Reads and persists sidebar settings over injected stores."""

    def __init__(
        self,
        *,
        document: WritableSettingsStore | None = None,
        user: WritableSettingsStore | None = None,
        installation: SettingsStore | None = None,
        http_client: httpx.Client | None = None,
        models_endpoint: str = C.MODELS_ENDPOINT,
    ):
        self.document = document if document is not None else MappingSettingsStore()
        self.user = user if user is not None else MappingSettingsStore()
        self.installation = (
            installation if installation is not None else MappingSettingsStore()
        )
        self.http_client = http_client
        self.models_endpoint = models_endpoint

    def defaults(self) -> dict[str, Any]:
        """Installation-tier defaults, falling back to internal defaults."""
        return {
            "model": self.installation.get(INSTALLATION_KEYS["model"]) or C.DEFAULT_MODEL,
            "temperature": normalize_temperature(
                self.installation.get(INSTALLATION_KEYS["temperature"]),
                C.DEFAULT_TEMPERATURE,
            ),
            "max_tokens": normalize_max_tokens(
                self.installation.get(INSTALLATION_KEYS["max_tokens"]),
                C.DEFAULT_MAX_TOKENS,
            ),
        }

    def get_settings(self) -> dict[str, Any]:
        """Current settings for display; the API key is masked."""
        defaults = self.defaults()
        api_key = self.user.get(API_KEY)
        temperature = parse_leading_float(self.document.get(DOCUMENT_KEYS["temperature"]))
        max_tokens = parse_leading_int(self.document.get(DOCUMENT_KEYS["max_tokens"]))
        return {
            "has_api_key": bool(api_key),
            "api_key_masked": mask_api_key(api_key),
            "model": self.document.get(DOCUMENT_KEYS["model"]) or defaults["model"],
            "temperature": defaults["temperature"] if temperature is None else temperature,
            "max_tokens": defaults["max_tokens"] if max_tokens is None else max_tokens,
            "defaults": defaults,
        }

    def save_settings(self, payload: dict[str, Any] | SettingsPayload | None) -> dict[str, str]:
        """Validate and persist a settings payload.

        Raises:
            SettingsError: If the payload is missing, the key is malformed, or
                no key would be stored while retaining the existing one.
        """
        if payload is None:
            raise SettingsError("No settings payload received.")
        try:
            data = (
                payload
                if isinstance(payload, SettingsPayload)
                else SettingsPayload.model_validate(payload)
            )
        except ValidationError as e:
            raise SettingsError(_first_error(e)) from e

        has_existing_key = bool(self.user.get(API_KEY))
        if data.api_key:
            self.user.set(API_KEY, data.api_key)
        elif not data.retain_existing_key:
            self.user.delete(API_KEY)
        elif not has_existing_key:
            raise SettingsError("Add your OpenAI API key before saving.")

        defaults = self.defaults()
        model = (data.model or "").strip() or defaults["model"]
        temperature = normalize_temperature(data.temperature, defaults["temperature"])
        max_tokens = normalize_max_tokens(data.max_tokens, defaults["max_tokens"])

        self.document.set(DOCUMENT_KEYS["model"], model)
        self.document.set(DOCUMENT_KEYS["temperature"], str(temperature))
        self.document.set(DOCUMENT_KEYS["max_tokens"], str(max_tokens))
        log.info(
            "Saved settings: model=%s temperature=%s max_tokens=%s",
            model,
            temperature,
            max_tokens,
        )
        return {"message": "Settings saved successfully."}

    def test_connection(self, api_key: str | None = None) -> dict[str, Any]:
        """Check a candidate (or the stored) key against the models endpoint.

        Never raises; failures are reported in the returned message.
        """
        key = (api_key or "").strip() or (self.user.get(API_KEY) or "")
        if not key:
            return {"success": False, "message": "Add your OpenAI API key before testing."}

        headers = {"Authorization": f"Bearer {key}"}
        try:
            if self.http_client is not None:
                response = self.http_client.get(self.models_endpoint, headers=headers)
            else:
                with httpx.Client(timeout=C.NETWORK_TIMEOUT) as client:
                    response = client.get(self.models_endpoint, headers=headers)
        except httpx.HTTPError as e:
            log.warning("Connection test failed: %s", e)
            return {"success": False, "message": f"Unable to contact OpenAI: {e}"}

        if response.is_success:
            return {"success": True, "message": "API key is valid."}

        message = "Invalid API key. Please double-check and try again."
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message") or message
        return {"success": False, "message": message}


def _first_error(error: ValidationError) -> str:
    errors = error.errors()
    if not errors:
        return str(error)
    message = str(errors[0].get("msg", ""))
    return message.removeprefix("Value error, ")
