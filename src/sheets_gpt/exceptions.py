"""Error kinds raised by the sheets-gpt generation pipeline.

Every error carries a stable machine-readable ``tag`` (rendered into the
spreadsheet cell by the formula surfaces) and a human readable ``message``.
"""


class SheetsGPTError(Exception):
    """Base exception for sheets-gpt errors"""  # noqa: D415

    tag = "#GPT_INTERNAL"

    def __init__(self, message: str = "") -> None:
        """Store the human message alongside the class-level tag."""
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        """Tagged representation suitable for a single spreadsheet cell."""
        return f"{self.tag} {self.message}".strip()

    def to_cell(self) -> list[list[str]]:
        """Render the error as a one-row, one-column grid."""
        return [[str(self)]]


class MissingInputError(SheetsGPTError):
    """Raised when the instruction text is missing or blank"""  # noqa: D415

    tag = "#GPT_MISSING_INPUT"


class BadSchemaError(SheetsGPTError):
    """Raised when a record schema string cannot be parsed"""  # noqa: D415

    tag = "#GPT_BAD_SCHEMA"


class UnknownToolError(SheetsGPTError):
    """Raised when a tool name is not registered"""  # noqa: D415

    tag = "#GPT_TOOL_UNKNOWN"


class BadToolSpecError(SheetsGPTError):
    """Raised when a structured tool specification is malformed"""  # noqa: D415

    tag = "#GPT_TOOL_BAD_SPEC"


class NoCredentialError(SheetsGPTError):
    """Raised when no API credential is configured"""  # noqa: D415

    tag = "#GPT_NO_KEY"


class JsonParseFailure(SheetsGPTError):  # noqa: N818
    """Raised in strict mode when a record candidate cannot be parsed"""  # noqa: D415

    tag = "#GPT_JSON_PARSE"


class InternalShapeError(SheetsGPTError):
    """Raised when a stage receives a shape it does not handle"""  # noqa: D415

    tag = "#GPT_INTERNAL"


class APIError(SheetsGPTError):
    """Base for failures reported by the completion service"""  # noqa: D415

    tag = "#GPT_UPSTREAM"

    def __init__(self, message: str = "", status_code: int | None = None) -> None:
        """Keep the HTTP status (when known) for classification and logging."""
        self.status_code = status_code
        super().__init__(message)


class RateLimitedError(APIError):
    """Raised when the completion service answers HTTP 429"""  # noqa: D415

    tag = "#GPT_RATE_LIMIT"


class RequestTimeoutError(APIError):
    """Raised when the completion service times out (HTTP 408 or transport)"""  # noqa: D415

    tag = "#GPT_TIMEOUT"


class UpstreamError(APIError):
    """Raised for any other non-success or unusable upstream response"""  # noqa: D415

    tag = "#GPT_UPSTREAM"


class SettingsError(SheetsGPTError):
    """Raised when a settings payload is rejected by the settings service"""  # noqa: D415

    tag = "#GPT_SETTINGS"
