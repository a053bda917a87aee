"""
Project-wide constants for sheets-gpt
"""  # noqa: D200, D212, D415

# ==============================================================================
# Completion Service
# ==============================================================================

DEFAULT_API_BASE = "https://api.openai.com/v1/responses"
MODELS_ENDPOINT = "https://api.openai.com/v1/models"

# Retry and timeout settings
MAX_RETRIES = 1
RETRY_BACKOFF = 0.6  # seconds
NETWORK_TIMEOUT = 15.0  # seconds

# ==============================================================================
# Internal Configuration Defaults
# ==============================================================================

DEFAULT_MODEL = "gpt-4.1-mini"
DEFAULT_MAX_TOKENS = 512
DEFAULT_TEMPERATURE = 0.3
DEFAULT_SYSTEM_MESSAGE = ""
DEFAULT_TOOL = ""
DEFAULT_INFERRED_COUNT = 10
DEFAULT_HARD_COUNT_CAP = 200
DEFAULT_STRICT = False

# Clamp ranges applied after resolution
HARD_COUNT_CAP_RANGE = (1, 1000)
TEMPERATURE_RANGE = (0.0, 2.0)
MAX_TOKENS_RANGE = (1, 32768)

# Parse-time sanity bound for count inference, independent of configuration
INTERNAL_HARD_CAP = 200

# ==============================================================================
# Tools
# ==============================================================================

WEB_SEARCH = "web_search"
MAX_QUERY_LENGTH = 400
MAX_RESULTS_RANGE = (1, 25)
MAX_RECENCY_LENGTH = 32
TOOL_PARAM_MAX_DEPTH = 3
TOOL_PARAM_MAX_ITEMS = 10

# ==============================================================================
# Output Placeholders
# ==============================================================================

NO_RESULTS = "(no results)"
NO_DATA = "(no data)"
EMPTY_RECORD = "{}"
