"""Engine-wide defaults."""

DEFAULT_STEP_TIMEOUT_MS = 30000
DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_RETRY_DELAY_MS = 1000
DEFAULT_ON_ERROR = "stop"
DEFAULT_CACHE_TTL_SECONDS = 300
DURATION_KEY = "_duration"
