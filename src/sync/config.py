# Background retry backoff (milliseconds)
BACKGROUND_RETRY_INITIAL_DELAY_MS = 5000
BACKGROUND_RETRY_MAX_DELAY_MS = 30000

# Advisory retry delay reported with each error classification (milliseconds)
BASE_RETRY_DELAY_MS = 5000
MAX_RETRY_DELAY_MS = 20000

# Feed picks at or above this count in one batch are logged as a catch-up sync
CATCH_UP_NOTIFICATION_THRESHOLD = 3

TRANSIENT_HTTP_STATUS = {408, 500, 502, 503, 504}
PERSISTENT_HTTP_STATUS = {400, 401, 403, 404, 405, 422, 429}

PERSISTENT_ERROR_CODES = {
    "UNAUTHORIZED",
    "LEAGUE_NOT_FOUND",
    "VALIDATION_ERROR",
    "RATE_LIMITED",
}

ERROR_MESSAGES = {
    "TIMEOUT": "Connection timed out. Will retry automatically.",
    "NETWORK_ERROR": "Network connection failed. Check your internet connection.",
    "SCRAPE_ERROR": "Unable to fetch draft data. The draft room may be temporarily unavailable.",
    "PARSE_ERROR": "Unable to read draft data. Will retry automatically.",
    "RATE_LIMITED": "Too many requests. Wait a moment, then retry the connection.",
    "UNAUTHORIZED": "Authentication failed. Please check your room ID.",
    "LEAGUE_NOT_FOUND": "Draft room not found. Please verify the room ID is correct.",
    "VALIDATION_ERROR": "Invalid configuration. Please check your settings.",
}
