"""Classification of draft-room feed failures.

Transient failures (timeouts, network errors, 5xx) are retried in the
background. Persistent failures need the user to act and are not retried:
bad credentials, an unknown room, invalid configuration, or the feed
rate-limiting us.
"""

from typing import Union

from src.draft_ledger.config import DISCONNECTED_FAILURE_THRESHOLD
from src.draft_ledger.draft_state import SyncStatus
from src.sync.config import (
    BASE_RETRY_DELAY_MS,
    ERROR_MESSAGES,
    MAX_RETRY_DELAY_MS,
    PERSISTENT_ERROR_CODES,
    PERSISTENT_HTTP_STATUS,
    TRANSIENT_HTTP_STATUS,
)
from src.sync.models import ErrorClassification, FeedError

TRANSIENT = "transient"
PERSISTENT = "persistent"


def calculate_retry_delay(failure_count: int) -> int:
    return min(BASE_RETRY_DELAY_MS * 2 ** failure_count, MAX_RETRY_DELAY_MS)


def _transient(message: str, failure_count: int, code=None) -> ErrorClassification:
    return ErrorClassification(
        failure_type=TRANSIENT,
        should_retry=True,
        retry_delay_ms=calculate_retry_delay(failure_count),
        display_message=message,
        error_code=code,
    )


def _persistent(message: str, code=None) -> ErrorClassification:
    return ErrorClassification(
        failure_type=PERSISTENT,
        should_retry=False,
        retry_delay_ms=0,
        display_message=message,
        error_code=code,
    )


def classify_error_code(
    code: str, message: str = "", failure_count: int = 0
) -> ErrorClassification:
    """Classify a structured error code returned by the feed."""
    display = ERROR_MESSAGES.get(code) or message
    if code in PERSISTENT_ERROR_CODES:
        return _persistent(display, code)
    return _transient(display, failure_count, code)


def classify_http_status(status_code: int, failure_count: int = 0) -> ErrorClassification:
    """Classify an HTTP status code from the feed transport."""
    if status_code in PERSISTENT_HTTP_STATUS:
        if status_code == 400:
            return _persistent(ERROR_MESSAGES["VALIDATION_ERROR"], "VALIDATION_ERROR")
        if status_code in (401, 403):
            return _persistent(ERROR_MESSAGES["UNAUTHORIZED"], "UNAUTHORIZED")
        if status_code == 404:
            return _persistent(ERROR_MESSAGES["LEAGUE_NOT_FOUND"], "LEAGUE_NOT_FOUND")
        if status_code == 429:
            return _persistent(ERROR_MESSAGES["RATE_LIMITED"], "RATE_LIMITED")
        return _persistent(f"Request failed with status {status_code}")

    if status_code in TRANSIENT_HTTP_STATUS:
        code = "TIMEOUT" if status_code == 408 else "SCRAPE_ERROR"
        return _transient(ERROR_MESSAGES[code], failure_count, code)

    return _transient(
        f"Unexpected error ({status_code}). Will retry automatically.", failure_count
    )


def classify_message(message: str, failure_count: int = 0) -> ErrorClassification:
    """Classify a free-form error message by keyword. Unknown means transient."""
    text = (message or "").lower()

    if "timeout" in text or "timed out" in text or "aborted" in text:
        return _transient(ERROR_MESSAGES["TIMEOUT"], failure_count, "TIMEOUT")

    if any(word in text for word in ("network", "fetch", "connection", "offline")):
        return _transient(ERROR_MESSAGES["NETWORK_ERROR"], failure_count, "NETWORK_ERROR")

    if any(word in text for word in ("unauthorized", "forbidden", "401", "403")):
        return _persistent(ERROR_MESSAGES["UNAUTHORIZED"], "UNAUTHORIZED")

    if "not found" in text or "404" in text:
        return _persistent(ERROR_MESSAGES["LEAGUE_NOT_FOUND"], "LEAGUE_NOT_FOUND")

    if "rate limit" in text or "too many requests" in text or "429" in text:
        return _persistent(ERROR_MESSAGES["RATE_LIMITED"], "RATE_LIMITED")

    return _transient(
        message or "An unexpected error occurred. Will retry automatically.",
        failure_count,
    )


def classify_error(
    error: Union[FeedError, Exception, dict, str], failure_count: int = 0
) -> ErrorClassification:
    """Classify any feed failure.

    Accepts a :class:`FeedError`, a feed error response dict
    (``{"success": False, "code": ..., "error": ...}``), any other
    exception, or a plain message string.
    """
    if isinstance(error, FeedError):
        if error.code:
            return classify_error_code(error.code, str(error), failure_count)
        if error.status_code is not None:
            return classify_http_status(error.status_code, failure_count)
        return classify_message(str(error), failure_count)

    if isinstance(error, dict):
        code = error.get("code")
        message = str(error.get("error", ""))
        if code:
            return classify_error_code(code, message, failure_count)
        return classify_message(message, failure_count)

    if isinstance(error, (TimeoutError, ConnectionError)):
        code = "TIMEOUT" if isinstance(error, TimeoutError) else "NETWORK_ERROR"
        return _transient(ERROR_MESSAGES[code], failure_count, code)

    return classify_message(str(error), failure_count)


def should_enable_manual_mode(classification: ErrorClassification, failure_count: int) -> bool:
    """Persistent failures, or three transient ones in a row, switch to manual mode.

    ``failure_count`` includes the failure being classified.
    """
    if classification.failure_type == PERSISTENT:
        return True
    return failure_count >= DISCONNECTED_FAILURE_THRESHOLD


def get_connection_state(status: SyncStatus) -> str:
    """Summarize a SyncStatus as manual, connected, reconnecting or disconnected."""
    if status.is_manual_mode:
        return "manual"
    if not status.is_connected and status.failure_count == 0 and not status.last_success_at:
        return "disconnected"
    if status.failure_count >= DISCONNECTED_FAILURE_THRESHOLD:
        return "disconnected"
    if status.failure_count > 0:
        return "reconnecting"
    if status.is_connected:
        return "connected"
    return "disconnected"
