from src.sync.error_classifier import classify_error, get_connection_state
from src.sync.models import ErrorClassification, FeedError, ManualBid, PickEvent, RetryState
from src.sync.reconciliation import ReconciliationController
from src.sync.retry_controller import BackgroundRetryController, ThreadingScheduler

__all__ = [
    "BackgroundRetryController",
    "ErrorClassification",
    "FeedError",
    "ManualBid",
    "PickEvent",
    "ReconciliationController",
    "RetryState",
    "ThreadingScheduler",
    "classify_error",
    "get_connection_state",
]
