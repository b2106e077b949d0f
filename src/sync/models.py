"""Data models for feed reconciliation and retry."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PickEvent:
    """A completed auction reported by the external draft-room feed."""

    player_id: str
    price: float
    team_ref: str
    player_name: str = ""
    position: str = ""


@dataclass(frozen=True)
class ManualBid:
    """A pick typed in by the user while the feed is unavailable."""

    player_id: str
    bid: float
    is_my_team: bool = False
    player_name: str = ""
    position: str = ""
    projected_value: Optional[float] = None
    tier: Optional[str] = None


@dataclass
class ErrorClassification:
    """How a feed failure should be handled."""

    failure_type: str  # "transient" or "persistent"
    should_retry: bool
    retry_delay_ms: int
    display_message: str
    error_code: Optional[str] = None


@dataclass
class RetryState:
    """Read model of the background retry controller."""

    retry_count: int
    current_delay: int
    is_retrying: bool
    phase: str


class FeedError(Exception):
    """Failure reported by the draft-room feed or its transport.

    ``code`` is one of the feed's error codes (e.g. ``"TIMEOUT"``) and
    ``status_code`` an HTTP status, when known.
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.code = code
        self.status_code = status_code
