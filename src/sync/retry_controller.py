"""Background retry controller - exponential backoff for feed reconnection.

State machine::

    IDLE --on_failure()--> SCHEDULED --timer--> RETRYING
    RETRYING --success--> IDLE       (delay and count reset)
    RETRYING --failure--> SCHEDULED  (delay doubled, capped)

Scheduling never looks at manual mode: while the user is entering picks by
hand, reconnection attempts keep firing on their normal schedule.
"""

import logging
import threading
from typing import Callable, Optional

from src.sync.config import BACKGROUND_RETRY_INITIAL_DELAY_MS, BACKGROUND_RETRY_MAX_DELAY_MS
from src.sync.models import RetryState

logger = logging.getLogger(__name__)

IDLE = "idle"
SCHEDULED = "scheduled"
RETRYING = "retrying"


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads.

    Any object with ``call_later(seconds, callback)`` returning a handle that
    has ``cancel()`` can be used instead.
    """

    def call_later(self, delay_seconds: float, callback: Callable[[], None]):
        timer = threading.Timer(delay_seconds, callback)
        timer.daemon = True
        timer.start()
        return timer


class BackgroundRetryController:
    """Per-league reconnection loop with exponential backoff.

    ``retry_fn`` performs one reconnection attempt and returns True on
    success. It reports its outcome only through the return value (or by
    raising); the controller schedules the follow-up attempt itself.
    """

    def __init__(
        self,
        retry_fn: Callable[[], bool],
        enabled: bool = True,
        is_manual_mode: bool = False,
        initial_delay: int = BACKGROUND_RETRY_INITIAL_DELAY_MS,
        max_delay: int = BACKGROUND_RETRY_MAX_DELAY_MS,
        on_success: Optional[Callable[[], None]] = None,
        on_retry_failed: Optional[Callable[[Exception], None]] = None,
        scheduler=None,
        name: str = "",
    ):
        if initial_delay <= 0 or max_delay < initial_delay:
            raise ValueError(
                f"Invalid retry delays: initial_delay={initial_delay}, max_delay={max_delay}"
            )
        self.retry_fn = retry_fn
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.on_success = on_success
        self.on_retry_failed = on_retry_failed
        self.scheduler = scheduler or ThreadingScheduler()
        self.name = name

        self.retry_count = 0
        self.current_delay = initial_delay
        self.is_retrying = False
        self.phase = IDLE
        self.scheduled_delay: Optional[int] = None

        self._enabled = enabled
        self._is_manual_mode = is_manual_mode
        self._disposed = False
        self._pending = None
        self._generation = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def state(self) -> RetryState:
        with self._lock:
            return RetryState(
                retry_count=self.retry_count,
                current_delay=self.current_delay,
                is_retrying=self.is_retrying,
                phase=self.phase,
            )

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_manual_mode(self) -> bool:
        return self._is_manual_mode

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def get_next_delay(self, count: int) -> int:
        return min(self.initial_delay * 2 ** count, self.max_delay)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def on_failure(self):
        """Record a failed sync and schedule the next attempt.

        The attempt waits for the delay in effect before this failure, so
        the defaults give waits of 5s, 10s, 20s, 30s, 30s, ...
        """
        with self._lock:
            if self._disposed:
                return
            wait = self.current_delay
            self.retry_count += 1
            self.current_delay = self.get_next_delay(self.retry_count)

            if not self._enabled:
                logger.debug("%s: retry disabled, not scheduling", self._label())
                return

            self._schedule(wait)
            logger.info(
                "%s: scheduling background retry in %dms (attempt %d)%s",
                self._label(),
                wait,
                self.retry_count,
                " [manual mode active]" if self._is_manual_mode else "",
            )

    def retry(self) -> bool:
        """Cancel any pending attempt and try to reconnect now."""
        with self._lock:
            if self._disposed:
                return False
            self._cancel_pending()
        return self._attempt()

    def reset(self):
        with self._lock:
            self._cancel_pending()
            self.retry_count = 0
            self.current_delay = self.initial_delay
            self.is_retrying = False
            self.phase = IDLE

    def set_enabled(self, enabled: bool):
        """Disabling cancels the pending attempt. Enabling schedules nothing."""
        with self._lock:
            self._enabled = enabled
            if not enabled:
                self._cancel_pending()

    def set_manual_mode(self, is_manual_mode: bool):
        with self._lock:
            self._is_manual_mode = is_manual_mode
        if is_manual_mode:
            logger.info("%s: manual mode on, background retries continue", self._label())

    def dispose(self):
        """Cancel timers for good. No callback fires after this returns."""
        with self._lock:
            self._disposed = True
            self._cancel_pending()
            self.is_retrying = False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _label(self) -> str:
        return f"Retry[{self.name}]" if self.name else "Retry"

    def _schedule(self, delay_ms: int):
        self._cancel_pending()
        self._generation += 1
        generation = self._generation
        self._pending = self.scheduler.call_later(
            delay_ms / 1000.0, lambda: self._on_timer(generation)
        )
        self.scheduled_delay = delay_ms
        self.phase = SCHEDULED

    def _cancel_pending(self):
        # Bumping the generation invalidates a timer that already started firing
        self._generation += 1
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        self.scheduled_delay = None
        if self.phase == SCHEDULED:
            self.phase = IDLE

    def _on_timer(self, generation: int):
        with self._lock:
            if self._disposed or not self._enabled or generation != self._generation:
                return
            self._pending = None
            self.scheduled_delay = None
        self._attempt()

    def _attempt(self) -> bool:
        with self._lock:
            if self._disposed:
                return False
            if self.is_retrying:
                logger.debug("%s: attempt already in progress", self._label())
                return False
            self.is_retrying = True
            self.phase = RETRYING

        error = None
        try:
            success = bool(self.retry_fn())
        except Exception as e:
            logger.warning("%s: reconnection attempt raised: %s", self._label(), e)
            error = e
            success = False

        with self._lock:
            if self._disposed:
                return False
            self.is_retrying = False
            if success:
                self.reset()
            else:
                self.phase = IDLE

        if success:
            logger.info("%s: connection restored", self._label())
            if self.on_success is not None:
                self.on_success()
            return True

        if error is not None and self.on_retry_failed is not None:
            self.on_retry_failed(error)
        self.on_failure()
        return False
