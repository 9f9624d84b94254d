"""
Periodic ticker driving session recomputation.

A ticker is a cancellable repeating timer. Starting a running ticker first
cancels the previous instance; stopping an idle ticker does nothing.

- ThreadTicker: real 1 Hz timer on a daemon thread
- ManualTicker: fires only when the caller says so (tests, demos)
"""

from typing import Callable, Optional
import logging
import threading

logger = logging.getLogger(__name__)


TickCallback = Callable[[], None]


# =============================================================================
# TICKER INTERFACE
# =============================================================================

class Ticker:
    """Interface for a cancellable repeating timer."""

    def start(self, callback: TickCallback) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    @property
    def is_running(self) -> bool:
        raise NotImplementedError


# =============================================================================
# THREAD TICKER
# =============================================================================

class ThreadTicker(Ticker):
    """
    Repeating timer on a daemon thread.

    The callback runs on the worker thread, so the session serialises ticks
    against commands with its own lock.
    """

    def __init__(self, interval_sec: float = 1.0):
        if interval_sec <= 0:
            raise ValueError(f"interval_sec must be positive, got {interval_sec}")
        self.interval_sec = interval_sec
        self._thread: Optional[threading.Thread] = None
        self._cancel: Optional[threading.Event] = None

    def start(self, callback: TickCallback) -> None:
        self.stop()
        cancel = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(callback, cancel),
            name="arrest-ticker",
            daemon=True,
        )
        self._cancel = cancel
        self._thread = thread
        thread.start()
        logger.debug(f"Ticker started ({self.interval_sec}s interval)")

    def stop(self) -> None:
        if self._cancel is None:
            return
        # No join: the caller may hold the session lock the worker waits on
        self._cancel.set()
        self._cancel = None
        self._thread = None
        logger.debug("Ticker stopped")

    @property
    def is_running(self) -> bool:
        return self._cancel is not None and not self._cancel.is_set()

    def _run(self, callback: TickCallback, cancel: threading.Event) -> None:
        # wait() returns True once cancelled
        while not cancel.wait(self.interval_sec):
            try:
                callback()
            except Exception:
                logger.exception("Tick callback failed; ticker keeps running")


# =============================================================================
# MANUAL TICKER
# =============================================================================

class ManualTicker(Ticker):
    """Ticker that fires only on `fire()`. Tracks running state like a real one."""

    def __init__(self):
        self._callback: Optional[TickCallback] = None
        self.start_count = 0

    def start(self, callback: TickCallback) -> None:
        self.stop()
        self._callback = callback
        self.start_count += 1

    def stop(self) -> None:
        self._callback = None

    @property
    def is_running(self) -> bool:
        return self._callback is not None

    def fire(self, times: int = 1) -> None:
        """Invoke the callback `times` times; no-op while stopped."""
        for _ in range(times):
            if self._callback is None:
                return
            self._callback()
