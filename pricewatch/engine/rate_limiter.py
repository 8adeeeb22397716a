"""Fixed-window request budget per logical key."""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

QUOTE_FETCH_KEY = "quote-fetch"
SYMBOL_SEARCH_KEY = "symbol-search"


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """In-process fixed-window rate limiter.

    Each key gets ``max_requests`` allowances per ``window_seconds``. The
    window starts on first use of the key. Denial is immediate; the caller
    decides whether to skip, fail or fall back to cache.

    State is process-local and lost on restart.
    """

    def __init__(
        self,
        window_seconds: float = 60.0,
        max_requests: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window_seconds = float(window_seconds)
        self.max_requests = int(max_requests)
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def allow(self, key: str = "default") -> bool:
        """Consume one request from ``key``'s budget.

        Returns:
            True if the request is within budget, False if denied.
        """
        with self._lock_for(key):
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def remaining(self, key: str = "default") -> int:
        """Requests still allowed in the current window for ``key``."""
        with self._lock_for(key):
            window = self._windows.get(key)
            if window is None or self._clock() >= window.reset_at:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def reset(self, key: Optional[str] = None) -> None:
        """Forget window state for one key, or for all keys."""
        with self._registry_lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
