"""
Sliding-window rate limiting for advisory API calls.

A limiter hands out call slots; callers that find the window full sleep
outside the lock (``time.sleep`` or ``asyncio.sleep``) and try again, so
one waiting thread never blocks the others from checking.
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable
from threading import Lock

from ..constants import OSV_RATE_LIMIT_CALLS, OSV_RATE_LIMIT_PERIOD


class RateLimiter:
    """Allow at most ``calls`` acquisitions per ``period`` seconds."""

    def __init__(
        self,
        calls: int,
        period: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize rate limiter.

        Args:
            calls: Number of calls allowed in the period
            period: Window length in seconds
            clock: Monotonic time source
        """
        self.calls = calls
        self.period = period
        self._clock = clock
        self._window: deque[float] = deque()
        self._lock = Lock()

    def _try_reserve(self) -> float:
        """Take a slot and return 0, or return the seconds until one frees up."""
        with self._lock:
            now = self._clock()
            while self._window and self._window[0] <= now - self.period:
                self._window.popleft()

            if len(self._window) < self.calls:
                self._window.append(now)
                return 0.0
            return self._window[0] + self.period - now

    def acquire(self) -> None:
        """Block until a call slot is available and take it."""
        while (delay := self._try_reserve()) > 0:
            time.sleep(delay)

    async def acquire_async(self) -> None:
        """Wait without blocking the event loop until a slot is available."""
        while (delay := self._try_reserve()) > 0:
            await asyncio.sleep(delay)

    @property
    def in_window(self) -> int:
        """Calls made within the current window."""
        with self._lock:
            now = self._clock()
            return sum(1 for t in self._window if t > now - self.period)


_limiters: dict[str, RateLimiter] = {}
_limiters_lock = Lock()


def get_rate_limiter(api_name: str, calls: int, period: float) -> RateLimiter:
    """Shared limiter per API; the first caller's limits win."""
    with _limiters_lock:
        limiter = _limiters.get(api_name)
        if limiter is None:
            limiter = _limiters[api_name] = RateLimiter(calls, period)
        return limiter


def get_osv_rate_limiter() -> RateLimiter:
    """Get the process-wide OSV rate limiter."""
    return get_rate_limiter("osv", OSV_RATE_LIMIT_CALLS, OSV_RATE_LIMIT_PERIOD)
