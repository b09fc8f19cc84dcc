"""Per-source request admission control and human-pacing jitter.

The limiter is a fixed-window counter kept in a small table owned by a
``RateLimiter`` instance (one per collector, so one per process in normal
use). Nothing is persisted: a new process starts with empty windows.

The limiter only advises. ``admit`` returns how long the caller should
wait; ``wait_for_slot`` is the convenience loop that actually sleeps.
"""

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from ..models.source import RateLimitConfig

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleeper = Callable[[float], Awaitable[None]]


@dataclass
class RateLimitWindow:
    """Request count for the current window of one source."""

    count: int = 0
    window_start: Optional[float] = None

    def reset(self, now: float) -> None:
        self.count = 0
        self.window_start = now


class RateLimiter:
    """Fixed-window request counter keyed by source id.

    Example:
        limiter = RateLimiter()
        wait = limiter.admit("xe_gr", config.rate_limit)
        if wait:
            await asyncio.sleep(wait)

        # Or let the limiter do the waiting
        await limiter.wait_for_slot("xe_gr", config.rate_limit)
    """

    def __init__(
        self,
        clock: Clock = time.monotonic,
        sleep: Sleeper = asyncio.sleep,
        max_wait: float = 60.0,
    ):
        """Initialize the limiter.

        Args:
            clock: Monotonic time source in seconds (injectable for tests)
            sleep: Coroutine used by wait_for_slot to pause
            max_wait: Upper bound on any single advised wait
        """
        self._clock = clock
        self._sleep = sleep
        self.max_wait = max_wait
        self._windows: dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()

    def window(self, source_id: str) -> RateLimitWindow:
        """Return a snapshot of the window for a source."""
        with self._lock:
            current = self._windows.get(source_id, RateLimitWindow())
            return RateLimitWindow(current.count, current.window_start)

    def admit(self, source_id: str, rate_limit: RateLimitConfig) -> float:
        """Try to admit one request for a source.

        Args:
            source_id: Source identifier
            rate_limit: The source's ceiling

        Returns:
            0.0 to proceed immediately (the request has been counted), or
            the number of seconds to wait before asking again
        """
        window_seconds = rate_limit.window_seconds
        ceiling = rate_limit.requests_per_window

        with self._lock:
            now = self._clock()
            state = self._windows.setdefault(source_id, RateLimitWindow())

            if state.window_start is None or now >= state.window_start + window_seconds:
                state.reset(now)

            if state.count >= ceiling:
                remaining = state.window_start + window_seconds - now
                if remaining <= 0:
                    remaining = window_seconds / ceiling
                return min(remaining, self.max_wait)

            state.count += 1
            return 0.0

    async def wait_for_slot(self, source_id: str, rate_limit: RateLimitConfig) -> float:
        """Block until a request for the source is admitted.

        Returns:
            Total seconds spent waiting
        """
        waited = 0.0
        while True:
            wait = self.admit(source_id, rate_limit)
            if wait <= 0:
                return waited
            logger.info(f"Rate limit reached for {source_id}, waiting {wait:.1f}s")
            await self._sleep(wait)
            waited += wait

    def reset(self, source_id: Optional[str] = None) -> None:
        """Forget window state for one source, or for all of them."""
        with self._lock:
            if source_id is None:
                self._windows.clear()
            else:
                self._windows.pop(source_id, None)


async def human_delay(
    min_seconds: float,
    max_seconds: float,
    sleep: Sleeper = asyncio.sleep,
) -> float:
    """Sleep for a random duration to avoid a machine-regular request rhythm.

    Returns:
        The delay that was applied
    """
    low, high = sorted((min_seconds, max_seconds))
    delay = random.uniform(low, high)
    if delay > 0:
        await sleep(delay)
    return delay
