"""In-memory rate limiter for API requests."""

import asyncio
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict, Tuple


class SlidingWindowRateLimiter:
    """Allow at most `limit` events per key within any `window_seconds` span."""

    def __init__(self, limit: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._events: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = asyncio.Lock()

    async def allow(self, key: str) -> Tuple[bool, int]:
        """Record an event for `key`.

        Returns:
            (allowed, retry_after_seconds); retry_after is 0 when allowed
        """
        now = self._clock()
        async with self._lock:
            events = self._events[key]
            cutoff = now - self.window_seconds
            while events and events[0] <= cutoff:
                events.popleft()

            if len(events) >= self.limit:
                retry_after = max(1, int(events[0] + self.window_seconds - now))
                return False, retry_after

            events.append(now)
            return True, 0
