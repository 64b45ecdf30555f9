"""Sliding-window request limiter.

Enforces ``per_minute`` and ``per_hour`` ceilings across every fetch a
crawler issues.  A limit of ``0`` disables that window.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Callable

logger = logging.getLogger(__name__)

MINUTE_S = 60.0
HOUR_S = 3600.0


class RateLimiter:
    def __init__(
        self,
        per_minute: int = 60,
        per_hour: int = 1000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._windows = [
            (limit, span) for limit, span in ((per_minute, MINUTE_S), (per_hour, HOUR_S)) if limit > 0
        ]
        self._hits: deque[float] = deque()
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()

    def _wait_needed(self, now: float) -> float:
        wait = 0.0
        for limit, span in self._windows:
            in_window = [t for t in self._hits if now - t < span]
            if len(in_window) >= limit:
                # Oldest hit that must age out before another request fits.
                wait = max(wait, in_window[-limit] + span - now)
        return wait

    def acquire(self) -> float:
        """Block until a request is allowed, record it, return seconds slept."""
        if not self._windows:
            return 0.0

        slept = 0.0
        with self._lock:
            while True:
                now = self._clock()
                longest = max(span for _limit, span in self._windows)
                while self._hits and now - self._hits[0] >= longest:
                    self._hits.popleft()

                wait = self._wait_needed(now)
                if wait <= 0:
                    self._hits.append(now)
                    return slept
                logger.info("[CRAWL] Rate limit reached, waiting %.1fs", wait)
                self._sleep(wait)
                slept += wait
