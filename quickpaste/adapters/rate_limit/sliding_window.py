"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Memory per key is bounded by ``max_requests`` timestamps; idle keys are
  dropped by ``cleanup()``.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from quickpaste.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests within a trailing time window.

    Each key keeps an ordered log of the timestamps of its admitted
    requests. A request is admitted while fewer than ``max_requests``
    timestamps fall within the last ``window_seconds``.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the sliding-window limiter.

        Args:
            max_requests: Maximum admitted requests per window.
            window_seconds: Trailing window length in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If max_requests or window_seconds are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._log_by_key: dict[str, deque[float]] = {}

    def _purge_locked(self, log: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while log and log[0] <= cutoff:
            log.popleft()

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Record ``cost`` requests for ``key`` if the window has room.

        Args:
            key: Scope identifier (e.g., client id or IP address).
            cost: Requests to record (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._max_requests:
            raise ValueError("cost must not exceed max_requests")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            log = self._log_by_key.setdefault(key, deque())
            self._purge_locked(log, now)

            if len(log) + cost <= self._max_requests:
                log.extend([now] * cost)
                return RateLimitResult(
                    allowed=True,
                    limit=self._max_requests,
                    remaining=self._max_requests - len(log),
                    reset_at=int(math.ceil(log[-1] + self._window_seconds)),
                    retry_after_seconds=None,
                )

            # Room opens once enough of the oldest timestamps leave the window
            blocking = log[len(log) + cost - self._max_requests - 1]
            retry_after = max(0, int(math.ceil(blocking + self._window_seconds - now)))
            return RateLimitResult(
                allowed=False,
                limit=self._max_requests,
                remaining=max(0, self._max_requests - len(log)),
                reset_at=int(math.ceil(log[-1] + self._window_seconds)),
                retry_after_seconds=retry_after,
            )

    def cleanup(self) -> int:
        """Remove keys with no request inside the current window."""
        now = self._clock()
        with self._lock:
            idle = []
            for key, log in self._log_by_key.items():
                self._purge_locked(log, now)
                if not log:
                    idle.append(key)
            for key in idle:
                del self._log_by_key[key]
            return len(idle)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._log_by_key)
