"""In-memory token bucket rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state, so concurrent consumers of
  the same key serialize their read-modify-write of the token count.
- Refill is computed lazily from elapsed time on every consume; no timer is
  needed for correctness.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from quickpaste.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


@dataclass
class _Bucket:
    tokens: float
    last_refill_at: float


class InMemoryTokenBucketRateLimiter(AbstractRateLimiter):
    """Token bucket with continuous refill and burst capacity.

    Each key owns an independent bucket that starts full. Tokens are always
    kept within ``[0, capacity]``.
    """

    def __init__(
        self,
        *,
        capacity: int,
        refill_per_second: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the token bucket limiter.

        Args:
            capacity: Maximum number of tokens (burst size).
            refill_per_second: Steady refill rate in tokens per second.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If capacity or refill rate are invalid.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if refill_per_second <= 0:
            raise ValueError("refill_per_second must be > 0")

        self._capacity = capacity
        self._refill_per_second = refill_per_second
        self._clock = clock
        self._lock = threading.RLock()
        self._buckets: dict[str, _Bucket] = {}

    def _refill_locked(self, key: str, now: float) -> _Bucket:
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = _Bucket(tokens=float(self._capacity), last_refill_at=now)
            self._buckets[key] = bucket
            return bucket

        # A clock stepping backwards must not drain or mint tokens
        elapsed = max(0.0, now - bucket.last_refill_at)
        bucket.tokens = min(float(self._capacity), bucket.tokens + elapsed * self._refill_per_second)
        bucket.last_refill_at = now
        return bucket

    def _reset_at(self, bucket: _Bucket, now: float) -> int:
        missing = self._capacity - bucket.tokens
        return int(math.ceil(now + missing / self._refill_per_second))

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Take ``cost`` tokens from the bucket for ``key`` if available.

        Args:
            key: Scope identifier.
            cost: Tokens to consume (default 1).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if cost > self._capacity:
            raise ValueError("cost must not exceed capacity")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            bucket = self._refill_locked(key, now)

            if bucket.tokens >= cost:
                bucket.tokens -= cost
                return RateLimitResult(
                    allowed=True,
                    limit=self._capacity,
                    remaining=int(bucket.tokens),
                    reset_at=self._reset_at(bucket, now),
                    retry_after_seconds=None,
                )

            deficit = cost - bucket.tokens
            retry_after = max(0, int(math.ceil(deficit / self._refill_per_second)))
            return RateLimitResult(
                allowed=False,
                limit=self._capacity,
                remaining=0,
                reset_at=self._reset_at(bucket, now),
                retry_after_seconds=retry_after,
            )

    def cleanup(self) -> int:
        """Remove buckets that have refilled completely."""
        now = self._clock()
        with self._lock:
            full = [
                key
                for key, bucket in self._buckets.items()
                if bucket.tokens + max(0.0, now - bucket.last_refill_at) * self._refill_per_second
                >= self._capacity
            ]
            for key in full:
                del self._buckets[key]
            return len(full)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._buckets)
