"""Rate limiter interfaces.

The API should depend on this abstraction (not the concrete implementation)
so we can swap algorithms or storage backends with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check/consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Burst capacity (token bucket) or max requests per window.
        remaining: Whole units still available after this call (0 when blocked).
        reset_at: UNIX epoch seconds when the scope is back to full capacity.
        retry_after_seconds: Whole seconds to wait when blocked, None when allowed.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Consume rate limit budget for a given key.

        Args:
            key: Scope identifier (e.g., "global", a client id, an IP address).
            cost: Units to consume (default 1).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Drop state for idle keys to bound memory.

        Dropping a key must be indistinguishable from keeping it: only keys
        that would behave as brand new are removed.

        Returns:
            Number of keys removed.
        """
        raise NotImplementedError

    @abstractmethod
    def tracked_keys(self) -> int:
        """Number of keys currently holding state."""
        raise NotImplementedError
