"""Request-rate governor.

Combines two independent limiter scopes evaluated in a fixed order:

1. Global scope (a single token bucket shared by every caller) guards
   against abuse spread across many identities.
2. Per-identity scope (sliding window or token bucket keyed by client id
   or address) guards against a single abusive caller.

A rejection from either scope stops the request before any store side
effect. A request rejected by the per-identity scope has already spent its
global token; the global budget is a ceiling on attempted work, not on
admitted work.
"""

from __future__ import annotations

import logging

from quickpaste.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from quickpaste.core.errors import RateLimitedAppError

logger = logging.getLogger(__name__)

GLOBAL_SCOPE_KEY = "global"


class RateGovernor:
    """Admission control over a global and a per-identity limiter.

    Attributes:
        global_limiter: Limiter consulted with the constant global key.
        client_limiter: Limiter consulted with the caller's identity.
    """

    def __init__(
        self,
        *,
        global_limiter: AbstractRateLimiter | None,
        client_limiter: AbstractRateLimiter | None,
    ) -> None:
        self.global_limiter = global_limiter
        self.client_limiter = client_limiter

    def admit(self, identity: str) -> RateLimitResult | None:
        """Consume one unit from each scope or reject.

        Args:
            identity: Opaque caller identity (already namespaced).

        Returns:
            The per-identity result when that scope is configured (useful for
            informational headers), otherwise the global result or None.

        Raises:
            RateLimitedAppError: If either scope is exhausted.
        """
        result: RateLimitResult | None = None

        if self.global_limiter is not None:
            result = self.global_limiter.consume(GLOBAL_SCOPE_KEY)
            if not result.allowed:
                raise self._rejection("global", result)

        if self.client_limiter is not None:
            result = self.client_limiter.consume(identity)
            if not result.allowed:
                raise self._rejection("client", result)

        return result

    def cleanup(self) -> int:
        """Drop idle per-scope state from both limiters."""
        removed = 0
        for limiter in (self.global_limiter, self.client_limiter):
            if limiter is not None:
                removed += limiter.cleanup()
        logger.debug("rate_limit.cleanup_completed", extra={"removed_keys": removed})
        return removed

    def _rejection(self, scope: str, result: RateLimitResult) -> RateLimitedAppError:
        retry_after = max(0, result.retry_after_seconds or 0)
        return RateLimitedAppError(
            code="rate_limited",
            message=f"Too many requests. Please try again in {retry_after} seconds.",
            details={
                "scope": scope,
                "retry_after": retry_after,
                "context": {
                    "limit": result.limit,
                    "remaining": result.remaining,
                    "reset_at": result.reset_at,
                },
            },
            retry_after=retry_after,
        )
