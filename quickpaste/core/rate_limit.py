"""Rate limiting dependency for FastAPI routes.

This module wires the rate governor into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: limiter algorithms sit behind an abstract interface.
- Early rejection: the dependency runs before the route body, so a
  rejected request never reaches the paste store.

Identity strategy:
- Opaque client id from the configured header (default ``X-Client-ID``).
- If the header is missing, fall back to the client IP.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Request

from quickpaste.adapters.rate_limit.base import AbstractRateLimiter
from quickpaste.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter
from quickpaste.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter
from quickpaste.core.config import RateLimitSettings, settings
from quickpaste.core.errors import RateLimitedAppError
from quickpaste.services.rate_governor import RateGovernor

logger = logging.getLogger(__name__)


_governor: RateGovernor | None = None
_governor_config: RateLimitSettings | None = None

MAX_CLIENT_ID_LENGTH = 128


def build_client_limiter(cfg: RateLimitSettings) -> AbstractRateLimiter:
    """Build the per-identity limiter for the configured strategy."""
    if cfg.client_strategy == "token_bucket":
        return InMemoryTokenBucketRateLimiter(
            capacity=cfg.client_capacity,
            refill_per_second=cfg.client_refill_per_second,
        )
    return InMemorySlidingWindowRateLimiter(
        max_requests=cfg.client_max_requests,
        window_seconds=cfg.client_window_seconds,
    )


def build_rate_governor(cfg: RateLimitSettings) -> RateGovernor:
    """Build a governor with a global token bucket and a per-client limiter."""
    return RateGovernor(
        global_limiter=InMemoryTokenBucketRateLimiter(
            capacity=cfg.global_capacity,
            refill_per_second=cfg.global_refill_per_second,
        ),
        client_limiter=build_client_limiter(cfg),
    )


def get_rate_governor() -> RateGovernor:
    """Return a process-wide rate governor instance.

    The instance is cached in-module to preserve state across requests.
    If configuration changes (primarily in tests), the governor is rebuilt.

    Returns:
        RateGovernor: Configured governor instance.
    """

    global _governor, _governor_config

    config = settings.rate_limit

    if _governor is None or _governor_config != config:
        _governor = build_rate_governor(config)
        _governor_config = config.model_copy()

    return _governor


def _build_rate_limit_key(request: Request, client_id: str | None) -> str:
    """Build the limiter key for the current request.

    Args:
        request: FastAPI request.
        client_id: Opaque client identifier from the request header.

    Returns:
        str: Namespaced limiter key.
    """

    if client_id:
        return f"client:{client_id[:MAX_CLIENT_ID_LENGTH]}"

    client_host = request.client.host if request.client else "unknown"
    return f"ip:{client_host}"


def _hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing identities."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing rate limits.

    When enabled, consumes 1 unit from the global budget and 1 unit from
    the requester's budget. If either is exhausted, raises
    ``RateLimitedAppError`` (rendered as HTTP 429 with ``Retry-After``).

    Args:
        request: FastAPI request.

    Raises:
        RateLimitedAppError: When a rate limit scope is exhausted.
    """

    if not settings.rate_limit.enabled:
        return

    governor = get_rate_governor()
    client_id = request.headers.get(settings.app.client_id_header)
    key = _build_rate_limit_key(request, client_id)
    key_hash = _hash_limiter_key(key)
    key_type = "client" if client_id else "ip"

    try:
        result = governor.admit(key)
    except RateLimitedAppError as exc:
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "key_type": key_type,
                "key_hash": key_hash,
                "scope": (exc.details or {}).get("scope"),
                "retry_after_s": exc.retry_after,
            },
        )
        raise

    logger.debug(
        "rate_limit.allowed",
        extra={
            "key_type": key_type,
            "key_hash": key_hash,
            "limit": result.limit if result else None,
            "remaining": result.remaining if result else None,
        },
    )
