"""Tests for the two-scope rate governor and its FastAPI wiring."""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from quickpaste.adapters.rate_limit.sliding_window import InMemorySlidingWindowRateLimiter
from quickpaste.adapters.rate_limit.token_bucket import InMemoryTokenBucketRateLimiter
from quickpaste.core.config import RateLimitSettings
from quickpaste.core.errors import RateLimitedAppError
from quickpaste.core.rate_limit import build_client_limiter, build_rate_governor
from quickpaste.services.rate_governor import GLOBAL_SCOPE_KEY, RateGovernor


def _governor(clock: Mock, *, global_capacity: int = 10, client_max: int = 2) -> RateGovernor:
    return RateGovernor(
        global_limiter=InMemoryTokenBucketRateLimiter(
            capacity=global_capacity, refill_per_second=1, clock=clock
        ),
        client_limiter=InMemorySlidingWindowRateLimiter(
            max_requests=client_max, window_seconds=60, clock=clock
        ),
    )


def test_admits_within_both_budgets() -> None:
    governor = _governor(Mock(return_value=1000.0))

    result = governor.admit("ip:1.2.3.4")

    assert result is not None
    assert result.allowed is True
    assert result.limit == 2


def test_client_scope_rejects_single_abusive_caller() -> None:
    governor = _governor(Mock(return_value=1000.0))
    governor.admit("ip:1.2.3.4")
    governor.admit("ip:1.2.3.4")

    with pytest.raises(RateLimitedAppError) as exc_info:
        governor.admit("ip:1.2.3.4")

    exc = exc_info.value
    assert exc.code == "rate_limited"
    assert exc.retry_after == 60
    assert exc.details["scope"] == "client"
    assert exc.details["retry_after"] == 60

    # Other callers are unaffected
    assert governor.admit("ip:5.6.7.8").allowed is True


def test_global_scope_rejects_spread_out_traffic() -> None:
    governor = _governor(Mock(return_value=1000.0), global_capacity=3)
    for i in range(3):
        governor.admit(f"ip:10.0.0.{i}")

    with pytest.raises(RateLimitedAppError) as exc_info:
        governor.admit("ip:10.0.0.99")

    assert exc_info.value.details["scope"] == "global"
    assert exc_info.value.retry_after == 1


def test_global_scope_is_checked_first() -> None:
    clock = Mock(return_value=1000.0)
    client = Mock(spec=InMemorySlidingWindowRateLimiter)
    governor = RateGovernor(
        global_limiter=InMemoryTokenBucketRateLimiter(capacity=1, refill_per_second=1, clock=clock),
        client_limiter=client,
    )
    client.consume.return_value = Mock(allowed=True)
    governor.admit("ip:1.1.1.1")

    with pytest.raises(RateLimitedAppError):
        governor.admit("ip:1.1.1.1")

    assert client.consume.call_count == 1


def test_missing_scopes_are_skipped() -> None:
    governor = RateGovernor(global_limiter=None, client_limiter=None)

    assert governor.admit("ip:1.1.1.1") is None
    assert governor.cleanup() == 0


def test_cleanup_sums_both_scopes() -> None:
    clock = Mock(return_value=1000.0)
    governor = _governor(clock)
    governor.admit("ip:1.1.1.1")

    clock.return_value = 2000.0

    assert governor.cleanup() == 2
    assert governor.global_limiter.tracked_keys() == 0
    assert governor.client_limiter.tracked_keys() == 0


def test_global_key_is_constant() -> None:
    clock = Mock(return_value=1000.0)
    governor = _governor(clock)
    governor.admit("ip:1.1.1.1")
    governor.admit("ip:2.2.2.2")

    assert governor.global_limiter.tracked_keys() == 1
    assert GLOBAL_SCOPE_KEY == "global"


def test_build_client_limiter_follows_strategy() -> None:
    sliding = build_client_limiter(RateLimitSettings(client_strategy="sliding_window"))
    bucket = build_client_limiter(RateLimitSettings(client_strategy="token_bucket"))

    assert isinstance(sliding, InMemorySlidingWindowRateLimiter)
    assert isinstance(bucket, InMemoryTokenBucketRateLimiter)


def test_build_rate_governor_uses_token_bucket_globally() -> None:
    governor = build_rate_governor(RateLimitSettings(global_capacity=7))

    assert isinstance(governor.global_limiter, InMemoryTokenBucketRateLimiter)
    assert governor.global_limiter.consume(GLOBAL_SCOPE_KEY).limit == 7
