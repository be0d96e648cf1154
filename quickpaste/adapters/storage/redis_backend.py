"""Redis key-value backend.

Shares pastes across workers and hosts. Keys carry a native Redis TTL, so
Redis reclaims storage on its own even when the sweep does not run.
Every redis-py failure is translated into ``StoreUnavailableAppError``.
"""

from __future__ import annotations

import logging
from typing import AsyncIterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from quickpaste.adapters.storage.base import AbstractKeyValueBackend
from quickpaste.core.errors import StoreUnavailableAppError

logger = logging.getLogger(__name__)


def _unavailable(operation: str, exc: Exception) -> StoreUnavailableAppError:
    logger.error(
        "storage.backend_error",
        extra={
            "backend": "redis",
            "operation": operation,
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
        },
    )
    return StoreUnavailableAppError(
        code="store_unavailable",
        message="Paste storage is temporarily unavailable",
        details={"backend": "redis"},
    )


class RedisKeyValueBackend(AbstractKeyValueBackend):
    """Backend on top of ``redis.asyncio``."""

    name = "redis"

    def __init__(self, client: Redis, *, native_ttl: bool = True, scan_batch_size: int = 200) -> None:
        """Wrap an existing Redis client.

        Args:
            client: ``redis.asyncio.Redis`` instance (bytes responses).
            native_ttl: Attach ``EX`` to writes when a TTL is given.
            scan_batch_size: ``COUNT`` hint for ``SCAN``.
        """
        self.client = client
        self.supports_native_ttl = native_ttl
        self._scan_batch_size = scan_batch_size

    @classmethod
    def from_url(cls, url: str, *, native_ttl: bool = True) -> "RedisKeyValueBackend":
        # For TLS-hosted Redis use the rediss:// scheme
        return cls(Redis.from_url(url, decode_responses=False), native_ttl=native_ttl)

    def _ex(self, ttl_seconds: int | None) -> int | None:
        if not self.supports_native_ttl or ttl_seconds is None:
            return None
        return max(1, int(ttl_seconds))

    async def get(self, key: str) -> bytes | None:
        try:
            return await self.client.get(key)
        except RedisError as exc:
            raise _unavailable("get", exc) from exc

    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        try:
            await self.client.set(key, value, ex=self._ex(ttl_seconds))
        except RedisError as exc:
            raise _unavailable("set", exc) from exc

    async def set_if_absent(self, key: str, value: bytes, ttl_seconds: int | None = None) -> bool:
        try:
            # SET NX returns None when the key already exists
            result = await self.client.set(key, value, ex=self._ex(ttl_seconds), nx=True)
        except RedisError as exc:
            raise _unavailable("set_if_absent", exc) from exc
        return bool(result)

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(key)
        except RedisError as exc:
            raise _unavailable("delete", exc) from exc

    async def exists(self, key: str) -> bool:
        try:
            return bool(await self.client.exists(key))
        except RedisError as exc:
            raise _unavailable("exists", exc) from exc

    async def scan_keys(self, prefix: str) -> AsyncIterator[str]:
        try:
            async for key in self.client.scan_iter(match=f"{prefix}*", count=self._scan_batch_size):
                yield key.decode("utf-8") if isinstance(key, bytes) else key
        except RedisError as exc:
            raise _unavailable("scan", exc) from exc

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as exc:
            logger.error("storage.ping_failed", extra={"backend": "redis", "error_type": type(exc).__name__})
            return False

    async def close(self) -> None:
        await self.client.aclose()
