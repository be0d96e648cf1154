"""In-memory key-value backend.

Notes:
- Per-process only: every worker holds its own data, nothing survives a
  restart.
- Thread-safe: uses a lock around shared state.
- Native TTL is emulated lazily: an expired key reads as absent and is
  dropped on access or during key scans.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import AsyncIterator, Callable

from quickpaste.adapters.storage.base import AbstractKeyValueBackend

logger = logging.getLogger(__name__)


@dataclass
class _StoredItem:
    value: bytes
    expires_at: float | None


class InMemoryKeyValueBackend(AbstractKeyValueBackend):
    """Dictionary-backed store with optional per-key expiry.

    Attributes:
        supports_native_ttl: True unless created with ``native_ttl=False``,
            in which case TTLs are ignored and keys live until deleted.
    """

    name = "memory"

    def __init__(
        self,
        *,
        native_ttl: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory backend.

        Args:
            native_ttl: Honour ``ttl_seconds`` passed to writes.
            clock: Time source function returning UNIX time in seconds.
        """
        self.supports_native_ttl = native_ttl
        self._clock = clock
        self._lock = threading.RLock()
        self._items: dict[str, _StoredItem] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueBackend(native_ttl={self.supports_native_ttl}, size={len(self._items)})"

    def _expiry_for(self, ttl_seconds: int | None) -> float | None:
        if not self.supports_native_ttl or ttl_seconds is None:
            return None
        return self._clock() + ttl_seconds

    def _get_live_locked(self, key: str) -> _StoredItem | None:
        item = self._items.get(key)
        if item is None:
            return None
        if item.expires_at is not None and self._clock() >= item.expires_at:
            del self._items[key]
            logger.debug("memory_backend.ttl_expired", extra={"key": key})
            return None
        return item

    async def get(self, key: str) -> bytes | None:
        with self._lock:
            item = self._get_live_locked(key)
            return item.value if item else None

    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        with self._lock:
            self._items[key] = _StoredItem(value=value, expires_at=self._expiry_for(ttl_seconds))

    async def set_if_absent(self, key: str, value: bytes, ttl_seconds: int | None = None) -> bool:
        with self._lock:
            if self._get_live_locked(key) is not None:
                return False
            self._items[key] = _StoredItem(value=value, expires_at=self._expiry_for(ttl_seconds))
            return True

    async def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    async def exists(self, key: str) -> bool:
        with self._lock:
            return self._get_live_locked(key) is not None

    async def scan_keys(self, prefix: str) -> AsyncIterator[str]:
        with self._lock:
            candidates = [k for k in self._items if k.startswith(prefix)]
        for key in candidates:
            with self._lock:
                live = self._get_live_locked(key) is not None
            if live:
                yield key

    async def ping(self) -> bool:
        return True

    def size(self) -> int:
        """Number of physically stored keys, expired or not."""
        with self._lock:
            return len(self._items)
