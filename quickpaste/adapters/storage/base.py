"""Key-value backend interface.

The paste store depends on this abstraction only, so a deployment can pick
an in-process dictionary or a shared Redis instance without touching the
store logic. The only atomic primitive the store relies on beyond single
reads and writes is ``set_if_absent`` (single-key conditional write).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class AbstractKeyValueBackend(ABC):
    """Interface for byte-oriented key-value backends.

    Attributes:
        name: Short backend name used in logs and health output.
        supports_native_ttl: Whether ``ttl_seconds`` is enforced by the backend
            itself. When False, ``ttl_seconds`` is ignored and the periodic
            sweep is the only reclamation mechanism.
    """

    name: str = "abstract"
    supports_native_ttl: bool = False

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl_seconds: int | None = None) -> None:
        """Store ``value`` under ``key``, replacing any previous value.

        Args:
            key: Storage key.
            value: Raw bytes to store.
            ttl_seconds: Optional lifetime honoured when the backend supports
                native expiry.
        """
        ...

    @abstractmethod
    async def set_if_absent(self, key: str, value: bytes, ttl_seconds: int | None = None) -> bool:
        """Atomically store ``value`` only if ``key`` does not exist.

        Returns:
            True if the value was written, False if the key already existed.
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""
        ...

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return whether ``key`` is present."""
        ...

    @abstractmethod
    def scan_keys(self, prefix: str) -> AsyncIterator[str]:
        """Iterate over keys starting with ``prefix``.

        The iteration is not a snapshot: keys written or removed while it runs
        may or may not be reported.
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backend is reachable."""
        ...

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None
