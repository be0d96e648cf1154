"""Factory pattern for creating key-value backend instances."""

from quickpaste.adapters.storage.base import AbstractKeyValueBackend
from quickpaste.adapters.storage.in_memory import InMemoryKeyValueBackend
from quickpaste.adapters.storage.redis_backend import RedisKeyValueBackend
from quickpaste.core.config import StorageSettings, settings
from quickpaste.core.errors import ValidationAppError


def create_storage_backend(storage_settings: StorageSettings | None = None) -> AbstractKeyValueBackend:
    """Factory function to instantiate the configured storage backend.

    Args:
        storage_settings: Optional storage settings; defaults to global settings.

    Returns:
        AbstractKeyValueBackend: Configured backend instance.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = storage_settings or settings.storage
    backend = cfg.backend.lower()

    if backend == "memory":
        return InMemoryKeyValueBackend(native_ttl=cfg.native_ttl)

    if backend == "redis":
        return RedisKeyValueBackend.from_url(cfg.redis_url, native_ttl=cfg.native_ttl)

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, redis",
    )
