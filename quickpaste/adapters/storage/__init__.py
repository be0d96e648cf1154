"""Storage adapter layer - abstracts over key-value backends."""

from quickpaste.adapters.storage.base import AbstractKeyValueBackend
from quickpaste.adapters.storage.factory import create_storage_backend
from quickpaste.adapters.storage.in_memory import InMemoryKeyValueBackend
from quickpaste.adapters.storage.redis_backend import RedisKeyValueBackend

__all__ = [
    "AbstractKeyValueBackend",
    "InMemoryKeyValueBackend",
    "RedisKeyValueBackend",
    "create_storage_backend",
]
