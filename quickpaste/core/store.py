"""Process-wide paste store provider.

Routes obtain the store through ``Depends(get_paste_store)`` so tests can
swap it with ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging

from quickpaste.adapters.storage.factory import create_storage_backend
from quickpaste.core.config import settings
from quickpaste.services.paste_store import PasteStore

logger = logging.getLogger(__name__)

_store: PasteStore | None = None


def get_paste_store() -> PasteStore:
    """Return the process-wide paste store, creating it on first use.

    Returns:
        PasteStore: Store bound to the configured backend.
    """

    global _store

    if _store is None:
        backend = create_storage_backend(settings.storage)
        _store = PasteStore(
            backend,
            settings.paste,
            key_prefix=settings.storage.key_prefix,
        )
        logger.info(
            "paste_store.initialized",
            extra={
                "backend": backend.name,
                "native_ttl": backend.supports_native_ttl,
                "max_entries": settings.paste.max_entries,
            },
        )

    return _store


async def close_paste_store() -> None:
    """Close the backend of the process-wide store and forget it."""

    global _store

    if _store is not None:
        await _store.backend.close()
        _store = None
