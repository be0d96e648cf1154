from __future__ import annotations

from fastapi import APIRouter, Depends

from quickpaste.core.store import get_paste_store
from quickpaste.schemas.paste import HealthResponse
from quickpaste.services.paste_store import PasteStore

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(store: PasteStore = Depends(get_paste_store)) -> HealthResponse:
    """Health check endpoint.

    Returns a status response and pings the storage backend. Used by load
    balancers and monitoring systems to determine service health. Not rate
    limited.

    Returns:
        HealthResponse: "ok" with "connected" storage, or "degraded".
    """

    connected = await store.backend.ping()
    return HealthResponse(
        status="ok" if connected else "degraded",
        storage="connected" if connected else "disconnected",
        backend=store.backend.name,
        live_entries=store.stats()["live_entries"],
    )
