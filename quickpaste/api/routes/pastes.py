from fastapi import APIRouter, Depends

from quickpaste.core.config import settings
from quickpaste.core.errors import NotFoundAppError
from quickpaste.core.rate_limit import enforce_rate_limit
from quickpaste.core.store import get_paste_store
from quickpaste.schemas.paste import (
    PasteCreateRequest,
    PasteCreateResponse,
    PasteListResponse,
    PasteReadResponse,
    PasteSummary,
    to_epoch_ms,
)
from quickpaste.services.paste_store import PasteStore

router = APIRouter(tags=["Pastes"])


@router.post(
    "/paste",
    response_model=PasteCreateResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def create_paste(
    body: PasteCreateRequest,
    store: PasteStore = Depends(get_paste_store),
) -> PasteCreateResponse:
    """Create a paste, or update a session paste in place.

    Without ``sessionCode`` the server mints a short quick code. With a
    ``sessionCode`` the paste is created under that code, or its content is
    replaced and its expiry refreshed if it already exists.

    Returns:
        PasteCreateResponse: Assigned code, kind and expiry (epoch ms).

    Raises:
        ValidationAppError: 400 for missing/oversized content or a bad code.
        RateLimitedAppError: 429 when a rate limit scope is exhausted.
        CapacityAppError: 507 when no unique code can be minted.
    """
    result = await store.create(
        text=body.text,
        image=body.image,
        session_code=body.session_code,
    )
    return PasteCreateResponse(
        code=result.code,
        kind=result.kind,
        expires_at=to_epoch_ms(result.expires_at),
    )


@router.get(
    "/paste/{code}",
    response_model=PasteReadResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(enforce_rate_limit)],
)
async def read_paste(
    code: str,
    store: PasteStore = Depends(get_paste_store),
) -> PasteReadResponse:
    """Retrieve a paste by its code (case-insensitive).

    Raises:
        ValidationAppError: 400 if the code is malformed.
        NotFoundAppError: 404 if the paste is absent or expired.
    """
    entry = await store.get(code)
    if entry is None:
        raise NotFoundAppError(code="paste_not_found", message="Paste not found or expired")

    return PasteReadResponse(
        code=entry.code,
        kind=entry.kind,
        text=entry.content.text,
        image=entry.content.image,
        expires_at=to_epoch_ms(entry.expires_at),
    )


@router.get(
    "/pastes",
    response_model=PasteListResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
async def list_pastes(store: PasteStore = Depends(get_paste_store)) -> PasteListResponse:
    """List metadata of live pastes (disabled unless APP_LISTING_ENABLED=true)."""
    if not settings.app.listing_enabled:
        raise NotFoundAppError(code="listing_disabled", message="Paste listing is disabled")

    items = await store.list_active()
    summaries = [
        PasteSummary(
            code=item["code"],
            kind=item["kind"],
            has_text=item["has_text"],
            has_image=item["has_image"],
            expires_at=to_epoch_ms(item["expires_at"]),
            expires_in=item["expires_in"],
        )
        for item in items
    ]
    return PasteListResponse(pastes=summaries, count=len(summaries))
