"""Pydantic schemas for paste requests and responses.

JSON field names are camelCase on the wire (``sessionCode``,
``expiresAt``); Python attributes stay snake_case.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from quickpaste.models.paste import PasteKind


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PasteCreateRequest(_CamelModel):
    """Body of a create request. At least one of text/image is required."""

    text: str | None = Field(
        default=None,
        description="Paste text (up to the configured maximum length).",
    )
    image: str | None = Field(
        default=None,
        description="Image as a data URL: data:image/<png|jpeg|gif|webp>;base64,<payload>.",
    )
    session_code: str | None = Field(
        default=None,
        alias="sessionCode",
        description="Client-chosen session code. Writing to it again updates the content and refreshes expiry.",
    )


class PasteCreateResponse(_CamelModel):
    """Code assigned (or reused) for the paste."""

    code: str = Field(..., description="Code to retrieve the paste with.")
    kind: PasteKind = Field(..., description="'quick' for minted codes, 'session' for client-chosen codes.")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry as UNIX epoch milliseconds.")


class PasteReadResponse(_CamelModel):
    """Content of a live paste."""

    code: str = Field(..., description="Normalized (upper-case) code.")
    kind: PasteKind = Field(..., description="Lifetime class of the paste.")
    text: str | None = Field(default=None, description="Paste text, if any.")
    image: str | None = Field(default=None, description="Image data URL, if any.")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry as UNIX epoch milliseconds.")


class PasteSummary(_CamelModel):
    """Metadata of a live paste (never its content)."""

    code: str
    kind: PasteKind
    has_text: bool = Field(..., alias="hasText")
    has_image: bool = Field(..., alias="hasImage")
    expires_at: int = Field(..., alias="expiresAt", description="Expiry as UNIX epoch milliseconds.")
    expires_in: int = Field(..., alias="expiresIn", description="Seconds until expiry.")


class PasteListResponse(_CamelModel):
    """Live paste metadata, soonest expiry first."""

    pastes: list[PasteSummary] = Field(default_factory=list)
    count: int = Field(..., description="Number of live pastes listed.")


class HealthResponse(BaseModel):
    """Liveness and storage connectivity."""

    status: str = Field(..., description="'ok' when storage is reachable, otherwise 'degraded'.")
    storage: str = Field(..., description="'connected' or 'disconnected'.")
    backend: str = Field(..., description="Configured storage backend name.")
    live_entries: int = Field(..., description="Live pastes tracked by this process.")


def to_epoch_ms(timestamp: float) -> int:
    """Convert UNIX seconds to integer milliseconds."""
    return int(round(timestamp * 1000))
