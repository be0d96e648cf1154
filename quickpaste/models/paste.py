"""Domain types for stored pastes.

A paste carries text, an image, or both. ``PasteContent`` enforces the
"at least one present" rule once, when content enters the system, so the
rest of the code never re-checks payload shape.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class PasteKind(str, Enum):
    """Lifetime class of a paste."""

    QUICK = "quick"
    SESSION = "session"


@dataclass(frozen=True)
class PasteContent:
    """Validated paste payload.

    Attributes:
        text: Paste text, or None when the paste is image-only.
        image: Image as a ``data:image/...;base64,`` URL, or None.
    """

    text: str | None = None
    image: str | None = None

    def __post_init__(self) -> None:
        if self.text is None and self.image is None:
            raise ValueError("PasteContent requires text or image")

    @property
    def has_text(self) -> bool:
        return self.text is not None

    @property
    def has_image(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class PasteEntry:
    """A paste as persisted in the key-value backend.

    Timestamps are UNIX epoch seconds. ``created_at`` is fixed at first
    insertion and orders capacity eviction; ``updated_at`` moves on every
    session write, so ``expires_at - updated_at`` is always the lifetime of
    the entry's kind.
    """

    code: str
    kind: PasteKind
    content: PasteContent
    created_at: float
    updated_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def remaining_seconds(self, now: float) -> float:
        return max(0.0, self.expires_at - now)

    def with_content(self, content: PasteContent, *, now: float, ttl_seconds: int) -> "PasteEntry":
        """Return the entry rewritten in place with a refreshed expiry.

        The new expiry never moves backwards.
        """
        return replace(
            self,
            content=content,
            updated_at=now,
            expires_at=max(self.expires_at, now + ttl_seconds),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "kind": self.kind.value,
            "text": self.content.text,
            "image": self.content.image,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "expires_at": self.expires_at,
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_bytes(cls, raw: bytes) -> "PasteEntry":
        """Decode an entry previously produced by ``to_bytes``.

        Raises:
            ValueError: If the payload is not a valid serialized entry.
        """
        try:
            data = json.loads(raw)
            return cls(
                code=data["code"],
                kind=PasteKind(data["kind"]),
                content=PasteContent(text=data.get("text"), image=data.get("image")),
                created_at=float(data["created_at"]),
                updated_at=float(data.get("updated_at", data["created_at"])),
                expires_at=float(data["expires_at"]),
            )
        except (KeyError, TypeError, json.JSONDecodeError) as exc:
            raise ValueError(f"Corrupt paste record: {exc}") from exc
