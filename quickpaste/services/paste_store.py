"""Ephemeral paste store.

This service owns the mapping from short code to paste. It handles:
- Payload validation (text length, image data URL and size)
- Quick code minting with bounded collision retries
- Session codes that are created or rewritten in place
- Lazy expiry on read plus a periodic sweep
- A live-entry capacity with oldest-first eviction

Concurrency model:
- Every write path (create, update, evict, expiry purge) runs under one
  store-wide ``asyncio.Lock``; the check-then-evict-then-insert sequence is
  therefore atomic within the process and capacity is never exceeded.
- The eviction index is only changed while that lock is held.
- Quick codes are claimed with the backend's ``set_if_absent``, so two
  processes sharing a backend cannot both claim the same code.
- Expiry purges re-read the entry under the lock before deleting it. A
  session update that lands first wins and the purge skips the entry, so a
  sweep never removes an entry that was just refreshed.
- The sweep takes the lock once per expired entry, never for a whole scan.
- With several processes sharing one backend, capacity is enforced per
  process (each keeps its own index of the entries it wrote).
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

from quickpaste.adapters.storage.base import AbstractKeyValueBackend
from quickpaste.core.config import PasteSettings
from quickpaste.core.errors import CapacityAppError, ValidationAppError
from quickpaste.models.paste import PasteContent, PasteEntry, PasteKind
from quickpaste.services.codes import code_space_size, generate_code, normalize_code
from quickpaste.utils.image_validators import decode_image_data_url

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateResult:
    """Outcome of a create call."""

    code: str
    kind: PasteKind
    expires_at: float
    updated: bool = False


@dataclass
class _IndexItem:
    created_at: float
    expires_at: float


class PasteStore:
    """Content store keyed by short human-typeable codes.

    Attributes:
        backend: Key-value backend holding serialized entries.
        config: Code shape, limits and lifetimes.
    """

    def __init__(
        self,
        backend: AbstractKeyValueBackend,
        config: PasteSettings,
        *,
        key_prefix: str = "paste:",
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the store with its dependencies.

        Args:
            backend: Key-value backend.
            config: Paste settings (alphabet, lengths, limits, TTLs).
            key_prefix: Namespace for backend keys.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If quick and session codes share a length.
        """
        if config.quick_code_length == config.session_code_length:
            raise ValueError("quick and session codes must have different lengths")

        self.backend = backend
        self.config = config
        self._prefix = key_prefix
        self._clock = clock
        self._lock = asyncio.Lock()
        # code -> timestamps, in insertion (created_at) order
        self._index: OrderedDict[str, _IndexItem] = OrderedDict()
        self._evictions = 0
        self._expired_purges = 0
        self._sweeps = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"PasteStore(backend={self.backend.name}, entries={len(self._index)}, "
            f"max_entries={self.config.max_entries})"
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def create(
        self,
        *,
        text: str | None = None,
        image: str | None = None,
        session_code: str | None = None,
    ) -> CreateResult:
        """Create a paste, or rewrite a session paste in place.

        Args:
            text: Optional text content.
            image: Optional image as a base64 data URL.
            session_code: Client-chosen session code. When omitted a fresh
                quick code is minted.

        Returns:
            CreateResult with the code, kind and expiry.

        Raises:
            ValidationAppError: If the content or session code is invalid.
            CapacityAppError: If no unique quick code could be minted.
            StoreUnavailableAppError: If the backend fails.
        """
        content = self._build_content(text, image)

        if session_code is not None:
            code = normalize_code(
                session_code,
                alphabet=self.config.code_alphabet,
                lengths=(self.config.session_code_length,),
            )
            return await self._upsert_session(code, content)

        return await self._insert_quick(content)

    async def get(self, code: str) -> PasteEntry | None:
        """Look up a live paste.

        Args:
            code: Code as typed by the client (case-insensitive).

        Returns:
            The entry, or None if it is absent or expired. An expired entry
            still present in the backend is purged as a side effect.

        Raises:
            ValidationAppError: If the code has the wrong length or characters.
            StoreUnavailableAppError: If the backend fails.
        """
        normalized = normalize_code(
            code,
            alphabet=self.config.code_alphabet,
            lengths=(self.config.quick_code_length, self.config.session_code_length),
        )

        # Stale index items are dropped under the lock by the next sweep
        entry = await self._read(normalized)
        if entry is None:
            logger.info("paste.not_found", extra={"paste_code": normalized})
            return None

        if entry.is_expired(self._clock()):
            async with self._lock:
                await self._purge_if_expired_locked(normalized)
            logger.info("paste.not_found", extra={"paste_code": normalized, "reason": "expired"})
            return None

        return entry

    async def sweep_expired(self) -> int:
        """Remove every entry whose expiry has passed, and undecodable records.

        Scans the backend (not just the local index) so entries written by
        other processes or before a restart are reclaimed too.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        candidates: list[str] = []
        corrupt: list[str] = []

        async for key in self.backend.scan_keys(self._prefix):
            code = key[len(self._prefix):]
            try:
                entry = await self._read(code)
            except ValueError:
                corrupt.append(code)
                continue
            if entry is None or entry.is_expired(now):
                candidates.append(code)

        # Entries reclaimed by native backend TTL leave stale index items
        for code, item in list(self._index.items()):
            if item.expires_at <= now and code not in candidates:
                candidates.append(code)

        removed = 0
        for code in candidates:
            async with self._lock:
                if await self._purge_if_expired_locked(code):
                    removed += 1
        for code in corrupt:
            async with self._lock:
                if await self._purge_if_corrupt_locked(code):
                    removed += 1

        self._sweeps += 1
        logger.info(
            "paste.sweep_completed",
            extra={"removed": removed, "live_entries": self._live_count(self._clock())},
        )
        return removed

    async def list_active(self) -> list[dict[str, Any]]:
        """Return metadata (never content) for every live paste.

        Returns:
            List of dicts sorted by expiry, soonest first.
        """
        now = self._clock()
        active: list[dict[str, Any]] = []

        async for key in self.backend.scan_keys(self._prefix):
            try:
                entry = await self._read(key[len(self._prefix):])
            except ValueError:
                continue
            if entry is None or entry.is_expired(now):
                continue
            active.append(
                {
                    "code": entry.code,
                    "kind": entry.kind,
                    "has_text": entry.content.has_text,
                    "has_image": entry.content.has_image,
                    "expires_at": entry.expires_at,
                    "expires_in": int(entry.remaining_seconds(now)),
                }
            )

        active.sort(key=lambda item: item["expires_at"])
        return active

    def stats(self) -> dict[str, int]:
        """Return lightweight store metrics without exposing content."""
        return {
            "live_entries": self._live_count(self._clock()),
            "max_entries": self.config.max_entries,
            "quick_code_space": code_space_size(self.config.quick_code_length, self.config.code_alphabet),
            "evictions": self._evictions,
            "expired_purges": self._expired_purges,
            "sweeps": self._sweeps,
        }

    # ------------------------------------------------------------------
    # Write paths (callers hold no lock; these acquire it)
    # ------------------------------------------------------------------

    async def _insert_quick(self, content: PasteContent) -> CreateResult:
        ttl = self.config.quick_ttl_seconds

        async with self._lock:
            now = self._clock()
            await self._make_room_locked(now)

            for attempt in range(1, self.config.code_max_attempts + 1):
                code = generate_code(self.config.quick_code_length, self.config.code_alphabet)
                entry = PasteEntry(
                    code=code,
                    kind=PasteKind.QUICK,
                    content=content,
                    created_at=now,
                    updated_at=now,
                    expires_at=now + ttl,
                )
                if await self._claim_locked(entry, now):
                    self._index_entry(entry)
                    logger.info(
                        "paste.created",
                        extra={
                            "paste_code": code,
                            "kind": entry.kind.value,
                            "attempts": attempt,
                            "has_text": content.has_text,
                            "has_image": content.has_image,
                        },
                    )
                    return CreateResult(code=code, kind=entry.kind, expires_at=entry.expires_at)

        logger.error(
            "paste.code_space_exhausted",
            extra={
                "attempts": self.config.code_max_attempts,
                "live_entries": len(self._index),
            },
        )
        raise CapacityAppError(
            code="code_space_exhausted",
            message="Failed to generate a unique code. Try again later.",
            details={"attempts": self.config.code_max_attempts},
        )

    async def _upsert_session(self, code: str, content: PasteContent) -> CreateResult:
        ttl = self.config.session_ttl_seconds

        async with self._lock:
            now = self._clock()
            existing = await self._read(code)
            if existing is not None and existing.is_expired(now):
                await self._delete_locked(code)
                self._expired_purges += 1
                existing = None

            if existing is not None:
                # Written by another process or before a restart
                if code not in self._index:
                    await self._make_room_locked(now)
                entry = existing.with_content(content, now=now, ttl_seconds=ttl)
                await self._write(entry, now)
                self._index_entry(entry)
                logger.info("paste.updated", extra={"paste_code": code, "kind": entry.kind.value})
                return CreateResult(code=code, kind=entry.kind, expires_at=entry.expires_at, updated=True)

            await self._make_room_locked(now)
            entry = PasteEntry(
                code=code,
                kind=PasteKind.SESSION,
                content=content,
                created_at=now,
                updated_at=now,
                expires_at=now + ttl,
            )
            await self._write(entry, now)
            self._index_entry(entry)
            logger.info(
                "paste.created",
                extra={
                    "paste_code": code,
                    "kind": entry.kind.value,
                    "has_text": content.has_text,
                    "has_image": content.has_image,
                },
            )
            return CreateResult(code=code, kind=entry.kind, expires_at=entry.expires_at)

    # ------------------------------------------------------------------
    # Helpers that require self._lock to be held
    # ------------------------------------------------------------------

    async def _claim_locked(self, entry: PasteEntry, now: float) -> bool:
        """Write ``entry`` only if its code is not held by a live paste."""
        key = self._key(entry.code)
        ttl = self._ttl_seconds(entry, now)

        if await self.backend.set_if_absent(key, entry.to_bytes(), ttl):
            return True

        # Taken, unless the holder is an expired entry awaiting reclamation
        if await self._purge_if_expired_locked(entry.code):
            return await self.backend.set_if_absent(key, entry.to_bytes(), ttl)

        logger.debug("paste.code_collision", extra={"paste_code": entry.code})
        return False

    async def _make_room_locked(self, now: float) -> None:
        """Evict until one more entry fits under ``max_entries``."""
        for code, item in list(self._index.items()):
            if item.expires_at <= now:
                await self._purge_if_expired_locked(code)

        while self._index and len(self._index) >= self.config.max_entries:
            code, item = self._index.popitem(last=False)
            await self.backend.delete(self._key(code))
            self._evictions += 1
            logger.warning(
                "paste.evicted",
                extra={
                    "paste_code": code,
                    "reason": "capacity",
                    "age_s": round(now - item.created_at, 3),
                    "max_entries": self.config.max_entries,
                },
            )

    async def _purge_if_expired_locked(self, code: str) -> bool:
        """Delete ``code`` if it is still expired when re-read.

        Returns:
            True if an expired entry was removed.
        """
        entry = await self._read(code)
        if entry is None:
            self._index.pop(code, None)
            return False
        if not entry.is_expired(self._clock()):
            # Refreshed after the caller decided to purge; keep it
            self._index_entry(entry)
            return False

        await self._delete_locked(code)
        self._expired_purges += 1
        logger.info("paste.expired_purged", extra={"paste_code": code, "kind": entry.kind.value})
        return True

    async def _purge_if_corrupt_locked(self, code: str) -> bool:
        """Delete ``code`` if its stored record still fails to decode."""
        raw = await self.backend.get(self._key(code))
        if raw is None:
            self._index.pop(code, None)
            return False
        try:
            PasteEntry.from_bytes(raw)
        except ValueError:
            await self._delete_locked(code)
            logger.warning("paste.corrupt_purged", extra={"paste_code": code})
            return True
        return False

    async def _delete_locked(self, code: str) -> None:
        await self.backend.delete(self._key(code))
        self._index.pop(code, None)

    # ------------------------------------------------------------------
    # Lock-free helpers
    # ------------------------------------------------------------------

    def _build_content(self, text: str | None, image: str | None) -> PasteContent:
        """Validate raw payload parts into a ``PasteContent``.

        Raises:
            ValidationAppError: If nothing usable is present or a part is invalid.
        """
        if text is not None and not text.strip():
            text = None
        if image is not None and not image.strip():
            image = None

        if text is None and image is None:
            raise ValidationAppError(
                code="empty_paste",
                message='At least one of "text" or "image" must be provided and non-empty',
            )

        if text is not None and len(text) > self.config.max_text_chars:
            raise ValidationAppError(
                code="text_too_long",
                message=f"Text exceeds maximum length of {self.config.max_text_chars} characters",
                details={"max_value": self.config.max_text_chars, "actual_value": len(text)},
            )

        if image is not None:
            decode_image_data_url(image, max_bytes=self.config.max_image_bytes)

        return PasteContent(text=text, image=image)

    async def _read(self, code: str) -> PasteEntry | None:
        raw = await self.backend.get(self._key(code))
        if raw is None:
            return None
        try:
            return PasteEntry.from_bytes(raw)
        except ValueError:
            logger.error("paste.corrupt_record", extra={"paste_code": code})
            raise

    async def _write(self, entry: PasteEntry, now: float) -> None:
        await self.backend.set(self._key(entry.code), entry.to_bytes(), self._ttl_seconds(entry, now))

    def _index_entry(self, entry: PasteEntry) -> None:
        item = self._index.get(entry.code)
        if item is None:
            self._index[entry.code] = _IndexItem(created_at=entry.created_at, expires_at=entry.expires_at)
        else:
            # Rewrites keep their eviction position
            item.expires_at = entry.expires_at

    def _live_count(self, now: float) -> int:
        return sum(1 for item in self._index.values() if item.expires_at > now)

    def _key(self, code: str) -> str:
        return f"{self._prefix}{code}"

    @staticmethod
    def _ttl_seconds(entry: PasteEntry, now: float) -> int:
        return max(1, int(math.ceil(entry.remaining_seconds(now))))
