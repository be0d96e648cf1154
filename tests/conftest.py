"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It selects the testing environment and pins the settings tests rely on
before anything imports ``quickpaste.core.config``.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("APP_LISTING_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from quickpaste.adapters.storage.in_memory import InMemoryKeyValueBackend  # noqa: E402
from quickpaste.core.config import PasteSettings  # noqa: E402
from quickpaste.services.paste_store import PasteStore  # noqa: E402


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def paste_settings() -> PasteSettings:
    return PasteSettings(
        quick_code_length=4,
        session_code_length=5,
        quick_ttl_seconds=60,
        session_ttl_seconds=120,
        max_entries=3,
        max_text_chars=10,
        max_image_bytes=64,
        code_max_attempts=5,
    )


@pytest.fixture
def backend(clock: FakeClock) -> InMemoryKeyValueBackend:
    # TTLs off so expiry is only ever decided by the store
    return InMemoryKeyValueBackend(native_ttl=False, clock=clock)


@pytest.fixture
def store(backend: InMemoryKeyValueBackend, paste_settings: PasteSettings, clock: FakeClock) -> PasteStore:
    return PasteStore(backend, paste_settings, clock=clock)
