"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


# Digits and upper-case letters without 0/O, 1/I/L and 8.
DEFAULT_CODE_ALPHABET = "2345679ABCDEFGHJKMNPQRSTUVWXYZ"


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_paste_settings() -> "PasteSettings":
    return PasteSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_storage_settings() -> "StorageSettings":
    return StorageSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    listing_enabled: bool = Field(
        False,
        description="Expose GET /api/pastes with metadata of every live paste",
    )
    client_id_header: str = Field(
        "X-Client-ID",
        description="Header carrying the opaque client identifier used for per-client rate limits",
    )
    allowed_origins: str | None = Field(
        None,
        description=(
            "Comma-separated list of browser origins allowed by CORS. When unset, "
            "every origin is allowed outside production"
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class PasteSettings(BaseSettings):
    """Content store limits, code shape and lifetimes."""

    quick_code_length: int = Field(
        4,
        description="Length of server-assigned quick paste codes",
        ge=1,
    )
    session_code_length: int = Field(
        5,
        description="Length of client-chosen session paste codes",
        ge=1,
    )
    code_alphabet: str = Field(
        DEFAULT_CODE_ALPHABET,
        description="Characters allowed in codes (upper-case, no visually ambiguous glyphs)",
        min_length=2,
    )
    code_max_attempts: int = Field(
        100,
        description="Maximum number of random draws when minting a unique quick code",
        ge=1,
    )
    max_text_chars: int = Field(
        100_000,
        description="Maximum paste text length in characters",
        ge=1,
    )
    max_image_bytes: int = Field(
        10 * 1024 * 1024,
        description="Maximum decoded image size in bytes",
        ge=1,
    )
    quick_ttl_seconds: int = Field(
        15 * 60,
        description="Lifetime of quick pastes in seconds",
        ge=1,
    )
    session_ttl_seconds: int = Field(
        60 * 60,
        description="Lifetime of session pastes in seconds, refreshed on every write",
        ge=1,
    )
    max_entries: int = Field(
        500,
        description="Maximum number of live pastes; the oldest is evicted beyond this",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        60.0,
        description="Interval between background sweeps of expired pastes",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="PASTE_",
        case_sensitive=False,
    )

    @field_validator("code_alphabet")
    @classmethod
    def _normalize_alphabet(cls, value: str) -> str:
        normalized = value.upper()
        if len(set(normalized)) != len(normalized):
            raise ValueError("code_alphabet must not contain duplicate characters")
        return normalized


class RateLimitSettings(BaseSettings):
    """Request-rate governor configuration (global and per-client scopes)."""

    enabled: bool = Field(
        True,
        description="Enable the rate governor on paste endpoints",
    )
    global_capacity: int = Field(
        100,
        description="Burst capacity of the global token bucket",
        ge=1,
    )
    global_refill_per_second: float = Field(
        10.0,
        description="Steady refill rate of the global token bucket (tokens/second)",
        gt=0,
    )
    client_strategy: Literal["sliding_window", "token_bucket"] = Field(
        "sliding_window",
        description="Algorithm used for the per-client scope",
    )
    client_max_requests: int = Field(
        300,
        description="Sliding window: maximum requests per client per window",
        ge=1,
    )
    client_window_seconds: int = Field(
        15 * 60,
        description="Sliding window: window size in seconds",
        ge=1,
    )
    client_capacity: int = Field(
        20,
        description="Token bucket: burst capacity per client",
        ge=1,
    )
    client_refill_per_second: float = Field(
        1.0,
        description="Token bucket: refill rate per client (tokens/second)",
        gt=0,
    )
    cleanup_interval_seconds: float = Field(
        60 * 60,
        description="Interval between background cleanups of idle rate limit scopes",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers alongside Retry-After when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Key-value backend selection."""

    backend: Literal["memory", "redis"] = Field(
        "memory",
        description="Backend used to persist pastes",
    )
    redis_url: str = Field(
        "redis://localhost:6379/0",
        description="Redis connection URL (rediss:// for TLS)",
    )
    key_prefix: str = Field(
        "paste:",
        description="Namespace prepended to every paste key",
    )
    native_ttl: bool = Field(
        True,
        description="Ask the backend to expire keys on its own (sweep still runs)",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file beyond this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the request correlation id",
    )
    mask_codes: bool = Field(
        True,
        description="Log only a prefix of paste codes (a full code grants read access)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    paste: PasteSettings = Field(default_factory=_build_paste_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
