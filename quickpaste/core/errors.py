"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    max_value: int
    actual_value: int
    retry_after: int
    scope: str
    attempts: int
    backend: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class NotFoundAppError(AppError):
    """Raised at the transport edge when a paste is absent or expired."""


class CapacityAppError(AppError):
    """Raised when the code space is saturated and no unique code can be minted."""


class StoreUnavailableAppError(AppError):
    """Raised when the key-value backend cannot be reached or fails an operation."""


@dataclass
class RateLimitedAppError(AppError):
    """Raised when a rate limit scope rejects a request.

    Attributes:
        retry_after: Whole seconds the caller should wait before retrying.
    """

    retry_after: int = 0
