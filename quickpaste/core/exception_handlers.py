"""FastAPI exception handlers rendering the ``{"error": {...}}`` envelope.

Domain errors map to fixed HTTP statuses (400, 404, 429, 503, 507) and
unparseable requests to 400 ``invalid_request``; any other exception
becomes an opaque 500. Every error body carries the
request id so a client report can be matched with server logs.
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from quickpaste.core.config import settings
from quickpaste.core.errors import (
    AppError,
    CapacityAppError,
    NotFoundAppError,
    RateLimitedAppError,
    StoreUnavailableAppError,
    ValidationAppError,
)
from quickpaste.core.logging import get_request_id

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (NotFoundAppError, 404),
    (RateLimitedAppError, 429),
    (StoreUnavailableAppError, 503),
    (CapacityAppError, 507),
)


def status_code_for(exc: AppError) -> int:
    """Map a domain error to its HTTP status code (400 by default)."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def _rate_limit_headers(exc: RateLimitedAppError) -> dict[str, str]:
    headers = {"Retry-After": str(max(0, exc.retry_after))}
    if settings.rate_limit.include_headers:
        context = (exc.details or {}).get("context") or {}
        for header, field in (
            ("X-RateLimit-Limit", "limit"),
            ("X-RateLimit-Remaining", "remaining"),
            ("X-RateLimit-Reset", "reset_at"),
        ):
            if field in context:
                headers[header] = str(context[field])
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an ``AppError`` (or subclass) as a JSON error response.

    The body is ``{"error": {code, message, request_id, details?}}``.
    Throttled requests also get ``Retry-After`` and, when enabled, the
    ``X-RateLimit-*`` headers.

    Args:
        request: Incoming request.
        exc: Domain error raised by a route, dependency or service.

    Returns:
        JSONResponse with the mapped status code.
    """
    status_code = status_code_for(exc)
    request_id = get_request_id()

    # Unknown codes are routine traffic, not warnings
    log = logger.info if isinstance(exc, NotFoundAppError) else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "route": request.url.path,
            "request_id": request_id,
        },
    )

    body: dict = {"code": exc.code, "message": exc.message, "request_id": request_id}
    if exc.details:
        body["details"] = exc.details

    headers = _rate_limit_headers(exc) if isinstance(exc, RateLimitedAppError) else None

    return JSONResponse(status_code=status_code, content={"error": body}, headers=headers)


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a request body FastAPI could not parse as a 400 ``invalid_request``.

    Only the location, message and type of each problem are returned; the
    rejected input is left out so pasted content never echoes back.
    """
    errors = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]
    request_id = get_request_id()

    logger.warning(
        "request_validation_failed",
        extra={
            "error_count": len(errors),
            "route": request.url.path,
            "request_id": request_id,
        },
    )

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": "invalid_request",
                "message": "Request is malformed",
                "request_id": request_id,
                "details": {"context": {"errors": errors}},
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log an unexpected failure and answer with a generic 500.

    The response never includes the exception type, message or traceback.
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Attach the domain and fallback handlers to ``app``."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
