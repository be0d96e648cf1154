"""HTTP middleware for request ID propagation and access logging.

The middleware:
- Accepts incoming X-Request-ID header or generates a UUID
- Stores request_id in contextvars so store and governor logs carry it
- Injects request_id and total duration into response headers
- Emits one ``request.completed`` log line per request
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from quickpaste.core.config import settings
from quickpaste.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides the configured request id header (default
    ``X-Request-ID``) its value is reused, truncated to a sane length;
    otherwise a new UUID is generated.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    incoming = request.headers.get(header_name)
    request_id = incoming[:MAX_REQUEST_ID_LENGTH] if incoming else str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request.completed",
            extra={
                "method": request.method,
                "route": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
