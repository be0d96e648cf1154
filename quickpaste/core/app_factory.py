from __future__ import annotations

"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and
background maintenance) to improve testability.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quickpaste.api.routes import health_router, pastes_router
from quickpaste.core.config import settings
from quickpaste.core.exception_handlers import setup_exception_handlers
from quickpaste.core.logging import configure_logging
from quickpaste.core.middleware import request_id_middleware
from quickpaste.core.openapi import apply_openapi_customizations
from quickpaste.core.rate_limit import get_rate_governor
from quickpaste.core.store import close_paste_store, get_paste_store
from quickpaste.services.maintenance import PeriodicTask

logger = logging.getLogger(__name__)

LOCALHOST_ORIGIN_REGEX = r"^http://localhost(:\d+)?$"


def parse_allowed_origins(origins_string: str | None) -> list[str]:
    """Parse a comma-separated origin list, dropping blanks and trailing slashes.

    Examples:
        >>> parse_allowed_origins("https://a.example, https://b.example/")
        ['https://a.example', 'https://b.example']
        >>> parse_allowed_origins(None)
        []
    """
    if not origins_string:
        return []
    return [origin.strip().rstrip("/") for origin in origins_string.split(",") if origin.strip()]


def add_cors_middleware(app: FastAPI) -> None:
    """Allow browser clients from the configured origins.

    Outside production any ``http://localhost`` port is accepted, and with no
    configured origins every origin is. ``Retry-After`` is exposed so
    throttled browser clients can read it.
    """
    origins = parse_allowed_origins(settings.app.allowed_origins)
    production = settings.app_env == "production"
    if not origins and not production:
        origins = ["*"]

    expose_headers = ["Retry-After", settings.log.request_id_header]
    if settings.rate_limit.include_headers:
        expose_headers += ["X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_origin_regex=None if production else LOCALHOST_ORIGIN_REGEX,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", settings.app.client_id_header, settings.log.request_id_header],
        expose_headers=expose_headers,
    )
    logger.info("app.cors_configured", extra={"origins": origins, "production": production})


def build_maintenance_tasks() -> list[PeriodicTask]:
    """Create the periodic sweep and rate limit cleanup jobs."""

    store = get_paste_store()

    async def _cleanup_rate_limits() -> int:
        return get_rate_governor().cleanup()

    return [
        PeriodicTask(
            "paste_sweep",
            store.sweep_expired,
            interval_seconds=settings.paste.sweep_interval_seconds,
        ),
        PeriodicTask(
            "rate_limit_cleanup",
            _cleanup_rate_limits,
            interval_seconds=settings.rate_limit.cleanup_interval_seconds,
        ),
    ]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Start background maintenance on startup, stop it on shutdown."""

    tasks = build_maintenance_tasks()
    for task in tasks:
        task.start()
    app.state.maintenance_tasks = tasks
    logger.info("app.startup", extra={"app_env": settings.app_env, "backend": settings.storage.backend})

    try:
        yield
    finally:
        for task in tasks:
            await task.stop()
        await close_paste_store()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="QuickPaste API",
        description=(
            "Deposit text or an image and read it back with a short, human-typeable "
            "code. Quick pastes get a server-assigned code and expire after a short "
            "lifetime; session pastes use a client-chosen code that can be rewritten "
            "and refreshes its expiry on every write. Requests are rate limited "
            "globally and per client."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)
    # Added last so it wraps request id handling and answers preflights first
    add_cors_middleware(app)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(pastes_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (tags, client header, 429 docs)
    apply_openapi_customizations(app)

    return app
