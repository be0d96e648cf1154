from __future__ import annotations

from quickpaste.api.routes.health import router as health_router
from quickpaste.api.routes.pastes import router as pastes_router

__all__ = ["health_router", "pastes_router"]
