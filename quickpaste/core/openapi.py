"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- The optional client identifier header on rate-limited operations
- ``Retry-After`` documentation on 429 responses

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from quickpaste.core.config import settings

_RATE_LIMITED_PREFIX = "/api/"


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata.

    - Adds tags metadata if not present
    - Documents the client id header and the 429 response (with its
      ``Retry-After`` header) on every rate-limited ``/api/`` operation
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        # Tags metadata
        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Pastes",
                "description": "Create and read short-lived pastes by code.",
            },
            {
                "name": "Health",
                "description": "Liveness and storage connectivity checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        client_header = {
            "name": settings.app.client_id_header,
            "in": "header",
            "required": False,
            "schema": {"type": "string"},
            "description": "Opaque client identifier used for per-client rate limits. "
            "Falls back to the caller's address when absent.",
        }
        too_many_requests = {
            "description": "Rate limit exceeded",
            "headers": {
                "Retry-After": {
                    "description": "Whole seconds to wait before retrying.",
                    "schema": {"type": "integer", "minimum": 0},
                }
            },
        }

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith(_RATE_LIMITED_PREFIX):
                continue
            for method_obj in methods.values():
                if not isinstance(method_obj, dict):
                    continue
                parameters = method_obj.setdefault("parameters", [])
                if all(p.get("name") != client_header["name"] for p in parameters):
                    parameters.append(dict(client_header))
                method_obj.setdefault("responses", {}).setdefault("429", too_many_requests)

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
