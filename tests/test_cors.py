"""Tests for cross-origin access from browser clients."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quickpaste.core.app_factory import create_app, parse_allowed_origins
from quickpaste.core.config import settings


def _preflight(client: TestClient, origin: str):
    return client.options(
        "/api/paste",
        headers={
            "Origin": origin,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        },
    )


@pytest.fixture
def configured_origins(monkeypatch):
    monkeypatch.setattr(settings.app, "allowed_origins", "https://paste.example")


def test_parse_allowed_origins_trims_and_drops_blanks():
    assert parse_allowed_origins(" https://a.example/, ,https://b.example ") == [
        "https://a.example",
        "https://b.example",
    ]
    assert parse_allowed_origins(None) == []
    assert parse_allowed_origins("") == []


def test_configured_origin_passes_preflight(configured_origins):
    client = TestClient(create_app())

    response = _preflight(client, "https://paste.example")

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "https://paste.example"
    assert "POST" in response.headers["access-control-allow-methods"]


def test_unknown_origin_fails_preflight(configured_origins):
    client = TestClient(create_app())

    response = _preflight(client, "https://evil.example")

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


def test_localhost_is_allowed_outside_production(configured_origins):
    client = TestClient(create_app())

    response = client.get("/health", headers={"Origin": "http://localhost:5173"})

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:5173"
    exposed = response.headers["access-control-expose-headers"]
    assert "Retry-After" in exposed
    assert "X-Request-ID" in exposed


def test_localhost_is_rejected_in_production(configured_origins, monkeypatch):
    monkeypatch.setattr(settings, "app_env", "production")
    client = TestClient(create_app())

    response = client.get("/health", headers={"Origin": "http://localhost:5173"})

    assert "access-control-allow-origin" not in response.headers


def test_every_origin_is_allowed_when_none_configured(monkeypatch):
    monkeypatch.setattr(settings.app, "allowed_origins", None)
    client = TestClient(create_app())

    response = client.get("/health", headers={"Origin": "https://anywhere.example"})

    assert response.headers["access-control-allow-origin"] == "*"
