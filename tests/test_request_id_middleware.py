from __future__ import annotations

from fastapi.testclient import TestClient

from quickpaste.main import app


client = TestClient(app)


def test_preserves_incoming_request_id_header():
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_truncates_oversized_request_id():
    resp = client.get("/health", headers={"X-Request-ID": "r" * 500})

    assert resp.headers.get("X-Request-ID") == "r" * 128


def test_generates_request_id_when_missing():
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)
    assert len(generated) > 0

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_request_id_is_echoed_in_error_body():
    resp = client.get("/api/paste/abc", headers={"X-Request-ID": "err-req-1"})

    assert resp.status_code == 400
    assert resp.json()["error"]["request_id"] == "err-req-1"
