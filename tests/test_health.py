"""
tests/test_health.py -- Integration tests for GET /api/health and GET /.

Covers:
  - 200 response with status, version, and components fields
  - components.database reports 'ok' against a live engine
  - No authentication required
  - Root liveness message
  - Unknown routes use the standard error envelope
"""

from __future__ import annotations


def test_health_returns_200_with_components(client):
    """Health endpoint returns 200 with status, version, and components."""
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["components"]["app"] == "ok"
    assert data["components"]["database"] == "ok"


def test_health_no_auth_required(client):
    """Health endpoint is accessible with an empty cookie jar."""
    client.cookies.clear()
    resp = client.get("/api/health", headers={})
    assert resp.status_code == 200


def test_root_reports_server_running(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "Server is running."}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/does-not-exist")
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "http_404"
