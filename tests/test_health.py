"""
tests/test_health.py -- Integration tests for GET /health.

Covers:
  - 200 response with status and version
  - Nothing about the user directory is disclosed
  - No authentication required
"""

from __future__ import annotations

from conftest import add_user


def test_health_returns_200(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert "version" in data


def test_health_does_not_disclose_user_count(client, store):
    add_user(store, "alice")
    data = client.get("/health").json()
    assert set(data) == {"status", "version"}


def test_health_no_auth_required(client):
    resp = client.get("/health", headers={})
    assert resp.status_code == 200
