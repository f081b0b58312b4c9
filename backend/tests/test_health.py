"""System endpoint and error rendering tests."""

import pytest

from budget_api.main import app
from budget_api.services.identity_client import IdentityServiceError


@pytest.mark.asyncio
async def test_liveness_reports_version(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": "0.1.0"}


@pytest.mark.asyncio
async def test_readiness_checks_database(client):
    response = await client.get("/ready")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["checks"] == {"database": "ok", "identity": "ok"}


@pytest.mark.asyncio
async def test_unknown_route_renders_error_body(client):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_wrong_method_renders_error_body(client):
    response = await client.put("/api/dashboard")
    assert response.status_code == 405
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_readiness_degraded_without_identity_provider(client, monkeypatch):
    async def unreachable():
        raise IdentityServiceError("Identity service unavailable", status_code=503)

    monkeypatch.setattr(app.state.identity_client, "health", unreachable)
    response = await client.get("/ready")
    body = response.json()
    assert body["status"] == "degraded"
    assert body["checks"]["database"] == "ok"
    assert body["checks"]["identity"].startswith("error")
