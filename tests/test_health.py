"""
Tests for health check and root endpoints.
"""
import pytest
from sqlalchemy.exc import OperationalError

from conftest import auth


@pytest.mark.asyncio
async def test_health_endpoint(client):
    """Test the health check pings the database."""
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_health_reports_unreachable_database(client, services, monkeypatch):
    """Test a failing ping maps to the infrastructure error envelope."""

    async def broken_ping():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(services.database, "ping", broken_ping)
    response = await client.get("/api/health")

    assert response.status_code == 500
    assert response.json() == {"error": "Database connection failed."}


@pytest.mark.asyncio
async def test_root_endpoint(client):
    """Test the root endpoint returns API information."""
    response = await client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Tripboard API"
    assert data["status"] == "running"
    assert data["version"] == "0.1.0"


@pytest.mark.asyncio
async def test_missing_bearer_token(client):
    """Test protected endpoints reject requests without a token."""
    response = await client.get("/api/trips")

    assert response.status_code == 401
    assert response.json() == {"error": "Missing bearer token."}


@pytest.mark.asyncio
async def test_invalid_bearer_token(client):
    """Test an unverifiable token is a 401 with the generic message."""
    response = await client.get("/api/trips", headers=auth("forged"))

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid or expired access token."}
