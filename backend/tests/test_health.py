"""
Tests for health check endpoints.
"""


async def test_health_endpoint_returns_healthy(client):
    """Test that the /health endpoint returns a healthy status."""
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["database"] == "healthy"
    assert data["scheduler"]["running"] is False
    assert "version" in data


async def test_health_returns_json(client):
    """Test that the /health endpoint returns JSON content type."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"


async def test_ping(client):
    response = await client.get("/ping")
    assert response.json() == {"status": "ok"}


async def test_security_headers_present(client):
    response = await client.get("/health")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert "Strict-Transport-Security" not in response.headers
