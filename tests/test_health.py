"""Tests for health endpoint and the shared error shape."""

import pytest
from httpx import ASGITransport, AsyncClient

from partsearch.main import app, error_body


@pytest.fixture
async def client():
    """Create test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    """Test health endpoint returns ok."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True}


@pytest.mark.asyncio
async def test_unknown_route_uses_error_shape(client: AsyncClient):
    response = await client.get("/v1/nowhere")

    assert response.status_code == 404
    data = response.json()
    assert data["success"] is False
    assert data["error"]["code"] == "HTTP_ERROR"
    assert data["error"]["message"] == data["message"]


def test_error_body():
    assert error_body("VALIDATION_ERROR", "Bad page.", {"field": "page"}) == {
        "success": False,
        "message": "Bad page.",
        "error": {"code": "VALIDATION_ERROR", "message": "Bad page.", "detail": {"field": "page"}},
    }
