"""Tests for health endpoints and the correlation ID middleware."""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from temp_targets.main import app
from temp_targets.middleware.correlation import CORRELATION_ID_HEADER


@pytest.fixture
async def client():
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


class TestHealthEndpoint:
    async def test_healthy_when_database_answers(self, client):
        with patch(
            "temp_targets.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=True,
        ):
            response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    async def test_degraded_when_database_is_down(self, client):
        with patch(
            "temp_targets.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=False,
        ):
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    async def test_liveness(self, client):
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json() == {"status": "alive"}


class TestCorrelationId:
    async def test_echoes_given_id(self, client):
        response = await client.get(
            "/health/live",
            headers={CORRELATION_ID_HEADER: "req-42"},
        )
        assert response.headers[CORRELATION_ID_HEADER] == "req-42"

    async def test_generates_id_when_missing(self, client):
        first = await client.get("/health/live")
        second = await client.get("/health/live")

        assert first.headers[CORRELATION_ID_HEADER]
        assert (
            first.headers[CORRELATION_ID_HEADER]
            != second.headers[CORRELATION_ID_HEADER]
        )
