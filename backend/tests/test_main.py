"""
Tests for application health endpoints and middleware.
"""

from fastapi import status
from httpx import AsyncClient

from marketplace.database.models.user import UserRole
from tests.conftest import auth_headers


class TestHealthEndpoints:
    """Test health, readiness and liveness probes."""

    async def test_health(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"
        assert response.json()["environment"] == "test"

    async def test_ready(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/ready")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["database"] == "healthy"

    async def test_ready_when_database_down(
        self, async_client: AsyncClient, monkeypatch
    ) -> None:
        async def unhealthy() -> bool:
            return False

        monkeypatch.setattr("marketplace.main.check_database_health", unhealthy)

        response = await async_client.get("/ready")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["status"] == "not_ready"

    async def test_live(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/live")

        assert response.json()["status"] == "alive"


class TestRequestMiddleware:
    """Test request correlation."""

    async def test_request_id_echoed(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"

    async def test_request_id_generated(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.headers["X-Request-ID"]

    async def test_validation_error_shape(
        self, async_client: AsyncClient, make_user
    ) -> None:
        customer = await make_user(UserRole.CUSTOMER)

        response = await async_client.post(
            "/api/v1/orders",
            json={"quantity": "several"},
            headers=auth_headers(customer),
        )

        body = response.json()
        assert response.status_code == 422
        assert body["error"] == "Validation Error"
        assert body["details"][0]["loc"] == ["body", "quantity"]
        assert body["request_id"]
