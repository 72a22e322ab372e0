"""
Tests for application wiring: health check, request ids and error shape.
"""

from theycare.config import settings


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": settings.APP_VERSION}

    async def test_request_id_header_is_added(self, client):
        response = await client.get("/health")
        assert response.headers.get("X-Request-ID")

    async def test_request_id_is_propagated(self, client):
        request_id = "7f1c0d3e4b5a4c2d9e8f7a6b5c4d3e2f"
        response = await client.get("/health", headers={"X-Request-ID": request_id})
        assert response.headers["X-Request-ID"] == request_id


class TestErrorShape:

    async def test_domain_errors_share_one_shape(self, client):
        response = await client.post(
            "/auth/login",
            json={"email": "nobody@example.com", "password": "whatever1"},
        )
        body = response.json()
        assert set(body) == {"detail", "error_type"}
        assert body["error_type"] == "invalid_credentials"
