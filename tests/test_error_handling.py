"""Tests for global error handling."""

from httpx import AsyncClient
import pytest


async def test_404_error_handler(client: AsyncClient):
    """Test unknown routes answer with a JSON message."""
    response = await client.get("/nonexistent-page")

    assert response.status_code == 404
    assert response.json() == {"message": "Not Found"}


async def test_health_endpoint(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "userdesk"}


async def test_health_skips_request_timing(client: AsyncClient):
    response = await client.get("/health")

    assert "x-process-time" not in response.headers


async def test_validation_error_shape(client: AsyncClient, csrf_token):
    """Test validation errors map each field to its messages."""
    response = await client.post(
        "/api/admin/users", json={"username": "jdoe"}, headers={"X-XSRF-TOKEN": csrf_token}
    )

    assert response.status_code == 422
    body = response.json()
    assert set(body["errors"]) == {"first_name", "last_name", "email", "phone"}
    assert all(isinstance(messages, list) and messages for messages in body["errors"].values())
    assert body["message"] == body["errors"]["first_name"][0]


async def test_validation_error_for_non_object_body(client: AsyncClient, csrf_token):
    response = await client.post(
        "/api/admin/users", json=["not", "an", "object"], headers={"X-XSRF-TOKEN": csrf_token}
    )

    assert response.status_code == 422
    assert response.json()["errors"]


@pytest.mark.parametrize("method", ["post", "put", "patch", "delete"])
async def test_mismatch_is_not_a_generic_error(client: AsyncClient, method):
    """Test token failures on any mutating method answer 419 with a message."""
    response = await client.request(method.upper(), "/api/users")

    assert response.status_code == 419
    assert response.json() == {"message": "CSRF token mismatch."}
