"""Unit tests for security headers middleware."""

from httpx import AsyncClient
import pytest


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient):
    """Test that all security headers are present on API responses."""
    response = await client.get("/health")

    assert response.status_code == 200

    headers = response.headers
    assert headers.get("x-frame-options") == "DENY"
    assert headers.get("x-content-type-options") == "nosniff"
    assert headers.get("referrer-policy") == "strict-origin-when-cross-origin"
    assert headers.get("content-security-policy") == "default-src 'none'; frame-ancestors 'none'"


@pytest.mark.asyncio
async def test_no_hsts_over_plain_http(client: AsyncClient):
    response = await client.get("/health")

    assert "strict-transport-security" not in response.headers


@pytest.mark.asyncio
async def test_hsts_behind_https_proxy(client: AsyncClient):
    """Test that HSTS is sent when a proxy reports an HTTPS hop."""
    response = await client.get("/health", headers={"X-Forwarded-Proto": "https"})

    hsts = response.headers.get("strict-transport-security")
    assert hsts is not None
    assert "max-age=31536000" in hsts
    assert "includeSubDomains" in hsts


@pytest.mark.asyncio
async def test_csrf_rejection_still_gets_security_headers(client: AsyncClient, csrf_token):
    """Test that a token mismatch response passes through the outer middleware."""
    response = await client.post("/api/admin/users", json={}, headers={"X-XSRF-TOKEN": "wrong"})

    assert response.status_code == 419
    assert response.headers.get("x-frame-options") == "DENY"
    assert "x-process-time" in response.headers


@pytest.mark.asyncio
async def test_bootstrap_response_gets_security_headers(client: AsyncClient):
    response = await client.get("/csrf-cookie")

    assert response.status_code == 204
    assert response.headers.get("x-content-type-options") == "nosniff"
