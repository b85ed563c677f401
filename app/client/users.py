"""Typed wrapper for the user management endpoints."""

from typing import Any, Dict, List

from app.client.api_client import CsrfClient


class UsersApi:
    """User CRUD calls over a :class:`CsrfClient`.

    Every method raises ``httpx.HTTPStatusError`` for error responses; a
    validation failure carries the field errors in ``response.json()``.
    """

    def __init__(self, client: CsrfClient):
        self.client = client

    async def list(self) -> List[Dict[str, Any]]:
        response = await self.client.get("/api/users")
        response.raise_for_status()
        return response.json()["data"]

    async def get(self, user_id: str) -> Dict[str, Any]:
        response = await self.client.get(f"/api/users/{user_id}")
        response.raise_for_status()
        return response.json()["data"]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.post("/api/admin/users", json=data)
        response.raise_for_status()
        return response.json()["data"]

    async def update(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.patch(f"/api/users/{user_id}", json=data)
        response.raise_for_status()
        return response.json()["data"]

    async def delete(self, user_id: str) -> None:
        response = await self.client.delete(f"/api/users/{user_id}")
        response.raise_for_status()
