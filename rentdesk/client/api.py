from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx


class ApiError(Exception):
    """Non-2xx answer or transport failure. status_code is None when the request never got an answer."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        fields: list[str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.fields = list(fields or [])


@dataclass
class Session:
    access_token: str
    user_id: str
    user_name: str


@dataclass
class DashboardClient:
    """
    Thin async client for the /v1 listing API.

    Pass `transport` to talk to an in-process app (httpx.ASGITransport) or a mock.
    """

    base_url: str
    timeout_seconds: float = 15.0
    transport: httpx.AsyncBaseTransport | None = None
    session: Session | None = None
    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self.transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DashboardClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _headers(self) -> dict[str, str]:
        if self.session is None:
            return {}
        return {"Authorization": f"Bearer {self.session.access_token}"}

    async def _request(self, method: str, path: str, json_body: Mapping[str, Any] | None = None) -> Any:
        try:
            resp = await self._http().request(method, path, json=json_body, headers=self._headers())
        except httpx.TimeoutException:
            raise ApiError("Request timeout. Check that the listing service is reachable.")
        except httpx.RequestError as e:
            raise ApiError(f"Network error: {e}")

        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise ApiError(
                body.get("message") or f"HTTP {resp.status_code}",
                status_code=resp.status_code,
                code=body.get("code"),
                fields=[d.get("field") for d in body.get("details", []) if isinstance(d, dict) and d.get("field")],
            )
        try:
            return resp.json()
        except ValueError:
            raise ApiError("Malformed response from listing service", status_code=resp.status_code)

    async def login(self, username: str, password: str) -> Session:
        data = await self._request("POST", "/v1/auth/login", {"username": username, "password": password})
        self.session = Session(
            access_token=data["access_token"],
            user_id=data["user"]["id"],
            user_name=data["user"]["name"],
        )
        return self.session

    async def list_listings(self) -> list[dict[str, Any]]:
        return await self._request("GET", "/v1/apartments")

    async def create_listing(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/v1/apartments/create", dict(fields))

    async def update_listing(self, listing_id: str, fields: Mapping[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/v1/apartments/update", {**fields, "id": listing_id})

    async def set_status(self, listing_id: str, status: str) -> dict[str, Any]:
        return await self._request("POST", "/v1/apartments/update-status", {"id": listing_id, "status": status})

    async def delete_listing(self, listing_id: str) -> dict[str, Any]:
        return await self._request("POST", "/v1/apartments/delete", {"id": listing_id})
