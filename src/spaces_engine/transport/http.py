"""
REST HTTP client for the session store service.
"""

from typing import Any, Optional

import httpx

from spaces_engine.errors import NotFoundError, SpacesError

DEFAULT_STORE_URL = "http://127.0.0.1:8765"


class HttpClient:
    def __init__(self, base_url: str = DEFAULT_STORE_URL, token: Optional[str] = None, timeout: float = 10.0):
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": "spaces-engine/0.1.0", "Accept": "application/json"},
            timeout=timeout,
        )

    def set_token(self, token: str) -> None:
        self._token = token

    def _auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _unwrap(json_data: Any) -> Any:
        """Unwrap the standard store response: { "status": "success", "data": <actual_data> }"""
        if isinstance(json_data, dict) and "status" in json_data and "data" in json_data:
            return json_data["data"]
        return json_data

    @staticmethod
    def _check(resp: httpx.Response) -> None:
        if resp.status_code == 404:
            raise NotFoundError(f"{resp.request.method} {resp.request.url.path}: not found")
        if resp.status_code >= 400:
            raise SpacesError("http_error", f"HTTP {resp.status_code}: {resp.text[:200]}")

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.get(path, params=params, headers=self._auth_headers())
        self._check(resp)
        return self._unwrap(resp.json())

    async def post(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.post(path, json=body, headers=self._auth_headers())
        self._check(resp)
        return self._unwrap(resp.json())

    async def put(self, path: str, body: Optional[dict[str, Any]] = None) -> Any:
        resp = await self._client.put(path, json=body, headers=self._auth_headers())
        self._check(resp)
        return self._unwrap(resp.json())

    async def delete(self, path: str) -> Any:
        resp = await self._client.delete(path, headers=self._auth_headers())
        self._check(resp)
        if not resp.content:
            return None
        return self._unwrap(resp.json())

    async def close(self) -> None:
        await self._client.aclose()
