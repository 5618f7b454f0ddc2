# src/taskdump/remote/client.py

"""
Remote task/settings API client (JSON over HTTP, async).

Endpoints:
- GET    /api/tasks          -> {"tasks": [...]}
- POST   /api/tasks          -> {"task": {...}}
- PATCH  /api/tasks/{id}     -> {"task": {...}}
- DELETE /api/tasks/{id}     -> {"success": true}
- GET    /api/settings       -> {"settings": {...}}
- PATCH  /api/settings       -> {"settings": {...}}

Bare (unwrapped) payloads are accepted as well.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.ports import AuthProvider, JsonDict

logger = logging.getLogger(__name__)


class RemoteRequestFailed(Exception):
    """Transport error, non-2xx status, or an unusable response body."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _unwrap(data: Any, key: str) -> Any:
    if isinstance(data, dict) and key in data:
        return data[key]
    return data


class HttpTaskApi:
    """
    RemoteTaskApi implementation over httpx.AsyncClient.

    The client is created lazily and reused; call aclose() on shutdown.
    Timeouts are a transport concern and live here, not in the core.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthProvider,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, *, json: JsonDict | None = None) -> Any:
        headers: dict[str, str] = {}
        token = self._auth.get_credential()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            resp = await self._get_client().request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise RemoteRequestFailed(f"{method} {path} failed: {e}") from e

        if resp.is_error:
            detail = ""
            try:
                body = resp.json()
                if isinstance(body, dict):
                    detail = str(body.get("error") or "")
            except ValueError:
                pass
            raise RemoteRequestFailed(
                f"{method} {path} -> HTTP {resp.status_code}{': ' + detail if detail else ''}",
                status_code=resp.status_code,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteRequestFailed(f"{method} {path} returned invalid JSON") from e

    # ---- tasks ----

    async def list_tasks(self) -> list[JsonDict]:
        data = _unwrap(await self._request("GET", "/api/tasks"), "tasks")
        if not isinstance(data, list):
            raise RemoteRequestFailed("GET /api/tasks returned no task list")
        return [t for t in data if isinstance(t, dict)]

    async def create_task(self, payload: JsonDict) -> JsonDict:
        data = _unwrap(await self._request("POST", "/api/tasks", json=payload), "task")
        if not isinstance(data, dict):
            raise RemoteRequestFailed("POST /api/tasks returned no task")
        return data

    async def update_task(self, task_id: str, changes: JsonDict) -> JsonDict:
        path = f"/api/tasks/{task_id}"
        data = _unwrap(await self._request("PATCH", path, json=changes), "task")
        if not isinstance(data, dict):
            raise RemoteRequestFailed(f"PATCH {path} returned no task")
        return data

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/{task_id}")

    # ---- settings ----

    async def get_settings(self) -> JsonDict:
        data = _unwrap(await self._request("GET", "/api/settings"), "settings")
        if not isinstance(data, dict):
            raise RemoteRequestFailed("GET /api/settings returned no settings")
        return data

    async def update_settings(self, changes: JsonDict) -> JsonDict:
        data = _unwrap(await self._request("PATCH", "/api/settings", json=changes), "settings")
        if not isinstance(data, dict):
            raise RemoteRequestFailed("PATCH /api/settings returned no settings")
        return data
