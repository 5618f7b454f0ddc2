# src/taskdump/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/remote/auth/UI collaborators swappable and makes testing easier.
"""

from typing import Any, Protocol

JsonDict = dict[str, Any]
# Task / settings payloads as they travel over the wire and into the cache.


class KeyValueStore(Protocol):
    """
    Durable local key-value store (string keys, string values).

    Any method may raise (quota, permissions, disabled storage).
    Callers must treat failures as "storage unavailable", never as fatal.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class AuthProvider(Protocol):
    """Authentication collaborator. Token lifecycle lives outside the core."""

    def is_authenticated(self) -> bool: ...
    def get_credential(self) -> str | None: ...


class RemoteTaskApi(Protocol):
    """
    Remote task/settings API.

    Every coroutine raises RemoteRequestFailed on transport errors
    or non-2xx responses.
    """

    async def list_tasks(self) -> list[JsonDict]: ...
    async def create_task(self, payload: JsonDict) -> JsonDict: ...
    async def update_task(self, task_id: str, changes: JsonDict) -> JsonDict: ...
    async def delete_task(self, task_id: str) -> None: ...
    async def get_settings(self) -> JsonDict: ...
    async def update_settings(self, changes: JsonDict) -> JsonDict: ...


class InputSurface(Protocol):
    """UI-side text input that capture clears right after dispatch."""

    def clear(self) -> None: ...
