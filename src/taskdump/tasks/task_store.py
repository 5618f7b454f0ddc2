# src/taskdump/tasks/task_store.py

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from typing import Any

from ..core.ports import AuthProvider, JsonDict, KeyValueStore, RemoteTaskApi
from ..core.state import (
    PlannerState,
    UserSettings,
    default_state,
    normalize_owners,
    state_from_document,
)
from ..remote.client import RemoteRequestFailed
from ..storage.kv_store import storage_ok
from .normalizer import coerce_date, ensure_task, now_iso
from .task_models import Task

logger = logging.getLogger(__name__)

ChangeListener = Callable[[PlannerState], None]


@dataclass(slots=True, frozen=True)
class SyncOutcome:
    """
    Result of a persistence operation.

    committed_locally:  the local cache holds the change
    committed_remotely: the remote API acknowledged the change
    error:              why the remote (or local) side did not land, if it did not
    """

    committed_locally: bool
    committed_remotely: bool
    error: str | None = None
    task: Task | None = None


def _merge_remote(local: JsonDict, remote: Mapping[str, Any]) -> JsonDict:
    """Remote values win, but a remote null/missing field never erases a local one."""
    merged = dict(local)
    for key, value in remote.items():
        if value is not None:
            merged[key] = value
    return merged


class StateStore:
    """
    Owner of the single PlannerState.

    - local cache: one JSON document under one key, written synchronously on every save
    - remote API: used only while the auth collaborator reports a session
    - remote failures are logged and reported in SyncOutcome; the local value stays effective

    There is no locking: the last local write wins.
    """

    def __init__(
        self,
        kv: KeyValueStore | None,
        *,
        cache_key: str = "taskdump_state_v1",
        schema: str = "v1",
        default_owners: list[str] | None = None,
        remote: RemoteTaskApi | None = None,
        auth: AuthProvider | None = None,
        on_change: ChangeListener | None = None,
    ) -> None:
        self._kv = kv
        self._cache_key = cache_key
        self._schema = schema
        self._default_owners = normalize_owners(default_owners)
        self._remote = remote
        self._auth = auth
        self._on_change = on_change

        self.storage_ok = kv is not None and storage_ok(kv)
        self.state: PlannerState = default_state(owners=self._default_owners, schema=schema)

    @classmethod
    def from_settings(
        cls,
        settings: Any,
        kv: KeyValueStore | None,
        *,
        remote: RemoteTaskApi | None = None,
        auth: AuthProvider | None = None,
        on_change: ChangeListener | None = None,
    ) -> StateStore:
        return cls(
            kv,
            cache_key=settings.cache_key,
            schema=settings.schema_version,
            default_owners=list(settings.default_owners),
            remote=remote,
            auth=auth,
            on_change=on_change,
        )

    # ---- helpers ----

    @property
    def default_owner(self) -> str:
        return self.state.settings.default_owner

    def is_remote_mode(self) -> bool:
        if self._remote is None or self._auth is None:
            return False
        try:
            return bool(self._auth.is_authenticated())
        except Exception:
            logger.exception("Auth check failed; staying local-only.")
            return False

    @staticmethod
    def _log_remote_failure(op: str, err: Exception) -> str:
        if isinstance(err, RemoteRequestFailed):
            logger.warning("Remote %s failed, keeping local value: %s", op, err)
        else:
            logger.exception("Remote %s failed unexpectedly, keeping local value", op)
        return str(err) or err.__class__.__name__

    def _index_of(self, task_id: str) -> int | None:
        for i, t in enumerate(self.state.tasks):
            if t.id == task_id:
                return i
        return None

    # ---- load / save ----

    def load(self) -> PlannerState:
        """Defaults, overlaid by the cached document when it is structurally valid."""
        state = default_state(owners=self._default_owners, schema=self._schema)

        raw: str | None = None
        if self.storage_ok and self._kv is not None:
            try:
                raw = self._kv.get(self._cache_key)
            except Exception:
                logger.warning("Local cache read failed; using defaults.", exc_info=True)

        if raw:
            try:
                doc = json.loads(raw)
            except ValueError:
                doc = None
            parsed = state_from_document(doc, owners=self._default_owners, schema=self._schema)
            if parsed is None:
                logger.warning("Malformed local cache under %s ignored.", self._cache_key)
            else:
                state = parsed

        self.state = state
        logger.info(
            "State loaded tasks=%d rev=%d storage_ok=%s",
            len(state.tasks),
            state.meta.rev,
            self.storage_ok,
        )
        return state

    def save(self) -> bool:
        """
        Bump meta.rev / meta.updatedAt and write the cache.

        Returns True when the document reached the local store. Never raises.
        """
        meta = self.state.meta
        meta.updated_at = now_iso()
        meta.rev += 1

        written = False
        if self.storage_ok and self._kv is not None:
            try:
                self._kv.set(self._cache_key, self.state.to_json())
                written = True
            except Exception:
                logger.warning("Local cache write failed (rev=%d); continuing in memory.", meta.rev, exc_info=True)
                self.storage_ok = False

        if self._on_change is not None:
            try:
                self._on_change(self.state)
            except Exception:
                logger.exception("on_change listener failed")

        return written

    async def load_remote(self) -> SyncOutcome:
        """Replace tasks/settings with the remote copy and mirror it into the cache."""
        if not self.is_remote_mode():
            logger.debug("Not authenticated; skipping remote load.")
            return SyncOutcome(committed_locally=False, committed_remotely=False)

        assert self._remote is not None
        try:
            remote_tasks, remote_settings = await asyncio.gather(
                self._remote.list_tasks(),
                self._remote.get_settings(),
            )
        except Exception as e:
            return SyncOutcome(
                committed_locally=False,
                committed_remotely=False,
                error=self._log_remote_failure("load", e),
            )

        settings = UserSettings(owners=list(self._default_owners))
        if isinstance(remote_settings, Mapping) and "owners" in remote_settings:
            settings.owners = normalize_owners(remote_settings.get("owners"), fallback=self._default_owners)

        self.state.settings = settings
        self.state.tasks = [
            ensure_task(t, settings.default_owner) for t in remote_tasks if isinstance(t, Mapping)
        ]
        written = self.save()
        logger.info("Remote state loaded tasks=%d owners=%s", len(self.state.tasks), settings.owners)
        return SyncOutcome(committed_locally=written, committed_remotely=True)

    # ---- task CRUD ----

    async def create_task(self, task: Task | Mapping[str, Any]) -> SyncOutcome:
        local = ensure_task(task, self.default_owner)
        effective = local
        committed_remotely = False
        error: str | None = None

        if self.is_remote_mode():
            assert self._remote is not None
            try:
                created = await self._remote.create_task(local.to_dict())
                effective = ensure_task(_merge_remote(local.to_dict(), created), self.default_owner)
                committed_remotely = True
            except Exception as e:
                error = self._log_remote_failure("create", e)

        idx = self._index_of(effective.id)
        if idx is None:
            self.state.tasks.append(effective)
        else:
            self.state.tasks[idx] = effective

        written = self.save()
        logger.debug("Task created id=%s remote=%s", effective.id, committed_remotely)
        return SyncOutcome(
            committed_locally=written,
            committed_remotely=committed_remotely,
            error=error,
            task=effective,
        )

    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> SyncOutcome:
        """Apply wire-keyed changes (e.g. {"done": True}); refreshes updatedAt."""
        current = self.state.find_task(task_id)
        if current is None:
            return SyncOutcome(False, False, error=f"task {task_id} not found")

        changes = {k: v for k, v in changes.items() if k != "id"}
        merged = {**current.to_dict(), **changes}
        committed_remotely = False
        error: str | None = None

        if self.is_remote_mode():
            assert self._remote is not None
            try:
                updated = await self._remote.update_task(task_id, dict(changes))
                merged = _merge_remote(merged, {k: v for k, v in updated.items() if k != "id"})
                committed_remotely = True
            except Exception as e:
                error = self._log_remote_failure("update", e)

        merged["id"] = task_id
        merged["updatedAt"] = now_iso()
        # Optional fields cleared by the caller (None) must not survive the merge.
        for key, value in changes.items():
            if value is None:
                merged.pop(key, None)
        effective = ensure_task(merged, self.default_owner)

        idx = self._index_of(task_id)
        if idx is None:
            # Deleted while the remote call was in flight: do not resurrect it.
            return SyncOutcome(False, committed_remotely, error=f"task {task_id} was deleted", task=effective)

        self.state.tasks[idx] = effective
        written = self.save()
        return SyncOutcome(written, committed_remotely, error=error, task=effective)

    async def delete_task(self, task_id: str) -> SyncOutcome:
        existing = self.state.find_task(task_id)
        remote_mode = self.is_remote_mode()
        if existing is None and not remote_mode:
            return SyncOutcome(False, False, error=f"task {task_id} not found")

        committed_remotely = False
        error: str | None = None
        if remote_mode:
            assert self._remote is not None
            try:
                await self._remote.delete_task(task_id)
                committed_remotely = True
            except Exception as e:
                error = self._log_remote_failure("delete", e)

        before = len(self.state.tasks)
        self.state.tasks = [t for t in self.state.tasks if t.id != task_id]
        written = self.save() if len(self.state.tasks) != before else False
        return SyncOutcome(written, committed_remotely, error=error, task=existing)

    # ---- lifecycle mutators ----

    async def toggle_done(self, task_id: str) -> SyncOutcome:
        task = self.state.find_task(task_id)
        if task is None:
            return SyncOutcome(False, False, error=f"task {task_id} not found")
        return await self.update_task(task_id, {"done": not task.done})

    async def toggle_urgent(self, task_id: str) -> SyncOutcome:
        task = self.state.find_task(task_id)
        if task is None:
            return SyncOutcome(False, False, error=f"task {task_id} not found")
        return await self.update_task(task_id, {"urgent": not task.urgent})

    async def reschedule(self, task_id: str, new_date: date | str) -> SyncOutcome:
        iso = coerce_date(new_date)
        if iso is None:
            return SyncOutcome(False, False, error=f"invalid date {new_date!r}")
        return await self.update_task(task_id, {"date": iso})

    async def share_task(self, task_id: str, person: str) -> SyncOutcome:
        task = self.state.find_task(task_id)
        if task is None:
            return SyncOutcome(False, False, error=f"task {task_id} not found")
        person = person.strip()
        if not person or person in task.shared_with:
            return SyncOutcome(False, False, error="nothing to share")
        return await self.update_task(task_id, {"shared_with": [*task.shared_with, person]})

    async def unshare_task(self, task_id: str, person: str) -> SyncOutcome:
        task = self.state.find_task(task_id)
        if task is None:
            return SyncOutcome(False, False, error=f"task {task_id} not found")
        remaining = [p for p in task.shared_with if p != person.strip()]
        if remaining == task.shared_with:
            return SyncOutcome(False, False, error=f"not shared with {person!r}")
        return await self.update_task(task_id, {"shared_with": remaining})

    # ---- settings ----

    async def update_owners(self, owners: list[str]) -> SyncOutcome:
        normalized = normalize_owners(owners, fallback=self._default_owners)
        self.state.settings.owners = normalized

        committed_remotely = False
        error: str | None = None
        if self.is_remote_mode():
            assert self._remote is not None
            try:
                await self._remote.update_settings({"owners": normalized})
                committed_remotely = True
            except Exception as e:
                error = self._log_remote_failure("settings update", e)

        written = self.save()
        return SyncOutcome(written, committed_remotely, error=error)

    # ---- import / export ----

    def export_json(self) -> str:
        return json.dumps(self.state.to_dict(), ensure_ascii=False, indent=2)

    def import_json(self, payload: str | Mapping[str, Any]) -> bool:
        """Replace local tasks/settings with an exported document. Invalid -> False, state untouched."""
        doc: Any = payload
        if isinstance(payload, str):
            try:
                doc = json.loads(payload)
            except ValueError:
                logger.warning("Import rejected: invalid JSON")
                return False

        parsed = state_from_document(dict(doc) if isinstance(doc, Mapping) else doc,
                                     owners=self._default_owners, schema=self._schema)
        if parsed is None:
            logger.warning("Import rejected: invalid document shape")
            return False

        self.state.tasks = parsed.tasks
        self.state.settings = parsed.settings
        # rev never goes backwards, whatever the imported document says
        self.state.meta.rev = max(self.state.meta.rev, parsed.meta.rev)
        self.save()
        logger.info("Imported %d tasks", len(parsed.tasks))
        return True

    def wipe_tasks(self) -> int:
        n = len(self.state.tasks)
        self.state.tasks = []
        self.save()
        logger.info("Wiped %d local tasks", n)
        return n
