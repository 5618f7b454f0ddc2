# src/taskdump/core/state.py

"""
The single State aggregate: {tasks, settings, meta}.

Only structure lives here. Loading, saving and syncing belong to
tasks.task_store.StateStore.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import DEFAULT_OWNER
from ..tasks.normalizer import ensure_task, now_iso
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)


def normalize_owners(raw: Any, fallback: list[str] | None = None) -> list[str]:
    """Stripped, non-empty, de-duplicated owner names; never empty."""
    out: list[str] = []
    if isinstance(raw, (list, tuple)):
        for item in raw:
            if not isinstance(item, str):
                continue
            name = item.strip()
            if name and name not in out:
                out.append(name)
    if out:
        return out
    if fallback:
        return normalize_owners(fallback)
    return [DEFAULT_OWNER]


@dataclass(slots=True)
class UserSettings:
    owners: list[str] = field(default_factory=lambda: [DEFAULT_OWNER])

    @property
    def default_owner(self) -> str:
        return self.owners[0]

    def to_dict(self) -> dict[str, Any]:
        return {"owners": list(self.owners)}


@dataclass(slots=True)
class StateMeta:
    updated_at: str
    rev: int = 0
    schema: str = "v1"

    def to_dict(self) -> dict[str, Any]:
        return {"updatedAt": self.updated_at, "rev": self.rev, "schema": self.schema}


@dataclass(slots=True)
class PlannerState:
    tasks: list[Task]
    settings: UserSettings
    meta: StateMeta

    def find_task(self, task_id: str) -> Task | None:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [t.to_dict() for t in self.tasks],
            "settings": self.settings.to_dict(),
            "meta": self.meta.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def default_state(*, owners: list[str] | None = None, schema: str = "v1") -> PlannerState:
    return PlannerState(
        tasks=[],
        settings=UserSettings(owners=normalize_owners(owners)),
        meta=StateMeta(updated_at=now_iso(), rev=0, schema=schema),
    )


def state_from_document(
    doc: Any,
    *,
    owners: list[str] | None = None,
    schema: str = "v1",
) -> PlannerState | None:
    """
    Build a PlannerState from a decoded cache/import document.

    Returns None when the document is structurally invalid: the caller keeps
    its defaults instead of trusting a malformed payload.
    """
    if not isinstance(doc, dict):
        return None

    raw_tasks = doc.get("tasks")
    raw_settings = doc.get("settings")
    raw_meta = doc.get("meta", {})

    if not isinstance(raw_tasks, list) or not isinstance(raw_settings, dict):
        return None
    if not isinstance(raw_meta, dict):
        return None
    if not all(isinstance(t, dict) for t in raw_tasks):
        return None

    settings = UserSettings(owners=normalize_owners(raw_settings.get("owners"), fallback=owners))
    tasks = [ensure_task(t, settings.default_owner) for t in raw_tasks]

    rev_raw = raw_meta.get("rev", 0)
    rev = rev_raw if isinstance(rev_raw, int) and not isinstance(rev_raw, bool) and rev_raw >= 0 else 0
    updated_raw = raw_meta.get("updatedAt")
    updated_at = updated_raw if isinstance(updated_raw, str) and updated_raw else now_iso()
    schema_raw = raw_meta.get("schema")

    meta = StateMeta(
        updated_at=updated_at,
        rev=rev,
        schema=schema_raw if isinstance(schema_raw, str) and schema_raw else schema,
    )
    return PlannerState(tasks=tasks, settings=settings, meta=meta)
