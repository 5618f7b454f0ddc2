# src/taskdump/tasks/normalizer.py

"""
Task normalization.

ensure_task() turns any partial record (cache entry, remote payload, capture
output, garbage) into a canonical Task. It is total and idempotent:
ensure_task(ensure_task(x, o), o) == ensure_task(x, o).
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any

from ..config import DEFAULT_OWNER
from .task_models import Recurrence, Task

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def new_task_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    """UTC timestamp with millisecond precision, e.g. 2024-06-10T08:15:00.123Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def today_local() -> str:
    return date.today().isoformat()


def coerce_date(value: Any) -> str | None:
    """
    Return a zero-padded YYYY-MM-DD string or None.

    Accepts date/datetime objects, plain ISO dates and ISO timestamps
    (the calendar part is kept, no time zone conversion).
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str):
        return None
    m = _ISO_DATE_RE.match(value.strip())
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3))).isoformat()
    except ValueError:
        return None


def coerce_hhmm(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    m = _HHMM_RE.match(value.strip())
    if not m:
        return None
    hh, mm = int(m.group(1)), int(m.group(2))
    if hh > 23 or mm > 59:
        return None
    return f"{hh:02d}:{mm:02d}"


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and value > 0:
        return value
    return None


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def _pick(data: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if k in data and data[k] is not None:
            return data[k]
    return None


def ensure_task(partial: Any, default_owner: str | None = None) -> Task:
    """Fill gaps with safe defaults. Never raises, never mutates the input."""
    if isinstance(partial, Task):
        data: Mapping[str, Any] = partial.to_dict()
    elif isinstance(partial, Mapping):
        data = partial
    else:
        data = {}

    raw_id = data.get("id")
    task_id = str(raw_id) if raw_id not in (None, "") and raw_id is not False else new_task_id()

    raw_text = data.get("text")
    text = "" if raw_text is None else str(raw_text)

    raw_owner = data.get("owner")
    if isinstance(raw_owner, str) and raw_owner.strip():
        owner = raw_owner.strip()
    else:
        owner = (default_owner or "").strip() or DEFAULT_OWNER

    updated_raw = _pick(data, "updatedAt", "updated_at")
    updated_at = updated_raw if isinstance(updated_raw, str) and updated_raw else now_iso()

    project = _opt_str(data.get("project"))
    if project is not None:
        project = project.lstrip("#").strip() or None

    shared_raw = data.get("shared_with")
    shared_with = (
        [str(s).strip() for s in shared_raw if str(s).strip()]
        if isinstance(shared_raw, (list, tuple))
        else []
    )

    recurrence = Recurrence.from_code(data.get("recurrence"))

    return Task(
        id=task_id,
        text=text,
        owner=owner,
        date=coerce_date(data.get("date")) or today_local(),
        done=bool(data.get("done")),
        urgent=bool(data.get("urgent")),
        updated_at=updated_at,
        estimated_duration=_positive_int(data.get("estimated_duration")),
        recurrence=recurrence.code if recurrence else None,
        project=project,
        start_time=coerce_hhmm(data.get("start_time")),
        is_event=bool(data.get("is_event")),
        was_carried_over=bool(_pick(data, "wasCarriedOver", "was_carried_over")),
        shared_with=shared_with,
        is_shared_with_me=bool(data.get("is_shared_with_me")),
        calendar_event_id=_opt_str(_pick(data, "calendar_event_id", "google_event_id")),
    )
