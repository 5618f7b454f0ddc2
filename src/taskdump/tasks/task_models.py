# src/taskdump/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class RecurrenceKind(StrEnum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    WEEKLY_ON_WEEKDAY = "weekly_on_weekday"
    MONTHLY = "monthly"


@dataclass(frozen=True, slots=True)
class Recurrence:
    """
    Recurrence rule.

    Wire codes: "daily", "weekly", "monthly", and "weekly_<n>" for a fixed
    weekday where n follows the cache/remote convention (0 = Sunday ... 6 = Saturday).
    """

    kind: RecurrenceKind
    weekday: int | None = None

    @property
    def code(self) -> str | None:
        if self.kind == RecurrenceKind.NONE:
            return None
        if self.kind == RecurrenceKind.WEEKLY_ON_WEEKDAY:
            return f"weekly_{self.weekday}"
        return self.kind.value

    @classmethod
    def from_code(cls, raw: Any) -> Recurrence | None:
        """Parse a wire code. Unknown codes -> None."""
        if not isinstance(raw, str):
            return None
        s = raw.strip().lower()
        if s in (RecurrenceKind.DAILY, RecurrenceKind.WEEKLY, RecurrenceKind.MONTHLY):
            return cls(RecurrenceKind(s))
        if s.startswith("weekly_"):
            tail = s[len("weekly_"):]
            if tail.isdigit() and 0 <= int(tail) <= 6:
                return cls(RecurrenceKind.WEEKLY_ON_WEEKDAY, int(tail))
        return None


@dataclass(frozen=True, slots=True)
class IntentFrame:
    """Structured result of extracting one line of free text."""

    title: str
    owner: str
    urgent: bool
    date: str
    duration: int | None = None
    recurrence: Recurrence | None = None
    project: str | None = None
    time: str | None = None


@dataclass(slots=True)
class Task:
    id: str
    text: str
    owner: str
    date: str  # YYYY-MM-DD, local calendar date
    done: bool = False
    urgent: bool = False
    updated_at: str = ""

    estimated_duration: int | None = None
    recurrence: str | None = None
    project: str | None = None
    start_time: str | None = None
    is_event: bool = False
    was_carried_over: bool = False

    shared_with: list[str] = field(default_factory=list)
    is_shared_with_me: bool = False
    calendar_event_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Wire/cache representation. Optional keys are omitted when unset."""
        out: dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "owner": self.owner,
            "date": self.date,
            "done": self.done,
            "urgent": self.urgent,
            "updatedAt": self.updated_at,
        }
        if self.estimated_duration is not None:
            out["estimated_duration"] = self.estimated_duration
        if self.recurrence is not None:
            out["recurrence"] = self.recurrence
        if self.project is not None:
            out["project"] = self.project
        if self.start_time is not None:
            out["start_time"] = self.start_time
        if self.is_event:
            out["is_event"] = True
        if self.was_carried_over:
            out["wasCarriedOver"] = True
        if self.shared_with:
            out["shared_with"] = list(self.shared_with)
        if self.is_shared_with_me:
            out["is_shared_with_me"] = True
        if self.calendar_event_id is not None:
            out["calendar_event_id"] = self.calendar_event_id
        return out
