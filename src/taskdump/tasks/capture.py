# src/taskdump/tasks/capture.py

"""
Capture orchestration.

Turns one line (quick capture) or a block of lines (bulk capture) into Tasks
and hands them to the StateStore.

- extraction + normalization run in line order, before any network call
- the input surface is cleared as soon as the tasks are built
- remote creates are awaited one by one, in input order
- a failed remote create still lands the task locally (see StateStore)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from ..core.ports import InputSurface
from ..extraction.extractor import Extractor
from .normalizer import coerce_date, ensure_task
from .task_models import Task
from .task_store import StateStore, SyncOutcome

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CaptureContext:
    """
    Per-session capture state, passed explicitly by reference.

    manual_date:   None = auto-detect per line, otherwise forced YYYY-MM-DD
    manual_urgent: OR-ed with the detected urgency
    owner:         session owner selection (see apply_session_owner)
    is_processing: True while a submission is being persisted
    """

    manual_date: str | None = None
    manual_urgent: bool = False
    owner: str | None = None
    is_processing: bool = False

    def set_manual_date(self, value: date | str | None) -> str | None:
        self.manual_date = coerce_date(value) if value is not None else None
        return self.manual_date


@dataclass(slots=True)
class CaptureResult:
    tasks: list[Task] = field(default_factory=list)
    outcomes: list[SyncOutcome] = field(default_factory=list)
    skipped_lines: list[str] = field(default_factory=list)


def _split_build(
        lines: Iterable[str],
        ctx: CaptureContext,
        owners: Sequence[str],
        reference_date: date | str | None,
        apply_session_owner: bool,
) -> tuple[list[Task], list[str]]:
    default_owner = None
    if apply_session_owner and ctx.owner and ctx.owner in owners:
        default_owner = ctx.owner
    extractor = Extractor(owners, default_owner)
    forced_date = coerce_date(ctx.manual_date) if ctx.manual_date else None

    tasks: list[Task] = []
    skipped: list[str] = []
    for line in lines:
        if not line or not line.strip():
            continue

        frame = extractor.extract(line, reference_date)
        if frame is None or not frame.title:
            # Nothing left once markers are stripped (e.g. "demain !!").
            skipped.append(line)
            continue

        tasks.append(
            ensure_task(
                {
                    "text": frame.title,
                    "owner": frame.owner,
                    "date": forced_date or frame.date,
                    "urgent": frame.urgent or ctx.manual_urgent,
                    "done": False,
                    "estimated_duration": frame.duration,
                    "recurrence": frame.recurrence.code if frame.recurrence else None,
                    "project": frame.project,
                    "start_time": frame.time,
                },
                extractor.default_owner,
            )
        )
    return tasks, skipped


def build_tasks(
        lines: Iterable[str],
        ctx: CaptureContext,
        owners: Sequence[str],
        reference_date: date | str | None = None,
        *,
        apply_session_owner: bool = False,
) -> list[Task]:
    """
    Pure: lines -> Tasks.

    Blank lines are skipped, lines whose cleaned title is empty are dropped.
    The owner is detected per line; the session owner is only used as the
    fallback when apply_session_owner is set.
    """
    tasks, _ = _split_build(lines, ctx, owners, reference_date, apply_session_owner)
    return tasks


def _clear_surface(surface: InputSurface | None) -> None:
    if surface is None:
        return
    try:
        surface.clear()
    except Exception:
        logger.exception("Input surface clear failed")


async def _capture(
        store: StateStore,
        ctx: CaptureContext,
        lines: list[str],
        surface: InputSurface | None,
        reference_date: date | str | None,
        apply_session_owner: bool,
) -> CaptureResult:
    if ctx.is_processing:
        logger.info("Capture already in progress; submission ignored.")
        return CaptureResult()

    ctx.is_processing = True
    try:
        tasks, skipped = _split_build(
            lines,
            ctx,
            store.state.settings.owners,
            reference_date,
            apply_session_owner,
        )
        if not tasks:
            return CaptureResult(skipped_lines=skipped)

        _clear_surface(surface)

        result = CaptureResult(skipped_lines=skipped)
        for task in tasks:
            outcome = await store.create_task(task)
            result.outcomes.append(outcome)
            result.tasks.append(outcome.task or task)

        failed = sum(1 for o in result.outcomes if o.error)
        logger.info("Captured %d task(s), %d remote failure(s)", len(result.tasks), failed)
        return result
    finally:
        ctx.is_processing = False


async def quick_capture(
        store: StateStore,
        ctx: CaptureContext,
        line: str,
        surface: InputSurface | None = None,
        *,
        reference_date: date | str | None = None,
        apply_session_owner: bool = False,
) -> CaptureResult:
    """Single-line capture; embedded newlines are treated as spaces."""
    one_line = " ".join((line or "").splitlines())
    return await _capture(store, ctx, [one_line], surface, reference_date, apply_session_owner)


async def bulk_capture(
        store: StateStore,
        ctx: CaptureContext,
        text: str,
        surface: InputSurface | None = None,
        *,
        reference_date: date | str | None = None,
        apply_session_owner: bool = False,
) -> CaptureResult:
    """One task per non-blank line of text."""
    return await _capture(
        store,
        ctx,
        (text or "").splitlines(),
        surface,
        reference_date,
        apply_session_owner,
    )
