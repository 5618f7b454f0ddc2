# src/taskdump/tasks/carry_over.py

from __future__ import annotations

"""
Daily carry-over.

Every incomplete task dated before today is moved to today and flagged
wasCarriedOver. A run only touches tasks that are still in the past, so a
second run on the same day is a no-op (returns 0, no save).

The polling loop re-runs carry-over when the local calendar day changes,
e.g. for a session left open overnight.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date

from .normalizer import now_iso
from .task_store import StateStore

logger = logging.getLogger(__name__)


def run_auto_carry_over(store: StateStore, *, today: date | str | None = None) -> int:
    """Move overdue incomplete tasks to today. Saves once iff something moved."""
    if today is None:
        today_iso = date.today().isoformat()
    elif isinstance(today, date):
        today_iso = today.isoformat()
    else:
        today_iso = str(today)

    moved = 0
    stamp = now_iso()
    for task in store.state.tasks:
        # ISO dates compare correctly as strings
        if not task.done and task.date < today_iso:
            task.date = today_iso
            task.updated_at = stamp
            task.was_carried_over = True
            moved += 1

    if moved > 0:
        store.save()
        logger.info("Carried over %d task(s) to %s", moved, today_iso)

    return moved


async def run_carry_over_loop(
        store: StateStore,
        *,
        interval_seconds: float = 60.0,
        clock: Callable[[], date] = date.today,
) -> None:
    """
    Poll the clock; run carry-over at start and whenever the day changes.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.5, float(interval_seconds))
    last_day: date | None = None

    while True:
        try:
            today = clock()
            if today != last_day:
                run_auto_carry_over(store, today=today)
                last_day = today
        except Exception:
            logger.exception("carry-over run failed")

        await asyncio.sleep(sleep_s)
