# tests/test_carry_over.py

from __future__ import annotations

import asyncio
import json
from datetime import date

import pytest

from taskdump.storage.kv_store import MemoryKeyValueStore
from taskdump.tasks.carry_over import run_auto_carry_over, run_carry_over_loop
from taskdump.tasks.task_store import StateStore

TODAY = date(2024, 6, 10)


async def _seed(store: StateStore) -> None:
    for text, day, done in [
        ("old open 1", "2024-06-01", False),
        ("old open 2", "2024-06-09", False),
        ("old done", "2024-06-08", True),
        ("today", "2024-06-10", False),
        ("future", "2024-06-20", False),
    ]:
        await store.create_task({"text": text, "date": day, "done": done})


@pytest.mark.asyncio
async def test_carry_over_moves_past_incomplete_tasks(store: StateStore, kv: MemoryKeyValueStore) -> None:
    await _seed(store)
    rev_before = store.state.meta.rev

    moved = run_auto_carry_over(store, today=TODAY)

    assert moved == 2
    by_text = {t.text: t for t in store.state.tasks}
    assert by_text["old open 1"].date == "2024-06-10"
    assert by_text["old open 1"].was_carried_over is True
    assert by_text["old open 2"].date == "2024-06-10"
    assert by_text["old done"].date == "2024-06-08"
    assert by_text["old done"].was_carried_over is False
    assert by_text["future"].date == "2024-06-20"
    assert by_text["today"].was_carried_over is False

    # exactly one save
    assert store.state.meta.rev == rev_before + 1
    cached = json.loads(kv.data["taskdump_state_v1"])
    assert sum(1 for t in cached["tasks"] if t.get("wasCarriedOver")) == 2


@pytest.mark.asyncio
async def test_carry_over_is_idempotent_within_a_day(store: StateStore) -> None:
    await _seed(store)
    assert run_auto_carry_over(store, today=TODAY) == 2

    rev = store.state.meta.rev
    assert run_auto_carry_over(store, today=TODAY) == 0
    assert store.state.meta.rev == rev


def test_carry_over_with_nothing_to_do_does_not_save(store: StateStore) -> None:
    assert run_auto_carry_over(store, today=TODAY) == 0
    assert store.state.meta.rev == 0


@pytest.mark.asyncio
async def test_carry_over_refreshes_updated_at(store: StateStore) -> None:
    await store.create_task({"text": "x", "date": "2024-06-01", "updatedAt": "2000-01-01T00:00:00.000Z"})
    run_auto_carry_over(store, today="2024-06-10")
    assert store.state.tasks[0].updated_at != "2000-01-01T00:00:00.000Z"


@pytest.mark.asyncio
async def test_carry_over_loop_runs_at_start_and_on_day_change(store: StateStore) -> None:
    await store.create_task({"text": "late", "date": "2024-06-01"})

    days = [date(2024, 6, 10)]

    runner = asyncio.create_task(run_carry_over_loop(store, interval_seconds=0.01, clock=lambda: days[0]))
    await asyncio.sleep(0.05)
    assert store.state.tasks[0].date == "2024-06-10"

    days[0] = date(2024, 6, 11)
    await asyncio.sleep(0.6)
    assert store.state.tasks[0].date == "2024-06-11"

    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner


@pytest.mark.asyncio
async def test_carry_over_loop_survives_clock_errors(store: StateStore) -> None:
    calls = {"n": 0}

    def clock() -> date:
        calls["n"] += 1
        raise RuntimeError("clock broke")

    runner = asyncio.create_task(run_carry_over_loop(store, interval_seconds=0.01, clock=clock))
    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert calls["n"] >= 1
