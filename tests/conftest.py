# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdump.storage.kv_store import MemoryKeyValueStore
from taskdump.tasks.task_store import StateStore

from .fakes import FakeAuth, FakeRemoteApi

OWNERS = ["Thibaud", "Marc"]
REFERENCE = date(2024, 6, 10)  # a Monday


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with StateStore.from_settings and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    return SimpleNamespace(
        app_name="taskdump-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        cache_key="taskdump_state_v1",
        schema_version="v1",
        default_owners=list(OWNERS),
        api_enabled=False,
        api_base_url="http://test",
        api_token=None,
        api_timeout_seconds=1.0,
        carry_over_interval_seconds=1.0,
        apply_session_owner=False,
    )


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(settings: SimpleNamespace, kv: MemoryKeyValueStore) -> StateStore:
    """Local-only store over an in-memory key-value store."""
    s = StateStore.from_settings(settings, kv)
    s.load()
    return s


@pytest.fixture()
def remote() -> FakeRemoteApi:
    return FakeRemoteApi(settings={"owners": list(OWNERS)})


@pytest.fixture()
def remote_store(settings: SimpleNamespace, kv: MemoryKeyValueStore, remote: FakeRemoteApi) -> StateStore:
    """Authenticated store talking to the fake remote API."""
    s = StateStore.from_settings(settings, kv, remote=remote, auth=FakeAuth())
    s.load()
    return s
