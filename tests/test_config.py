# tests/test_config.py

from __future__ import annotations

from pathlib import Path

from taskdump.config import Settings


def test_defaults(monkeypatch) -> None:
    for name in ("OWNERS", "API_ENABLED", "API_TOKEN", "API_URL", "DATA_DIR", "CACHE_KEY"):
        monkeypatch.delenv(f"TASKDUMP_{name}", raising=False)

    s = Settings.from_env()

    assert s.default_owners == ["Thibaud"]
    assert s.api_enabled is False
    assert s.api_token is None
    assert s.api_base_url == "http://localhost:3333"
    assert s.cache_key == "taskdump_state_v1"
    assert s.data_dir == Path(".local/taskdump")


def test_env_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKDUMP_OWNERS", " Léa , Marc ,, ")
    monkeypatch.setenv("TASKDUMP_API_ENABLED", "yes")
    monkeypatch.setenv("TASKDUMP_API_URL", "https://api.example.com/")
    monkeypatch.setenv("TASKDUMP_API_TOKEN", "  tok  ")
    monkeypatch.setenv("TASKDUMP_API_TIMEOUT_SECONDS", "not a number")
    monkeypatch.setenv("TASKDUMP_DATA_DIR", str(tmp_path))

    s = Settings.from_env()

    assert s.default_owners == ["Léa", "Marc"]
    assert s.api_enabled is True
    assert s.api_base_url == "https://api.example.com"
    assert s.api_token == "tok"
    assert s.api_timeout_seconds == 10.0
    assert s.data_dir == tmp_path
