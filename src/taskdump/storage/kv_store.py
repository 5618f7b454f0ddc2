# src/taskdump/storage/kv_store.py

from __future__ import annotations

import contextlib
import logging
import os
import re
from pathlib import Path

from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

_PROBE_KEY = "__taskdump_probe"
_SAFE_KEY_RE = re.compile(r"[^\w.-]")


class FileKeyValueStore:
    """
    Local durable key-value store: one file per key under a root directory.

    Writes go to a temporary file and are moved into place with os.replace,
    so a crash never leaves a half-written value behind.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        safe = _SAFE_KEY_RE.sub("_", key) or "_"
        return self._root / f"{safe}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text("utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, "utf-8")
        os.replace(tmp, path)
        with contextlib.suppress(Exception):
            # Best-effort: task lists may contain personal content.
            os.chmod(path, 0o600)

    def remove(self, key: str) -> None:
        path = self._path(key)
        with contextlib.suppress(FileNotFoundError):
            path.unlink()


class MemoryKeyValueStore:
    """Process-local store (tests, or sessions where disk is unavailable)."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


def storage_ok(kv: KeyValueStore) -> bool:
    """Probe the store with a set/get/remove round trip. Any failure -> False."""
    try:
        kv.set(_PROBE_KEY, "1")
        ok = kv.get(_PROBE_KEY) == "1"
        kv.remove(_PROBE_KEY)
        return ok
    except Exception:
        logger.warning("Local storage unavailable; running in memory only.", exc_info=True)
        return False
