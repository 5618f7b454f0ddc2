# src/taskdump/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local data directory exists,
- wires the key-value store, remote API and auth into a StateStore,
- creates the capture session context.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..config import Settings, get_settings
from ..core.state import PlannerState
from ..remote.auth import StaticTokenAuth
from ..remote.client import HttpTaskApi
from ..storage.kv_store import FileKeyValueStore
from ..tasks.capture import CaptureContext
from ..tasks.task_store import StateStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class App:
    settings: Settings
    store: StateStore
    ctx: CaptureContext = field(default_factory=CaptureContext)
    remote: HttpTaskApi | None = None
    auth: StaticTokenAuth | None = None

    async def aclose(self) -> None:
        if self.remote is not None:
            try:
                await self.remote.aclose()
            except Exception:
                logger.debug("Remote client close failed.", exc_info=True)


def _log_change(state: PlannerState) -> None:
    logger.debug("State saved rev=%d tasks=%d", state.meta.rev, len(state.tasks))


def create_app(*, settings: Settings | None = None) -> App:
    """
    Build the App from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    try:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
    except OSError:
        # The storage probe will fail and the session runs in memory.
        logger.warning("Cannot create data dir %s", settings.data_dir, exc_info=True)

    kv = FileKeyValueStore(settings.data_dir)

    auth: StaticTokenAuth | None = None
    remote: HttpTaskApi | None = None
    if settings.api_enabled:
        auth = StaticTokenAuth(settings.api_token)
        remote = HttpTaskApi(
            settings.api_base_url,
            auth,
            timeout_seconds=settings.api_timeout_seconds,
        )
        logger.info(
            "Remote API enabled url=%s authenticated=%s",
            settings.api_base_url,
            auth.is_authenticated(),
        )

    store = StateStore.from_settings(settings, kv, remote=remote, auth=auth, on_change=_log_change)
    return App(
        settings=settings,
        store=store,
        ctx=CaptureContext(owner=settings.default_owners[0] if settings.default_owners else None),
        remote=remote,
        auth=auth,
    )
