# src/taskdump/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the App, loads the local cache (and the remote
copy when authenticated), then runs:
- the carry-over loop as a background asyncio task,
- the console REPL in the foreground.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..cli.bootstrap import App, create_app
from ..config import Settings, get_settings
from ..logging_setup import setup_logging
from ..tasks.carry_over import run_carry_over_loop
from .console import run_console_loop

logger = logging.getLogger(__name__)


async def _shutdown(app: App, carry_task: asyncio.Task[None] | None) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if carry_task is not None:
        carry_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await carry_task

    try:
        await app.aclose()
    except Exception:
        logger.debug("App close failed.", exc_info=True)


async def run(settings: Settings) -> None:
    app = create_app(settings=settings)
    app.store.load()

    if app.store.is_remote_mode():
        outcome = await app.store.load_remote()
        if outcome.error:
            logger.warning("Remote load failed, working from the local cache: %s", outcome.error)
    elif settings.api_enabled:
        logger.info("Remote API enabled but no token configured; local-only mode.")

    carry_task: asyncio.Task[None] | None = asyncio.create_task(
        run_carry_over_loop(app.store, interval_seconds=settings.carry_over_interval_seconds),
        name="carry-over",
    )

    try:
        await run_console_loop(app)
    finally:
        await _shutdown(app, carry_task)


def main() -> None:
    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    finally:
        logger.info("Bye.")


if __name__ == "__main__":
    main()
