# src/taskdump/cli/console.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..tasks.capture import quick_capture
from .bootstrap import App
from .commands import format_task, registry as command_registry, run_dump

logger = logging.getLogger(__name__)

DUMP_END = "."


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


async def _read_line(prompt: str) -> str:
    # input() blocks; keep the event loop (carry-over loop, httpx) running meanwhile.
    return await asyncio.to_thread(input, prompt)


async def _read_dump_block() -> str:
    lines: list[str] = []
    while True:
        line = await _read_line("... ")
        if line.strip() == DUMP_END:
            break
        lines.append(line)
    return "\n".join(lines)


async def run_console_loop(app: App) -> None:
    logger.info("Console started (remote=%s).", app.store.is_remote_mode())
    _print_ts("[CONSOLE] Type a task per line. Use /dump for bulk input, /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = (await _read_line(">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            if user_input.lower() == "/dump":
                _print_ts("[DUMP] One task per line. End with a lone '.'")
                block = await _read_dump_block()
                _print_ts(await run_dump(app, block))
                continue

            cmd_response = await command_registry.handle(app, user_input, emit=emit)
        except (EOFError, KeyboardInterrupt):
            logger.info("Console input closed, exiting.")
            break
        except Exception:
            logger.exception("Command handler crashed.")
            cmd_response = "Internal error while handling a command."

        if cmd_response is not None:
            _print_ts(cmd_response)
            continue

        # Plain text: quick capture.
        try:
            result = await quick_capture(
                app.store,
                app.ctx,
                user_input,
                apply_session_owner=app.settings.apply_session_owner,
            )
        except Exception:
            logger.exception("Quick capture crashed.")
            _print_ts("Internal error while capturing.")
            continue

        if not result.tasks:
            _print_ts("Nothing captured (no title left once date/owner/flags are removed).")
            continue

        for task, outcome in zip(result.tasks, result.outcomes):
            note = f"  [remote failed: {outcome.error}]" if outcome.error else ""
            _print_ts(f"+ {format_task(task)}{note}")

    logger.info("Console finished.")
