# src/taskdump/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, cast

from ..extraction import scanners
from ..tasks.capture import bulk_capture
from ..tasks.carry_over import run_auto_carry_over
from ..tasks.normalizer import coerce_date
from ..tasks.task_models import Task
from ..tasks.task_store import SyncOutcome

if TYPE_CHECKING:
    from .bootstrap import App

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[["App", list[str]], Awaitable[str]]
CommandHandler3 = Callable[["App", list[str], CommandEmitter | None], Awaitable[str]]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        app: App,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return await h3(app, args, emit)

        h2 = cast(CommandHandler2, handler)
        return await h2(app, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- helpers ----

def _parse_when(words: list[str], today: date) -> str | None:
    """
    "2024-06-12", "demain", "next week", "12/06" -> YYYY-MM-DD.

    Words that are not entirely date markers -> None (never a silent "today").
    """
    raw = " ".join(words).strip()
    if not raw:
        return None
    iso = coerce_date(raw)
    if iso is not None:
        return iso
    if scanners.clean_title(raw):
        return None
    return scanners.parse_date(raw, today)


def _resolve_task(app: App, token: str) -> Task | str:
    """Full id or unique id prefix -> Task, else an error message."""
    token = token.strip()
    if not token:
        return "Missing task id."
    exact = app.store.state.find_task(token)
    if exact is not None:
        return exact
    matches = [t for t in app.store.state.tasks if t.id.startswith(token)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        return f"No task with id {token!r}."
    return f"Ambiguous id {token!r} ({len(matches)} matches)."


def format_task(task: Task) -> str:
    box = "[x]" if task.done else "[ ]"
    flag = "!!" if task.urgent else "  "
    extras: list[str] = []
    if task.project:
        extras.append(f"#{task.project}")
    if task.start_time:
        extras.append(task.start_time)
    if task.estimated_duration:
        extras.append(f"{task.estimated_duration}min")
    if task.recurrence:
        extras.append(task.recurrence)
    if task.was_carried_over:
        extras.append("carried")
    if task.shared_with:
        extras.append("shared: " + ", ".join(task.shared_with))
    tail = f"  ({', '.join(extras)})" if extras else ""
    return f"{box} {flag} {task.id[:8]}  {task.date}  {task.owner}: {task.text}{tail}"


def _describe(outcome: SyncOutcome, done_text: str) -> str:
    if outcome.task is None and outcome.error:
        return outcome.error
    suffix = ""
    if outcome.error:
        suffix = f" (remote: {outcome.error}; kept locally)"
    elif not outcome.committed_locally:
        suffix = " (not cached: local storage unavailable)"
    return done_text + suffix


# ---- commands ----

async def cmd_help(app: App, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(app: App, args: list[str]) -> str:
    store = app.store
    st = store.state
    mode = "REMOTE + LOCAL CACHE" if store.is_remote_mode() else "LOCAL ONLY"
    open_count = sum(1 for t in st.tasks if not t.done)
    return (
        "Status:\n"
        f"  Mode: {mode}\n"
        f"  Local storage: {'OK' if store.storage_ok else 'UNAVAILABLE (in memory)'}\n"
        f"  Tasks: {len(st.tasks)} ({open_count} open), rev={st.meta.rev}\n"
        f"  Owners: {', '.join(st.settings.owners)}\n"
        f"  Capture date: {app.ctx.manual_date or 'auto'}\n"
        f"  Capture urgent flag: {'ON' if app.ctx.manual_urgent else 'OFF'}"
    )


async def cmd_list(app: App, args: list[str]) -> str:
    """
    /list          -> today's tasks
    /list all      -> every task
    /list <date>   -> tasks of that date (ISO or date words)
    """
    tasks = list(app.store.state.tasks)
    if args and args[0].lower() == "all":
        label = "all"
    else:
        day = _parse_when(args, date.today()) if args else date.today().isoformat()
        if day is None:
            return f"Unrecognized date: {' '.join(args)!r}"
        tasks = [t for t in tasks if t.date == day]
        label = day

    if not tasks:
        return f"No tasks ({label})."

    tasks.sort(key=lambda t: (t.date, t.done, not t.urgent, t.start_time or "99:99"))
    lines = [f"Tasks ({label}):"]
    lines.extend(f"  {format_task(t)}" for t in tasks)
    return "\n".join(lines)


async def run_dump(app: App, text: str) -> str:
    result = await bulk_capture(
        app.store,
        app.ctx,
        text,
        apply_session_owner=app.settings.apply_session_owner,
    )
    if not result.tasks and not result.skipped_lines:
        return "Nothing captured."
    lines = [f"Captured {len(result.tasks)} task(s)."]
    lines.extend(f"  {format_task(t)}" for t in result.tasks)
    failures = [o.error for o in result.outcomes if o.error]
    if failures:
        lines.append(f"  {len(failures)} remote failure(s); tasks kept locally.")
    for skipped in result.skipped_lines:
        lines.append(f"  skipped (no title left): {skipped!r}")
    return "\n".join(lines)


async def cmd_dump(app: App, args: list[str]) -> str:
    """
    /dump                 -> multi-line mode in the console (end with a lone ".")
    /dump a ; b ; c       -> one task per ";"-separated chunk
    """
    if not args:
        return "Usage: type /dump alone for multi-line input, or /dump first ; second ; ..."
    return await run_dump(app, "\n".join(" ".join(args).split(";")))


async def cmd_done(app: App, args: list[str]) -> str:
    found = _resolve_task(app, args[0] if args else "")
    if isinstance(found, str):
        return found
    outcome = await app.store.toggle_done(found.id)
    state = "done" if outcome.task is not None and outcome.task.done else "open"
    return _describe(outcome, f"Task {found.id[:8]} marked {state}.")


async def cmd_urgent(app: App, args: list[str]) -> str:
    found = _resolve_task(app, args[0] if args else "")
    if isinstance(found, str):
        return found
    outcome = await app.store.toggle_urgent(found.id)
    state = "urgent" if outcome.task is not None and outcome.task.urgent else "not urgent"
    return _describe(outcome, f"Task {found.id[:8]} is now {state}.")


async def cmd_move(app: App, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /move <id> <date words | YYYY-MM-DD>"
    found = _resolve_task(app, args[0])
    if isinstance(found, str):
        return found
    day = _parse_when(args[1:], date.today())
    if day is None:
        return f"Unrecognized date: {' '.join(args[1:])!r}"
    outcome = await app.store.reschedule(found.id, day)
    return _describe(outcome, f"Task {found.id[:8]} moved to {day}.")


async def cmd_delete(app: App, args: list[str]) -> str:
    found = _resolve_task(app, args[0] if args else "")
    if isinstance(found, str):
        return found
    outcome = await app.store.delete_task(found.id)
    return _describe(outcome, f"Task {found.id[:8]} deleted.")


async def cmd_share(app: App, args: list[str]) -> str:
    """
    /share <id> <who>     -> share a task
    /unshare <id> <who>   -> stop sharing
    """
    if len(args) < 2:
        return "Usage: /share <id> <who>"
    found = _resolve_task(app, args[0])
    if isinstance(found, str):
        return found
    who = " ".join(args[1:])
    outcome = await app.store.share_task(found.id, who)
    return _describe(outcome, f"Task {found.id[:8]} shared with {who}.")


async def cmd_unshare(app: App, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /unshare <id> <who>"
    found = _resolve_task(app, args[0])
    if isinstance(found, str):
        return found
    who = " ".join(args[1:])
    outcome = await app.store.unshare_task(found.id, who)
    return _describe(outcome, f"Task {found.id[:8]} no longer shared with {who}.")


async def cmd_carry(app: App, args: list[str]) -> str:
    moved = run_auto_carry_over(app.store)
    if moved == 0:
        return "Nothing to carry over."
    return f"Carried over {moved} task(s) to today."


async def cmd_owners(app: App, args: list[str]) -> str:
    """
    /owners            -> show owners
    /owners a, b, c    -> replace the owner list (first = default owner)
    """
    if not args:
        return "Owners: " + ", ".join(app.store.state.settings.owners)
    names = [n.strip() for n in " ".join(args).split(",")]
    outcome = await app.store.update_owners(names)
    owners = app.store.state.settings.owners
    if app.ctx.owner not in owners:
        app.ctx.owner = owners[0]
    return _describe(outcome, "Owners: " + ", ".join(owners))


async def cmd_date(app: App, args: list[str]) -> str:
    """
    /date              -> show the capture date
    /date auto         -> detect the date per line
    /date <words>      -> force the date of captured tasks
    """
    if not args:
        return f"Capture date: {app.ctx.manual_date or 'auto'}"
    if args[0].lower() in ("auto", "off", "none"):
        app.ctx.set_manual_date(None)
        return "Capture date: auto (detected per line)."
    day = _parse_when(args, date.today())
    if day is None:
        return f"Unrecognized date: {' '.join(args)!r}"
    app.ctx.set_manual_date(day)
    return f"Capture date forced to {day}."


async def cmd_flag(app: App, args: list[str]) -> str:
    """
    /flag          -> show status
    /flag on       -> every captured task is urgent
    /flag off      -> urgency detected per line
    """
    if not args:
        return f"Urgent flag is currently {'ON' if app.ctx.manual_urgent else 'OFF'}. Use /flag on or /flag off."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        app.ctx.manual_urgent = True
        return "Urgent flag ON: captured tasks will be urgent."
    if arg in ("off", "0", "false", "no"):
        app.ctx.manual_urgent = False
        return "Urgent flag OFF."
    return "Usage: /flag on or /flag off."


async def cmd_export(app: App, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /export <path>"
    path = Path(" ".join(args)).expanduser()
    if emit:
        with contextlib.suppress(Exception):
            emit(f"[EXPORT] Writing {len(app.store.state.tasks)} task(s) to {path}...")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(app.store.export_json(), "utf-8")
    except OSError as e:
        logger.exception("Export to %s failed", path)
        return f"Export failed: {e}"
    return f"Exported to {path}."


async def cmd_import(app: App, args: list[str]) -> str:
    if not args:
        return "Usage: /import <path>"
    path = Path(" ".join(args)).expanduser()
    try:
        payload = path.read_text("utf-8")
    except OSError as e:
        return f"Import failed: {e}"
    if not app.store.import_json(payload):
        return "Import failed: not a valid export (needs a tasks list and a settings object)."
    return f"Imported {len(app.store.state.tasks)} task(s) from {path}."


async def cmd_wipe(app: App, args: list[str]) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every local task. Confirm with /wipe yes."
    n = app.store.wipe_tasks()
    return f"Wiped {n} local task(s)."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show mode, storage and capture settings.")
registry.register("list", cmd_list, help_text="List tasks: /list [all | date].", aliases=["ls"])
registry.register("dump", cmd_dump, help_text="Bulk capture: /dump alone, then lines, end with '.'.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("urgent", cmd_urgent, help_text="Toggle urgency: /urgent <id>.")
registry.register("move", cmd_move, help_text="Reschedule: /move <id> <date>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("share", cmd_share, help_text="Share a task: /share <id> <who>.")
registry.register("unshare", cmd_unshare, help_text="Stop sharing: /unshare <id> <who>.")
registry.register("carry", cmd_carry, help_text="Move overdue open tasks to today.")
registry.register("owners", cmd_owners, help_text="Show or set owners: /owners a, b.")
registry.register("date", cmd_date, help_text="Capture date: /date <words> | /date auto.")
registry.register("flag", cmd_flag, help_text="Force urgency on capture: /flag on | /flag off.")
registry.register("export", cmd_export, help_text="Export state as JSON: /export <path>.")
registry.register("import", cmd_import, help_text="Replace state from an export: /import <path>.")
registry.register("wipe", cmd_wipe, help_text="Delete all local tasks: /wipe yes.")
