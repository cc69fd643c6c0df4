# src/thinko_space/cli/commands.py

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from pathlib import Path

from ..core.state import AppState
from ..errors import BackupError, GenerationFailedError, MissingCredentialsError, VideoSearchError
from ..llm.client import friendly_llm_error_message
from ..storage.kv_store import export_backup, import_backup
from ..tasks.breakdown import breakdown
from ..tasks.task_models import TaskNode
from ..tasks.task_render import render_forest, resolve_ref
from ..tasks.video import resolve_video_url

CommandHandler = Callable[[AppState, list[str], str], str]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

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

    def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        name, _, rest = line[1:].strip().partition(" ")
        if not name:
            return "Empty command. Use /help to list available commands."

        name = name.lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        rest = rest.strip()
        return handler(state, rest.split(), rest)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  Plain text (without /) adds a new task.")
        return "\n".join(lines)


registry = CommandRegistry()


def _lookup(state: AppState, ref: str) -> TaskNode | None:
    return resolve_ref(state.tasks.forest, ref)


def _no_such_task(ref: str) -> str:
    return f"No task {ref!r}. Use /list to see task numbers."


def cmd_help(state: AppState, args: list[str], rest: str) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], rest: str) -> str:
    models = ", ".join(list(getattr(state.settings, "llm_models", []) or []))
    pending = len(state.tracker.pending())
    return (
        "Status:\n"
        f"  Tasks: {len(state.tasks.forest)} root / {state.tasks.count()} total\n"
        f"  API key: {state.credentials.masked_api_key()}\n"
        f"  Model: {state.credentials.model or '(none)'} (fallback: {models or '-'})\n"
        f"  LLM client: {type(state.llm).__name__}\n"
        f"  Breakdowns running: {pending}"
    )


def cmd_list(state: AppState, args: list[str], rest: str) -> str:
    return render_forest(state.tasks.forest, pending=state.tracker.pending())


def cmd_add(state: AppState, args: list[str], rest: str) -> str:
    node = state.tasks.create_root(rest)
    if node is None:
        return "Usage: /add <task text>"
    return f"Added task {len(state.tasks.forest)}. {node.text}"


def _set_completed(state: AppState, args: list[str], completed: bool) -> str:
    if not args:
        return "Usage: /done <task number>" if completed else "Usage: /undo <task number>"
    node = _lookup(state, args[0])
    if node is None:
        return _no_such_task(args[0])
    state.tasks.update(node.id, completed=completed)
    return f"{'Completed' if completed else 'Reopened'}: {node.text}"


def cmd_done(state: AppState, args: list[str], rest: str) -> str:
    return _set_completed(state, args, True)


def cmd_undo(state: AppState, args: list[str], rest: str) -> str:
    return _set_completed(state, args, False)


def cmd_edit(state: AppState, args: list[str], rest: str) -> str:
    if len(args) < 2:
        return "Usage: /edit <task number> <new text>"
    node = _lookup(state, args[0])
    if node is None:
        return _no_such_task(args[0])
    text = rest[len(args[0]):].strip()
    state.tasks.update(node.id, text=text)
    return f"Renamed: {text}"


def cmd_rm(state: AppState, args: list[str], rest: str) -> str:
    if not args:
        return "Usage: /rm <task number>"
    node = _lookup(state, args[0])
    if node is None:
        return _no_such_task(args[0])
    state.tasks.remove(node.id)
    n = len(node.subtasks)
    suffix = f" (and {n} subtask{'s' if n != 1 else ''})" if n else ""
    return f"Deleted: {node.text}{suffix}"


async def run_breakdown(state: AppState, node_id: str, node_text: str) -> str:
    """Run one breakdown, notify the user, and release the tracker slot."""
    try:
        created = await breakdown(state.tasks, state.llm, state.credentials, node_id, node_text)
    except MissingCredentialsError as e:
        msg = friendly_llm_error_message(e)
        state.notifier.notify(msg, "error")
        return msg
    except GenerationFailedError as e:
        msg = str(e) or "Breakdown failed"
        state.notifier.notify(msg, "error")
        return msg
    except Exception:
        logger.exception("Breakdown crashed id=%s", node_id)
        msg = f"Breakdown of {node_text!r} failed unexpectedly; see the log file for details."
        state.notifier.notify(msg, "error")
        return msg
    finally:
        state.tracker.finish(node_id)

    if not created:
        msg = f"Task {node_text!r} was removed before the breakdown finished; suggestions discarded."
        state.notifier.notify(msg, "info")
        return msg

    msg = f"Added {len(created)} subtask{'s' if len(created) != 1 else ''} to {node_text!r}."
    state.notifier.notify(msg, "success")
    return msg


def cmd_break(state: AppState, args: list[str], rest: str) -> str:
    if not args:
        return "Usage: /break <task number>"
    node = _lookup(state, args[0])
    if node is None:
        return _no_such_task(args[0])

    if not state.credentials.has_api_key():
        return friendly_llm_error_message(MissingCredentialsError())
    if node.completed:
        return "That task is already done."
    if not node.text.strip():
        return "That task has no text to break down. Use /edit to give it one."
    if not state.tracker.try_start(node.id):
        return "Already breaking that task down, please wait."

    if state.loop is None:
        return asyncio.run(run_breakdown(state, node.id, node.text))

    state.loop.submit(run_breakdown(state, node.id, node.text))
    return f"Thinking about {node.text!r}..."


def cmd_video(state: AppState, args: list[str], rest: str) -> str:
    if not args:
        return "Usage: /video <task number> [open]"
    node = _lookup(state, args[0])
    if node is None:
        return _no_such_task(args[0])
    try:
        url = resolve_video_url(state.tasks, state.video_search, node.id)
    except VideoSearchError as e:
        return str(e) or "Could not find a YouTube video"
    if url is None:
        return _no_such_task(args[0])
    if len(args) > 1 and args[1].lower() == "open":
        webbrowser.open(url, new=2)
    return f"Tutorial: {url}"


def cmd_key(state: AppState, args: list[str], rest: str) -> str:
    if not args:
        return f"API key: {state.credentials.masked_api_key()}. Use /key <key> to set it, /key clear to remove it."
    if args[0].lower() == "clear":
        state.credentials.save_api_key("")
        if state.credentials.env_api_key:
            return "Saved API key cleared; the key from the environment is in effect again."
        return "API key cleared."
    state.credentials.save_api_key(args[0])
    return "API key saved."


def cmd_model(state: AppState, args: list[str], rest: str) -> str:
    if not args:
        return f"Model: {state.credentials.model or '(none)'}"
    if args[0].lower() == "default":
        state.credentials.save_model("")
        return f"Model reset to {state.credentials.model or '(none)'}."
    state.credentials.save_model(args[0])
    return f"Model set to {args[0]}."


def cmd_export(state: AppState, args: list[str], rest: str) -> str:
    directory = Path(rest) if rest else Path(getattr(state.settings, "backup_dir", "."))
    try:
        path = export_backup(state.kv, directory)
    except OSError as e:
        logger.exception("Backup export failed")
        return f"Export failed: {e}"
    return f"Backup written to {path}"


def cmd_import(state: AppState, args: list[str], rest: str) -> str:
    if not rest:
        return "Usage: /import <backup file>"
    try:
        n = import_backup(state.kv, rest)
    except BackupError as e:
        return str(e)
    state.tasks.reload()
    return f"Imported {n} entries. Tasks: {len(state.tasks.forest)} root / {state.tasks.count()} total."


def cmd_clear(state: AppState, args: list[str], rest: str) -> str:
    if not args or args[0].lower() != "yes":
        return "This deletes every task. Type /clear yes to confirm."
    state.tasks.clear()
    return "All tasks deleted."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task counts, API key and model.")
registry.register("list", cmd_list, help_text="Show the task outline.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add a task: /add <text>.")
registry.register("done", cmd_done, help_text="Mark a task done: /done 2.1.")
registry.register("undo", cmd_undo, help_text="Mark a task not done: /undo 2.1.")
registry.register("edit", cmd_edit, help_text="Rename a task: /edit 2.1 <text>.")
registry.register("rm", cmd_rm, help_text="Delete a task and its subtasks: /rm 2.", aliases=["del"])
registry.register("break", cmd_break, help_text="Break a task into subtasks with AI: /break 2.")
registry.register("video", cmd_video, help_text="Find a tutorial video: /video 2 [open].")
registry.register("key", cmd_key, help_text="Set the LLM API key: /key <key> | /key clear.")
registry.register("model", cmd_model, help_text="Show or set the model: /model [name|default].")
registry.register("export", cmd_export, help_text="Write a backup of all stored data: /export [dir].")
registry.register("import", cmd_import, help_text="Restore a backup file: /import <file>.")
registry.register("clear", cmd_clear, help_text="Delete all tasks: /clear yes.")
