# src/thinko_space/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.ports import NoticeLevel
from ..core.state import AppState

logger = logging.getLogger(__name__)

_LEVEL_TAGS: dict[str, str] = {
    "info": "[INFO]",
    "success": "[OK]",
    "error": "[ERROR]",
}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleNotifier:
    """
    Notification surface for the console.

    Notices may arrive from the background loop while input() is waiting,
    so writes are serialized and start on a fresh line.
    """

    def __init__(self, stream=None) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def notify(self, message: str, level: NoticeLevel = "info") -> None:
        tag = _LEVEL_TAGS.get(level, "[INFO]")
        stream = self._stream or sys.stdout
        with self._lock:
            stream.write(f"\n[{_ts_local()}] {tag} {message}\n")
            stream.flush()
        logger.debug("notice level=%s: %s", level, message)


def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")
    _print_ts(command_registry.handle(state, "/list") or "")

    while True:
        try:
            user_input = input(">>> ").strip()
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

        # Plain text adds a task.
        line = user_input if user_input.startswith("/") else f"/add {user_input}"

        try:
            response = command_registry.handle(state, line)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            _print_ts(response)

    logger.info("Console connector finished.")
