# src/thinko_space/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the background loop used for
breakdowns, then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..core.runner import start_background_loop
from ..core.state import AppState
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    pending = state.tracker.pending()
    if pending:
        logger.info("Shutting down with %d breakdown(s) still running; results will be dropped.", len(pending))

    if state.loop is not None:
        state.loop.stop()
        state.loop.join(timeout=5.0)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    file_level = getattr(logging, level_name, logging.INFO)

    # The console shows warnings only; everything else goes to the log file.
    log_file = setup_logging(log_dir=settings.data_dir, console_level=logging.WARNING, file_level=file_level)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    state = create_initial_state(settings=settings, notifier=ConsoleNotifier())
    state.loop = start_background_loop()

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled; nothing to run.")
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
