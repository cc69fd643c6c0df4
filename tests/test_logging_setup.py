# tests/test_logging_setup.py

from __future__ import annotations

import logging

from thinko_space.logging_setup import AppOnlyConsoleFilter, setup_logging


def _record(name: str, level: int) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, "msg", None, None)


def test_console_filter_keeps_app_records_and_library_errors() -> None:
    f = AppOnlyConsoleFilter()
    assert f.filter(_record("thinko_space.tasks.task_store", logging.INFO))
    assert not f.filter(_record("thinko_space_other", logging.WARNING))
    assert not f.filter(_record("httpx", logging.WARNING))
    assert f.filter(_record("openai", logging.ERROR))


def test_setup_logging_writes_file(tmp_path) -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        log_file = setup_logging(log_dir=tmp_path / "logs")
        logging.getLogger("thinko_space.test").info("hello from the test")
        for h in root.handlers:
            h.flush()

        assert log_file == tmp_path / "logs" / "thinko.log"
        assert "hello from the test" in log_file.read_text(encoding="utf-8")
    finally:
        for h in list(root.handlers):
            root.removeHandler(h)
            h.close()
        for h in saved_handlers:
            root.addHandler(h)
        root.setLevel(saved_level)
        logging.captureWarnings(False)
