# src/thinko_space/storage/kv_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
import time
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any

from ..errors import BackupError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "thinko-space-backup"


class SqliteKeyValueStore:
    """
    Durable string key-value store (the local stand-in for browser storage).

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "thinko.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        try:
            total = self.count()
        except sqlite3.Error:
            total = -1
        logger.info("KeyValueStore ready db=%s keys=%s", self._db_path, total)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at REAL NOT NULL DEFAULT 0
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def count(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM kv").fetchone()
            return int(n)
        finally:
            conn.close()

    def keys(self) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT key FROM kv ORDER BY key ASC").fetchall()
            return [str(r["key"]) for r in rows]
        finally:
            conn.close()

    def get(self, key: str) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
            return None if row is None else str(row["value"])
        finally:
            conn.close()

    def set(self, key: str, value: str) -> bool:
        """Best-effort write. Returns False (and logs) on failure."""
        try:
            conn = self._get_conn()
            try:
                conn.execute(
                    """
                    INSERT INTO kv(key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, str(value), time.time()),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error:
            logger.exception("KeyValueStore: failed to write key=%s", key)
            return False
        return True

    def delete(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()

    def export_snapshot(self) -> dict[str, str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT key, value FROM kv ORDER BY key ASC").fetchall()
            return {str(r["key"]): str(r["value"]) for r in rows}
        finally:
            conn.close()

    def import_snapshot(self, data: Mapping[str, Any]) -> int:
        """Write every entry; non-string values are stored as their JSON text."""
        n = 0
        for key, value in data.items():
            text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
            if self.set(str(key), text):
                n += 1
        return n


# ---- backup files ----


def backup_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"{BACKUP_PREFIX}-{today.isoformat()}.json"


def export_backup(kv: Any, directory: str | Path, *, today: date | None = None) -> Path:
    """Dump the whole store into <directory>/thinko-space-backup-YYYY-MM-DD.json."""
    directory = Path(directory).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / backup_filename(today)

    snapshot = kv.export_snapshot()
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(snapshot, ensure_ascii=False, indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Backups may contain the API key.
        os.chmod(path, 0o600)

    logger.info("Exported backup: %d keys to %s", len(snapshot), path)
    return path


def import_backup(kv: Any, path: str | Path) -> int:
    """Load a backup file into the store. Returns the number of keys written."""
    path = Path(path).expanduser()
    try:
        raw = path.read_text("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BackupError("Failed to read file") from e

    try:
        data = json.loads(raw)
    except ValueError as e:
        logger.error("Import failed: %s", e)
        raise BackupError("Invalid backup file") from e

    if not isinstance(data, dict):
        raise BackupError("Invalid backup file")

    n = kv.import_snapshot(data)
    logger.info("Imported backup: %d keys from %s", n, path)
    return n
