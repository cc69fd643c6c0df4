# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from thinko_space.core.credentials import Credentials
from thinko_space.core.state import AppState
from thinko_space.storage.kv_store import SqliteKeyValueStore
from thinko_space.tasks.task_store import TaskTreeStore

from .fakes import FakeLLMClient, FakeNotifier, FakeVideoSearch


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="thinko-test",
        llm_api_key="test-key",
        llm_base_url="https://llm.invalid/v1",
        llm_models=["model-a", "model-b"],
        llm_offline=False,
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
        youtube_api_key="yt-key",
        youtube_region="IN",
        youtube_safesearch="moderate",
        data_dir=tmp_path,
        kv_db_path=tmp_path / "storage.sqlite3",
        backup_dir=tmp_path / "backups",
    )


@pytest.fixture()
def kv(settings: SimpleNamespace) -> SqliteKeyValueStore:
    return SqliteKeyValueStore(settings.kv_db_path)


@pytest.fixture()
def store(kv: SqliteKeyValueStore) -> TaskTreeStore:
    return TaskTreeStore(kv)


@pytest.fixture()
def state(settings: SimpleNamespace, kv: SqliteKeyValueStore, store: TaskTreeStore) -> AppState:
    """
    AppState wired with deterministic fakes.

    NOTE: We keep the real SQLite key-value store and task store here because
    their correctness is part of what we want to test.
    """
    return AppState(
        settings=settings,
        kv=kv,
        tasks=store,
        credentials=Credentials(settings, kv),
        llm=FakeLLMClient("- step one\n- step two"),
        video_search=FakeVideoSearch(),
        notifier=FakeNotifier(),
    )
