# src/thinko_space/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (storage/tasks/LLM/video).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.credentials import Credentials
from ..core.ports import LLMClient, Notifier
from ..core.state import AppState
from ..errors import GenerationFailedError
from ..llm.client import OpenAICompatibleLLMClient
from ..llm.offline import OfflineLLMClient
from ..storage.kv_store import SqliteKeyValueStore
from ..tasks.task_store import TaskTreeStore
from ..tasks.video import YouTubeSearchClient

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.kv_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_llm_client(settings) -> LLMClient:
    if getattr(settings, "llm_offline", False):
        logger.info("LLM offline mode enabled.")
        return OfflineLLMClient()
    try:
        return OpenAICompatibleLLMClient(settings)
    except GenerationFailedError:
        # Fallback for demos / local runs without an endpoint.
        logger.warning("LLM endpoint not configured; using offline client.")
        return OfflineLLMClient()


def create_initial_state(*, notifier: Notifier, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    kv = SqliteKeyValueStore(settings.kv_db_path)

    return AppState(
        settings=settings,
        kv=kv,
        tasks=TaskTreeStore(kv),
        credentials=Credentials(settings, kv),
        llm=create_llm_client(settings),
        video_search=YouTubeSearchClient(settings),
        notifier=notifier,
    )
