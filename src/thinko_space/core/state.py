# src/thinko_space/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..tasks.breakdown import BreakdownTracker
from .credentials import Credentials
from .ports import KeyValueStore, LLMClient, Notifier, VideoSearch

if TYPE_CHECKING:
    from ..tasks.task_store import TaskTreeStore
    from .runner import BackgroundLoop


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: object

    kv: KeyValueStore
    tasks: TaskTreeStore
    credentials: Credentials
    llm: LLMClient
    video_search: VideoSearch
    notifier: Notifier

    tracker: BreakdownTracker = field(default_factory=BreakdownTracker)
    loop: BackgroundLoop | None = None
