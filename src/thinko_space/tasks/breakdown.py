# src/thinko_space/tasks/breakdown.py

from __future__ import annotations

"""
Task breakdown.

Asks the text generation service to split a task into subtasks and appends
them to the task through TaskTreeStore.add_subtasks.

The LLM call runs in a worker thread; the result is applied to the store's
current forest when it arrives, so edits made while waiting are kept and a
task deleted in the meantime simply drops the result.
"""

import asyncio
import logging
import threading

from ..core.credentials import Credentials
from ..core.ports import LLMClient
from ..errors import GenerationFailedError, MissingCredentialsError
from .task_models import TaskNode
from .task_store import TaskTreeStore, normalize_lines

logger = logging.getLogger(__name__)


def build_breakdown_prompt(task_text: str) -> str:
    return (
        "Break down the following task into smaller, actionable subtasks. "
        "Return ONLY the list of tasks, one per line. Do not use bullets or numbers. "
        f'Task: "{task_text}"'
    )


def parse_list_from_llm(text: str | None) -> list[str]:
    """Split model output into clean item texts (list markers and blanks removed)."""
    return normalize_lines((text or "").splitlines())


async def breakdown(
    store: TaskTreeStore,
    llm: LLMClient,
    credentials: Credentials,
    node_id: str,
    node_text: str,
) -> list[TaskNode]:
    """
    Generate subtasks for node_id and append them.

    Raises:
    - MissingCredentialsError: no API key (checked before any network call)
    - GenerationFailedError: service failure, or NoUsableItemsError for empty output

    Returns the created nodes; [] when node_text is blank or the node was
    deleted before the response arrived.
    """
    api_key = credentials.api_key
    if not api_key:
        raise MissingCredentialsError("LLM API key is missing.")

    if not node_text or not node_text.strip():
        return []

    prompt = build_breakdown_prompt(node_text)
    model = credentials.model or None

    logger.info("Breakdown requested id=%s model=%s", node_id, model)
    try:
        response = await asyncio.to_thread(llm.generate_text, prompt, api_key=api_key, model=model)
    except (GenerationFailedError, MissingCredentialsError):
        raise
    except Exception as e:
        logger.exception("Breakdown generation failed id=%s", node_id)
        raise GenerationFailedError(str(e) or "Breakdown failed") from e

    # Applied against the store's forest as it is now, not as it was before the await.
    created = store.add_subtasks(node_id, parse_list_from_llm(response))
    logger.info("Breakdown finished id=%s created=%d", node_id, len(created))
    return created


class BreakdownTracker:
    """
    Remembers which tasks have a breakdown in flight.

    The store does not lock anything; callers use this to refuse a second
    breakdown for the same task while the first is still loading.
    """

    def __init__(self) -> None:
        self._pending: set[str] = set()
        self._lock = threading.Lock()

    def try_start(self, node_id: str) -> bool:
        with self._lock:
            if node_id in self._pending:
                return False
            self._pending.add(node_id)
            return True

    def finish(self, node_id: str) -> None:
        with self._lock:
            self._pending.discard(node_id)

    def is_pending(self, node_id: str) -> bool:
        with self._lock:
            return node_id in self._pending

    def pending(self) -> set[str]:
        with self._lock:
            return set(self._pending)
