# src/thinko_space/tasks/task_models.py

from __future__ import annotations

import json
import logging
import re
import secrets
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from ..errors import CorruptStorageError

logger = logging.getLogger(__name__)

_B36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Leading "- ", "* ", "+ ", bullet glyphs, or "1." / "1)" numbering.
LIST_MARKER_RE = re.compile(r"^(?:\d+[.)]+\s*|[-*+•◦‣]\s+)")

# Keys written for every node; anything else read from storage goes to `extra`.
_KNOWN_KEYS = frozenset({"id", "text", "completed", "subtasks", "videoUrl"})


def _to_base36(n: int) -> str:
    if n <= 0:
        return "0"
    out: list[str] = []
    while n:
        n, r = divmod(n, 36)
        out.append(_B36[r])
    return "".join(reversed(out))


def new_task_id() -> str:
    """Millisecond timestamp (base 36) followed by 10 random base-36 characters."""
    stamp = _to_base36(time.time_ns() // 1_000_000)
    rand = "".join(secrets.choice(_B36) for _ in range(10))
    return stamp + rand


def strip_list_marker(line: str) -> str:
    """Trim whitespace and one leading list marker; may return ''."""
    s = (line or "").strip()
    if not s:
        return ""
    return LIST_MARKER_RE.sub("", s, count=1).strip()


@dataclass(frozen=True, slots=True)
class TaskNode:
    id: str
    text: str
    completed: bool = False
    subtasks: tuple[TaskNode, ...] = ()
    video_url: str | None = None

    # Unknown keys found on import, written back unchanged on export.
    extra: dict[str, Any] = field(default_factory=dict, hash=False)

    @classmethod
    def new(cls, text: str) -> TaskNode:
        return cls(id=new_task_id(), text=text)

    @property
    def is_leaf(self) -> bool:
        return not self.subtasks


Forest = tuple[TaskNode, ...]


def progress(node: TaskNode) -> float | None:
    """
    Fraction of direct children marked completed.

    None when the node has no children (no progress is shown for leaves).
    """
    total = len(node.subtasks)
    if total == 0:
        return None
    done = sum(1 for t in node.subtasks if t.completed)
    return done / total


def iter_nodes(forest: Iterable[TaskNode]) -> Iterator[TaskNode]:
    """Depth-first, pre-order walk over every node in the forest."""
    for node in forest:
        yield node
        yield from iter_nodes(node.subtasks)


# ---- serialization ----


def node_to_dict(node: TaskNode) -> dict[str, Any]:
    out: dict[str, Any] = dict(node.extra)
    out.update(
        {
            "id": node.id,
            "text": node.text,
            "completed": node.completed,
            "subtasks": [node_to_dict(t) for t in node.subtasks],
            "videoUrl": node.video_url,
        }
    )
    return out


def forest_to_json(forest: Iterable[TaskNode]) -> str:
    return json.dumps([node_to_dict(n) for n in forest], ensure_ascii=False)


_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})


def _coerce_completed(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return value == 1
    return False


def node_from_dict(raw: dict[str, Any], *, seen_ids: set[str] | None = None) -> TaskNode:
    """
    Build a node from loosely-typed JSON.

    Missing fields get defaults. Missing or duplicate ids (tracked in seen_ids)
    are replaced with fresh ones so the loaded forest keeps unique ids.
    """
    if seen_ids is None:
        seen_ids = set()

    node_id = raw.get("id")
    if not isinstance(node_id, str) or not node_id.strip() or node_id in seen_ids:
        fresh = new_task_id()
        logger.debug("Replacing missing/duplicate task id %r with %s", node_id, fresh)
        node_id = fresh
    seen_ids.add(node_id)

    text = raw.get("text")
    if not isinstance(text, str):
        text = "" if text is None else str(text)

    completed = _coerce_completed(raw.get("completed", False))

    video_url = raw.get("videoUrl")
    if video_url is not None and not isinstance(video_url, str):
        video_url = None

    raw_subtasks = raw.get("subtasks")
    subtasks: tuple[TaskNode, ...] = ()
    if isinstance(raw_subtasks, list):
        subtasks = tuple(
            node_from_dict(child, seen_ids=seen_ids) for child in raw_subtasks if isinstance(child, dict)
        )

    extra = {k: v for k, v in raw.items() if k not in _KNOWN_KEYS}

    return TaskNode(
        id=node_id,
        text=text,
        completed=completed,
        subtasks=subtasks,
        video_url=video_url,
        extra=extra,
    )


def forest_from_data(data: Any) -> Forest:
    if not isinstance(data, list):
        raise CorruptStorageError(f"Expected a JSON array of tasks, got {type(data).__name__}")
    seen: set[str] = set()
    return tuple(node_from_dict(item, seen_ids=seen) for item in data if isinstance(item, dict))


def forest_from_json(raw: str) -> Forest:
    """Parse serialized tasks. Raises CorruptStorageError on unreadable input."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CorruptStorageError(f"Stored tasks are not valid JSON: {e}") from e
    return forest_from_data(data)
