# src/thinko_space/tasks/task_store.py

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import replace
from typing import Any, Final

from ..core.ports import KeyValueStore
from ..errors import CorruptStorageError, NoUsableItemsError
from .task_models import (
    Forest,
    TaskNode,
    forest_from_json,
    forest_to_json,
    iter_nodes,
    strip_list_marker,
)

logger = logging.getLogger(__name__)

TASKS_KEY: Final = "magic_todo_tasks"


class _Unset:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Final = _Unset()


def normalize_lines(lines: Iterable[str]) -> list[str]:
    """Drop blank lines and strip list markers ("- ", "* ", "2) ", "3. ", bullets)."""
    out: list[str] = []
    for line in lines:
        text = strip_list_marker(line if isinstance(line, str) else str(line))
        if text:
            out.append(text)
    return out


class TaskTreeStore:
    """
    Ordered forest of task nodes mirrored to a key-value store.

    Updates are path-copying: nodes on the path to a change are rebuilt,
    every other subtree keeps its object identity. The forest is persisted
    after every mutation that changed something.

    Thread-safety:
    - each mutation runs under a re-entrant lock and reads the current
      forest, so late results (e.g. a finished breakdown) apply to the
      latest tree, never to a snapshot taken before an await.
    """

    def __init__(self, kv: KeyValueStore, *, key: str = TASKS_KEY, autoload: bool = True) -> None:
        self._kv = kv
        self._key = key
        self._lock = threading.RLock()
        self._forest: Forest = ()
        if autoload:
            self.load()

    # ---- persistence ----

    def load(self) -> Forest:
        """
        Read the forest from storage.

        Missing key -> empty forest. Unparseable data -> empty forest (logged),
        the unreadable payload is dropped on the next save.
        """
        with self._lock:
            try:
                raw = self._kv.get(self._key)
            except Exception:
                logger.exception("TaskTreeStore: failed to read key=%s", self._key)
                raw = None

            if raw is None:
                self._forest = ()
            else:
                try:
                    self._forest = forest_from_json(raw)
                except CorruptStorageError as e:
                    logger.warning("TaskTreeStore: corrupt storage under key=%s (%s); starting empty", self._key, e)
                    self._forest = ()

            logger.info("TaskTreeStore loaded roots=%d nodes=%d", len(self._forest), self.count())
            return self._forest

    def reload(self) -> Forest:
        return self.load()

    def _persist(self) -> None:
        try:
            ok = self._kv.set(self._key, forest_to_json(self._forest))
        except Exception:
            logger.exception("TaskTreeStore: failed to persist key=%s", self._key)
            return
        if ok is False:
            logger.warning("TaskTreeStore: storage rejected write for key=%s", self._key)

    # ---- queries ----

    @property
    def key(self) -> str:
        return self._key

    @property
    def forest(self) -> Forest:
        return self._forest

    def iter_nodes(self) -> Iterator[TaskNode]:
        return iter_nodes(self._forest)

    def count(self) -> int:
        return sum(1 for _ in iter_nodes(self._forest))

    def find(self, node_id: str) -> TaskNode | None:
        for node in iter_nodes(self._forest):
            if node.id == node_id:
                return node
        return None

    # ---- mutations ----

    def create_root(self, text: str) -> TaskNode | None:
        """Append a new root task. Blank text is ignored (returns None)."""
        if not text or not text.strip():
            return None
        node = TaskNode.new(text)
        with self._lock:
            self._forest = (*self._forest, node)
            self._persist()
        logger.debug("Task created id=%s", node.id)
        return node

    def update(
        self,
        node_id: str,
        *,
        text: str | _Unset = UNSET,
        completed: bool | _Unset = UNSET,
        video_url: str | None | _Unset = UNSET,
    ) -> bool:
        """
        Merge the given fields into the node with node_id (any depth).

        Unknown id -> no-op, returns False. A blank text patch is ignored.
        """
        changes: dict[str, Any] = {}
        if not isinstance(text, _Unset) and text and text.strip():
            changes["text"] = text
        if not isinstance(completed, _Unset):
            changes["completed"] = bool(completed)
        if not isinstance(video_url, _Unset):
            changes["video_url"] = video_url or None

        with self._lock:
            found = False

            def patch(nodes: Forest) -> Forest:
                nonlocal found
                out: list[TaskNode] = []
                changed = False
                for node in nodes:
                    if found:
                        out.append(node)
                        continue
                    if node.id == node_id:
                        found = True
                        new_node = replace(node, **changes) if changes else node
                    else:
                        sub = patch(node.subtasks) if node.subtasks else node.subtasks
                        new_node = node if sub is node.subtasks else replace(node, subtasks=sub)
                    changed = changed or new_node is not node
                    out.append(new_node)
                return tuple(out) if changed else nodes

            new_forest = patch(self._forest)
            if not found:
                logger.debug("update: task id=%s not found", node_id)
                return False
            if new_forest is not self._forest:
                self._forest = new_forest
                self._persist()
            return True

    def remove(self, node_id: str) -> bool:
        """Remove the node and its whole subtree. Unknown id -> no-op, returns False."""
        with self._lock:
            removed = False

            def prune(nodes: Forest) -> Forest:
                nonlocal removed
                out: list[TaskNode] = []
                changed = False
                for node in nodes:
                    if node.id == node_id:
                        removed = True
                        changed = True
                        continue
                    sub = prune(node.subtasks) if node.subtasks else node.subtasks
                    if sub is not node.subtasks:
                        node = replace(node, subtasks=sub)
                        changed = True
                    out.append(node)
                return tuple(out) if changed else nodes

            new_forest = prune(self._forest)
            if not removed:
                logger.debug("remove: task id=%s not found", node_id)
                return False
            self._forest = new_forest
            self._persist()
            logger.debug("Task removed id=%s", node_id)
            return True

    def add_subtasks(self, parent_id: str, lines: Iterable[str]) -> list[TaskNode]:
        """
        Append one new leaf per usable line to the parent's subtasks.

        Raises NoUsableItemsError when nothing survives normalization.
        Unknown parent -> no-op, returns [].
        """
        items = normalize_lines(lines)
        if not items:
            raise NoUsableItemsError()

        new_nodes = [TaskNode.new(text) for text in items]

        with self._lock:
            found = False

            def attach(nodes: Forest) -> Forest:
                nonlocal found
                out: list[TaskNode] = []
                changed = False
                for node in nodes:
                    if found:
                        out.append(node)
                        continue
                    if node.id == parent_id:
                        found = True
                        node = replace(node, subtasks=(*node.subtasks, *new_nodes))
                        changed = True
                    elif node.subtasks:
                        sub = attach(node.subtasks)
                        if sub is not node.subtasks:
                            node = replace(node, subtasks=sub)
                            changed = True
                    out.append(node)
                return tuple(out) if changed else nodes

            new_forest = attach(self._forest)
            if not found:
                logger.info("add_subtasks: parent id=%s no longer exists; %d items discarded", parent_id, len(items))
                return []
            self._forest = new_forest
            self._persist()

        logger.debug("Added %d subtasks to id=%s", len(new_nodes), parent_id)
        return new_nodes

    def clear(self) -> None:
        with self._lock:
            self._forest = ()
            self._persist()
