# src/thinko_space/tasks/task_render.py

from __future__ import annotations

from collections.abc import Iterable

from .task_models import Forest, TaskNode, iter_nodes, progress


def _walk(nodes: Iterable[TaskNode], prefix: str, depth: int, pending: set[str], lines: list[str]) -> None:
    for i, node in enumerate(nodes, start=1):
        path = f"{prefix}{i}"
        box = "[x]" if node.completed else "[ ]"
        line = f"{'    ' * depth}{path}. {box} {node.text}"

        p = progress(node)
        if p is not None:
            line += f"  ({round(p * 100)}%)"
        if node.video_url:
            line += "  [video]"
        if node.id in pending:
            line += "  (thinking...)"

        lines.append(line)
        _walk(node.subtasks, f"{path}.", depth + 1, pending, lines)


def render_forest(forest: Forest, *, pending: set[str] | None = None) -> str:
    """Outline view: path numbers, checkboxes, progress for tasks with subtasks."""
    if not forest:
        return "No tasks yet. Add one to get started!"
    lines: list[str] = []
    _walk(forest, "", 0, pending or set(), lines)
    return "\n".join(lines)


def resolve_ref(forest: Forest, ref: str) -> TaskNode | None:
    """
    Find a task by outline path ("2", "2.1.3", 1-based) or by full id.
    """
    ref = (ref or "").strip().rstrip(".")
    if not ref:
        return None

    parts = ref.split(".")
    if all(p.isdigit() for p in parts):
        nodes: Iterable[TaskNode] = forest
        found: TaskNode | None = None
        for p in parts:
            idx = int(p) - 1
            seq = tuple(nodes)
            if idx < 0 or idx >= len(seq):
                found = None
                break
            found = seq[idx]
            nodes = found.subtasks
        if found is not None:
            return found

    for node in iter_nodes(forest):
        if node.id == ref:
            return node
    return None
