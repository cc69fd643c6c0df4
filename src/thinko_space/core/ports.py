# src/thinko_space/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task store and the breakdown flow depend on Protocols instead of concrete
implementations, so storage, LLM providers and the notification surface stay
swappable and easy to fake in tests.
"""

from collections.abc import Mapping
from typing import Any, Literal, Protocol

NoticeLevel = Literal["info", "success", "error"]


class LLMClient(Protocol):
    """Text generation service: prompt in, plain text out."""
    def generate_text(self, prompt: str, *, api_key: str, model: str | None = None) -> str: ...


class KeyValueStore(Protocol):
    """Durable string storage keyed by string."""
    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> bool: ...
    def delete(self, key: str) -> None: ...
    def keys(self) -> list[str]: ...
    def export_snapshot(self) -> dict[str, str]: ...
    def import_snapshot(self, data: Mapping[str, Any]) -> int: ...


class Notifier(Protocol):
    """Transient success/error messages shown to the user."""
    def notify(self, message: str, level: NoticeLevel = "info") -> None: ...


class VideoSearch(Protocol):
    def search(self, query: str) -> str: ...
