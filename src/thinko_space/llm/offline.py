# src/thinko_space/llm/offline.py

from __future__ import annotations

import re

from ..errors import MissingCredentialsError

_TASK_RE = re.compile(r'Task:\s*"(?P<task>.*)"\s*$', re.DOTALL)


class OfflineLLMClient:
    """
    Offline deterministic LLM client used for demos when no endpoint is configured.

    Behavior:
    - Breakdown prompts -> a fixed numbered plan built around the task text
    - Anything else -> a short offline notice
    """

    def generate_text(self, prompt: str, *, api_key: str, model: str | None = None) -> str:
        if not api_key or not api_key.strip():
            raise MissingCredentialsError("LLM API key is missing.")

        m = _TASK_RE.search(prompt or "")
        if m is None:
            return "Offline demo mode: no external LLM is configured."

        task = m.group("task").strip() or "the task"
        return "\n".join(
            [
                f"1. Clarify what done looks like for: {task}",
                "2. Gather what you need",
                "3. Do the first small step",
                "4. Review and wrap up",
            ]
        )
