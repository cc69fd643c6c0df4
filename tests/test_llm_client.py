# tests/test_llm_client.py

from __future__ import annotations

import threading
from types import SimpleNamespace

import httpx
import openai
import pytest

from thinko_space.errors import GenerationFailedError, LLMBusyError, MissingCredentialsError
from thinko_space.llm.client import OpenAICompatibleLLMClient, friendly_llm_error_message
from thinko_space.llm.offline import OfflineLLMClient
from thinko_space.tasks.breakdown import build_breakdown_prompt, parse_list_from_llm

_URL = "https://llm.invalid/v1/chat/completions"


def _status_error(cls, status: int):
    response = httpx.Response(status, request=httpx.Request("POST", _URL))
    return cls(f"HTTP {status}", response=response, body=None)


def _reply(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


class FakeCompletions:
    """Scripted chat.completions: model -> reply text or exception."""

    def __init__(self, script: dict[str, object]) -> None:
        self.script = script
        self.models: list[str] = []
        self.gate: threading.Event | None = None
        self.started = threading.Event()

    def create(self, *, model: str, messages: list[dict[str, str]], **kwargs):
        self.models.append(model)
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5.0)
        outcome = self.script.get(model, "")
        if isinstance(outcome, Exception):
            raise outcome
        return _reply(outcome)


@pytest.fixture()
def llm_settings() -> SimpleNamespace:
    return SimpleNamespace(
        llm_base_url="https://llm.invalid/v1",
        llm_models=["model-a", "model-b"],
        llm_connect_timeout=1.0,
        llm_read_timeout=1.0,
    )


def _client(llm_settings, script: dict[str, object]) -> tuple[OpenAICompatibleLLMClient, FakeCompletions]:
    client = OpenAICompatibleLLMClient(llm_settings)
    completions = FakeCompletions(script)
    fake_sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    client._get_client = lambda api_key: fake_sdk  # type: ignore[method-assign]
    return client, completions


def test_returns_content_from_requested_model(llm_settings) -> None:
    client, completions = _client(llm_settings, {"custom": "a\nb"})
    assert client.generate_text("hi", api_key="k", model="custom") == "a\nb"
    assert completions.models == ["custom"]


def test_falls_back_on_not_found_and_rate_limit(llm_settings) -> None:
    client, completions = _client(
        llm_settings,
        {
            "custom": _status_error(openai.NotFoundError, 404),
            "model-a": _status_error(openai.RateLimitError, 429),
            "model-b": "done",
        },
    )
    assert client.generate_text("hi", api_key="k", model="custom") == "done"
    assert completions.models == ["custom", "model-a", "model-b"]

    # A 404 model is skipped on the next call.
    client.generate_text("hi", api_key="k", model="custom")
    assert completions.models[3:] == ["model-a", "model-b"]


def test_auth_error_fails_fast(llm_settings) -> None:
    client, completions = _client(llm_settings, {"model-a": _status_error(openai.AuthenticationError, 401)})
    with pytest.raises(GenerationFailedError, match="authentication"):
        client.generate_text("hi", api_key="k")
    assert completions.models == ["model-a"]


def test_all_models_empty(llm_settings) -> None:
    client, _ = _client(llm_settings, {"model-a": "", "model-b": None})
    with pytest.raises(GenerationFailedError, match="no content"):
        client.generate_text("hi", api_key="k")


def test_rate_limited_everywhere(llm_settings) -> None:
    client, _ = _client(
        llm_settings,
        {
            "model-a": _status_error(openai.RateLimitError, 429),
            "model-b": _status_error(openai.RateLimitError, 429),
        },
    )
    with pytest.raises(GenerationFailedError, match="rate-limited"):
        client.generate_text("hi", api_key="k")


def test_missing_key(llm_settings) -> None:
    client, completions = _client(llm_settings, {})
    with pytest.raises(MissingCredentialsError):
        client.generate_text("hi", api_key="  ")
    assert completions.models == []


def test_second_request_while_in_flight_is_rejected(llm_settings) -> None:
    client, completions = _client(llm_settings, {"model-a": "ok"})
    completions.gate = threading.Event()
    results: list[str] = []

    t = threading.Thread(target=lambda: results.append(client.generate_text("one", api_key="k")))
    t.start()
    assert completions.started.wait(2.0)

    with pytest.raises(LLMBusyError):
        client.generate_text("two", api_key="k")

    completions.gate.set()
    t.join(timeout=5.0)
    assert results == ["ok"]


def test_missing_base_url_is_rejected(llm_settings) -> None:
    llm_settings.llm_base_url = ""
    with pytest.raises(GenerationFailedError, match="base URL"):
        OpenAICompatibleLLMClient(llm_settings)


def test_friendly_message_for_missing_key() -> None:
    assert "/key" in friendly_llm_error_message(MissingCredentialsError())


def test_offline_client_produces_a_usable_list() -> None:
    text = OfflineLLMClient().generate_text(build_breakdown_prompt("paint the fence"), api_key="x")
    items = parse_list_from_llm(text)
    assert len(items) == 4
    assert "paint the fence" in items[0]
