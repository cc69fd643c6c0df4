# tests/test_credentials.py

from __future__ import annotations

from types import SimpleNamespace

from thinko_space.core.credentials import API_KEY_KEY, Credentials

from .fakes import MemoryKeyValueStore


def test_saved_key_overrides_environment_key() -> None:
    kv = MemoryKeyValueStore()
    creds = Credentials(SimpleNamespace(llm_api_key="from-env", llm_models=["m"]), kv)
    assert creds.api_key == "from-env"

    creds.save_api_key("new-key")
    assert creds.api_key == "new-key"

    creds.save_api_key("")
    assert creds.api_key == "from-env"
    assert creds.env_api_key == "from-env"


def test_stored_key_used_when_environment_is_empty() -> None:
    kv = MemoryKeyValueStore()
    creds = Credentials(SimpleNamespace(llm_api_key="", llm_models=["m"]), kv)
    assert creds.has_api_key() is False

    creds.save_api_key("  sk-123456789  ")
    assert creds.api_key == "sk-123456789"
    assert creds.masked_api_key() == "sk-1...6789"

    creds.save_api_key("")
    assert creds.api_key == ""
    assert API_KEY_KEY not in kv.data


def test_model_selection() -> None:
    kv = MemoryKeyValueStore()
    creds = Credentials(SimpleNamespace(llm_api_key=None, llm_models=["first", "second"]), kv)
    assert creds.model == "first"
    creds.save_model("custom")
    assert creds.model == "custom"

    empty = Credentials(SimpleNamespace(llm_api_key=None, llm_models=[]), MemoryKeyValueStore())
    assert empty.model == ""
