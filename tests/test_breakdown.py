# tests/test_breakdown.py

from __future__ import annotations

import asyncio
import threading
from types import SimpleNamespace

import pytest

from thinko_space.core.credentials import Credentials
from thinko_space.errors import GenerationFailedError, MissingCredentialsError, NoUsableItemsError
from thinko_space.tasks.breakdown import (
    BreakdownTracker,
    breakdown,
    build_breakdown_prompt,
    parse_list_from_llm,
)
from thinko_space.tasks.task_store import TaskTreeStore

from .fakes import FailingLLMClient, FakeLLMClient, MemoryKeyValueStore


def _creds(kv: MemoryKeyValueStore, api_key: str | None = "k") -> Credentials:
    return Credentials(SimpleNamespace(llm_api_key=api_key, llm_models=["m1"]), kv)


def test_prompt_mentions_task_and_format() -> None:
    p = build_breakdown_prompt("clean the garage")
    assert 'Task: "clean the garage"' in p
    assert "one per line" in p


def test_parse_list_from_llm() -> None:
    text = "1. Sort boxes\n\n2) Sweep floor\n- Take out trash\n   \n"
    assert parse_list_from_llm(text) == ["Sort boxes", "Sweep floor", "Take out trash"]
    assert parse_list_from_llm(None) == []


@pytest.mark.asyncio
async def test_breakdown_appends_generated_subtasks() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    node = store.create_root("clean the garage")
    llm = FakeLLMClient("1. Sort boxes\n2. Sweep floor")

    created = await breakdown(store, llm, _creds(kv), node.id, node.text)

    assert [t.text for t in created] == ["Sort boxes", "Sweep floor"]
    assert [t.text for t in store.find(node.id).subtasks] == ["Sort boxes", "Sweep floor"]
    prompt, api_key, model = llm.calls[0]
    assert "clean the garage" in prompt
    assert api_key == "k"
    assert model == "m1"


@pytest.mark.asyncio
async def test_missing_credentials_fail_before_network() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    node = store.create_root("x")
    llm = FakeLLMClient("a")

    with pytest.raises(MissingCredentialsError):
        await breakdown(store, llm, _creds(kv, api_key=None), node.id, node.text)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_blank_text_is_a_noop() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    llm = FakeLLMClient("a")
    assert await breakdown(store, llm, _creds(kv), "whatever", "   ") == []
    assert llm.calls == []


@pytest.mark.asyncio
async def test_generation_failure_leaves_store_unchanged() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    node = store.create_root("x")
    before = store.forest

    with pytest.raises(GenerationFailedError, match="HTTP 500"):
        await breakdown(store, FailingLLMClient("HTTP 500"), _creds(kv), node.id, node.text)
    assert store.forest is before


@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    node = store.create_root("x")
    llm = FakeLLMClient(error=ValueError("malformed response"))

    with pytest.raises(GenerationFailedError, match="malformed response"):
        await breakdown(store, llm, _creds(kv), node.id, node.text)


@pytest.mark.asyncio
async def test_empty_output_signals_no_usable_items() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    node = store.create_root("x")

    with pytest.raises(NoUsableItemsError):
        await breakdown(store, FakeLLMClient("\n  \n"), _creds(kv), node.id, node.text)


@pytest.mark.asyncio
async def test_result_applies_to_current_forest() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    target = store.create_root("write report")
    other = store.create_root("other")
    llm = FakeLLMClient("outline\ndraft")
    llm.gate = threading.Event()

    job = asyncio.create_task(breakdown(store, llm, _creds(kv), target.id, target.text))
    assert await asyncio.to_thread(llm.started.wait, 2.0)

    # Edits made while the request is in flight must survive.
    store.update(other.id, completed=True)
    store.update(target.id, text="write quarterly report")
    late = store.create_root("late arrival")

    llm.gate.set()
    created = await job

    assert [t.text for t in created] == ["outline", "draft"]
    assert store.find(other.id).completed is True
    assert store.find(target.id).text == "write quarterly report"
    assert store.find(late.id) is not None
    assert [t.text for t in store.find(target.id).subtasks] == ["outline", "draft"]


@pytest.mark.asyncio
async def test_result_for_deleted_task_is_discarded() -> None:
    kv = MemoryKeyValueStore()
    store = TaskTreeStore(kv)
    target = store.create_root("soon gone")
    keep = store.create_root("keep")
    llm = FakeLLMClient("a\nb")
    llm.gate = threading.Event()

    job = asyncio.create_task(breakdown(store, llm, _creds(kv), target.id, target.text))
    assert await asyncio.to_thread(llm.started.wait, 2.0)
    store.remove(target.id)
    llm.gate.set()

    assert await job == []
    assert [n.id for n in store.forest] == [keep.id]
    assert store.count() == 1


def test_tracker_suppresses_duplicates() -> None:
    tracker = BreakdownTracker()
    assert tracker.try_start("a") is True
    assert tracker.try_start("a") is False
    assert tracker.try_start("b") is True
    assert tracker.pending() == {"a", "b"}
    tracker.finish("a")
    assert tracker.is_pending("a") is False
    assert tracker.try_start("a") is True
