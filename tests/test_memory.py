"""Tests for the transcript memory and the JSON-lines transcript log."""

import json

import pytest
from pydantic import ValidationError

from agentry.core.schema import (
    Role,
    ToolCallRequest,
    TranscriptEntry,
)
from agentry.memory.memory_store import JsonlTranscriptLog
from agentry.memory.transcript import (
    DEFAULT_SYSTEM_PROMPT,
    Memory,
)


def test_snapshot_starts_with_single_system_entry() -> None:
    """Exactly one system entry leads the snapshot and reflects the latest prompt."""

    memory = Memory()
    assert memory.snapshot()[0].text == DEFAULT_SYSTEM_PROMPT

    memory.append(TranscriptEntry.user("hi"))
    memory.append(TranscriptEntry.assistant("hello"))
    memory.set_system_prompt("first")
    memory.set_system_prompt("second")
    memory.append(TranscriptEntry.user("again"))

    snapshot = memory.snapshot()
    assert [e.role for e in snapshot].count(Role.SYSTEM) == 1
    assert snapshot[0].role is Role.SYSTEM
    assert snapshot[0].text == "second"
    assert len(memory) == 3


def test_system_entries_cannot_be_appended() -> None:
    with pytest.raises(ValueError):
        Memory("p").append(TranscriptEntry.system("sneaky"))


def test_tool_result_requires_matching_call() -> None:
    memory = Memory("p")
    with pytest.raises(ValueError):
        memory.append(TranscriptEntry.tool_result("c1", "orphan"))

    memory.append(TranscriptEntry.tool_calls([ToolCallRequest(id="c1", name="echo")]))
    memory.append(TranscriptEntry.tool_result("c1", "ok"))
    with pytest.raises(ValueError):
        memory.append(TranscriptEntry.tool_result("c2", "wrong id"))


def test_entries_are_immutable() -> None:
    entry = TranscriptEntry.user("hi")
    with pytest.raises(ValidationError):
        entry.role = Role.ASSISTANT


def test_sinks_receive_entries_in_order() -> None:
    class Collector:
        def __init__(self) -> None:
            self.entries = []

        def record(self, entry: TranscriptEntry) -> None:
            self.entries.append(entry)

    collector = Collector()
    memory = Memory("p", sinks=[collector])
    memory.append(TranscriptEntry.user("one"))
    memory.append(TranscriptEntry.assistant("two"))

    assert [e.text for e in collector.entries] == ["one", "two"]


def test_added_sink_sees_later_entries_only(tmp_path) -> None:
    memory = Memory("p")
    memory.append(TranscriptEntry.user("before"))

    log = JsonlTranscriptLog(tmp_path / "t.jsonl")
    memory.add_sink(log)
    with log:
        memory.append(TranscriptEntry.user("after"))

    lines = (tmp_path / "t.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["entry"]["content"]["text"] for line in lines] == ["after"]


def test_jsonl_transcript_log(tmp_path) -> None:
    path = tmp_path / "logs" / "transcript.jsonl"
    log = JsonlTranscriptLog(path, agent_id="worker")
    memory = Memory("p", sinks=[log])

    with log:
        memory.append(TranscriptEntry.user("hi"))
        memory.append(TranscriptEntry.tool_calls([ToolCallRequest(id="c1", name="echo")]))
    assert not log.is_open

    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert len(lines) == 2
    assert lines[0]["agent"] == "worker"
    assert lines[0]["entry"] == {"role": "user", "content": {"type": "text", "text": "hi"}}
    assert lines[1]["entry"]["content"]["calls"][0]["id"] == "c1"
    assert TranscriptEntry.model_validate(lines[1]["entry"]).role is Role.ASSISTANT


def test_closed_log_rejects_entries(tmp_path) -> None:
    log = JsonlTranscriptLog(tmp_path / "t.jsonl")
    with pytest.raises(RuntimeError):
        log.record(TranscriptEntry.user("hi"))
