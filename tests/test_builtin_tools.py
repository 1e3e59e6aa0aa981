"""Tests for the built-in tools, exercised through a toolkit."""

import logging

import pytest

from agentry.agent.toolkit import Toolkit
from agentry.tools.builtin import (
    ReadFileTool,
    WriteFileTool,
    default_tools,
)


@pytest.fixture
def toolkit(tmp_path) -> Toolkit:
    return Toolkit(default_tools(tmp_path))


@pytest.mark.asyncio
async def test_write_then_read(toolkit: Toolkit, tmp_path) -> None:
    result = await toolkit.execute("write_file", {"path": "notes/a.txt", "content": "hi"})
    assert result == "Successfully wrote to notes/a.txt"
    assert (tmp_path / "notes" / "a.txt").read_text(encoding="utf-8") == "hi"

    assert await toolkit.execute("read_file", '{"path": "notes/a.txt"}') == "hi"


@pytest.mark.asyncio
async def test_read_missing_file(toolkit: Toolkit) -> None:
    assert await toolkit.execute("read_file", {"path": "nope.txt"}) == (
        "Error: File not found at nope.txt"
    )


@pytest.mark.asyncio
async def test_paths_outside_root_are_refused(tmp_path) -> None:
    toolkit = Toolkit([WriteFileTool(tmp_path / "root"), ReadFileTool(tmp_path / "root")])

    result = await toolkit.execute("write_file", {"path": "../escape.txt", "content": "x"})
    assert result.startswith("Error: Tool 'write_file' raised an error")
    assert not (tmp_path / "escape.txt").exists()


@pytest.mark.asyncio
async def test_empty_path_is_invalid(toolkit: Toolkit) -> None:
    result = await toolkit.execute("write_file", {"path": "", "content": "x"})
    assert result.startswith("Error: Invalid parameters for tool 'write_file': path")


@pytest.mark.asyncio
async def test_echo_and_log_message(toolkit: Toolkit, caplog) -> None:
    assert await toolkit.execute("echo", {"text": "same text"}) == "same text"

    with caplog.at_level(logging.INFO, logger="agentry.tools.builtin"):
        assert await toolkit.execute("log_message", {"message": "hello log"}) == "Log Success"
    assert "hello log" in caplog.text
