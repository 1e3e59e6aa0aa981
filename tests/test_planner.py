"""Tests for the planner and plan execution with parameter correction."""

import json

import pytest

from agentry.agent.agent import (
    NO_RESULT,
    Agent,
)
from agentry.agent.planner import Planner
from agentry.core.exceptions import GenerationError
from agentry.core.schema import (
    GenerationResponse,
    Role,
    TextStep,
    ToolCallContent,
    ToolStep,
)
from agentry.tools.builtin import (
    WriteFileTool,
    echo,
)


def plan_reply(*steps) -> GenerationResponse:
    return GenerationResponse.text(json.dumps(list(steps)))


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_create_plan_skips_malformed_steps(scripted) -> None:
    """Valid elements survive; elements missing required keys are dropped."""

    reply = (
        "Here is the plan:\n```json\n"
        + json.dumps(
            [
                {"toolName": "echo", "parameters": {"text": "hi"}, "rationale": "Say it"},
                {"prompt": "Summarize", "rationale": "Wrap up"},
                {"toolName": "echo", "parameters": {"text": "x"}},
                {"rationale": "No action"},
                "not an object",
            ]
        )
        + "\n```"
    )
    gen = scripted(GenerationResponse.text(reply))
    plan = await Planner(gen).create_plan("greet", [echo])

    assert plan.goal == "greet"
    assert len(plan.steps) == 2
    assert isinstance(plan.steps[0], ToolStep)
    assert plan.steps[0].tool_name == "echo"
    assert plan.steps[0].parameters == {"text": "hi"}
    assert isinstance(plan.steps[1], TextStep)

    history, toolkit = gen.calls[0]
    assert toolkit is None
    assert "greet" in history[1].text
    assert "- echo:" in history[1].text


@pytest.mark.asyncio
async def test_create_plan_accepts_string_parameters(scripted) -> None:
    gen = scripted(
        plan_reply({"toolName": "echo", "parameters": '{"text": "hi"}', "rationale": "r"})
    )
    plan = await Planner(gen).create_plan("greet", [echo])
    assert plan.steps[0].parameters == {"text": "hi"}


@pytest.mark.asyncio
async def test_unparseable_reply_gives_empty_plan(scripted) -> None:
    gen = scripted(GenerationResponse.text("I would rather not."))
    plan = await Planner(gen).create_plan("greet", [])
    assert plan.steps == ()


@pytest.mark.asyncio
async def test_planner_generator_error_raises(scripted) -> None:
    gen = scripted(GenerationResponse.failure("backend down"))
    with pytest.raises(GenerationError, match="backend down"):
        await Planner(gen).create_plan("greet", [])


# ---------------------------------------------------------------------------
# Agent.execute
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_execute_empty_plan_returns_no_result(scripted) -> None:
    gen = scripted(plan_reply())
    agent = Agent("planner", generator=gen)

    assert await agent.execute("do nothing") == NO_RESULT
    assert len(gen.calls) == 1


@pytest.mark.asyncio
async def test_execute_runs_tool_step(scripted, tmp_path) -> None:
    """Tool steps are recorded as a synthetic call followed by its result."""

    gen = scripted(
        plan_reply(
            {
                "toolName": "write_file",
                "parameters": {"path": "a.txt", "content": "hi"},
                "rationale": "Persist",
            }
        )
    )
    agent = Agent("planner", generator=gen, tools=[WriteFileTool(tmp_path)])

    assert await agent.execute("write a.txt") == "Successfully wrote to a.txt"
    assert (tmp_path / "a.txt").read_text(encoding="utf-8") == "hi"

    entries = agent.memory.snapshot()
    assert entries[2].text.startswith("Goal: write a.txt")
    assert isinstance(entries[3].content, ToolCallContent)
    assert entries[3].content.calls[0].id == "step-1"
    assert entries[4].role is Role.TOOL
    assert entries[4].content.tool_call_id == "step-1"


@pytest.mark.asyncio
async def test_execute_text_step_calls_generator_without_tools(scripted) -> None:
    gen = scripted(
        plan_reply({"prompt": "Say hi", "rationale": "Greet"}),
        GenerationResponse.text("hi there"),
    )
    agent = Agent("planner", generator=gen, tools=[echo])

    assert await agent.execute("greet") == "hi there"
    history, toolkit = gen.calls[1]
    assert toolkit is None
    assert history[-1].text == "Say hi"


@pytest.mark.asyncio
async def test_correction_cycle_gives_up_after_three_attempts(scripted, call, tmp_path) -> None:
    """Exactly three correction prompts, then the fixed max-retries message."""

    gen = scripted(
        plan_reply(
            {"toolName": "write_file", "parameters": {"path": "a.txt"}, "rationale": "Persist"}
        ),
        call("x1", "write_file", path="a.txt"),
        call("x2", "write_file", path="a.txt"),
        call("x3", "write_file", path="a.txt"),
        call("x4", "write_file", path="a.txt", content="too late"),
    )
    agent = Agent("planner", generator=gen, tools=[WriteFileTool(tmp_path), echo])

    result = await agent.execute("write a.txt")

    assert result == (
        "Tool parameter validation failed for write_file: "
        "Missing required parameter: content. Max retries reached."
    )
    assert len(gen.calls) == 4
    assert gen.remaining == 1
    assert not (tmp_path / "a.txt").exists()

    history, toolkit = gen.calls[1]
    assert toolkit.names == ["write_file"]
    assert "Original goal: write a.txt" in history[-1].text
    assert "Missing required parameter: content" in history[-1].text


@pytest.mark.asyncio
async def test_correction_cycle_recovers(scripted, call, tmp_path) -> None:
    gen = scripted(
        plan_reply(
            {"toolName": "write_file", "parameters": {"path": "a.txt"}, "rationale": "Persist"}
        ),
        call("x1", "write_file", path="a.txt", content="fixed"),
    )
    agent = Agent("planner", generator=gen, tools=[WriteFileTool(tmp_path)])

    assert await agent.execute("write a.txt") == "Successfully wrote to a.txt"
    assert (tmp_path / "a.txt").read_text(encoding="utf-8") == "fixed"
    assert len(gen.calls) == 2


@pytest.mark.asyncio
async def test_correction_generator_error_ends_execute(scripted, call, tmp_path) -> None:
    """A backend failure during correction is returned as is; no further attempts follow."""

    gen = scripted(
        plan_reply(
            {"toolName": "write_file", "parameters": {"path": "a.txt"}, "rationale": "Persist"}
        ),
        GenerationResponse.failure("Error calling generator endpoint: down"),
        call("x2", "write_file", path="a.txt", content="unused"),
    )
    agent = Agent("planner", generator=gen, tools=[WriteFileTool(tmp_path)])

    assert await agent.execute("write a.txt") == "Error calling generator endpoint: down"
    assert len(gen.calls) == 2
    assert gen.remaining == 1
    assert not (tmp_path / "a.txt").exists()


@pytest.mark.asyncio
async def test_correction_accepts_text_reply(scripted, tmp_path) -> None:
    """A text-only correction carrying the whole call is unwrapped."""

    gen = scripted(
        plan_reply(
            {"toolName": "write_file", "parameters": {"path": 3, "content": "x"}, "rationale": "r"}
        ),
        GenerationResponse.text(
            '{"tool": "write_file", "args": {"path": "b.txt", "content": "x"}}'
        ),
    )
    agent = Agent("planner", generator=gen, tools=[WriteFileTool(tmp_path)])

    assert await agent.execute("write b.txt") == "Successfully wrote to b.txt"


@pytest.mark.asyncio
async def test_execute_returns_planner_error(scripted) -> None:
    gen = scripted(GenerationResponse.failure("Error calling generator endpoint: down"))
    agent = Agent("planner", generator=gen)

    assert await agent.execute("anything") == "Error calling generator endpoint: down"


@pytest.mark.asyncio
async def test_execute_skips_unknown_tool_step(scripted) -> None:
    gen = scripted(
        plan_reply(
            {"toolName": "missing", "parameters": {}, "rationale": "Try"},
            {"toolName": "echo", "parameters": {"text": "fine"}, "rationale": "Echo"},
        )
    )
    agent = Agent("planner", generator=gen, tools=[echo])

    assert await agent.execute("goal") == "fine"
    results = [e.content.result for e in agent.memory.snapshot() if e.role is Role.TOOL]
    assert "Tool 'missing' not found" in results[0]
