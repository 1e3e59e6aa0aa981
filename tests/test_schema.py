"""Tests for the data model."""

import pytest
from pydantic import ValidationError

from agentry.core.schema import (
    GenerationResponse,
    Plan,
    ResponseKind,
    TextStep,
    ToolCallRequest,
    ToolStep,
    TranscriptEntry,
)


def test_generation_response_shape_is_enforced() -> None:
    with pytest.raises(ValidationError):
        GenerationResponse(kind=ResponseKind.TEXT)
    with pytest.raises(ValidationError):
        GenerationResponse(kind=ResponseKind.TOOL_CALLS)
    with pytest.raises(ValidationError):
        GenerationResponse(
            kind=ResponseKind.TOOL_CALLS,
            message="both",
            tool_calls=[ToolCallRequest(id="c1", name="echo")],
        )


def test_failure_ignores_other_fields() -> None:
    response = GenerationResponse.failure("down")
    assert response.error == "down"
    assert response.message is None


def test_tool_step_aliases_and_string_parameters() -> None:
    step = ToolStep.model_validate(
        {"toolName": "echo", "parameters": '{"text": "hi"}', "rationale": "r"}
    )
    assert step.tool_name == "echo"
    assert step.parameters == {"text": "hi"}

    with pytest.raises(ValidationError):
        ToolStep.model_validate({"toolName": "", "parameters": {}, "rationale": "r"})


def test_plan_describe() -> None:
    plan = Plan(
        goal="greet",
        steps=(
            ToolStep(tool_name="echo", parameters={}, rationale="Say it"),
            TextStep(prompt="Wrap up", rationale="Finish"),
        ),
    )
    assert plan.describe() == (
        "Goal: greet\n\nSteps:\n  1. ToolStep: Say it\n  2. TextStep: Finish"
    )


def test_plan_steps_discriminated_on_kind() -> None:
    plan = Plan.model_validate(
        {
            "goal": "g",
            "steps": [
                {"kind": "text", "prompt": "p", "rationale": "r"},
                {"kind": "tool", "tool_name": "echo", "parameters": {}, "rationale": "r"},
            ],
        }
    )
    assert isinstance(plan.steps[0], TextStep)
    assert isinstance(plan.steps[1], ToolStep)


def test_tool_result_text_rendering() -> None:
    entry = TranscriptEntry.tool_result("c1", "done")
    assert entry.text == "[c1] done"
