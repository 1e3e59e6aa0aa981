"""Shared fixtures: a scripted generator that replays canned responses and records every call."""

import json
from typing import (
    Any,
    List,
    Optional,
    Sequence,
    Tuple,
)

import pytest

from agentry.agent.generator import Generator
from agentry.agent.toolkit import Toolkit
from agentry.core.schema import (
    GenerationResponse,
    ToolCallRequest,
    TranscriptEntry,
)


class ScriptedGenerator(Generator):
    """Returns the queued responses in order; fails the test if asked for more."""

    def __init__(self, *responses: GenerationResponse) -> None:
        self.responses = list(responses)
        self.calls: List[Tuple[List[TranscriptEntry], Optional[Toolkit]]] = []

    async def generate(
        self, history: Sequence[TranscriptEntry], toolkit: Optional[Toolkit] = None
    ) -> GenerationResponse:
        self.calls.append((list(history), toolkit))
        if not self.responses:
            raise AssertionError("ScriptedGenerator ran out of responses")
        return self.responses.pop(0)

    @property
    def remaining(self) -> int:
        return len(self.responses)


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedGenerator`."""
    return ScriptedGenerator


@pytest.fixture
def call():
    """Build a one-call tool-calls response: ``call("c1", "echo", text="hi")``."""

    def build(call_id: str, name: str, **parameters: Any) -> GenerationResponse:
        return GenerationResponse.calls(
            [ToolCallRequest(id=call_id, name=name, parameters_json=json.dumps(parameters))]
        )

    return build


@pytest.fixture
def text():
    return GenerationResponse.text
