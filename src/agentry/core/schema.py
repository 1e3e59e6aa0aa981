"""
Schema definitions for generator <-> agent <-> tool messages.

These data models serve as the contract between the generator backend, the agent loop, the planner
and individual tools.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.  Transcript entries are frozen: once appended to a memory they are never
edited.
"""

import json
from enum import Enum
from typing import (
    Annotated,
    Any,
    Dict,
    List,
    Literal,
    Optional,
    Tuple,
    Union,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class Role(str, Enum):
    """Author of a transcript entry."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


# ---------------------------------------------------------------------------
# Tool calls
# ---------------------------------------------------------------------------
class ToolCallRequest(BaseModel):
    """A call the generator wants the agent to execute."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque id correlating the request with its result")
    name: str = Field(..., description="Registered tool name")
    parameters_json: str = Field("{}", description="JSON-encoded tool parameters")


# ---------------------------------------------------------------------------
# Transcript content variants
# ---------------------------------------------------------------------------
class TextContent(BaseModel):
    """Plain text."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ToolCallContent(BaseModel):
    """Tool calls requested by the assistant in a single turn."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_calls"] = "tool_calls"
    calls: Tuple[ToolCallRequest, ...]


class ToolResultContent(BaseModel):
    """The result of one tool call, correlated by ``tool_call_id``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    result: str


class ImageContent(BaseModel):
    """An image reference with an optional caption."""

    model_config = ConfigDict(frozen=True)

    type: Literal["image"] = "image"
    image_url: str
    text: str = ""


Content = Annotated[
    Union[TextContent, ToolCallContent, ToolResultContent, ImageContent],
    Field(discriminator="type"),
]


class TranscriptEntry(BaseModel):
    """A single entry in an agent's conversation transcript."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: Content

    @classmethod
    def system(cls, text: str) -> "TranscriptEntry":
        return cls(role=Role.SYSTEM, content=TextContent(text=text))

    @classmethod
    def user(cls, text: str) -> "TranscriptEntry":
        return cls(role=Role.USER, content=TextContent(text=text))

    @classmethod
    def assistant(cls, text: str) -> "TranscriptEntry":
        return cls(role=Role.ASSISTANT, content=TextContent(text=text))

    @classmethod
    def tool_calls(cls, calls: List[ToolCallRequest]) -> "TranscriptEntry":
        return cls(role=Role.ASSISTANT, content=ToolCallContent(calls=tuple(calls)))

    @classmethod
    def tool_result(cls, tool_call_id: str, result: str) -> "TranscriptEntry":
        return cls(
            role=Role.TOOL,
            content=ToolResultContent(tool_call_id=tool_call_id, result=result),
        )

    @property
    def text(self) -> str:
        """Human/model readable rendering of the content."""
        content = self.content
        if isinstance(content, TextContent):
            return content.text
        if isinstance(content, ToolCallContent):
            return "\n".join(
                json.dumps({"id": call.id, "tool": call.name, "args": call.parameters_json})
                for call in content.calls
            )
        if isinstance(content, ToolResultContent):
            return f"[{content.tool_call_id}] {content.result}"
        return f"{content.text} ({content.image_url})".strip()


# ---------------------------------------------------------------------------
# Generator responses
# ---------------------------------------------------------------------------
class ResponseKind(str, Enum):
    """Shape of a generator response."""

    TEXT = "text"
    TOOL_CALLS = "tool_calls"


class GenerationResponse(BaseModel):
    """
    What a generator returns for one call.

    Exactly one of ``message`` / ``tool_calls`` is populated when ``error`` is empty.  A non-empty
    ``error`` means nothing else in the response is interpreted.
    """

    kind: ResponseKind = ResponseKind.TEXT
    message: Optional[str] = None
    tool_calls: List[ToolCallRequest] = Field(default_factory=list)
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_shape(self) -> "GenerationResponse":
        if self.error:
            return self
        if self.kind is ResponseKind.TEXT:
            if self.message is None:
                raise ValueError("text responses require a message")
            if self.tool_calls:
                raise ValueError("text responses cannot carry tool calls")
        else:
            if not self.tool_calls:
                raise ValueError("tool_calls responses require at least one call")
            if self.message is not None:
                raise ValueError("tool_calls responses cannot carry a message")
        return self

    @classmethod
    def text(cls, message: str) -> "GenerationResponse":
        return cls(kind=ResponseKind.TEXT, message=message)

    @classmethod
    def calls(cls, tool_calls: List[ToolCallRequest]) -> "GenerationResponse":
        return cls(kind=ResponseKind.TOOL_CALLS, tool_calls=list(tool_calls))

    @classmethod
    def failure(cls, error: str) -> "GenerationResponse":
        return cls(error=error)


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------
class ToolStep(BaseModel):
    """Invoke a tool with pre-computed parameters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: Literal["tool"] = "tool"
    tool_name: str = Field(..., alias="toolName", min_length=1)
    parameters: Dict[str, Any]
    rationale: str

    @field_validator("parameters", mode="before")
    @classmethod
    def _decode_parameters(cls, value: Any) -> Any:
        # Models frequently emit the parameters as a JSON-encoded string
        if isinstance(value, str):
            return json.loads(value) if value.strip() else {}
        return value


class TextStep(BaseModel):
    """Ask the generator for free text."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["text"] = "text"
    prompt: str
    rationale: str


Step = Annotated[Union[ToolStep, TextStep], Field(discriminator="kind")]


class Plan(BaseModel):
    """An ordered decomposition of a goal, consumed once and never mutated."""

    model_config = ConfigDict(frozen=True)

    goal: str
    steps: Tuple[Step, ...] = ()

    def describe(self) -> str:
        """Summarise the plan for the transcript."""
        lines = [
            f"  {i}. {type(step).__name__}: {step.rationale}"
            for i, step in enumerate(self.steps, 1)
        ]
        return f"Goal: {self.goal}\n\nSteps:\n" + "\n".join(lines)
