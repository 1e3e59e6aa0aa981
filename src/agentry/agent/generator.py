"""
Generator interface for Agentry.

This module is the only place that *directly* calls an LLM.  Everything else (agent loop, tools,
memory) stays model-agnostic and talks to a :class:`Generator`.

One backend ships out of the box: :class:`OpenAIGenerator`, which speaks the OpenAI-compatible
``/chat/completions`` protocol over httpx and therefore also covers self-hosted servers exposing the
same API.  It runs either with native function calling or in text mode, where tools are described
in the system prompt and the reply is parsed as JSON.

Additional providers can be added by subclassing :class:`Generator` and registering via
:func:`register_generator`.
"""

import json
import logging
import uuid
from abc import (
    ABC,
    abstractmethod,
)
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Type,
)

import httpx
from pydantic import ValidationError

from agentry.agent.prompts import TEXT_MODE_PROMPT
from agentry.agent.toolkit import Toolkit
from agentry.config import settings
from agentry.core.schema import (
    GenerationResponse,
    ImageContent,
    Role,
    ToolCallContent,
    ToolCallRequest,
    ToolResultContent,
    TranscriptEntry,
)
from agentry.tools.tool_call_parser import (
    ToolCallParseError,
    parse_tool_call,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class Generator(ABC):
    """Abstract backend that turns a transcript into text or tool-call requests."""

    @abstractmethod
    async def generate(
        self, history: Sequence[TranscriptEntry], toolkit: Optional[Toolkit] = None
    ) -> GenerationResponse:
        """
        Produce the next assistant turn for *history*.

        Implementations must always return exactly one of a message, tool calls or an error;
        transport failures are reported through ``GenerationResponse.error``, not raised.
        """


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_GENERATOR_REGISTRY: dict[str, Type[Generator]] = {}


def register_generator(name: str) -> Callable:
    """Decorator to register a generator class under *name*."""

    def wrapper(cls: Type[Generator]) -> Type[Generator]:
        _GENERATOR_REGISTRY[name] = cls
        return cls

    return wrapper


def load_generator(name: str | None = None, **kwargs: Any) -> Generator:
    """
    Factory that returns an instantiated generator.

    Fallback order:
    1. *name* arg
    2. ``settings.GENERATOR`` env option
    """
    target = name or settings.GENERATOR
    cls = _GENERATOR_REGISTRY.get(target.lower())
    if cls is None:
        raise ValueError(f"Generator '{target}' is not registered.")
    return cls(**kwargs)


def _new_call_id() -> str:
    return f"call_{uuid.uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Concrete generators
# ---------------------------------------------------------------------------
class GeneratorMode(str, Enum):
    """How tools are offered to the model."""

    FUNCTION_CALLING = "function_calling"  # model supports native tool calls
    TEXT = "text"  # model only produces text; tools are described in the prompt


@register_generator("openai")
class OpenAIGenerator(Generator):
    """OpenAI-compatible chat-completions backend using an async httpx client."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        base_url: str | None = None,
        mode: GeneratorMode | str | None = None,
        temperature: float = 0.2,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model or settings.OPENAI_MODEL
        self.api_key = api_key or settings.OPENAI_API_KEY
        self.base_url = base_url or settings.OPENAI_BASE_URL
        self.mode = GeneratorMode(mode or settings.GENERATOR_MODE)
        self.temperature = temperature
        self.timeout = timeout or settings.REQUEST_TIMEOUT
        self._transport = transport

    # ------------------------------------------------------------------ #
    # Request building
    # ------------------------------------------------------------------ #
    def _render_calls(self, content: ToolCallContent) -> str:
        rendered = []
        for call in content.calls:
            try:
                args: Any = json.loads(call.parameters_json)
            except json.JSONDecodeError:
                args = call.parameters_json
            rendered.append(json.dumps({"tool": call.name, "args": args}))
        return "\n".join(rendered)

    def _to_message(self, entry: TranscriptEntry) -> Dict[str, Any]:
        content = entry.content
        native = self.mode is GeneratorMode.FUNCTION_CALLING

        if isinstance(content, ToolCallContent):
            if not native:
                return {"role": "assistant", "content": self._render_calls(content)}
            return {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.parameters_json},
                    }
                    for call in content.calls
                ],
            }
        if isinstance(content, ToolResultContent):
            if not native:
                return {
                    "role": "user",
                    "content": f"Tool result ({content.tool_call_id}): {content.result}",
                }
            return {"role": "tool", "tool_call_id": content.tool_call_id, "content": content.result}
        if isinstance(content, ImageContent):
            return {
                "role": entry.role.value,
                "content": [
                    {"type": "text", "text": content.text},
                    {"type": "image_url", "image_url": {"url": content.image_url}},
                ],
            }
        return {"role": entry.role.value, "content": content.text}

    def build_messages(
        self, history: Sequence[TranscriptEntry], toolkit: Optional[Toolkit] = None
    ) -> List[Dict[str, Any]]:
        """Translate the transcript into chat-completions messages."""
        messages = [self._to_message(entry) for entry in history]
        if self.mode is GeneratorMode.TEXT and toolkit is not None and len(toolkit):
            instructions = f"{TEXT_MODE_PROMPT}\n{toolkit.render()}"
            if messages and history[0].role is Role.SYSTEM:
                messages[0] = {
                    "role": "system",
                    "content": f"{messages[0]['content']}\n\n{instructions}",
                }
            else:
                messages.insert(0, {"role": "system", "content": instructions})
        return messages

    def build_payload(
        self, history: Sequence[TranscriptEntry], toolkit: Optional[Toolkit] = None
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": self.build_messages(history, toolkit),
            "temperature": self.temperature,
        }
        if self.mode is GeneratorMode.FUNCTION_CALLING and toolkit is not None and len(toolkit):
            payload["tools"] = toolkit.definitions()
        return payload

    # ------------------------------------------------------------------ #
    # Response parsing
    # ------------------------------------------------------------------ #
    def _parse_text(self, content: str) -> GenerationResponse:
        if self.mode is not GeneratorMode.TEXT:
            return GenerationResponse.text(content)
        try:
            calls, answer = parse_tool_call(content)
        except ToolCallParseError as e:
            logger.warning("Could not parse text-mode tool call: %s", e)
            return GenerationResponse.text(content)
        if calls:
            return GenerationResponse.calls(
                [
                    ToolCallRequest(id=_new_call_id(), name=name, parameters_json=json.dumps(args))
                    for name, args in calls
                ]
            )
        return GenerationResponse.text(answer or "")

    @staticmethod
    def _to_call(raw: Any) -> ToolCallRequest:
        function = raw["function"]
        arguments = function.get("arguments")
        # Some compatible servers send the arguments as an object rather than a JSON string
        if isinstance(arguments, Mapping):
            arguments = json.dumps(arguments)
        call_id = raw.get("id")
        return ToolCallRequest(
            id=str(call_id) if call_id not in (None, "") else _new_call_id(),
            name=function["name"],
            parameters_json=arguments or "{}",
        )

    def parse_response(self, data: Mapping[str, Any]) -> GenerationResponse:
        """Turn a chat-completions JSON body into a :class:`GenerationResponse`."""
        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError):
            message = None
        if not isinstance(message, dict):
            logger.error("Generator returned no message: %s", data)
            return GenerationResponse.failure("Error: Empty response from generator")

        raw_calls = message.get("tool_calls") or []
        if raw_calls:
            try:
                calls = [self._to_call(call) for call in raw_calls]
            except (KeyError, TypeError, AttributeError, ValidationError) as e:
                logger.error("Malformed tool call in generator response: %s", e)
                return GenerationResponse.failure(f"Error: Malformed tool call from generator: {e}")
            if message.get("content"):
                logger.debug("Dropping assistant text sent with tool calls: %s", message["content"])
            return GenerationResponse.calls(calls)

        content = message.get("content")
        if content is not None and not isinstance(content, str):
            logger.error("Generator returned non-text content: %s", content)
            return GenerationResponse.failure("Error: Generator returned non-text content")
        return self._parse_text(content or "")

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #
    async def generate(
        self, history: Sequence[TranscriptEntry], toolkit: Optional[Toolkit] = None
    ) -> GenerationResponse:
        payload = self.build_payload(history, toolkit)
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            ) as client:
                resp = await client.post("/chat/completions", json=payload)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as e:
            logger.error("Generator request error: %s", str(e))
            return GenerationResponse.failure(f"Error calling generator endpoint: {str(e)}")
        except ValueError as e:
            logger.error("Generator returned invalid JSON: %s", str(e))
            return GenerationResponse.failure(f"Error processing generator response: {str(e)}")

        logger.debug("Generator response: %s", data)
        return self.parse_response(data)
