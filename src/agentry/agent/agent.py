"""
The agent: a conversation transcript, a toolkit and a generator driven by a bounded loop.

Two entry points exist:

- :meth:`Agent.process_message` runs the generate/act loop.  The model decides which tools to call;
  every result is fed back until the model answers with text, a generator error stops the turn, or
  too many turns produced failing tool results.
- :meth:`Agent.execute` asks the :class:`Planner` for a plan up front and runs its steps in order,
  re-prompting the generator for corrected parameters when a planned tool call does not validate.
"""

import json
import logging
from contextvars import ContextVar
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
)

from pydantic import (
    BaseModel,
    ConfigDict,
)

from agentry.agent.generator import Generator
from agentry.agent.planner import Planner
from agentry.agent.prompts import (
    AGENT_PROMPT,
    CORRECTION_PROMPT,
)
from agentry.agent.toolkit import Toolkit
from agentry.config import settings
from agentry.core.exceptions import (
    ConfigurationError,
    GenerationError,
)
from agentry.core.schema import (
    Plan,
    ResponseKind,
    TextStep,
    ToolCallRequest,
    ToolStep,
    TranscriptEntry,
)
from agentry.memory.transcript import (
    DEFAULT_SYSTEM_PROMPT,
    Memory,
)
from agentry.tools import Tool
from agentry.tools.tool_call_parser import (
    ToolCallParseError,
    parse_parameters,
)

if TYPE_CHECKING:
    from agentry.agent.agent_tool import AgentTool

logger = logging.getLogger(__name__)

MAX_ERRORS_MESSAGE = "Maximum error count reached. Exiting."
MAX_RETRIES_MESSAGE = "Max retries reached."
NO_RESULT = "No result generated."

# Case-insensitive substrings marking a tool result as failed.  Known to be coarse: a result such
# as "error-free" counts as a failure too.
FAILURE_MARKERS = ("error", "fail")

# Ids of the agents currently inside process_message/execute, outermost first
_ACTIVE_AGENTS: ContextVar[Tuple[str, ...]] = ContextVar("agentry_active_agents", default=())


def active_agents() -> Tuple[str, ...]:
    """The delegation stack of the current task."""
    return _ACTIVE_AGENTS.get()


def is_failure_result(result: str) -> bool:
    lowered = result.lower()
    return any(marker in lowered for marker in FAILURE_MARKERS)


class AgentConfig(BaseModel):
    """
    The inputs of an agent's system prompt.

    Built once per agent and rebuilt explicitly whenever the tool set or base prompt changes.
    """

    model_config = ConfigDict(frozen=True)

    base_prompt: str
    tool_prompt: str

    @classmethod
    def build(cls, base_prompt: str, toolkit: Toolkit) -> "AgentConfig":
        return cls(base_prompt=base_prompt, tool_prompt=toolkit.render())

    @property
    def system_prompt(self) -> str:
        return AGENT_PROMPT.format(system_prompt=self.base_prompt, tool_prompt=self.tool_prompt)


class Agent:
    """
    An independent conversational worker.

    Parameters
    ----------
    agent_id: str
        Unique id; also the tool name when the agent is wrapped with :meth:`as_tool`.
    system_prompt: str, optional
        The base instructions.  The tool list is appended to it automatically.
    generator: Generator, optional
        Shared backend.  May be attached later with :meth:`attach`.
    memory: Memory, optional
        The transcript.  A fresh one is created when omitted.
    toolkit: Toolkit, optional
        The tools this agent can call.  A fresh one is created when omitted.
    tools: iterable of Tool
        Convenience: tools added to the toolkit at construction.
    planner: Planner, optional
        Used by :meth:`execute`.  Defaults to a planner over the attached generator.
    log: logging.Logger, optional
        Logger to use instead of the module logger.
    max_error_count, max_correction_attempts: int, optional
        Override ``settings.MAX_TOOL_ERRORS`` / ``settings.MAX_CORRECTION_ATTEMPTS``.
    """

    def __init__(
        self,
        agent_id: str,
        system_prompt: str | None = None,
        generator: Generator | None = None,
        memory: Memory | None = None,
        toolkit: Toolkit | None = None,
        tools: Iterable[Tool] = (),
        planner: Planner | None = None,
        log: logging.Logger | None = None,
        max_error_count: int | None = None,
        max_correction_attempts: int | None = None,
    ) -> None:
        if not agent_id or not agent_id.strip():
            raise ConfigurationError("Agent id must not be empty.")
        self.agent_id = agent_id
        self._log = log or logger
        self.generator = generator
        self.memory = memory if memory is not None else Memory()
        self.toolkit = toolkit if toolkit is not None else Toolkit(log=self._log)
        for item in tools:
            self.toolkit.add(item)
        self._planner = planner
        self.max_error_count = (
            settings.MAX_TOOL_ERRORS if max_error_count is None else max_error_count
        )
        self.max_correction_attempts = (
            settings.MAX_CORRECTION_ATTEMPTS
            if max_correction_attempts is None
            else max_correction_attempts
        )

        self.config = AgentConfig.build(system_prompt or DEFAULT_SYSTEM_PROMPT, self.toolkit)
        self.memory.set_system_prompt(self.config.system_prompt)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(agent_id={self.agent_id!r}, tools={self.toolkit.names})"

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #
    def attach(self, generator: Generator) -> None:
        """Connect the agent to a generator backend."""
        if self._planner is not None and self._planner.generator is self.generator:
            self._planner.generator = generator
        self.generator = generator

    @property
    def log(self) -> logging.Logger:
        """The logger this agent and its toolkit, planner and wrappers write to."""
        return self._log

    @property
    def planner(self) -> Planner:
        if self._planner is None:
            self._planner = Planner(self._require_generator(), log=self._log)
        return self._planner

    def add_tool(self, tool: Tool) -> None:
        """Register *tool* and rebuild the system prompt."""
        self.toolkit.add(tool)
        self.refresh_system_prompt()

    def set_system_prompt(self, base_prompt: str) -> None:
        """Replace the base instructions, keeping the tool list."""
        self.config = AgentConfig.build(base_prompt, self.toolkit)
        self.memory.set_system_prompt(self.config.system_prompt)

    def refresh_system_prompt(self) -> None:
        """Rebuild the prompt after the toolkit changed outside :meth:`add_tool`."""
        self.set_system_prompt(self.config.base_prompt)

    def as_tool(self) -> "AgentTool":
        """Wrap this agent so another agent can delegate to it."""
        from agentry.agent.agent_tool import (  # pylint: disable=import-outside-toplevel
            AgentTool,
        )

        return AgentTool(self)

    def _require_generator(self) -> Generator:
        if self.generator is None:
            raise ConfigurationError(f"Agent '{self.agent_id}' has no generator attached.")
        return self.generator

    # ------------------------------------------------------------------ #
    # Generate / act loop
    # ------------------------------------------------------------------ #
    async def process_message(self, message: str) -> str:
        """
        Run the agent loop for one user message and return the final reply.

        Raises
        ------
        ConfigurationError
            When no generator is attached.
        """
        generator = self._require_generator()
        self.memory.append(TranscriptEntry.user(message))

        token = _ACTIVE_AGENTS.set((*_ACTIVE_AGENTS.get(), self.agent_id))
        try:
            return await self._run_loop(generator)
        finally:
            _ACTIVE_AGENTS.reset(token)

    async def _run_loop(self, generator: Generator) -> str:
        # Call ids already executed during this message; a repeat is answered without running
        executed: Set[str] = set()
        error_count = 0
        while True:
            response = await generator.generate(self.memory.snapshot(), self.toolkit)
            if response.error:
                self._log.error("Generator error for %s: %s", self.agent_id, response.error)
                return response.error

            if response.kind is ResponseKind.TEXT:
                reply = response.message or ""
                self.memory.append(TranscriptEntry.assistant(reply))
                return reply

            self._log.info(
                "Generator returned %d tool calls for %s: %s",
                len(response.tool_calls),
                self.agent_id,
                [call.name for call in response.tool_calls],
            )
            if await self._act(response.tool_calls, executed):
                error_count += 1
                self._log.warning(
                    "Tool turn failed for %s (%d/%d)",
                    self.agent_id,
                    error_count,
                    self.max_error_count,
                )
            if error_count > self.max_error_count:
                self._log.error("%s: %s", self.agent_id, MAX_ERRORS_MESSAGE)
                self.memory.append(TranscriptEntry.assistant(MAX_ERRORS_MESSAGE))
                return MAX_ERRORS_MESSAGE

    async def _act(self, calls: List[ToolCallRequest], executed: Set[str]) -> bool:
        """Execute *calls* in order, appending every result.  True when any result failed."""
        self.memory.append(TranscriptEntry.tool_calls(calls))
        failed = False
        for call in calls:
            if call.id in executed:
                self._log.warning("Skipping already executed tool call %s", call.id)
                result = f"Tool call '{call.id}' was already executed; result not repeated."
            else:
                executed.add(call.id)
                result = await self.toolkit.execute(call.name, call.parameters_json)
                self._log.info("Tool '%s' returned: %s", call.name, result)
            self.memory.append(TranscriptEntry.tool_result(call.id, result))
            failed = failed or is_failure_result(result)
        return failed

    # ------------------------------------------------------------------ #
    # Plan execution
    # ------------------------------------------------------------------ #
    async def execute(self, goal: str) -> str:
        """
        Plan *goal* up front and run the steps in order.

        Returns the output of the last step, :data:`NO_RESULT` when nothing ran, the generator's
        error text when the backend fails, or a validation-failure message once the correction
        budget of a tool step is spent.
        """
        self._require_generator()
        self.memory.append(TranscriptEntry.user(goal))

        token = _ACTIVE_AGENTS.set((*_ACTIVE_AGENTS.get(), self.agent_id))
        try:
            plan = await self.planner.create_plan(goal, self.toolkit.tools)
            return await self._run_plan(plan)
        except GenerationError as exc:
            self._log.error("Generator error while executing plan for %s: %s", self.agent_id, exc)
            return str(exc)
        finally:
            _ACTIVE_AGENTS.reset(token)

    async def _run_plan(self, plan: Plan) -> str:
        summary = plan.describe()
        self.memory.append(TranscriptEntry.assistant(summary))
        self._log.info("Planner decision for %s:\n%s", self.agent_id, summary)

        result: Optional[str] = None
        for index, step in enumerate(plan.steps, 1):
            if isinstance(step, ToolStep):
                output, terminal = await self._run_tool_step(plan.goal, index, step)
                if terminal:
                    return output
                if step.tool_name in self.toolkit:
                    result = output
            elif isinstance(step, TextStep):
                result = await self._run_text_step(step)
        return NO_RESULT if result is None else result

    async def _run_text_step(self, step: TextStep) -> str:
        self._log.debug("Text generation for %s: %s", self.agent_id, step.prompt)
        self.memory.append(TranscriptEntry.user(step.prompt))
        response = await self._require_generator().generate(self.memory.snapshot())
        if response.error:
            raise GenerationError(response.error)
        if response.message is None:
            self._log.warning("Text step produced tool calls; ignoring them")
        text = response.message or ""
        self.memory.append(TranscriptEntry.assistant(text))
        return text

    async def _run_tool_step(self, goal: str, index: int, step: ToolStep) -> Tuple[str, bool]:
        """Validate (with correction) and run one planned tool call.  Returns (output, stop)."""
        name = step.tool_name
        call_id = f"step-{index}"
        parameters: Dict[str, Any] = dict(step.parameters)

        if name not in self.toolkit:
            self._log.warning("Planned tool '%s' not found for %s", name, self.agent_id)
            output = await self.toolkit.execute(name, parameters)
            self._record_step(call_id, name, parameters, output)
            return output, False

        error = self.toolkit.check(name, parameters)
        attempts = 0
        while error is not None and attempts < self.max_correction_attempts:
            attempts += 1
            self._log.warning(
                "Tool validation failure for %s: tool=%s error=%s (attempt %d/%d)",
                self.agent_id,
                name,
                error,
                attempts,
                self.max_correction_attempts,
            )
            self.memory.append(
                TranscriptEntry.user(
                    f"Tool parameter validation failed for {name}: {error}. "
                    "Please provide valid parameters."
                )
            )
            corrected, error = await self._correct_parameters(goal, name, error)
            if error is None:
                parameters = corrected
                error = self.toolkit.check(name, parameters)

        if error is not None:
            message = f"Tool parameter validation failed for {name}: {error}. {MAX_RETRIES_MESSAGE}"
            self._log.error("%s: %s", self.agent_id, message)
            self.memory.append(TranscriptEntry.user(message))
            return message, True

        output = await self.toolkit.execute(name, parameters)
        self._log.info("Tool '%s' returned: %s", name, output)
        self._record_step(call_id, name, parameters, output)
        return output, False

    def _record_step(
        self, call_id: str, name: str, parameters: Dict[str, Any], output: str
    ) -> None:
        call = ToolCallRequest(id=call_id, name=name, parameters_json=json.dumps(parameters))
        self.memory.append(TranscriptEntry.tool_calls([call]))
        self.memory.append(TranscriptEntry.tool_result(call_id, output))

    async def _correct_parameters(
        self, goal: str, name: str, error: str
    ) -> Tuple[Dict[str, Any], Optional[str]]:
        """Ask the generator for new parameters.  Returns (parameters, parse error)."""
        prompt = CORRECTION_PROMPT.format(tool_name=name, error=error, goal=goal)
        history = (*self.memory.snapshot(), TranscriptEntry.user(prompt))
        response = await self._require_generator().generate(history, self.toolkit.subset([name]))
        if response.error:
            raise GenerationError(response.error)

        if response.tool_calls:
            call = next((c for c in response.tool_calls if c.name == name), response.tool_calls[0])
            raw: str = call.parameters_json
        else:
            raw = response.message or ""

        try:
            parameters = parse_parameters(raw)
        except ToolCallParseError as exc:
            return {}, str(exc)

        # Text replies sometimes repeat the whole call: {"tool": ..., "args": {...}}
        nested = parameters.get("args", parameters.get("parameters"))
        if ("tool" in parameters or "name" in parameters) and isinstance(nested, dict):
            parameters = nested
        return parameters, None
