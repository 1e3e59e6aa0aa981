"""
Single-shot goal decomposition.

The planner asks the generator once for a JSON array of steps and turns every well-formed element
into a :class:`ToolStep` or :class:`TextStep`.  It never sees step results; re-planning is the agent
loop's job.
"""

import json
import logging
from typing import (
    Any,
    Iterable,
    List,
    Optional,
)

from pydantic import ValidationError

from agentry.agent.generator import Generator
from agentry.agent.prompts import (
    PLANNER_PROMPT,
    PLANNER_SYSTEM_PROMPT,
)
from agentry.core.exceptions import GenerationError
from agentry.core.schema import (
    Plan,
    TextStep,
    ToolStep,
    TranscriptEntry,
)
from agentry.tools import Tool
from agentry.tools.tool_call_parser import extract_json

logger = logging.getLogger(__name__)

_TOOL_NAME_KEYS = ("toolName", "tool_name", "tool")


class Planner:
    """Builds a :class:`Plan` for a goal using one generator call."""

    def __init__(self, generator: Generator, log: logging.Logger | None = None) -> None:
        self.generator = generator
        self._log = log or logger

    @staticmethod
    def build_prompt(goal: str, tools: Iterable[Tool]) -> str:
        descriptors = "\n".join(t.describe() for t in tools) or "No tools available."
        return PLANNER_PROMPT.format(tools=descriptors, goal=goal)

    def _to_step(self, raw: Any) -> Optional[ToolStep | TextStep]:
        if not isinstance(raw, dict):
            return None
        try:
            for key in _TOOL_NAME_KEYS:
                if key in raw:
                    return ToolStep(
                        tool_name=raw[key],
                        parameters=raw.get("parameters", raw.get("args")),
                        rationale=raw.get("rationale"),
                    )
            if "prompt" in raw:
                return TextStep(prompt=raw["prompt"], rationale=raw.get("rationale"))
        except (ValidationError, json.JSONDecodeError) as exc:
            self._log.debug("Skipping malformed plan step %s: %s", raw, exc)
            return None
        self._log.debug("Skipping plan step without a tool or prompt: %s", raw)
        return None

    def parse_plan(self, goal: str, reply: str) -> Plan:
        """Leniently parse *reply*; anything unusable becomes an empty plan."""
        try:
            data = json.loads(extract_json(reply))
        except json.JSONDecodeError as exc:
            self._log.warning("Planner reply is not valid JSON: %s", exc)
            return Plan(goal=goal)

        if isinstance(data, dict) and isinstance(data.get("steps"), list):
            data = data["steps"]
        if not isinstance(data, list):
            self._log.warning("Planner reply is not a JSON array")
            return Plan(goal=goal)

        steps: List[ToolStep | TextStep] = []
        for raw in data:
            step = self._to_step(raw)
            if step is not None:
                steps.append(step)
        if len(steps) < len(data):
            self._log.info("Skipped %d malformed plan step(s)", len(data) - len(steps))
        return Plan(goal=goal, steps=tuple(steps))

    async def create_plan(self, goal: str, tools: Iterable[Tool]) -> Plan:
        """
        Ask the generator to decompose *goal* into steps.

        Raises
        ------
        GenerationError
            When the generator reports an error.
        """
        history = [
            TranscriptEntry.system(PLANNER_SYSTEM_PROMPT),
            TranscriptEntry.user(self.build_prompt(goal, tools)),
        ]
        response = await self.generator.generate(history)
        if response.error:
            raise GenerationError(response.error)
        if response.message is None:
            self._log.warning("Planner received tool calls instead of a plan")
            return Plan(goal=goal)

        plan = self.parse_plan(goal, response.message)
        self._log.info("Created plan with %d step(s) for goal: %s", len(plan.steps), goal)
        return plan
