"""Wrap an :class:`Agent` as a :class:`Tool` so other agents can delegate to it."""

from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
)

from agentry.agent.agent import active_agents
from agentry.agent.prompts import AGENT_TOOL_PROMPT
from agentry.config import settings
from agentry.tools import (
    ParameterSpec,
    Tool,
    ToolSchema,
)

if TYPE_CHECKING:
    from agentry.agent.agent import Agent


class AgentTool(Tool):
    """
    A tool named after the wrapped agent, taking a single free-text ``input``.

    The delegate runs its own loop against its own memory; the caller sees only the final reply.
    Calls that would re-enter an agent already on the delegation stack, or nest deeper than
    ``settings.MAX_DELEGATION_DEPTH``, are refused with an error string.
    """

    def __init__(self, agent: "Agent") -> None:
        super().__init__(
            name=agent.agent_id,
            description=AGENT_TOOL_PROMPT.format(
                agent_id=agent.agent_id, system_prompt=agent.config.base_prompt
            ),
            schema=ToolSchema.of(
                ParameterSpec(name="input", description="The message to send to the agent.")
            ),
        )
        self.agent = agent

    async def run(self, arguments: Dict[str, Any]) -> str:
        stack = active_agents()
        if self.agent.agent_id in stack:
            chain = " -> ".join((*stack, self.agent.agent_id))
            self.agent.log.warning("Refusing delegation cycle: %s", chain)
            return f"Error: Delegation cycle detected ({chain})."
        if len(stack) >= settings.MAX_DELEGATION_DEPTH:
            self.agent.log.warning(
                "Refusing delegation to %s at depth %d", self.agent.agent_id, len(stack)
            )
            return f"Error: Maximum delegation depth of {settings.MAX_DELEGATION_DEPTH} reached."

        self.agent.log.debug("Delegating to agent '%s'", self.agent.agent_id)
        return await self.agent.process_message(arguments["input"])
