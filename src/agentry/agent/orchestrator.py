"""An agent whose tools are other agents."""

from typing import (
    Iterable,
    List,
)

from agentry.agent.agent import Agent
from agentry.agent.agent_tool import AgentTool
from agentry.agent.prompts import ORCHESTRATION_PROMPT


class Orchestrator(Agent):
    """
    Runs the ordinary agent loop with sub-agents registered as tools.

    Sub-agents keep their own memory and toolkit; only their final replies enter the
    orchestrator's transcript.
    """

    def __init__(
        self,
        agent_id: str = "orchestrator",
        system_prompt: str | None = None,
        agents: Iterable[Agent] = (),
        **kwargs,
    ) -> None:
        super().__init__(agent_id, system_prompt or ORCHESTRATION_PROMPT, **kwargs)
        self._agents: List[Agent] = []
        for agent in agents:
            self.add_agent(agent)

    @property
    def agents(self) -> List[Agent]:
        return list(self._agents)

    def add_agent(self, agent: Agent) -> AgentTool:
        """Register *agent* as a tool named after its id."""
        wrapped = AgentTool(agent)
        self.add_tool(wrapped)
        self._agents.append(agent)
        self._log.info("Orchestrator %s added agent '%s'", self.agent_id, agent.agent_id)
        return wrapped
