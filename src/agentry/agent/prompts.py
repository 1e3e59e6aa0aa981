"""Prompt templates used by agents, the planner and text-mode generators."""

AGENT_PROMPT = """\
{system_prompt}

## Rules:
1. Use only the tools listed below, with the parameters their schema declares.
2. You may call several tools in one response; they run in the order given.
3. If a tool result reports an error, correct the call and try again.
4. When the task is complete, reply with plain text.

## Tools:
{tool_prompt}
"""

AGENT_TOOL_PROMPT = """\
Invokes the {agent_id} agent.
System Prompt: {system_prompt}"""

ORCHESTRATION_PROMPT = """\
ROLE: You are a meta-agent that directly utilizes specialized sub-agents as tools to accomplish
complex objectives.

AGENTS-AS-TOOLS:
- Every sub-agent is a callable tool taking a single parameter: {"input": "agent input"}.
- A sub-agent returns only its final answer; it keeps no state about you between calls.

WORKFLOW RULES:
1. Chaining: use the output of one agent as input to another when needed; wait for the first
   result before calling the next agent.
2. Fan-out: call several agents and aggregate their results.
3. Error recovery: retry a failing agent once, then try an alternative, finally fail gracefully.
4. Never modify agent behaviours; use them as-is.
"""

PLANNER_SYSTEM_PROMPT = "You are a planner. You answer with a JSON array only."

PLANNER_PROMPT = """\
Create a step-by-step plan to achieve the user's goal. For an easy goal one step is enough; decide
the step count based on the complexity of the goal.

You have the following tools available:
{tools}

Your plan must be a JSON array of steps. Every step has a "rationale".
A tool step also has "toolName" and "parameters" (an object matching the tool's schema).
A text-generation step has a "prompt" instead.
Example:
[{{"toolName": "write_file", "parameters": {{"path": "notes.txt", "content": "..."}},
   "rationale": "Persist the notes"}},
 {{"prompt": "Summarize the findings", "rationale": "To present the results"}}]

User's Goal: {goal}

Provide the plan as a JSON array. Do not use ``` or ```json tags."""

CORRECTION_PROMPT = (
    "The previous attempt to call tool '{tool_name}' failed due to invalid parameters. "
    "Error: {error}. Original goal: {goal}. "
    "Please provide the correct parameters for tool '{tool_name}'."
)

TEXT_MODE_PROMPT = """\
When you need to use a tool, respond with JSON like:
{"tool": "<name>", "args": { ... }}
If no tool is needed, respond with:
{"answer": "<final reply to user>"}
Only one object, no extra text.
"""
