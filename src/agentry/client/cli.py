"""Interactive console shell around a single agent."""

import asyncio
import logging
from typing import Tuple

from agentry.agent.agent import Agent
from agentry.common import (
    AnsiColors,
    colored_print,
    role_color,
)
from agentry.core.schema import (
    Role,
    ToolCallContent,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI Client
# ---------------------------------------------------------------------------
def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


def show_new_entries(agent: Agent, seen: int) -> int:
    """Print the tool traffic appended since *seen* entries; returns the new entry count."""
    entries = agent.memory.snapshot()[1:]
    for entry in entries[seen:]:
        if entry.role is Role.TOOL or isinstance(entry.content, ToolCallContent):
            colored_print(entry.text, role_color(entry.role))
    return len(entries)


async def run_cli(agent: Agent, plan: bool = False) -> None:
    """
    Read messages from stdin and answer them with *agent* until the user quits.

    With *plan* set every message is treated as a goal for :meth:`Agent.execute`.
    """
    colored_print(
        f"\n🔮 Agentry shell [{agent.agent_id}] - type 'exit' or 'quit' (or Ctrl+C) to exit",
        AnsiColors.GREEN,
    )
    seen = len(agent.memory)
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = await asyncio.to_thread(get_user_message)
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        if plan:
            reply = await agent.execute(user_msg)
        else:
            reply = await agent.process_message(user_msg)
        seen = show_new_entries(agent, seen)
        colored_print(reply, AnsiColors.YELLOW)
