"""
Agentry entry point.

This file handles startup concerns (arg-parsing, env setup, logging), builds an agent with the
built-in tools and the configured generator, and launches the interactive shell.
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from agentry.agent.agent import Agent
from agentry.agent.generator import (
    GeneratorMode,
    load_generator,
)
from agentry.client.cli import run_cli
from agentry.config import settings
from agentry.memory.memory_store import JsonlTranscriptLog
from agentry.memory.transcript import Memory
from agentry.tools.builtin import default_tools

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "You are a helpful assistant that completes tasks with the tools available."


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Keep request logging out of the shell
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _run(args: argparse.Namespace) -> None:
    generator = load_generator(mode=args.generator_mode)
    memory = Memory()
    transcript_log = None
    if settings.TRANSCRIPT_LOG:
        transcript_log = JsonlTranscriptLog(settings.TRANSCRIPT_LOG, agent_id=args.agent_id)
        memory.add_sink(transcript_log)
    agent = Agent(
        args.agent_id,
        args.system_prompt,
        generator=generator,
        memory=memory,
        tools=default_tools(settings.DATA_DIR),
    )

    if transcript_log is None:
        await run_cli(agent, plan=args.plan)
        return
    with transcript_log:
        await run_cli(agent, plan=args.plan)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the Agentry shell.

    This function sets up the command-line interface, initializes logging, and runs an agent
    against the configured generator until the user exits.
    """
    if argv is None:
        argv = sys.argv[1:]

    # Ensure the data directory exists
    data_dir = Path(settings.DATA_DIR)
    data_dir.mkdir(parents=True, exist_ok=True)
    # Ensure the data directory is writable
    if not data_dir.is_dir() or not os.access(data_dir, os.W_OK):
        logger.error("Data directory is not writable: %s", data_dir)
        sys.exit(1)

    parser = argparse.ArgumentParser(description="Run an Agentry agent shell")
    parser.add_argument(
        "--plan",
        action="store_true",
        help="Plan each message up front instead of running the tool-calling loop",
    )
    parser.add_argument(
        "--agent-id", default="assistant", help="Id of the agent (default: %(default)s)"
    )
    parser.add_argument("--system-prompt", default=DEFAULT_PROMPT, help="Base system prompt")
    parser.add_argument(
        "--generator-mode",
        choices=[mode.value for mode in GeneratorMode],
        type=str.lower,
        default=settings.GENERATOR_MODE,
        help="How tools are offered to the model (default from env: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    args = parser.parse_args(argv)

    # Override log level setting with command-line argument
    settings.LOG_LEVEL = args.log_level

    _init_logging(settings.LOG_LEVEL)

    logger.info("Starting Agentry [%s mode]", "plan" if args.plan else "loop")
    logger.debug("Settings: %s", settings.model_dump(exclude={"OPENAI_API_KEY"}))

    try:
        asyncio.run(_run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
