"""
Built-in tools.

``echo`` and ``log_message`` are plain function tools; the file tools are :class:`Tool` subclasses
confined to a root directory (``settings.DATA_DIR`` by default).
"""

import asyncio
import logging
from pathlib import Path
from typing import List

from pydantic import (
    BaseModel,
    Field,
)

from agentry.config import settings
from agentry.tools import (
    ParameterSpec,
    Tool,
    ToolSchema,
    tool,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Function tools
# ---------------------------------------------------------------------------
@tool(
    "echo",
    "Return the given text unchanged.",
    parameters=[ParameterSpec(name="text", description="Text to echo back.")],
)
def echo(text: str) -> str:
    return text


@tool(
    "log_message",
    "Write a message to the application log.",
    parameters=[ParameterSpec(name="message", description="Message to log.")],
)
def log_message(message: str) -> str:
    logger.info("log_message: %s", message)
    return "Log Success"


# ---------------------------------------------------------------------------
# File tools
# ---------------------------------------------------------------------------
class WriteFileInput(BaseModel):
    path: str = Field(..., min_length=1)
    content: str


class ReadFileInput(BaseModel):
    path: str = Field(..., min_length=1)


class _FileTool(Tool):
    """Shared path handling: every path is resolved under ``root`` and may not escape it."""

    def __init__(
        self, name: str, description: str, schema: ToolSchema, root: str | Path | None = None
    ) -> None:
        super().__init__(name, description, schema)
        self.root = Path(root if root is not None else settings.DATA_DIR).resolve()

    def resolve(self, path: str) -> Path:
        target = (self.root / path).resolve()
        if target != self.root and self.root not in target.parents:
            raise PermissionError(f"Path '{path}' is outside the tool's root directory")
        return target


class WriteFileTool(_FileTool):
    """Write text to a file, creating parent directories as needed."""

    input_model = WriteFileInput

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__(
            "write_file",
            "Write text content to a file. Paths are relative to the workspace; wildcards are "
            "not allowed.",
            ToolSchema.of(
                ParameterSpec(name="path", description="Relative path of the file to write."),
                ParameterSpec(name="content", description="The text to write."),
            ),
            root=root,
        )

    async def run(self, arguments: WriteFileInput) -> str:
        target = self.resolve(arguments.path)
        target.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, arguments.content, encoding="utf-8")
        logger.debug("Wrote %d characters to %s", len(arguments.content), target)
        return f"Successfully wrote to {arguments.path}"


class ReadFileTool(_FileTool):
    """Read a text file."""

    input_model = ReadFileInput

    def __init__(self, root: str | Path | None = None) -> None:
        super().__init__(
            "read_file",
            "Read the text content of a file. Paths are relative to the workspace.",
            ToolSchema.of(
                ParameterSpec(name="path", description="Relative path of the file to read."),
            ),
            root=root,
        )

    async def run(self, arguments: ReadFileInput) -> str:
        target = self.resolve(arguments.path)
        if not target.is_file():
            return f"Error: File not found at {arguments.path}"
        return await asyncio.to_thread(target.read_text, encoding="utf-8")


def default_tools(root: str | Path | None = None) -> List[Tool]:
    """The tool set of the interactive shell."""
    return [echo, log_message, WriteFileTool(root), ReadFileTool(root)]
