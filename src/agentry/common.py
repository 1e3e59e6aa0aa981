"""Console helpers shared by the interactive shell."""

from enum import Enum
from typing import Any

from agentry.core.schema import Role


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


_ROLE_COLORS = {
    Role.SYSTEM: AnsiColors.GREY,
    Role.USER: AnsiColors.BLUE,
    Role.ASSISTANT: AnsiColors.YELLOW,
    Role.TOOL: AnsiColors.GREEN,
}


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}\033[0m", *args, **kwargs)  # ANSI reset at the end


def role_color(role: Role) -> AnsiColors:
    """Return the color used to render transcript entries of *role*."""
    return _ROLE_COLORS[role]
