"""Registry of tools; validates parameters and dispatches execution by name."""

import logging
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from pydantic import ValidationError

from agentry.core.exceptions import ConfigurationError
from agentry.tools import (
    Tool,
    format_validation_error,
)
from agentry.tools.tool_call_parser import (
    ToolCallParseError,
    parse_parameters,
)

logger = logging.getLogger(__name__)

NO_TOOLS_PROMPT = "No tools available."


class Toolkit:
    """
    Owns a set of uniquely named tools.

    Recoverable problems (unknown tool, bad parameters, a tool raising) come back from
    :meth:`execute` as descriptive strings so the model can correct itself.  Registering a duplicate
    name is a programming error and raises :class:`ConfigurationError`.
    """

    def __init__(self, tools: Iterable[Tool] = (), log: logging.Logger | None = None) -> None:
        self._tools: Dict[str, Tool] = {}
        self._log = log or logger
        for item in tools:
            self.add(item)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    def add(self, tool: Tool) -> None:
        """Register *tool*; its name must not be taken."""
        if tool.name in self._tools:
            raise ConfigurationError(f"Tool '{tool.name}' is already registered.")
        self._log.debug("Registering tool '%s'", tool.name)
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """The tool registered under *name*, or ``None``."""
        return self._tools.get(name)

    @property
    def tools(self) -> Tuple[Tool, ...]:
        return tuple(self._tools.values())

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def subset(self, names: Iterable[str]) -> "Toolkit":
        """A new toolkit holding only the named tools (unknown names are ignored)."""
        return Toolkit((self._tools[n] for n in names if n in self._tools), log=self._log)

    # ------------------------------------------------------------------ #
    # Capability description
    # ------------------------------------------------------------------ #
    def render(self) -> str:
        """Human/model readable capability list."""
        if not self._tools:
            return NO_TOOLS_PROMPT
        return "Available tools:\n" + "\n".join(t.describe() for t in self._tools.values())

    def definitions(self) -> List[Dict[str, Any]]:
        """Function-calling definitions for every tool."""
        return [t.definition() for t in self._tools.values()]

    # ------------------------------------------------------------------ #
    # Validation / dispatch
    # ------------------------------------------------------------------ #
    def _not_found(self, name: str) -> str:
        available = ", ".join(self._tools) or "none"
        return f"Error: Tool '{name}' not found. Available tools: {available}."

    def check(self, name: str, parameters: Mapping[str, Any]) -> Optional[str]:
        """Validate without executing; returns the error text or ``None``."""
        tool = self.get(name)
        if tool is None:
            return self._not_found(name)
        return tool.validate(dict(parameters))

    async def execute(self, name: str, raw_parameters: str | Mapping[str, Any] | None) -> str:
        """
        Look up *name*, validate *raw_parameters* and run the tool.

        Parameters
        ----------
        name:
            The registered tool name.
        raw_parameters:
            JSON-encoded parameters as produced by a generator, or an already decoded mapping.

        Returns
        -------
        str
            The tool's result verbatim, or a descriptive error string.
        """
        tool = self.get(name)
        if tool is None:
            self._log.warning("Requested tool '%s' is not registered", name)
            return self._not_found(name)

        try:
            parameters = parse_parameters(raw_parameters)
        except ToolCallParseError as exc:
            self._log.warning("Unparseable parameters for tool '%s': %s", name, exc)
            return f"Error: Invalid parameters for tool '{name}': {exc}"

        error = tool.validate(parameters)
        if error is not None:
            self._log.warning("Invalid parameters for tool '%s': %s", name, error)
            return f"Error: Invalid parameters for tool '{name}': {error}"

        try:
            self._log.debug("Executing tool '%s' with args=%s", name, parameters)
            return await tool.run(tool.parse_input(parameters))
        except ConfigurationError:
            raise
        except ValidationError as exc:
            return f"Error: Invalid parameters for tool '{name}': {format_validation_error(exc)}"
        except Exception as exc:  # pylint: disable=broad-except
            self._log.exception("Unhandled error in tool '%s'", name)
            return f"Error: Tool '{name}' raised an error: {exc}"
