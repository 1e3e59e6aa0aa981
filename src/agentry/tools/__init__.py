"""
Tool contract for Agentry.

A tool is a named, described unit of capability with an explicitly declared parameter schema and an
async execution body returning text.  Concrete tools either subclass :class:`Tool` or wrap a plain
function with the :func:`tool` decorator:

    @tool("add", "Add two numbers.", parameters=[
        ParameterSpec(name="a", kind=ParameterKind.NUMBER),
        ParameterSpec(name="b", kind=ParameterKind.NUMBER),
    ])
    def add(a: float, b: float) -> str:
        return str(a + b)

Tools are registered with a :class:`agentry.agent.toolkit.Toolkit`, which validates parameters
before calling :meth:`Tool.run`.
"""

import asyncio
import inspect
import json
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    Optional,
    Type,
)

from pydantic import (
    BaseModel,
    ValidationError,
)

from agentry.core.exceptions import ConfigurationError
from agentry.tools.schema import (
    ParameterKind,
    ParameterSpec,
    ToolSchema,
    validate_parameters,
)

__all__ = [
    "FunctionTool",
    "ParameterKind",
    "ParameterSpec",
    "Tool",
    "ToolSchema",
    "format_validation_error",
    "tool",
]


def format_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic error into a single line a model can act on."""
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
        for err in exc.errors()
    )


class Tool(ABC):
    """
    Base class for tools.

    Subclasses may set :attr:`input_model` to a pydantic model; validated parameters are then
    deserialized into that model before :meth:`run` is called.  Otherwise :meth:`run` receives the
    parameter dict as-is.
    """

    input_model: ClassVar[Optional[Type[BaseModel]]] = None

    def __init__(self, name: str, description: str, schema: ToolSchema | None = None) -> None:
        if not name or not name.strip():
            raise ConfigurationError("Tool name must not be empty.")
        self.name = name
        self.description = description
        self.schema = schema or ToolSchema()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    def validate(self, parameters: Dict[str, Any]) -> Optional[str]:
        """Return a validation error message, or ``None`` when *parameters* are acceptable."""
        error = validate_parameters(self.schema, parameters)
        if error is not None or self.input_model is None:
            return error
        try:
            self.input_model.model_validate(parameters)
        except ValidationError as exc:
            return format_validation_error(exc)
        return None

    def parse_input(self, parameters: Dict[str, Any]) -> Any:
        """Deserialize validated parameters into the shape :meth:`run` expects."""
        if self.input_model is None:
            return parameters
        return self.input_model.model_validate(parameters)

    @abstractmethod
    async def run(self, arguments: Any) -> str:
        """Execute the tool and return its textual result."""

    def describe(self) -> str:
        """One capability-list entry: name, description and schema."""
        return (
            f"- {self.name}: {self.description}\n"
            f"  Schema: {json.dumps(self.schema.to_json_schema())}"
        )

    def definition(self) -> Dict[str, Any]:
        """Function-calling definition in the OpenAI ``tools`` format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.schema.to_json_schema(),
            },
        }


class FunctionTool(Tool):
    """Adapts a plain (sync or async) function to the :class:`Tool` contract."""

    def __init__(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
        parameters: Iterable[ParameterSpec] = (),
    ) -> None:
        super().__init__(
            name=name or fn.__name__,
            description=description or inspect.getdoc(fn) or "",
            schema=ToolSchema(parameters=tuple(parameters)),
        )
        self._fn = fn

    async def run(self, arguments: Any) -> str:
        if inspect.iscoroutinefunction(self._fn):
            result = await self._fn(**arguments)
        else:
            # Sync bodies may block (file or network I/O); keep them off the event loop
            result = await asyncio.to_thread(self._fn, **arguments)
        if inspect.isawaitable(result):
            result = await result
        return "" if result is None else str(result)


def tool(
    name: str, description: str | None = None, parameters: Iterable[ParameterSpec] = ()
) -> Callable[[Callable[..., Any]], FunctionTool]:
    """
    Turn a function into a :class:`FunctionTool`.

    Parameters
    ----------
    name: str
        The tool name.  It must be unique within the toolkit the tool is added to.
    description: str, optional
        Shown to the model; defaults to the function's docstring.
    parameters: iterable of ParameterSpec
        The declared parameters, validated before every call.

    Returns
    -------
    Callable
        A decorator producing the tool object (the function itself is wrapped, not returned).
    """

    def wrapper(fn: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(fn, name=name, description=description, parameters=parameters)

    return wrapper
