"""
Declared parameter schemas for tools.

Every tool states its parameters explicitly (name, kind, required flag, description).  Validation
is a pure function over that declaration; nothing is inferred from Python signatures.
"""

from enum import Enum
from typing import (
    Any,
    Dict,
    Mapping,
    Optional,
    Tuple,
)

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


class ParameterKind(str, Enum):
    """JSON kinds a parameter may declare."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"

    def matches(self, value: Any) -> bool:
        """Return True when *value* (already JSON-decoded) is of this kind."""
        if self is ParameterKind.STRING:
            return isinstance(value, str)
        if self is ParameterKind.BOOLEAN:
            return isinstance(value, bool)
        # bool is an int subclass; never accept it as a number
        if self is ParameterKind.NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self is ParameterKind.INTEGER:
            return isinstance(value, int) and not isinstance(value, bool)
        if self is ParameterKind.ARRAY:
            return isinstance(value, (list, tuple))
        return isinstance(value, Mapping)


class ParameterSpec(BaseModel):
    """One declared tool parameter."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    kind: ParameterKind = ParameterKind.STRING
    description: str = ""
    required: bool = True


class ToolSchema(BaseModel):
    """The full parameter declaration of a tool."""

    model_config = ConfigDict(frozen=True)

    parameters: Tuple[ParameterSpec, ...] = ()

    @model_validator(mode="after")
    def _unique_names(self) -> "ToolSchema":
        seen: set[str] = set()
        for spec in self.parameters:
            if spec.name in seen:
                raise ValueError(f"Duplicate parameter '{spec.name}' in tool schema")
            seen.add(spec.name)
        return self

    @classmethod
    def of(cls, *parameters: ParameterSpec) -> "ToolSchema":
        return cls(parameters=parameters)

    @property
    def required(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.parameters if spec.required)

    def to_json_schema(self) -> Dict[str, Any]:
        """Render as a JSON-schema object, the shape function-calling APIs expect."""
        properties: Dict[str, Any] = {}
        for spec in self.parameters:
            prop: Dict[str, Any] = {"type": spec.kind.value}
            if spec.description:
                prop["description"] = spec.description
            properties[spec.name] = prop
        return {"type": "object", "properties": properties, "required": list(self.required)}


def validate_parameters(schema: ToolSchema, payload: Mapping[str, Any]) -> Optional[str]:
    """
    Check *payload* against *schema*.

    Returns ``None`` when the payload is valid, otherwise a message naming the first offending
    parameter.  Optional parameters may be absent or null; when present they must match their kind.
    """
    for spec in schema.parameters:
        value = payload.get(spec.name)
        if value is None:
            if spec.required:
                return f"Missing required parameter: {spec.name}"
            continue
        if not spec.kind.matches(value):
            return f"Parameter '{spec.name}' has incorrect type. Expected {spec.kind.value}."
    return None
