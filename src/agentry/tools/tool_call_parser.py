"""
Lenient parsing of model output.

Models wrap JSON in markdown fences, prepend chatter, or encode parameters as strings.  The helpers
here recover the JSON payload and normalise it:

- :func:`extract_json` finds the outermost JSON object/array in free text.
- :func:`parse_parameters` turns raw tool parameters (string or mapping) into a dict.
- :func:`parse_tool_call` reads text-mode replies shaped like
  ``{"tool": "<name>", "args": { ... }}`` or ``{"answer": "<reply>"}``.
"""

import json
import re
from typing import (
    Any,
    Dict,
    List,
    Mapping,
    Optional,
    Tuple,
)


class ToolCallParseError(ValueError):
    """Raised when model output cannot be parsed into tool parameters or a tool call."""


_FENCE = re.compile(r"```(?:json)?\s*(.+?)```", re.DOTALL)
_OPENERS = {"{": "}", "[": "]"}


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
def _skip_string(s: str, i: int) -> int:
    """Given s[i] == '"', return index just past the closing quote."""
    i += 1
    while i < len(s):
        ch = s[i]
        if ch == "\\":
            i += 2
            continue
        if ch == '"':
            return i + 1
        i += 1
    raise ToolCallParseError("unterminated string literal")


def _find_matching(s: str, i: int) -> int:
    """Given s[i] is '{' or '[', return index just past its matching closer."""
    stack: List[str] = []
    while i < len(s):
        ch = s[i]
        if ch == '"':
            i = _skip_string(s, i)
            continue
        if ch in _OPENERS:
            stack.append(_OPENERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
            if not stack:
                return i + 1
        i += 1
    raise ToolCallParseError("unbalanced brackets")


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def extract_json(content: str) -> str:
    """Return the outermost JSON object or array embedded in *content*.

    Markdown code fences are stripped first.  When no bracket is found, or the brackets do not
    balance, the cleaned text is returned so the caller's ``json.loads`` reports the error.
    """
    match = _FENCE.search(content)
    if match:
        content = match.group(1).strip()

    # Remove control characters except whitespace
    content = "".join(ch for ch in content if ch >= " " or ch in "\n\r\t")

    starts = [idx for idx in (content.find("{"), content.find("[")) if idx >= 0]
    if not starts:
        return content.strip()
    start = min(starts)
    try:
        return content[start : _find_matching(content, start)]
    except ToolCallParseError:
        return content.strip()


def parse_parameters(raw: str | Mapping[str, Any] | None) -> Dict[str, Any]:
    """Decode raw tool parameters into a dict.

    Raises
    ------
    ToolCallParseError
        If *raw* is not valid JSON or does not decode to an object.
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)

    text = raw.strip() or "{}"
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        try:
            value = json.loads(extract_json(text))
        except json.JSONDecodeError as exc:
            raise ToolCallParseError(f"parameters are not valid JSON: {exc.msg}") from exc

    if not isinstance(value, dict):
        raise ToolCallParseError("parameters must be a JSON object")
    return value


def _call_from(obj: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    name = obj.get("tool") or obj.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ToolCallParseError("'tool' name is empty")
    args = obj.get("args", obj.get("parameters"))
    return name.strip(), parse_parameters(args)


def parse_tool_call(text: str) -> Tuple[List[Tuple[str, Dict[str, Any]]], Optional[str]]:
    """
    Best-effort parser for text-mode replies.

    Returns ``(calls, answer)`` where *calls* is a list of ``(tool_name, args)`` pairs.  Replies
    that are not JSON, or JSON of an unexpected shape, are treated as a direct answer.
    """
    cleaned = extract_json(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        return [], text

    if isinstance(parsed, dict) and "tool" in parsed:
        return [_call_from(parsed)], None
    if isinstance(parsed, dict) and "answer" in parsed:
        return [], str(parsed["answer"])

    items: List[Any] = []
    if isinstance(parsed, list):
        items = parsed
    elif isinstance(parsed, dict) and isinstance(parsed.get("tool_calls"), list):
        items = parsed["tool_calls"]
    calls = [_call_from(item) for item in items if isinstance(item, Mapping)]
    if calls:
        return calls, None
    return [], text
