"""
Conversation memory.

The transcript is an append-only list of :class:`TranscriptEntry`.  The system prompt is held
separately and placed in front of the entries only when a snapshot is taken, so replacing it never
touches the log itself.
"""

import logging
from typing import (
    FrozenSet,
    Iterable,
    List,
    Protocol,
    Tuple,
)

from agentry.core.schema import (
    Role,
    ToolCallContent,
    ToolResultContent,
    TranscriptEntry,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "No System Prompt Given"


class TranscriptSink(Protocol):
    """Receives every entry after it has been appended (e.g. a durable log)."""

    def record(self, entry: TranscriptEntry) -> None:
        ...


class Memory:
    """Ordered transcript plus the current system prompt."""

    def __init__(
        self, system_prompt: str | None = None, sinks: Iterable[TranscriptSink] = ()
    ) -> None:
        if system_prompt is None:
            logger.info("No system prompt given; using the default")
            system_prompt = DEFAULT_SYSTEM_PROMPT
        self._system = TranscriptEntry.system(system_prompt)
        self._entries: List[TranscriptEntry] = []
        self._sinks: List[TranscriptSink] = list(sinks)
        # ids issued by the most recent tool-call entry
        self._open_call_ids: FrozenSet[str] = frozenset()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def system_prompt(self) -> str:
        return self._system.text

    def set_system_prompt(self, text: str) -> None:
        """Replace the system prompt used by subsequent snapshots."""
        self._system = TranscriptEntry.system(text)

    def add_sink(self, sink: TranscriptSink) -> None:
        """Forward entries appended from now on to *sink* as well."""
        self._sinks.append(sink)

    def append(self, entry: TranscriptEntry) -> None:
        """
        Append *entry* to the transcript and forward it to every sink.

        Raises
        ------
        ValueError
            For system entries (use :meth:`set_system_prompt`) and for tool results whose id was
            not issued by the latest tool-call entry.
        """
        content = entry.content
        if entry.role is Role.SYSTEM:
            raise ValueError("System entries are not stored; use set_system_prompt().")
        if (
            isinstance(content, ToolResultContent)
            and content.tool_call_id not in self._open_call_ids
        ):
            raise ValueError(
                f"Tool result references unknown tool call id '{content.tool_call_id}'"
            )
        if isinstance(content, ToolCallContent):
            self._open_call_ids = frozenset(call.id for call in content.calls)

        self._entries.append(entry)
        for sink in self._sinks:
            sink.record(entry)

    def snapshot(self) -> Tuple[TranscriptEntry, ...]:
        """Return the history with the current system prompt first."""
        return (self._system, *self._entries)
