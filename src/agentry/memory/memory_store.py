"""Persist transcript entries to a lightweight JSON-lines audit trail."""

import json
import logging
from datetime import (
    datetime,
    timezone,
)
from pathlib import Path
from typing import (
    IO,
    Any,
    Optional,
)

from agentry.core.schema import TranscriptEntry

logger = logging.getLogger(__name__)


class JsonlTranscriptLog:
    """
    Transcript sink writing one JSON object per appended entry.

    The caller owns the lifecycle: :meth:`open` before the first entry and :meth:`close` when done,
    or use the instance as a context manager.  Each line carries the id of the agent whose memory
    produced it, so several logs may append to the same file.
    """

    def __init__(self, path: str | Path, agent_id: str | None = None) -> None:
        self.path = Path(path)
        self.agent_id = agent_id
        self._handle: Optional[IO[str]] = None

    def __enter__(self) -> "JsonlTranscriptLog":
        self.open()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        """Create the parent directory and open the file for appending."""
        if self._handle is not None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("a", encoding="utf-8")
        logger.debug("Opened transcript log %s", self.path)

    def close(self) -> None:
        if self._handle is None:
            return
        self._handle.close()
        self._handle = None
        logger.debug("Closed transcript log %s", self.path)

    def record(self, entry: TranscriptEntry) -> None:
        """Append *entry* as one JSON line."""
        if self._handle is None:
            raise RuntimeError(f"Transcript log {self.path} is not open")
        line = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "agent": self.agent_id,
            "entry": entry.model_dump(mode="json"),
        }
        self._handle.write(json.dumps(line) + "\n")
        self._handle.flush()
