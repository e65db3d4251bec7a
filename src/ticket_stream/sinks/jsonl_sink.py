from __future__ import annotations

import json
import sys
from pathlib import Path

from ticket_stream.core.models import EmittedEvent
from ticket_stream.sinks.base import Sink
from ticket_stream.utils.logging import get_logger

STDOUT_PATH = "-"


class JsonlSink(Sink):
    """Sink that appends events to a JSONL (JSON Lines) file, or stdout for "-"."""

    def __init__(self, path: str = STDOUT_PATH):
        self.path = path
        self.written = 0
        self.log = get_logger("ticket_stream.sink.jsonl")
        if path != STDOUT_PATH:
            parent = Path(path).parent
            if str(parent) not in {"", "."}:
                parent.mkdir(parents=True, exist_ok=True)

    def accept(self, event: EmittedEvent) -> None:
        """Write one event as a JSON line and flush it."""
        line = json.dumps(event, ensure_ascii=False, default=str) + "\n"
        if self.path == STDOUT_PATH:
            sys.stdout.write(line)
            sys.stdout.flush()
        else:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line)
        self.written += 1
        self.log.debug("JSONL write: path=%s id=%s", self.path, event.get("id"))
