from __future__ import annotations
from typing import Protocol
from ticket_stream.core.models import EmittedEvent

class Sink(Protocol):
    """Protocol for event sinks. Retrying failed writes is the sink's concern."""

    def accept(self, event: EmittedEvent) -> None: ...
