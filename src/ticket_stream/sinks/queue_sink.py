from __future__ import annotations

import queue
from typing import Optional

from ticket_stream.core.models import EmittedEvent
from ticket_stream.sinks.base import Sink


class QueueSink(Sink):
    """Sink that hands events to an in-process queue consumed by another component."""

    def __init__(self, target: Optional[queue.Queue] = None, timeout_s: Optional[float] = None):
        self.queue = target if target is not None else queue.Queue()
        self.timeout_s = timeout_s

    def accept(self, event: EmittedEvent) -> None:
        # Blocks on a bounded queue; queue.Full propagates to fail the page.
        self.queue.put(event, timeout=self.timeout_s)
