from __future__ import annotations

from typing import Optional

from ticket_stream.core.models import TicketRecord, Watermark
from ticket_stream.utils.logging import get_logger


def should_emit(record: TicketRecord, last_seen: Optional[Watermark]) -> bool:
    """
    Decide whether a record carries new information.

    Deleted tickets are never emitted. Otherwise only an exact (id, updated_at)
    match with the last handled record is a duplicate: the export repeats the
    final record of one page as the first record of the next, and the same id
    with a newer updated_at is a real update.
    """
    if record.is_deleted:
        return False
    return last_seen is None or record.watermark != tuple(last_seen)


class WatermarkDeduplicator:
    """Tracks the last seen (id, updated_at) pair across records and pages."""

    def __init__(self, last_seen: Optional[Watermark] = None):
        self.last_seen = last_seen
        self.log = get_logger("ticket_stream.dedupe")

    def check(self, record: TicketRecord) -> bool:
        """Return whether to emit the record, then move the watermark to it."""
        emit = should_emit(record, self.last_seen)
        if not emit:
            if record.is_deleted:
                self.log.info("Deleted ticket skipped: id=%s updated_at=%s", record.id, record.updated_at)
            else:
                self.log.debug("Duplicate boundary ticket skipped: id=%s updated_at=%s", record.id, record.updated_at)
        self.last_seen = record.watermark
        return emit
