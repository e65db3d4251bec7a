from __future__ import annotations

from typing import Callable, List, Optional

from ticket_stream.core.errors import ExportClientError, StartTimeTooRecent, TranslationError
from ticket_stream.core.models import CursorState, EmittedEvent, ExportPage, FieldMap, RunOutcome
from ticket_stream.sinks.base import Sink
from ticket_stream.transform.dedupe import WatermarkDeduplicator
from ticket_stream.transform.translator import Translator
from ticket_stream.utils.logging import get_logger
from ticket_stream.utils.time import epoch_to_iso
from ticket_stream.zendesk.client import ExportClient

STOP_END_OF_STREAM = "end_of_stream"
STOP_SOFT_STALL = "soft_stall"
STOP_LOOP_DETECTED = "loop_detected"
STOP_CANCELLED = "cancelled"
STOP_ERROR = "error"


class PaginationDriver:
    """
    Pulls export pages until the stream is exhausted and emits new tickets.

    Cursor state only moves forward once a whole page has been handled, so a
    page that fails halfway leaves the previous checkpoint untouched.
    """

    def __init__(
        self,
        client: ExportClient,
        translator: Translator,
        sink: Sink,
        checkpoint: Optional[Callable[[CursorState], None]] = None,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ):
        """
        Args:
            client: Remote export client.
            translator: Turns tickets into events.
            sink: Receives emitted events.
            checkpoint: Called with the cursor after every fully processed page.
            is_cancelled: Polled at page boundaries; a true value ends the run cleanly.
        """
        self.client = client
        self.translator = translator
        self.sink = sink
        self.checkpoint = checkpoint
        self.is_cancelled = is_cancelled or (lambda: False)
        self.log = get_logger("ticket_stream.driver")

    def run(self, cursor: CursorState, start_time: int, field_map: FieldMap) -> RunOutcome:
        """
        Drive the export from start_time to the end of the stream.

        Args:
            cursor: Cursor state handed over from the previous run.
            start_time: Epoch seconds for the first request.
            field_map: Ticket field metadata for translation.

        Returns:
            The run outcome carrying the cursor to persist.
        """
        outcome = RunOutcome(final_cursor_state=cursor)
        current_start = int(start_time)

        while True:
            if outcome.pages_fetched and self.is_cancelled():
                self.log.info("Cancellation requested, stopping at page boundary: start_time=%s", current_start)
                outcome.stop_reason = STOP_CANCELLED
                break

            self.log.info(
                "Fetching export page %s: start_time=%s (%s)",
                outcome.pages_fetched + 1,
                current_start,
                epoch_to_iso(current_start),
            )
            try:
                page = self.client.fetch_page(current_start)
            except StartTimeTooRecent as e:
                self.log.info("Export caught up, start_time too recent: start_time=%s detail=%s", current_start, e)
                outcome.stop_reason = STOP_SOFT_STALL
                break
            except ExportClientError as e:
                self.log.error(
                    "Export page fetch failed: operation=%s status=%s start_time=%s error=%s",
                    e.operation or "fetch_page",
                    e.status_code,
                    current_start,
                    e,
                )
                outcome.failed = True
                outcome.stop_reason = STOP_ERROR
                outcome.error = str(e)
                outcome.bump_failure(type(e).__name__)
                break
            except Exception as e:
                self.log.exception("Export page fetch raised unexpectedly: start_time=%s", current_start)
                outcome.failed = True
                outcome.stop_reason = STOP_ERROR
                outcome.error = f"{type(e).__name__}: {e}"
                outcome.bump_failure(type(e).__name__)
                break

            outcome.pages_fetched += 1
            resumed = outcome.pages_fetched == 1 and cursor.committed_start_time == current_start

            try:
                processed = self._process_page(page, outcome.final_cursor_state, field_map, outcome, resumed)
            except Exception as e:
                self.log.error(
                    "Export page aborted, cursor kept at previous page: start_time=%s error=%s: %s",
                    current_start,
                    type(e).__name__,
                    e,
                )
                outcome.failed = True
                outcome.stop_reason = STOP_ERROR
                outcome.error = f"{type(e).__name__}: {e}"
                outcome.bump_failure("page_aborted")
                break

            stalled = page.next_start_time <= current_start
            if not stalled:
                current_start = page.next_start_time
            outcome.final_cursor_state = processed.with_start_time(current_start)
            self._checkpoint(outcome.final_cursor_state)

            if page.end_of_stream:
                outcome.stop_reason = STOP_END_OF_STREAM
                break

            if stalled:
                # A repeated request would return this same page forever.
                self.log.warning(
                    "Export cursor did not advance, ending run: start_time=%s next_start_time=%s records=%s",
                    current_start,
                    page.next_start_time,
                    len(page.records),
                )
                outcome.stop_reason = STOP_LOOP_DETECTED
                outcome.bump_failure("loop_detected")
                break

        self.log.info(
            "Export finished: reason=%s pages=%s emitted=%s skipped=%s failed=%s start_time=%s",
            outcome.stop_reason,
            outcome.pages_fetched,
            outcome.records_emitted,
            outcome.records_skipped,
            outcome.failed,
            outcome.final_cursor_state.committed_start_time,
        )
        return outcome

    def _process_page(
        self,
        page: ExportPage,
        cursor: CursorState,
        field_map: FieldMap,
        outcome: RunOutcome,
        resumed: bool = False,
    ) -> CursorState:
        """
        Emit the page's new tickets and return the cursor advanced past its last record.

        When a run resumes from its committed start_time and the page contains the
        stored watermark record, everything up to that record was handled by an
        earlier run and is skipped.
        """
        dedupe = WatermarkDeduplicator(cursor.watermark)
        events: List[EmittedEvent] = []
        skipped = 0
        last = cursor
        replayed = self._replayed_prefix(page, cursor) if resumed else 0

        for index, record in enumerate(page.records):
            if index < replayed:
                self.log.debug("Replayed ticket skipped: id=%s updated_at=%s", record.id, record.updated_at)
                skipped += 1
            elif dedupe.check(record):
                try:
                    events.append(self.translator.translate(record, field_map))
                except TranslationError as e:
                    self.log.warning("Ticket translation failed, skipped: id=%s error=%s", e.record_id, e)
                    skipped += 1
                    outcome.bump_failure("translation_error")
            else:
                skipped += 1
            last = last.advance(record)

        for event in events:
            self.sink.accept(event)
            outcome.records_emitted += 1

        outcome.records_skipped += skipped
        self.log.info(
            "Page processed: records=%s emitted=%s skipped=%s next_start_time=%s end_of_stream=%s",
            len(page.records),
            len(events),
            skipped,
            page.next_start_time,
            page.end_of_stream,
        )
        return last

    @staticmethod
    def _replayed_prefix(page: ExportPage, cursor: CursorState) -> int:
        """Number of records preceding the watermark record on a resumed page, 0 if it is absent."""
        watermark = cursor.watermark
        if watermark is None:
            return 0
        for index, record in enumerate(page.records):
            if record.watermark == tuple(watermark):
                return index
        return 0

    def _checkpoint(self, state: CursorState) -> None:
        if self.checkpoint is not None:
            self.checkpoint(state)
