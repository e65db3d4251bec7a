from __future__ import annotations

import time
from typing import Callable, Optional

from ticket_stream.core.cursor import resolve_start_time
from ticket_stream.core.driver import STOP_ERROR, PaginationDriver
from ticket_stream.core.errors import ExportClientError
from ticket_stream.core.models import CursorState, RunOutcome
from ticket_stream.sinks.base import Sink
from ticket_stream.state.base import CursorStore
from ticket_stream.transform.translator import Translator
from ticket_stream.utils.logging import get_logger
from ticket_stream.utils.time import epoch_to_iso
from ticket_stream.zendesk.client import ExportClient


class ExportEngine:
    """
    Runs one incremental export for a single Zendesk domain.

    The cursor is loaded at the start of a run, handed to the pagination driver
    and checkpointed to the store after every processed page.
    """

    def __init__(
        self,
        export_key: str,
        client: ExportClient,
        store: CursorStore,
        translator: Translator,
        sink: Sink,
        lookback_days: float = 1,
        fetch_tickets: bool = True,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the engine with its collaborators.

        Args:
            export_key: Key under which the cursor is stored, normally the domain.
            client: Remote export client.
            store: Persistent cursor store.
            translator: Ticket to event translator.
            sink: Output sink.
            lookback_days: First-run reach in days, -1 for full history.
            fetch_tickets: When false every run is a no-op.
            is_cancelled: Cancellation poll consulted at page boundaries.
        """
        self.export_key = export_key
        self.client = client
        self.store = store
        self.translator = translator
        self.sink = sink
        self.lookback_days = lookback_days
        self.fetch_tickets = fetch_tickets
        self.is_cancelled = is_cancelled
        self.log = get_logger("ticket_stream.engine")

    def run_once(self) -> RunOutcome:
        """
        Execute one export run.

        Returns:
            A RunOutcome; remote failures are reported through it, never raised.
        """
        started = time.monotonic()
        if not self.fetch_tickets:
            self.log.info("Ticket fetching disabled, nothing to do: key=%s", self.export_key)
            return RunOutcome(final_cursor_state=self.store.load(self.export_key) or CursorState(), stop_reason="disabled")

        run_number = self.store.mark_run_started(self.export_key)
        cursor = self.store.load(self.export_key) or CursorState()

        self.log.info(
            "Export run %s started: key=%s watermark=%s committed_start_time=%s",
            run_number,
            self.export_key,
            cursor.watermark,
            cursor.committed_start_time,
        )

        start_time = resolve_start_time(cursor, self.lookback_days)
        self.log.info("Resolved start_time=%s (%s)", start_time, epoch_to_iso(start_time))

        try:
            self.client.verify_credentials()
            field_map = self.client.list_fields()
        except ExportClientError as e:
            self.log.error(
                "Export run setup failed: operation=%s status=%s error=%s",
                e.operation,
                e.status_code,
                e,
            )
            outcome = RunOutcome(final_cursor_state=cursor, failed=True, stop_reason=STOP_ERROR, error=str(e))
            outcome.bump_failure(type(e).__name__)
            return outcome

        driver = PaginationDriver(
            client=self.client,
            translator=self.translator,
            sink=self.sink,
            checkpoint=self._save,
            is_cancelled=self.is_cancelled,
        )
        outcome = driver.run(cursor, start_time, field_map)

        if outcome.final_cursor_state != cursor:
            self._save(outcome.final_cursor_state)
        if not outcome.failed:
            self.store.mark_run_completed(self.export_key)

        self.log.info(
            "Export run %s completed in %.2f minutes: emitted=%s failed=%s",
            run_number,
            (time.monotonic() - started) / 60,
            outcome.records_emitted,
            outcome.failed,
        )
        return outcome

    def _save(self, state: CursorState) -> None:
        self.store.save(self.export_key, state)
