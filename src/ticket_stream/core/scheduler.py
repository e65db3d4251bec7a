from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from apscheduler.schedulers.base import STATE_STOPPED
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.date import DateTrigger

from ticket_stream.core.models import RunOutcome
from ticket_stream.utils.logging import get_logger

JOB_ID = "ticket_export"


class CancellationToken:
    """Poll-able stop flag shared by the scheduler and the running export."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self.cancelled


class PollingScheduler:
    """
    Re-runs the export after a fixed pause until stopped.

    The next run is scheduled only once the previous one has finished, so the
    interval is the sleep between runs. Stopping shuts the scheduler down
    without waiting, which ends the sleep at once; a run in progress finishes
    its current page first.
    """

    def __init__(
        self,
        run: Callable[[], RunOutcome],
        interval_minutes: float,
        run_once: bool = False,
        token: Optional[CancellationToken] = None,
        scheduler: Optional[BlockingScheduler] = None,
    ):
        self.run = run
        self.interval = timedelta(minutes=max(0.0, float(interval_minutes)))
        self.run_once = run_once
        self.token = token or CancellationToken()
        self.scheduler = scheduler or BlockingScheduler(timezone=timezone.utc)
        self.last_outcome: Optional[RunOutcome] = None
        self.runs = 0
        self._scheduled = 0
        self.log = get_logger("ticket_stream.scheduler")

    def start(self) -> Optional[RunOutcome]:
        """Run once, or block running the export on the interval until stop() is called."""
        if self.run_once:
            self.log.info("Running a single export (run_once)")
            return self._execute()

        if self.token.cancelled:
            return None

        self._schedule(datetime.now(timezone.utc))
        self.log.info("Starting export scheduler: interval=%s", self.interval)
        self.scheduler.start()
        self.log.info("Export scheduler stopped after %s runs", self.runs)
        return self.last_outcome

    def stop(self) -> None:
        """Request cancellation; aborts the inter-run sleep immediately."""
        self.token.cancel()
        if self.scheduler.state != STATE_STOPPED:
            self.scheduler.shutdown(wait=False)

    def _tick(self) -> None:
        if self.token.cancelled:
            return
        try:
            self._execute()
        finally:
            if self.token.cancelled:
                self.stop()
            else:
                next_run = datetime.now(timezone.utc) + self.interval
                self.log.info("Sleeping before next run ... next_run=%s", next_run.isoformat(timespec="seconds"))
                self._schedule(next_run)

    def _execute(self) -> RunOutcome:
        outcome = self.run()
        self.runs += 1
        self.last_outcome = outcome
        return outcome

    def _schedule(self, run_date: datetime) -> None:
        # One job per run; ids never repeat while a finished job is still being cleaned up.
        self._scheduled += 1
        self.scheduler.add_job(
            self._tick,
            trigger=DateTrigger(run_date=run_date),
            id=f"{JOB_ID}-{self._scheduled}",
            name="Incremental ticket export",
            max_instances=1,
            misfire_grace_time=None,
        )
