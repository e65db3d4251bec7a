import os
import sqlite3
import shutil
import tempfile
import unittest
from contextlib import closing
from unittest.mock import Mock

from ticket_stream.core.engine import ExportEngine
from ticket_stream.core.errors import AuthenticationError, ExportClientError, StartTimeTooRecent
from ticket_stream.core.models import CursorState, ExportPage, TicketRecord
from ticket_stream.sinks.queue_sink import QueueSink
from ticket_stream.state.sqlite_store import SQLiteCursorStore
from ticket_stream.transform.translator import TicketTranslator


def ticket(tid, updated_at, **attrs):
    return TicketRecord.from_raw({"id": tid, "updated_at": updated_at, "status": "open", **attrs})


def page(records, next_start_time, end_of_stream=True):
    return ExportPage(records=records, end_of_stream=end_of_stream, next_start_time=next_start_time, count=len(records))


class TestExportEngine(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.store = SQLiteCursorStore(os.path.join(self.tmp_dir, "state.db"))
        self.client = Mock()
        self.client.list_fields.return_value = {"123": "priority_level"}
        self.sink = QueueSink()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def engine(self, lookback_days=-1, **kwargs):
        return ExportEngine(
            export_key="company",
            client=self.client,
            store=self.store,
            translator=TicketTranslator(),
            sink=self.sink,
            lookback_days=lookback_days,
            **kwargs,
        )

    def emitted_ids(self):
        ids = []
        while not self.sink.queue.empty():
            ids.append(self.sink.queue.get_nowait()["id"])
        return ids

    def test_first_run_full_history_then_resume(self):
        self.client.fetch_page.side_effect = [
            page([ticket(1, "t1"), ticket(2, "t2")], next_start_time=2000),
            page([ticket(2, "t2"), ticket(3, "t3")], next_start_time=3000),
        ]
        engine = self.engine()

        first = engine.run_once()
        second = engine.run_once()

        self.assertEqual([c.args[0] for c in self.client.fetch_page.call_args_list], [0, 2000])
        self.assertEqual(self.emitted_ids(), [1, 2, 3])
        self.assertEqual(first.records_emitted, 2)
        self.assertEqual(second.records_emitted, 1)
        self.assertEqual(
            self.store.load("company"),
            CursorState(last_record_id=3, last_record_updated_at="t3", committed_start_time=3000),
        )

    def test_new_engine_instance_resumes_from_store(self):
        self.store.save("company", CursorState(last_record_id=7, last_record_updated_at="t7", committed_start_time=5000))
        self.client.fetch_page.return_value = page([ticket(7, "t7"), ticket(8, "t8")], next_start_time=6000)

        outcome = self.engine(lookback_days=1).run_once()

        self.client.fetch_page.assert_called_once_with(5000)
        self.assertEqual(self.emitted_ids(), [8])
        self.assertEqual(outcome.final_cursor_state.committed_start_time, 6000)

    def test_soft_stall_first_call(self):
        self.client.fetch_page.side_effect = StartTimeTooRecent("Too recent start_time", 422, "fetch_page")

        outcome = self.engine(lookback_days=0).run_once()

        self.assertFalse(outcome.failed)
        self.assertEqual(outcome.records_emitted, 0)
        self.assertEqual(outcome.final_cursor_state, CursorState())
        self.assertIsNone(self.store.load("company"))

    def test_failed_run_keeps_checkpoint_of_processed_pages(self):
        self.client.fetch_page.side_effect = [
            page([ticket(1, "t1")], next_start_time=2000, end_of_stream=False),
            ExportClientError("connection reset", operation="fetch_page"),
        ]

        outcome = self.engine().run_once()

        self.assertTrue(outcome.failed)
        self.assertEqual(self.store.load("company").committed_start_time, 2000)

    def test_credentials_failure_is_reported(self):
        self.client.verify_credentials.side_effect = AuthenticationError("bad credentials", 401, "verify_credentials")

        outcome = self.engine().run_once()

        self.assertTrue(outcome.failed)
        self.assertIn("bad credentials", outcome.error)
        self.client.fetch_page.assert_not_called()

    def test_field_metadata_loaded_each_run(self):
        self.client.fetch_page.return_value = page([ticket(1, "t1", field_123="High")], next_start_time=2000)

        self.engine().run_once()

        event = self.sink.queue.get_nowait()
        self.assertEqual(event["priority_level"], "High")
        self.client.list_fields.assert_called_once_with()

    def test_tickets_disabled(self):
        outcome = self.engine(fetch_tickets=False).run_once()

        self.assertFalse(outcome.failed)
        self.assertEqual(outcome.stop_reason, "disabled")
        self.client.fetch_page.assert_not_called()
        with closing(sqlite3.connect(self.store.path)) as conn:
            rows = conn.execute("SELECT COUNT(*) FROM export_runs").fetchone()[0]
        self.assertEqual(rows, 0)

    def test_stalled_cursor_is_not_replayed_across_runs(self):
        self.client.fetch_page.return_value = page(
            [ticket(1, "t1"), ticket(2, "t2"), ticket(3, "t3")], next_start_time=0, end_of_stream=False
        )
        engine = self.engine()

        engine.run_once()
        second = engine.run_once()

        self.assertEqual(self.emitted_ids(), [1, 2, 3])
        self.assertEqual(second.stop_reason, "loop_detected")
        self.assertEqual(
            self.store.load("company"),
            CursorState(last_record_id=3, last_record_updated_at="t3", committed_start_time=0),
        )


if __name__ == "__main__":
    unittest.main()
