import time
import unittest

from ticket_stream.core.cursor import EPOCH_ZERO, resolve_start_time
from ticket_stream.core.models import CursorState, TicketRecord


class TestResolveStartTime(unittest.TestCase):
    def test_full_history_without_cursor(self):
        self.assertEqual(resolve_start_time(None, -1), EPOCH_ZERO)
        self.assertEqual(resolve_start_time(CursorState(), -1), 0)

    def test_lookback_days_without_cursor(self):
        expected = time.time() - 7 * 86400
        self.assertAlmostEqual(resolve_start_time(None, 7), expected, delta=5)

    def test_injected_now_is_pure(self):
        self.assertEqual(resolve_start_time(None, 1, now=1_000_000), 1_000_000 - 86400)
        self.assertEqual(resolve_start_time(None, 0.5, now=1_000_000), 1_000_000 - 43200)
        self.assertEqual(resolve_start_time(None, 0, now=1_000_000), 1_000_000)

    def test_committed_start_time_wins(self):
        cursor = CursorState(committed_start_time=1_700_000_000)
        for lookback in (-1, 0, 1, 30):
            self.assertEqual(resolve_start_time(cursor, lookback, now=5), 1_700_000_000)

    def test_watermark_alone_does_not_pin_start(self):
        cursor = CursorState(last_record_id=1, last_record_updated_at="t1")
        self.assertEqual(resolve_start_time(cursor, 1, now=200_000), 200_000 - 86400)

    def test_invalid_lookback(self):
        with self.assertRaises(ValueError):
            resolve_start_time(None, -2)


class TestCursorState(unittest.TestCase):
    def test_empty_cursor_has_no_watermark(self):
        self.assertIsNone(CursorState().watermark)

    def test_advance_and_commit_return_new_values(self):
        cursor = CursorState()
        record = TicketRecord(id=3, updated_at="t3", status="open")

        advanced = cursor.advance(record).with_start_time(1234)

        self.assertEqual(cursor, CursorState())
        self.assertEqual(advanced.watermark, (3, "t3"))
        self.assertEqual(advanced.committed_start_time, 1234)


if __name__ == "__main__":
    unittest.main()
