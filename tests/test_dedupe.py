import itertools
import unittest

from ticket_stream.core.models import TicketRecord
from ticket_stream.transform.dedupe import WatermarkDeduplicator, should_emit


def ticket(tid, updated_at, status="open"):
    return TicketRecord(id=tid, updated_at=updated_at, status=status, attributes={"id": tid})


class TestShouldEmit(unittest.TestCase):
    def test_deleted_never_emitted(self):
        statuses = ["new", "open", "pending", "solved", "closed", "deleted", "DELETED"]
        watermarks = [None, (1, "t1"), (2, "t2")]
        for status, tid, last_seen in itertools.product(statuses, [1, 2, 3], watermarks):
            record = ticket(tid, f"t{tid}", status=status)
            if status.lower() == "deleted":
                self.assertFalse(should_emit(record, last_seen), (status, tid, last_seen))

    def test_exact_pair_is_skipped(self):
        self.assertFalse(should_emit(ticket(5, "T"), (5, "T")))

    def test_same_id_new_timestamp_is_emitted(self):
        self.assertTrue(should_emit(ticket(5, "T+1"), (5, "T")))

    def test_same_timestamp_other_id_is_emitted(self):
        self.assertTrue(should_emit(ticket(6, "T"), (5, "T")))

    def test_no_watermark_emits(self):
        self.assertTrue(should_emit(ticket(5, "T"), None))

    def test_watermark_loaded_as_list(self):
        self.assertFalse(should_emit(ticket(5, "T"), [5, "T"]))


class TestWatermarkDeduplicator(unittest.TestCase):
    def test_boundary_duplicate_skipped_exactly_once(self):
        deduper = WatermarkDeduplicator((5, "T"))

        first = deduper.check(ticket(5, "T"))
        update = deduper.check(ticket(5, "T+1"))

        self.assertFalse(first)
        self.assertTrue(update)
        self.assertEqual(deduper.last_seen, (5, "T+1"))

    def test_watermark_moves_past_deleted(self):
        deduper = WatermarkDeduplicator()

        self.assertFalse(deduper.check(ticket(7, "t7", status="deleted")))
        self.assertEqual(deduper.last_seen, (7, "t7"))


if __name__ == "__main__":
    unittest.main()
