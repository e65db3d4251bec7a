import json
import os
import queue
import shutil
import tempfile
import unittest
from unittest.mock import patch

from ticket_stream.sinks.jsonl_sink import JsonlSink
from ticket_stream.sinks.queue_sink import QueueSink


class TestJsonlSink(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_appends_one_line_per_event(self):
        path = os.path.join(self.tmp_dir, "out", "tickets.jsonl")
        sink = JsonlSink(path)

        sink.accept({"type": "ticket", "id": 1, "subject": "Ünïcode"})
        sink.accept({"type": "ticket", "id": 2})

        with open(path, encoding="utf-8") as f:
            lines = [json.loads(line) for line in f]
        self.assertEqual([line["id"] for line in lines], [1, 2])
        self.assertEqual(lines[0]["subject"], "Ünïcode")
        self.assertEqual(sink.written, 2)

    def test_stdout(self):
        sink = JsonlSink("-")
        with patch("sys.stdout") as stdout:
            sink.accept({"type": "ticket", "id": 3})
        written = "".join(call.args[0] for call in stdout.write.call_args_list)
        self.assertEqual(json.loads(written), {"type": "ticket", "id": 3})


class TestQueueSink(unittest.TestCase):
    def test_puts_events_on_queue(self):
        q = queue.Queue()
        QueueSink(q).accept({"type": "ticket", "id": 1})
        self.assertEqual(q.get_nowait()["id"], 1)

    def test_full_bounded_queue_raises(self):
        sink = QueueSink(queue.Queue(maxsize=1), timeout_s=0.01)
        sink.accept({"id": 1})
        with self.assertRaises(queue.Full):
            sink.accept({"id": 2})


if __name__ == "__main__":
    unittest.main()
