import logging
import os
import shutil
import tempfile
import unittest
from unittest.mock import patch

from ticket_stream.utils.logging import get_logger, setup_logging


class TestGetLogger(unittest.TestCase):
    def test_names_live_under_package_logger(self):
        self.assertEqual(get_logger("driver").name, "ticket_stream.driver")
        self.assertEqual(get_logger("ticket_stream.engine").name, "ticket_stream.engine")
        self.assertEqual(get_logger("ticket_stream").name, "ticket_stream")


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.package_logger = logging.getLogger("ticket_stream")
        self.saved_level = self.package_logger.level

    def tearDown(self):
        self.package_logger.setLevel(self.saved_level)
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    @patch("ticket_stream.utils.logging.logging.config.dictConfig")
    def test_loads_yaml_config(self, dict_config):
        path = os.path.join(self.tmp_dir, "logging.yaml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("version: 1\ndisable_existing_loggers: false\n")

        setup_logging(path)

        dict_config.assert_called_once_with({"version": 1, "disable_existing_loggers": False})

    @patch("ticket_stream.utils.logging.logging.basicConfig")
    def test_missing_file_falls_back_and_applies_level(self, basic_config):
        setup_logging(os.path.join(self.tmp_dir, "missing.yaml"), level="debug")

        basic_config.assert_called_once()
        self.assertEqual(self.package_logger.level, logging.DEBUG)
        self.assertEqual(logging.getLogger("apscheduler").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
