import logging
import os
import tempfile
import unittest
from logging.handlers import RotatingFileHandler

from voice_relay.config.logging_config import configure_logging


class TestLoggingConfig(unittest.TestCase):
    def test_configure_logging(self):
        # Test that the function returns a logger
        logger = configure_logging("INFO", log_file=None)
        self.assertIsInstance(logger, logging.Logger)

        # Test that the logger has the correct name
        self.assertEqual(logger.name, "voice_relay")

        # Test that the logger has the correct level
        self.assertEqual(logger.level, logging.INFO)

        # Console only when no log file is configured
        self.assertEqual(len(logger.handlers), 1)
        handler = logger.handlers[0]
        self.assertIsInstance(handler, logging.StreamHandler)
        formatter = handler.formatter
        self.assertEqual(formatter._fmt, "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        self.assertFalse(logger.propagate)

    def test_log_file_gets_rotating_handler(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = os.path.join(tmp_dir, "nested", "relay.log")
            logger = configure_logging("INFO", log_file=log_file)
            try:
                file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
                self.assertEqual(len(file_handlers), 1)
                self.assertEqual(file_handlers[0].baseFilename, os.path.abspath(log_file))

                logger.info("call started")
                file_handlers[0].flush()
                with open(log_file) as f:
                    self.assertIn("call started", f.read())
            finally:
                configure_logging("INFO", log_file=None)

    def test_reconfigure_replaces_handlers(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = os.path.join(tmp_dir, "relay.log")
            configure_logging("INFO", log_file=log_file)
            logger = configure_logging("DEBUG", log_file=log_file)
            try:
                self.assertEqual(logger.level, logging.DEBUG)
                file_handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]
                self.assertEqual(len(file_handlers), 1)
                self.assertEqual(len(logger.handlers), 2)
            finally:
                configure_logging("INFO", log_file=None)

    def test_unknown_level_defaults_to_info(self):
        logger = configure_logging("VERBOSE", log_file="")
        self.assertEqual(logger.level, logging.INFO)
        self.assertEqual(len(logger.handlers), 1)


if __name__ == "__main__":
    unittest.main()
