"""Tests for the logging helpers."""

import logging
import os
import tempfile
import unittest

from proxy_viewer.utils.logging import LogFormatter, PerformanceLogger, log_exception, setup_logging


class PerformanceLoggerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("proxy_viewer.tests.perf")

    def test_end_logs_duration(self) -> None:
        perf = PerformanceLogger(self.logger, "Rewriter")
        perf.start("rewrite")

        with self.assertLogs(self.logger, level="DEBUG") as logs:
            duration = perf.end("rewrite")

        self.assertGreaterEqual(duration, 0.0)
        self.assertIn("Rewriter rewrite took", logs.output[0])

    def test_end_without_start_warns(self) -> None:
        perf = PerformanceLogger(self.logger, "Rewriter")

        with self.assertLogs(self.logger, level="WARNING"):
            self.assertEqual(perf.end("never-started"), 0.0)


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("proxy_viewer")
        self.saved_handlers = list(self.logger.handlers)
        self.saved_level = self.logger.level

    def tearDown(self) -> None:
        for handler in list(self.logger.handlers):
            if handler not in self.saved_handlers:
                handler.close()
            self.logger.removeHandler(handler)
        for handler in self.saved_handlers:
            self.logger.addHandler(handler)
        self.logger.setLevel(self.saved_level)

    def test_configures_package_logger_despite_null_handler(self) -> None:
        self.assertTrue(any(isinstance(h, logging.NullHandler) for h in self.logger.handlers))

        logger = setup_logging(console_level="WARNING")

        self.assertIs(logger, self.logger)
        self.assertEqual(logger.level, logging.WARNING)
        self.assertTrue(any(type(h) is logging.StreamHandler for h in logger.handlers))

    def test_file_and_console_handlers(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            log_file = os.path.join(tmpdir, "logs", "viewer.log")
            before = len(self.logger.handlers)

            logger = setup_logging(log_file, console_level="WARNING", file_level="DEBUG")

            self.assertEqual(logger.level, logging.DEBUG)
            self.assertEqual(len(logger.handlers), before + 2)
            self.assertTrue(os.path.isdir(os.path.dirname(log_file)))

            # Already configured loggers are returned untouched
            self.assertIs(setup_logging(log_file), logger)
            self.assertEqual(len(logger.handlers), before + 2)
            self.tearDown()

    def test_log_exception_carries_traceback(self) -> None:
        logger = logging.getLogger("proxy_viewer.tests.setup")
        try:
            raise ValueError("boom")
        except ValueError as e:
            with self.assertLogs(logger, level="ERROR") as logs:
                log_exception(logger, e, "Rewrite failed")

        self.assertIn("Rewrite failed: boom", logs.output[0])
        self.assertIn("Traceback", logs.output[0])


class LogFormatterTests(unittest.TestCase):
    def test_plain_output_when_uncolored(self) -> None:
        formatter = LogFormatter(colored=False, fmt="[%(levelname)s] %(message)s")
        record = logging.LogRecord("x", logging.WARNING, __file__, 1, "careful", None, None)

        self.assertEqual(formatter.format(record), "[WARNING] careful")


if __name__ == "__main__":
    unittest.main()
