"""Tests for console logging setup."""

import io
import logging

from ralph.logging_setup import SUCCESS, ColorFormatter, configure_logging


def make_record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord("ralph.test", level, __file__, 1, msg, None, None)


class TestColorFormatter:
    """Tests for ColorFormatter."""

    def test_plain_prefix(self):
        formatter = ColorFormatter(use_color=False)

        assert formatter.format(make_record(logging.INFO, "hello")) == "[INFO] hello"

    def test_warning_label_is_short(self):
        formatter = ColorFormatter(use_color=False)

        assert formatter.format(make_record(logging.WARNING, "careful")) == "[WARN] careful"

    def test_success_level(self):
        formatter = ColorFormatter(use_color=False)

        assert formatter.format(make_record(SUCCESS, "done")) == "[SUCCESS] done"

    def test_colored_prefix(self):
        formatter = ColorFormatter(use_color=True)

        output = formatter.format(make_record(logging.ERROR, "bad"))

        assert output.startswith("\033[0;31m[ERROR]\033[0m")


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_info_by_default(self):
        stream = io.StringIO()
        logger = configure_logging(stream=stream)

        logging.getLogger("ralph.engine").debug("hidden")
        logging.getLogger("ralph.engine").info("shown")

        assert logger.level == logging.INFO
        assert stream.getvalue() == "[INFO] shown\n"

    def test_verbose_shows_debug(self):
        stream = io.StringIO()
        configure_logging(verbose=True, stream=stream)

        logging.getLogger("ralph.config").debug("details")

        assert "[DEBUG] details" in stream.getvalue()

    def test_quiet_wins_over_verbose(self):
        stream = io.StringIO()
        configure_logging(verbose=True, quiet=True, stream=stream)

        logging.getLogger("ralph").info("hidden")
        logging.getLogger("ralph").warning("shown")

        assert stream.getvalue() == "[WARN] shown\n"

    def test_reconfigure_replaces_handler(self):
        configure_logging(stream=io.StringIO())
        logger = configure_logging(stream=io.StringIO())

        assert len(logger.handlers) == 1
