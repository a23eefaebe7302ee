"""Console logging for the ralph package.

Log records are printed as ``[LEVEL] message`` with an ANSI colour per
level. A SUCCESS level sits between INFO and WARNING for positive milestones
(archive done, PR created, run complete).
"""

import logging
import sys
from typing import TextIO

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

_LOG_COLORS = {
    "DEBUG": "\033[0;36m",  # Cyan
    "INFO": "\033[0;34m",  # Blue
    "SUCCESS": "\033[0;32m",  # Green
    "WARNING": "\033[1;33m",  # Yellow
    "ERROR": "\033[0;31m",  # Red
    "CRITICAL": "\033[0;31m",
    "RESET": "\033[0m",
}

# Short labels printed in the prefix
_LABELS = {"WARNING": "WARN"}


class ColorFormatter(logging.Formatter):
    """Formatter that prefixes each message with a coloured level tag."""

    def __init__(self, use_color: bool = True) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        label = _LABELS.get(record.levelname, record.levelname)
        if self.use_color and record.levelname in _LOG_COLORS:
            tag = f"{_LOG_COLORS[record.levelname]}[{label}]{_LOG_COLORS['RESET']}"
        else:
            tag = f"[{label}]"
        return f"{tag} {message}"


def configure_logging(
    verbose: bool = False,
    quiet: bool = False,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install the console handler on the ``ralph`` logger.

    Args:
        verbose: Show DEBUG records
        quiet: Only show warnings and errors (wins over verbose)
        stream: Output stream, defaults to stdout

    Returns:
        The configured package logger
    """
    stream = stream or sys.stdout
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logger = logging.getLogger("ralph")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ColorFormatter(use_color=stream.isatty()))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False

    # Keep the HTTP client quiet unless we're debugging
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger
