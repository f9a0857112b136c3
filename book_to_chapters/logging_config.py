"""
Logging Configuration Module

Provides consistent logging setup for the library and the CLI.
"""

import logging
import sys
import warnings
from pathlib import Path

from book_to_chapters.errors import BookWarning

LOGGER_NAME = "book_to_chapters"


def setup_logging(
    level: int | str = logging.WARNING,
    log_file: Path | None = None,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Configure logging for book_to_chapters.

    Recoverable conditions (unresolvable outline pages, missing anchors,
    skipped empty tasks) are raised as warnings; they are routed into the
    log and reported on every occurrence.

    Args:
        level: Logging level (default: WARNING)
        log_file: Optional path to log file
        format_string: Optional custom format string

    Returns:
        Configured package logger
    """
    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # Remove existing handlers to avoid duplicates
    logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    warnings_logger = logging.getLogger("py.warnings")
    warnings_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        warnings_logger.addHandler(handler)

    warnings.simplefilter("always", BookWarning)
    logging.captureWarnings(True)

    return logger
