"""Logger configuration for wpbabel."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "wpbabel"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "openai")


def setup_logger(level: str | int = logging.INFO, *, verbose: bool = False) -> logging.Logger:
    """Configure the package logger with a single console handler.

    Without ``verbose`` the console only shows warnings and errors; the
    logger itself still runs at ``level`` so extra handlers see everything.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(console_handler)
    set_verbose_mode(logger, verbose)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


def set_verbose_mode(logger: logging.Logger, verbose: bool) -> None:
    """Sets console handler level based on verbose mode."""

    level = logging.DEBUG if verbose else logging.WARNING
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler):
            handler.setLevel(level)
