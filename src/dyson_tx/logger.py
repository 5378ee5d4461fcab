#!/usr/bin/env python3
"""Dyson Link - logging for the frame log (and the console).

Frames are logged (in both directions) by FRAME_LOGGER, which does not propagate, so
the frame log can be kept apart from any app/debug logging.
"""

from __future__ import annotations

import logging
import logging.handlers
import shutil
import sys
from datetime import datetime as dt

import colorlog

from .version import VERSION

_LOGGER = logging.getLogger(__name__)

DEFAULT_FMT = "%(asctime)s.%(msecs)03d %(message)s"
DEFAULT_DATEFMT = "%H:%M:%S"

CONSOLE_COLS = int(shutil.get_terminal_size(fallback=(int(2e3), 24)).columns - 1)

CONSOLE_FMT = f"%(asctime)s %(message).{CONSOLE_COLS - 13}s"
FRAME_LOG_FMT = "%(asctime)s %(message)s"

LOG_COLOURS = {
    "DEBUG": "white",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "bold_red",
    "CRITICAL": "bold_red",
}


class _Formatter:  # asctime is an isoformat datetime, with microseconds
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dtm = dt.fromtimestamp(record.created)
        if datefmt:
            return dtm.strftime(datefmt)
        return dtm.isoformat(timespec="microseconds")


class ColoredFormatter(_Formatter, colorlog.ColoredFormatter):  # type: ignore[misc]
    pass


class Formatter(_Formatter, logging.Formatter):  # type: ignore[misc]
    pass


class _LevelFilter(logging.Filter):
    """Process only the records with a level in [min_level, max_level)."""

    def __init__(self, min_level: int = logging.NOTSET, max_level: int = 99) -> None:
        super().__init__()
        self._min_level = min_level
        self._max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:
        return self._min_level <= record.levelno < self._max_level


def _file_handler(
    file_name: str, rotate_backups: int, rotate_bytes: int | None
) -> logging.Handler:
    """Return a handler for the frame log file, rotating it if required."""

    if rotate_bytes:  # by size, keeping at least 2 backups
        return logging.handlers.RotatingFileHandler(
            file_name, maxBytes=rotate_bytes, backupCount=rotate_backups or 2
        )
    if rotate_backups:  # by day
        return logging.handlers.TimedRotatingFileHandler(
            file_name, when="midnight", backupCount=rotate_backups
        )
    return logging.FileHandler(file_name)


def set_frame_logging(
    logger: logging.Logger,
    cc_console: bool = False,
    file_name: str | None = None,
    rotate_backups: int = 0,
    rotate_bytes: int | None = None,
) -> None:
    """Create/configure the handlers of the frame logger.

    Frames are logged at INFO; anything else of note is at WARNING.

    Parameters:
    - cc_console:     also log to the console (WARNING+ to stderr, the rest to stdout)
    - rotate_backups: keep this many copies, and rotate at midnight unless:
    - rotate_bytes:   rotate the log file when it is larger than this
    """

    logger.propagate = False
    logger.setLevel(logging.DEBUG)

    # may be called more than once, so avoid duplicate handlers
    for old in list(logger.handlers):
        logger.removeHandler(old)

    if not file_name and not cc_console:
        logger.setLevel(logging.CRITICAL)
        return

    handler: logging.Handler

    if file_name:
        handler = _file_handler(file_name, rotate_backups, rotate_bytes)
        handler.setFormatter(Formatter(fmt=FRAME_LOG_FMT))
        handler.addFilter(_LevelFilter(logging.INFO, logging.ERROR))
        logger.addHandler(handler)

    if cc_console:
        console_fmt = ColoredFormatter(
            fmt=f"%(log_color)s{CONSOLE_FMT}", reset=True, log_colors=LOG_COLOURS
        )
        for stream, level_filter in (
            (sys.stderr, _LevelFilter(min_level=logging.WARNING)),
            (sys.stdout, _LevelFilter(max_level=logging.WARNING)),
        ):
            handler = logging.StreamHandler(stream=stream)
            handler.setFormatter(console_fmt)
            handler.addFilter(level_filter)
            logger.addHandler(handler)

    _LOGGER.debug("Frame logging: file=%s, console=%s", file_name, cc_console)
    logger.warning("# dyson_tx %s", VERSION)  # the first line of each log
