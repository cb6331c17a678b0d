"""
Logging Configuration
Console and optional file output for the ``uvlm3d`` logger.
"""
import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "uvlm3d"

# DEBUG output carries per-step records, so it names the emitting module and line
DEBUG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)-7s %(name)s:%(lineno)d  %(message)s"
INFO_FORMAT = "%(asctime)s %(levelname)-7s %(message)s"


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    *,
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """
    Attaches console (and optionally file) handlers to the 'uvlm3d' logger.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        stream: Console stream, stdout by default.

    Handlers installed by an earlier call are closed and replaced; the
    NullHandler the package installs on import is kept.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]:
        logger.removeHandler(handler)
        handler.close()

    fmt = DEBUG_FORMAT if level <= logging.DEBUG else INFO_FORMAT
    formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.info("Logging initialized (level %s).", logging.getLevelName(level))
    return logger
