"""Logging setup for the ``bankrecon`` package.

Library modules get loggers from ``get_logger`` and stay silent until the CLI
calls ``configure_logging`` at startup.
"""

import logging
import os
import sys
from typing import IO, Optional

PACKAGE_LOGGER = "bankrecon"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

_handler: Optional[logging.Handler] = None


def resolve_level(level: Optional[str]) -> int:
    """Turn a level name (or ``BANKRECON_LOG_LEVEL``) into a logging level, INFO if unknown."""
    name = (level or os.getenv("BANKRECON_LOG_LEVEL") or "INFO").strip().upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def configure_logging(level: Optional[str] = None, stream: IO[str] = sys.stderr) -> None:
    """Send package log records to ``stream``; calling again only updates the level."""
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(resolve_level(level))
    if _handler is not None:
        return

    for handler in list(logger.handlers):
        if isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    _handler = logging.StreamHandler(stream)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(_handler)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if not package_logger.handlers:
        package_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
