"""
archsearch/core/logger.py

Centralised logging configuration.
Every module should obtain its logger via:

    from archsearch.core.logger import get_logger
    logger = get_logger(__name__)
"""

import logging
import sys

from archsearch.core.config import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _level() -> int:
    settings = get_settings()
    if settings.debug:
        return logging.DEBUG
    level = logging.getLevelName(settings.log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def _build_handler() -> logging.StreamHandler:
    """Return a stdout handler with a structured, readable format."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_level())
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def configure_logging() -> None:
    """Configure the root logger once."""
    root = logging.getLogger()
    if root.handlers:
        # Already configured (e.g. by a test framework)
        return

    root.setLevel(_level())
    root.addHandler(_build_handler())

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Return a named logger.

    Usage
    -----
    >>> logger = get_logger(__name__)
    >>> logger.info("Service started")
    """
    return logging.getLogger(name)
