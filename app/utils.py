"""
Shared helpers.
"""
import logging
import sys

from app.core import config


_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_configured = False


def _configure_root() -> None:
    """Attach a single stream handler to the root logger (idempotent)."""
    global _configured
    if _configured:
        return

    level = getattr(logging, config.LOG_LEVEL.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """
    Get a module logger.

    Usage:
        log = get_logger(__name__)
        log.info("Running server")
    """
    _configure_root()
    return logging.getLogger(name)
