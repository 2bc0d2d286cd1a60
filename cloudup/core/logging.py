"""Logging utilities for cloudup modules."""

import logging
import time
from contextlib import contextmanager
from typing import Iterator

ROOT = 'cloudup'


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``cloudup`` hierarchy.

    Bare names are nested under ``cloudup`` so that ``setup_logging()`` or
    ``basicConfig()`` reaches every module logger. A default WARNING level
    is set only while the root logger has no handlers.

    Args:
        name: Logger name, e.g. 'upload.coordinator' or 'cloudup.api'

    Returns:
        Configured logger instance
    """
    if name != ROOT and not name.startswith(ROOT + '.'):
        name = f'{ROOT}.{name}'
    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers:
        logger.setLevel(logging.WARNING)

    return logger


@contextmanager
def log_duration(logger: logging.Logger, action: str) -> Iterator[None]:
    """Log how long the wrapped block took, at DEBUG."""
    started = time.monotonic()
    try:
        yield
    finally:
        logger.debug(f"{action} took {time.monotonic() - started:.3f}s")
