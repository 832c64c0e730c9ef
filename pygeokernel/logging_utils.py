"""Logging setup for the package.

Every module logs through ``logging.getLogger(__name__)``.
:func:`configure_logging` attaches a console handler to the package
logger for scripts and examples.
"""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Send package log records at *level* and above to stderr.

    Calling it again only changes the level.

    Returns:
        The ``pygeokernel`` logger.
    """
    logger = logging.getLogger("pygeokernel")
    logger.setLevel(level)
    if not any(getattr(h, "_pygeokernel", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._pygeokernel = True
        logger.addHandler(handler)
    return logger
