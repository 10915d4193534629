"""Logging setup for the arena server.

Every module logs through ``logging.getLogger(__name__)``, so the whole tree
hangs off the ``backend`` and ``core`` loggers.
"""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Package loggers plus uvicorn's, kept at one level
ARENA_LOGGERS = ("backend", "core", "uvicorn", "uvicorn.error", "uvicorn.access")


def configure_logging(level: str | None = None) -> logging.Logger:
    """Install the root handler and align the arena loggers.

    Args:
        level: Explicit level name. Falls back to ``ARENA_LOG_LEVEL``, then INFO.

    Returns:
        The ``backend`` logger.
    """
    resolved_level = (level or os.getenv("ARENA_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    for name in ARENA_LOGGERS:
        logging.getLogger(name).setLevel(resolved_level)

    app_logger = logging.getLogger("backend")
    app_logger.debug("Logging configured at %s", resolved_level)
    return app_logger
