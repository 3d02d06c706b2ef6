"""Logging for the ``finance_ledger`` package.

Entrypoints call ``configure_logging`` with the levels they know about (a
command-line flag, then ``AppConfig.log_level``); library modules only call
``get_logger`` and never attach handlers of their own.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Optional, Union

ROOT_LOGGER = "finance_ledger"
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

Level = Union[int, str, None]

logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())

_handler: Optional[logging.Handler] = None


def resolve_level(*candidates: Level) -> int:
    """First usable level among ``candidates`` (``"debug"``, ``"20"``, ``10``), else INFO."""
    for candidate in candidates:
        if isinstance(candidate, int):
            return candidate
        if not isinstance(candidate, str) or not candidate.strip():
            continue
        name = candidate.strip().upper()
        if name.isdigit():
            return int(name)
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level
    return logging.INFO


def configure_logging(*levels: Level, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach the package's stream handler (once) and set the package level.

    Calling it again only changes the level.
    """
    global _handler
    logger = logging.getLogger(ROOT_LOGGER)
    if _handler is None:
        _handler = logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)
        logger.propagate = False
    logger.setLevel(resolve_level(*levels))
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
