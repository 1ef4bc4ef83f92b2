"""Process-wide logging setup for the workflow engine."""

from __future__ import annotations

import logging
import sys
from typing import Optional

from backend.utils.config import get_settings


_CONFIGURED = False

_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# HTTP stack loggers that are too chatty below WARNING.
_QUIET_LOGGERS = ("httpx", "multipart")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level {name!r}")
    return level


def configure_logging(level: Optional[str] = None) -> None:
    """Install the stdout handler on first use; later calls are no-ops.

    Services log one line per committed transition as ``Event | key=value``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    resolved = _resolve_level(level or get_settings().log_level)
    logging.basicConfig(level=resolved, format=_FORMAT, stream=sys.stdout)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))
    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
