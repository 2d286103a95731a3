"""
Process-wide logging setup.

``init_logging`` runs once at startup, before any request is served.
Modules log through ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_lock = threading.Lock()
_handler: logging.Handler | None = None


def init_logging(level: str = "INFO", stream: TextIO | None = None) -> bool:
    """
    Attach one stream handler to the root logger.

    Args:
        level: Level name, e.g. "INFO"
        stream: Output stream (stdout by default)

    Returns:
        True if this call configured logging, False if it was already done
    """
    global _handler

    with _lock:
        if _handler is not None:
            return False

        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            raise ValueError(f"Unknown log level: {level}")

        handler = logging.StreamHandler(stream or sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(numeric_level)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)

        _handler = handler
        return True


def reset_logging() -> None:
    """Detach the handler added by init_logging (tests only)."""
    global _handler

    with _lock:
        if _handler is not None:
            logging.getLogger().removeHandler(_handler)
            _handler = None
