from __future__ import annotations

import logging
import os
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

LOG_LEVEL_ENV = "APISYNC_LOG_LEVEL"
_HANDLER_ATTR = "_apisync_rich_handler"


def _parse_level(value: Optional[str], default: int) -> int:
    if not value:
        return default
    if value.isdigit():
        return int(value)
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def configure_logging(level: Optional[int] = None, console: Optional[Console] = None) -> logging.Logger:
    """Attach a single RichHandler (stderr) to the ``apisync`` logger.

    Safe to call repeatedly; later calls only adjust the level. ``APISYNC_LOG_LEVEL``
    wins over the ``level`` argument.
    """
    logger = logging.getLogger("apisync")
    desired = _parse_level(os.getenv(LOG_LEVEL_ENV), default=level if level is not None else logging.INFO)
    logger.setLevel(desired)

    for existing in logger.handlers:
        if getattr(existing, _HANDLER_ATTR, False):
            existing.setLevel(desired)
            return logger

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    handler.setLevel(desired)
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
