"""
Logging setup for processes embedding the dispatcher.

The dispatcher itself only ever obtains module-level loggers. Handlers
are installed once by the hosting process.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """
    Bind a stderr handler to the root logger.

    When `level` is omitted, the configured DISPATCHER_LOG_LEVEL is used.
    Calling this more than once replaces the previous handlers.
    """
    if level is None:
        from dispatcher.app.core.config import get_settings

        level = get_settings().log_level

    logging.basicConfig(
        level=level.upper(),
        stream=sys.stderr,
        format=LOG_FORMAT,
        force=True,
    )
