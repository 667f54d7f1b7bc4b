"""
logger
======

loguru configuration for the ``configdiff`` command.

Library modules log through ``from loguru import logger`` and never configure
sinks themselves; only the CLI calls :func:`setup_logger`.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(level: str = "INFO", log_file: Optional[Path] = None) -> None:
    """Replace the default sink with a stderr sink and an optional rotating file.

    Args:
        level: Minimum level of both sinks (e.g. ``"INFO"``, ``"DEBUG"``).
        log_file: Optional path of a log file; its directory is created.
    """
    logger.remove()
    logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=level,
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="1 week",
            encoding="utf-8",
        )
