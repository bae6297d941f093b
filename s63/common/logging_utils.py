"""
Logging utilities for consistent logging setup across the package.
"""

from __future__ import annotations

import logging
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    logger: logging.Logger, log_level: int, stream: TextIO | None = None
) -> logging.Logger:
    """
    Set up a logger with a single StreamHandler and the standard formatter.

    Calling it again for the same logger only changes the level.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
        stream: Stream for the handler, stderr when omitted
    """
    logger.setLevel(log_level)
    handler = next(
        (h for h in logger.handlers if isinstance(h, logging.StreamHandler)), None
    )
    if handler is None:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    handler.setLevel(log_level)
    return logger
