"""
Utility functions for scripts built on the simulation.

The library itself never installs logging handlers; scripts call
``setup_logging`` once at startup.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = "INFO",
    log_format: str = DEFAULT_FORMAT,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the ``barnes_hut`` logger with a console handler.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number
        log_format: Format string for all handlers
        log_file: Optional path of an additional file handler

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = level.upper()

    logger = logging.getLogger("barnes_hut")
    logger.setLevel(level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized at level %s", logging.getLevelName(logger.level))
    return logger


__all__ = ["setup_logging"]
