"""
Logging setup for the country cache service.

All modules get their logger from ``create_logger`` so console output
has the same structure everywhere.
"""

import logging
import sys
from typing import Optional, Union

import colorlog

from country_cache.config import LOG_LEVEL


def create_logger(
    name: Optional[str] = None,
    log_level: Union[int, str, None] = None,
):
    """
    Create a color-coded console logger.

    :param name: Name of the logger (typically __name__)
    :param log_level: Logging level (default: ``LOG_LEVEL`` from config)
    :return: Configured logger instance
    """
    level = log_level or LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = colorlog.getLogger(name or "country_cache")
    logger.setLevel(level)
    logger.propagate = False

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        colorlog.ColoredFormatter(
            "%(log_color)s[%(levelname)s]%(reset)s "
            "%(blue)s[%(name)s]%(reset)s "
            "%(message)s",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "red,bg_white",
            },
        )
    )
    logger.addHandler(console_handler)

    return logger
