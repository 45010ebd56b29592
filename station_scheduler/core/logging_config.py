"""
Logging setup for hosts embedding the scheduling engine.
The engine only ever calls get_logger; setup_logging is for the host.
"""

import logging
import sys
from typing import Optional, Union

from station_scheduler.core.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Route all log records to stdout through a single handler.

    Args:
        log_level: Level number or name ("debug", "INFO", ...); defaults to
            SCHEDULER_LOG_LEVEL

    Returns:
        The configured root logger
    """
    level = log_level if log_level is not None else LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    return root_logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
