"""
Logging setup for contentindex.

Usage:
    from contentindex.config import get_logger, configure_all_loggers
    configure_all_loggers()
    logger = get_logger(__name__)
"""

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# client libraries log every request at INFO
NOISY_LOGGERS = ("elasticsearch", "elastic_transport", "urllib3")


def get_log_level() -> int:
    """Level from CONTENTINDEX_LOG_LEVEL, INFO if unset or unknown."""
    name = os.getenv("CONTENTINDEX_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def configure_all_loggers(level: Optional[Union[int, str]] = None):
    """Configure the root logger once and quiet the client libraries."""
    if level is None:
        level = get_log_level()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("contentindex").setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
