"""Logging setup for bookmark_feeds.

Log records go to stderr so that stdout stays free for the report.
"""

import logging
import sys
from typing import Optional

from bookmark_feeds.config import ReaderConfig, get_config

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("bookmark_feeds")

_handler: Optional[logging.StreamHandler] = None


def setup_logging(config: Optional[ReaderConfig] = None) -> logging.Logger:
    """Configure the bookmark_feeds logger hierarchy.

    Safe to call more than once: later calls reuse the handler and point it at
    the current sys.stderr.
    """
    global _handler

    if config is None:
        config = get_config()

    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.log_level}")

    if _handler is None:
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(_handler)
    else:
        _handler.stream = sys.stderr

    logger.setLevel(level)
    return logger
