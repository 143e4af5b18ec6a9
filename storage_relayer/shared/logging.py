"""
Logging for the storage relayer.

Module loggers are children of the ``storage_relayer`` logger, which owns the
only handler. The level comes from RELAY_LOG_LEVEL, or from the CLI's
``--log-level`` flag through ``set_level``.
"""

import logging
import os
from typing import Optional

ROOT_LOGGER = "storage_relayer"
_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _parse_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _root_logger() -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(_parse_level(os.getenv("RELAY_LOG_LEVEL", "INFO")))
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a logger under the ``storage_relayer`` hierarchy."""
    root = _root_logger()
    if not name or name == ROOT_LOGGER:
        return root
    if not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_level(level: str) -> None:
    _root_logger().setLevel(_parse_level(level))
