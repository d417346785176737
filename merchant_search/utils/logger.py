"""
Package logging for merchant search.

Every module logs through a child of the ``merchant_search`` logger. The level
follows ``SearchConfig.log_level`` and is applied whenever the global config is
loaded or replaced.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "merchant_search"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(PACKAGE_LOGGER)
# Handled on stdout here; the root logger would print it twice
logger.propagate = False


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Set the package log level and attach the stdout handler on first use."""
    logger.setLevel(level.upper())
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Child logger ``merchant_search.<name>``, or the package logger itself."""
    if name:
        return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")
    return logger
