"""Logging configuration for folio-analytics."""

import logging
import os
import sys


def setup_logger(name: str = "folio_analytics", level: str | None = None) -> logging.Logger:
    """Create and configure a logger."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        fmt = logging.Formatter(
            "%(asctime)s | %(name)-20s | %(levelname)-7s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    level = level or os.getenv("FOLIO_LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
