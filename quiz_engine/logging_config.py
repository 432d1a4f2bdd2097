"""Logging configuration helpers for the quiz engine."""

import logging
from logging import Logger

from quiz_engine.config import LOG_LEVEL


def configure_logging() -> Logger:
    """Configure basic logging for the service and return the package logger."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("quiz_engine")
