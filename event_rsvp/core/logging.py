"""Centralized logging configuration."""

import sys

from loguru import logger

from event_rsvp.core.config import LOG_LEVEL

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}::{function}:{line}</>",
        "{message}",
    )
)

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Replace loguru's default handler with the service format. Safe to call twice."""
    global _configured
    if _configured:
        return
    logger.remove()  # drop the default stderr handler
    logger.add(sys.stdout, format=log_format, level=level.upper())
    _configured = True
