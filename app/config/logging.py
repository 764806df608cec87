"""
Logging configuration.

Configures loguru sinks for workers and scripts.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(log_file: str | None = "logs/earnings.log") -> None:
    """Configure stderr sink and optional rotating file sink."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=settings.log_level,
            encoding="utf-8",
        )
