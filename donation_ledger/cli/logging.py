"""
Logging setup.

Configures the loguru logger for the command line.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """
    Configure logger with a stderr sink and optional file rotation.

    Args:
        level: Minimum level name
        log_file: Path of a rotating log file (disabled if None)
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="{time:HH:mm:ss} | {level} | {message}",
    )

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )
