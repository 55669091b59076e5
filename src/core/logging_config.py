"""Logging setup for the application."""

import logging

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def setup_logging(level: str = LOG_LEVEL) -> None:
    """Configure the root logger once.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG".
    """
    global _configured
    if _configured:
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # uvicorn access lines are noisy at INFO for an admin API
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    _configured = True
