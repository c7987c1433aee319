"""Logging configuration for the canopy command line."""

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, name: str = "src.canopy") -> logging.Logger:
    """
    Attach a console handler to the package logger.

    Calling it again replaces the handler instead of adding a second one, so
    messages are never printed twice.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL);
            WARNING when None
        name: Logger name

    Returns:
        Configured logger instance
    """
    if level is None:
        level = "WARNING"

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_canopy_console", False):
            logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._canopy_console = True
    logger.addHandler(console_handler)

    return logger
