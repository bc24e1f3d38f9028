"""
Package logger and console handler setup.
"""

import logging

LOGGER_NAME = "what2watch"
LOG_FORMAT = "[%(levelname)s] %(asctime)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAME)


def configure_logging(level="INFO"):
    """Attach a console handler to the package logger (safe to call repeatedly)."""
    logger.setLevel(level)

    if not any(getattr(h, "_what2watch", False) for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        console_handler._what2watch = True
        logger.addHandler(console_handler)

    return logger
