"""Logging setup for the CoinCoach service.

All modules log through ``logging.getLogger(__name__)``; this module
attaches a single console handler to the package logger.
"""
import logging
import sys

LOGGER_NAME = "coincoach"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Configure the package logger once and return it."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)

    # Avoid duplicate lines through the root logger (uvicorn installs its own)
    logger.propagate = False
    return logger
