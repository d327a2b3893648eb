"""Logging setup."""

import sys

from loguru import logger

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> <level>{level: <7}</level> {message}"


def setup_logging(verbose: bool = False) -> None:
    """Replace loguru's default sink with a stderr sink at the chosen level."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING", format=LOG_FORMAT)
