"""Logging configuration for LinkSnap."""

import logging
import sys


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the ``linksnap_app`` logger hierarchy.

    Modules log through ``logging.getLogger(__name__)``; everything under
    ``linksnap_app`` ends up on one console handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The package root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger("linksnap_app")
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    return logger
