"""
Grid Logger
Shared logger for the source grid modules. Messages are written to stderr
prefixed with the logger name and level.
"""

import logging

LOGGER_NAME = "lens_quadtree"

logger = logging.getLogger(LOGGER_NAME)

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter("[%(name)s] %(levelname)s: %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)

logger.setLevel(logging.INFO)


def set_debug(enabled: bool) -> None:
    """Switch between DEBUG and INFO logging"""
    logger.setLevel(logging.DEBUG if enabled else logging.INFO)
