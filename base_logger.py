# SPDX-License-Identifier: GPL-3.0-only
"""Logging configuration shared by every module."""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler = None


def get_logger(name: str = None) -> logging.Logger:
    """Return a logger writing to stderr at the configured LOG_LEVEL.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        Configured logger.
    """
    global _handler

    root = logging.getLogger("atomconnect")
    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_handler)
        root.propagate = False

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level, logging.INFO))

    if not name:
        return root
    return root.getChild(name)
