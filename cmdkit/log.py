"""
Logging setup for the console layer.
"""

from __future__ import annotations

import logging
import sys
from typing import IO

LOGGER_NAME = "cmdkit"
_HANDLER_MARK = "_cmdkit_handler"


def configure_logging(verbose: bool = False, stream: IO[str] | None = None) -> logging.Logger:
    """Attach a single stderr handler to the ``cmdkit`` logger.

    Calling this again only adjusts the level, so commands invoked through
    :meth:`Command.call` do not stack handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.DEBUG if verbose else logging.WARNING
    logger.setLevel(level)
    for handler in logger.handlers:
        if getattr(handler, _HANDLER_MARK, False):
            handler.setLevel(level)
            return logger

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _HANDLER_MARK, True)
    logger.addHandler(handler)
    return logger
