"""Logging helpers for the volsurface package."""

from __future__ import annotations

import logging
from collections.abc import Iterable

ROOT_LOGGER_NAME = "volsurface"
_NULL_HANDLER = logging.NullHandler()


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """Return a package logger with a null handler attached to the root.

    Parameters
    ----------
    name : str
        Fully qualified logger name, normally ``__name__`` of the caller.

    Returns
    -------
    logging.Logger
        Logger that stays silent until :func:`configure_logging` is called.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(h, logging.NullHandler) for h in root.handlers):
        root.addHandler(_NULL_HANDLER)
    return logging.getLogger(name)


def configure_logging(
    level: int = logging.INFO,
    *,
    handlers: Iterable[logging.Handler] | None = None,
    format_string: str | None = None,
) -> None:
    """Attach handlers to the package root logger and set its level."""
    logger = get_logger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    if handlers:
        for handler in handlers:
            if format_string:
                handler.setFormatter(logging.Formatter(format_string))
            logger.addHandler(handler)


__all__ = ["ROOT_LOGGER_NAME", "configure_logging", "get_logger"]
