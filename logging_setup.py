"""Logging utilities for docsmith."""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

_LOGGER_NAME = "docsmith"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-scoped logger under the docsmith hierarchy."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(verbose: bool = False, level: Optional[str] = None) -> logging.Logger:
    """Configure the docsmith logger with rich console output."""
    if verbose:
        resolved = logging.DEBUG
    else:
        resolved = logging.getLevelName((level or "INFO").upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO

    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(resolved)
    logger.propagate = False

    # Reset handlers to avoid duplicate output when configured more than once.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger
