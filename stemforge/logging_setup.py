"""Console logging for the CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "stemforge"


def setup_logging(log_level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a single RichHandler to the ``stemforge`` logger.

    Calling it again replaces the handler rather than stacking another.
    """
    logger = logging.getLogger(LOGGER_NAME)
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {log_level!r}")
    logger.setLevel(level)
    logger.handlers = []

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    return logger
