"""Logger configuration for the command-line entry point."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

HANDLER_NAME = "wear_tracker:console"


def configure_logging(verbose: bool = False, console: Console | None = None) -> logging.Logger:
    """Attach a rich handler to the package logger. Safe to call more than once."""
    logger = logging.getLogger("wear_tracker")
    level = logging.DEBUG if verbose else logging.INFO
    logger.setLevel(level)
    logger.propagate = False

    handler = next((h for h in logger.handlers if h.get_name() == HANDLER_NAME), None)
    if handler is None:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        handler.set_name(HANDLER_NAME)
        logger.addHandler(handler)
    handler.setLevel(level)
    return logger
