"""Logging setup for the command line."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route ``cisync`` log records to a rich handler."""
    logger = logging.getLogger("cisync")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(console=console or Console(stderr=True), show_path=verbose, markup=False)
    )
    logger.propagate = False
