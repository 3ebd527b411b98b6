"""Logging setup for git-leave."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def setup_logging(is_verbose: bool = False, console: Console | None = None) -> None:
    """
    Set up logging configuration.

    Args:
        is_verbose: Log everything down to DEBUG instead of WARNING and above
        console: Console the handler writes to (stderr by default)
    """
    log_level = logging.DEBUG if is_verbose else logging.WARNING

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Clear existing handlers to avoid duplicate logs if called multiple times
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(
        RichHandler(
            console=console or Console(stderr=True),
            level=log_level,
            rich_tracebacks=True,
            show_time=is_verbose,
            show_path=is_verbose,
        )
    )
