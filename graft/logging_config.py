"""Logging configuration for graft.

Routes every ``graft.*`` logger through a single RichHandler writing to
stderr, so analysis warnings never mix with JSON or YAML on stdout.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

from graft import ui

_initialized = False


def setup_logging(level: int = logging.WARNING, force: bool = False) -> None:
    """Configure the ``graft`` logger.

    Args:
        level: Logging level for graft modules (default: WARNING).
        force: Replace an existing handler (used when the console changes).
    """
    global _initialized

    root_logger = logging.getLogger("graft")
    if _initialized and not force:
        root_logger.setLevel(level)
        return

    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True, theme=ui.GRAFT_THEME, no_color=ui.is_plain()),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    root_logger.propagate = False

    _initialized = True


def reset_logging() -> None:
    """Remove graft's handler (useful for testing)."""
    global _initialized
    root_logger = logging.getLogger("graft")
    for handler in list(root_logger.handlers):
        if isinstance(handler, RichHandler):
            root_logger.removeHandler(handler)
    root_logger.propagate = True
    root_logger.setLevel(logging.NOTSET)
    _initialized = False
