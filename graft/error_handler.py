"""Unified CLI error handler for graft commands."""

from __future__ import annotations

import functools
import logging
import os
import traceback

import typer
from rich.markup import escape

from graft.errors import (
    AnalysisError,
    CloneError,
    ConfigError,
    GraftError,
    TemplateNotFoundError,
    ValidationError,
)
from graft import ui

logger = logging.getLogger("graft.error_handler")


def _debug_mode() -> bool:
    """Check if debug output is enabled via GRAFT_DEBUG env var."""
    return os.environ.get("GRAFT_DEBUG", "").lower() in ("1", "true", "yes")


def _render_graft_error(e: GraftError) -> None:
    """Render a GraftError with Rich formatting and context."""
    console = ui.console
    console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")

    # Context details (only in debug mode)
    if e.context and _debug_mode():
        context_parts = [
            f"  [dim]{key}:[/dim] {escape(str(value))}" for key, value in e.context.items() if value
        ]
        if context_parts:
            console.print("[dim]Context:[/dim]")
            for part in context_parts:
                console.print(part)

    # Actionable hints based on error type
    if isinstance(e, TemplateNotFoundError):
        console.print("[dim]Run 'graft template list' to see available templates.[/dim]")
    elif isinstance(e, AnalysisError):
        console.print(
            "[dim]graft looks for one of src/, app/, source/ or client/ in the app root.[/dim]"
        )
    elif isinstance(e, CloneError):
        console.print("[dim]Check the repository URL, the branch name and that git is installed.[/dim]")
    elif isinstance(e, ValidationError):
        console.print("[dim]Template names must be lowercase letters, digits and hyphens.[/dim]")
    elif isinstance(e, ConfigError):
        console.print("[dim]Run 'graft config show' to inspect the resolved configuration.[/dim]")


def handle_errors(func):
    """Decorator that catches GraftError and renders formatted CLI output.

    Usage::

        @app.command()
        @handle_errors
        def my_command(...):
            ...  # no try/except needed
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except GraftError as e:
            logger.debug("Command failed: %s", e, exc_info=True)
            _render_graft_error(e)
            if _debug_mode():
                ui.console.print(f"\n[dim]{escape(traceback.format_exc())}[/dim]")
            raise typer.Exit(e.exit_code)
        except KeyboardInterrupt:
            ui.console.print("\n[dim]Interrupted.[/dim]")
            raise typer.Exit(130)
        except (typer.Exit, typer.Abort, SystemExit):
            raise
        except Exception as e:
            ui.console.print(f"\n[bold red]Unexpected error:[/bold red] {escape(str(e))}")
            if _debug_mode():
                ui.console.print(f"\n[dim]{escape(traceback.format_exc())}[/dim]")
            else:
                ui.console.print("[dim]Set GRAFT_DEBUG=1 for full traceback.[/dim]")
            raise typer.Exit(1)

    return wrapper
