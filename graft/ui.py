"""Shared UI theme, console, and display helpers for graft."""

import json
from contextlib import nullcontext
from rich.console import Console
from rich.markup import escape
from rich.theme import Theme
from rich.panel import Panel
from rich.table import Table

# ── Output Mode State ──
_plain_mode: bool = False
_json_mode: bool = False


def set_plain_mode(enabled: bool = True) -> None:
    """Switch the shared console between themed and colourless output."""
    global _plain_mode, console
    _plain_mode = enabled
    if enabled:
        console = Console(no_color=True, highlight=False, theme=GRAFT_THEME)
    else:
        console = Console(theme=GRAFT_THEME)


def set_json_mode(enabled: bool = True) -> None:
    """Enable or disable JSON output mode."""
    global _json_mode
    _json_mode = enabled


def is_plain() -> bool:
    """True when --plain or ui.plain_output is in effect."""
    return _plain_mode


def is_json() -> bool:
    """True when a command is emitting machine-readable output."""
    return _json_mode


def print_json_output(data: dict | list) -> None:
    """Write data to stdout as indented JSON, bypassing Rich."""
    print(json.dumps(data, indent=2, default=str))


# ── Theme ──
GRAFT_THEME = Theme({
    "info": "cyan",
    "success": "bold green",
    "warning": "yellow",
    "error": "bold red",
    "template.name": "bold cyan",
    "route.protected": "magenta",
    "brand": "bold green",
    "muted": "dim",
})

console = Console(theme=GRAFT_THEME)

# ── Status Icons ──
ICONS = {
    "complete": "[green]✔[/green]",       # checkmark
    "error": "[red]✘[/red]",              # cross
    "warning": "[yellow]![/yellow]",
    "lock": "[magenta]◉[/magenta]",       # protected route
    "arrow": "[dim]──▸[/dim]",  # arrow ──▸
    "bullet": "[cyan]•[/cyan]",           # bullet
}

# ASCII equivalents for plain mode
PLAIN_ICONS = {
    "complete": "[OK]",
    "error": "[!!]",
    "warning": "[!]",
    "lock": "[*]",
    "arrow": "-->",
    "bullet": "*",
}


def icon(name: str) -> str:
    """Get an icon, respecting plain mode."""
    if _plain_mode:
        return PLAIN_ICONS.get(name, "")
    return ICONS.get(name, "")


def success_panel(title: str, content=None):
    """Green panel for a finished import, adapt or scaffold."""
    if _json_mode:
        return
    if _plain_mode:
        print(f"OK: {title}")
        if isinstance(content, str) and content:
            print(f"  {content}")
        elif content is not None:
            console.print(content)
        return

    console.print(Panel(
        content or "",
        title=f"[bold green]{title}[/bold green]",
        border_style="green",
    ))


def key_value_table(rows: list[tuple[str, str]], title: str | None = None) -> Table:
    """Build a borderless two-column table for summaries. Cells are plain text."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold")
    table.add_column(style="green")
    for key, value in rows:
        table.add_row(escape(key), escape(value))
    return table


def section_divider(text: str = ""):
    """Dim heading between report sections."""
    if _json_mode:
        return
    if _plain_mode:
        if text:
            print(f"\n-- {text} --")
        else:
            print()
        return

    if text:
        console.print(f"\n[dim]── {text} ──[/dim]")
    else:
        console.print()


def format_next_step(command: str):
    """Suggest the command to run next."""
    if _json_mode:
        return
    if _plain_mode:
        print(f"\n  Next: {command}")
        return

    console.print(f"\n  [bold]Next:[/bold] [cyan]{escape(command)}[/cyan]")


def status(message: str):
    """Spinner context manager; a no-op in JSON and plain modes."""
    if _json_mode or _plain_mode:
        return nullcontext()
    return console.status(message)
