"""CLI commands for configuration management."""
from __future__ import annotations

import typer
from rich.markup import escape

from graft import ui
from graft.error_handler import handle_errors

app = typer.Typer(
    name="config",
    help="Manage graft configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


@app.command()
@handle_errors
def show(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Display the resolved configuration (all layers merged)."""
    from rich.panel import Panel
    from rich.table import Table
    from graft.core.config_service import get_config_service

    info = get_config_service().show()
    if as_json:
        ui.print_json_output(info)
        return

    sources = info["sources"]
    ui.console.print(Panel(
        f"Global:  {escape(sources['global_config'] or '') or '[dim]not found[/dim]'}\n"
        f"Project: {escape(sources['project_config'] or '') or '[dim]not found[/dim]'}",
        title="Config Sources",
        border_style="cyan",
    ))

    resolved = info["resolved"]
    for section in ("templates", "analysis", "ui"):
        values = resolved.get(section, {})
        table = Table(title=section.capitalize(), show_header=True)
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for key, val in values.items():
            table.add_row(escape(key), escape(str(val)) if val != "" else "[dim]not set[/dim]")
        ui.console.print(table)

    framework = resolved.get("framework", {})
    deps = Table(title="Framework dependencies", show_header=True)
    deps.add_column("Package", style="cyan")
    deps.add_column("Version")
    for pkg, version in sorted(framework.get("dependencies", {}).items()):
        deps.add_row(escape(pkg), escape(str(version)))
    ui.console.print(deps)


@app.command("set")
@handle_errors
def set_value(
    key: str = typer.Argument(..., help="Config key in dotted notation (e.g. analysis.extractor)"),
    value: str = typer.Argument(..., help="Value to set"),
):
    """Set a global configuration value."""
    from graft.core.config_service import coerce_value, get_config_service

    parsed_value = coerce_value(value)
    get_config_service().set_global(key, parsed_value)
    ui.console.print(f"[green]Set[/green] {escape(key)} = {escape(str(parsed_value))}")


@app.command()
@handle_errors
def init():
    """Create a .graft.toml project config in the current directory."""
    from graft.core.config_service import get_config_service
    from graft.errors import ConfigError

    try:
        path = get_config_service().init_project_config()
    except FileExistsError as e:
        raise ConfigError(str(e)) from e
    ui.console.print(f"[green]Created project config:[/green] {escape(str(path))}")


@app.command()
@handle_errors
def paths():
    """Show config file locations and the templates directory."""
    from graft.core.config_service import get_config_service

    for label, location in get_config_service().config_paths().items():
        ui.console.print(f"[cyan]{label}[/cyan]: {escape(str(location))}")
