"""Template management commands."""
from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape
from rich.table import Table

from graft import ui
from graft.error_handler import handle_errors

app = typer.Typer(no_args_is_help=True)


def _registry():
    from graft.templates.registry import TemplateRegistry
    return TemplateRegistry()


@app.command("list")
@handle_errors
def list_templates(
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List available templates."""
    registry = _registry()
    templates = registry.list_template_metadata()

    if as_json:
        ui.print_json_output([
            {
                "name": t.name,
                "description": t.description,
                "version": t.version,
                "created_at": t.created_at.isoformat(),
                "updated_at": t.updated_at.isoformat(),
                "component_count": t.component_count,
                "route_count": t.route_count,
            }
            for t in templates
        ])
        return

    if not templates:
        ui.console.print("[warning]No templates found.[/warning]")
        ui.console.print(f"Templates directory: {escape(str(registry.templates_dir))}")
        ui.console.print("Import one with: graft import <repo-or-path> <template-name>")
        return

    table = Table(title="Available Templates")
    table.add_column("Name", style="template.name")
    table.add_column("Description")
    table.add_column("Version", justify="center")
    table.add_column("Components", justify="right")
    table.add_column("Routes", justify="right")
    table.add_column("Updated")

    for t in templates:
        table.add_row(
            escape(t.name),
            escape(t.description[:60] + ("..." if len(t.description) > 60 else "")),
            escape(t.version),
            str(t.component_count),
            str(t.route_count),
            t.updated_at.strftime("%Y-%m-%d"),
        )

    ui.console.print(table)
    ui.console.print(f"\n[muted]Total templates: {len(templates)}[/muted]")


@app.command("show")
@handle_errors
def show_template(
    name: str = typer.Argument(..., help="Template name"),
    as_json: bool = typer.Option(False, "--json", help="Output the raw template config"),
):
    """Show details of a template."""
    template = _registry().get_template(name)
    config = template.get_config()

    if as_json:
        ui.print_json_output(config.to_dict())
        return

    ui.console.print(f"\n[template.name]{escape(config.name)}[/template.name] [muted]v{escape(config.version)}[/muted]")
    if config.description:
        ui.console.print(f"[muted]{escape(config.description)}[/muted]")
    ui.console.print(f"[muted]Source: {escape(config.source.repo)} ({escape(config.source.branch)})[/muted]\n")

    if config.routes:
        routes = Table(title="Routes", show_header=True, expand=False)
        routes.add_column("Path", style="cyan")
        routes.add_column("Component")
        routes.add_column("Layout")
        routes.add_column("Protected", justify="center")
        for r in config.routes:
            routes.add_row(
                escape(r.path),
                escape(r.component),
                escape(r.layout or ""),
                ui.icon("lock") if r.protected else "",
            )
        ui.console.print(routes)

    ui.console.print(f"[bold]Required components:[/bold] {escape(', '.join(config.components.required)) or '-'}")
    ui.console.print(f"[bold]Optional components:[/bold] {escape(', '.join(config.components.optional)) or '-'}")
    ui.console.print(f"[bold]Dependencies:[/bold] {len(config.dependencies)}")
    for pkg, version in config.dependencies.items():
        ui.console.print(f"  {ui.icon('bullet')} {escape(pkg)} {escape(version)}")
    if config.modules:
        ui.console.print(f"[bold]Modules:[/bold] {escape(', '.join(config.modules))}")


@app.command("search")
@handle_errors
def search_templates(
    name: str = typer.Option(None, "--name", "-n", help="Substring of the template name"),
    description: str = typer.Option(None, "--description", "-d", help="Substring of the description"),
):
    """Search templates by name or description."""
    matches = _registry().search_templates(name=name, description=description)
    if not matches:
        ui.console.print("[warning]No matching templates.[/warning]")
        return
    for t in matches:
        ui.console.print(f"{ui.icon('bullet')} [template.name]{escape(t.name)}[/template.name]  [muted]{escape(t.description)}[/muted]")


@app.command("describe")
@handle_errors
def describe_template(
    name: str = typer.Argument(..., help="Template name"),
    description: str = typer.Argument(..., help="New description"),
    version: str = typer.Option(None, "--version", help="Also set the template version"),
):
    """Update a template's description (and optionally its version)."""
    template = _registry().get_template(name)
    updates: dict = {"description": description}
    if version:
        updates["version"] = version
    template.update_config(updates)
    ui.console.print(f"[success]{ui.icon('complete')} Updated[/success] {escape(name)}")


@app.command("copy")
@handle_errors
def copy_template(
    name: str = typer.Argument(..., help="Template name"),
    destination: Path = typer.Argument(..., help="Directory to copy into"),
):
    """Copy a template's files, leaving out build output and dependency caches."""
    template = _registry().get_template(name)
    dest = template.copy_to(destination)
    ui.console.print(f"[success]{ui.icon('complete')} Copied[/success] {escape(name)} to {escape(str(dest))}")


@app.command("remove")
@handle_errors
def remove_template(
    name: str = typer.Argument(..., help="Template name"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete a template directory."""
    registry = _registry()
    template = registry.get_template(name)
    if not yes:
        typer.confirm(f"Delete template '{name}' at {template.path}?", abort=True)
    registry.remove_template(name)
    ui.console.print(f"[success]{ui.icon('complete')} Removed[/success] {escape(name)}")
