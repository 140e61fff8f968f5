#!/usr/bin/env python3
"""
graft: analyze existing front-end apps, turn them into reusable templates,
and scaffold new apps from those templates.
"""
import logging
import os
from pathlib import Path

import typer

from graft import ui
from graft.error_handler import handle_errors

app = typer.Typer(
    name="graft",
    help="Import front-end apps as templates and scaffold new apps from them.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Import subcommands
from graft.commands import config_cmd, deps_cmd, import_cmd, template_cmd

app.add_typer(template_cmd.app, name="template", help="Manage templates", rich_help_panel="Templates")
app.add_typer(config_cmd.app, name="config", help="Manage configuration", rich_help_panel="Advanced")


@app.callback()
def main_callback(
    templates_dir: Path = typer.Option(
        None, "--templates-dir", "-T",
        help="Templates directory. Overrides GRAFT_TEMPLATES_DIR and config files.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    plain: bool = typer.Option(False, "--plain", help="Plain text output (no colors or panels)"),
):
    """Import front-end apps as templates and scaffold new apps from them."""
    from graft.core.config_service import get_config_service, reset_config_service
    from graft.logging_config import setup_logging

    if templates_dir is not None:
        os.environ["GRAFT_TEMPLATES_DIR"] = str(templates_dir)
        reset_config_service()

    if plain or get_config_service().get("ui.plain_output", False):
        ui.set_plain_mode(True)

    setup_logging(logging.DEBUG if verbose else logging.WARNING, force=plain)


# ── Import ──

@app.command("import", rich_help_panel="Import")
def import_app(
    source: str = typer.Argument(..., help="Git repository URL or local app directory"),
    template_name: str = typer.Argument(..., help="Name for the new template (a-z, 0-9, -)"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to clone"),
    description: str = typer.Option(None, "--description", "-d", help="Template description"),
    framework_deps: Path = typer.Option(
        None, "--framework-deps", help="YAML/JSON file with the framework dependency set",
    ),
    as_json: bool = typer.Option(False, "--json", help="Output the result as JSON"),
):
    """[bold cyan]Import[/bold cyan] an app from git or a local path as a template."""
    ui.set_json_mode(as_json)
    import_cmd.import_app(source, template_name, branch, description, framework_deps)


@app.command(rich_help_panel="Import")
def adapt(
    app_path: Path = typer.Argument(..., help="Local app directory containing package.json"),
    template_name: str = typer.Argument(..., help="Name for the new template (a-z, 0-9, -)"),
    description: str = typer.Option(None, "--description", "-d", help="Template description"),
    framework_deps: Path = typer.Option(
        None, "--framework-deps", help="YAML/JSON file with the framework dependency set",
    ),
    as_json: bool = typer.Option(False, "--json", help="Output the result as JSON"),
):
    """[bold cyan]Adapt[/bold cyan] a standalone local app into a template."""
    ui.set_json_mode(as_json)
    import_cmd.adapt_app(app_path, template_name, description, framework_deps)


# ── Analysis ──

@app.command(rich_help_panel="Analysis")
@handle_errors
def analyze(
    path: Path = typer.Argument(Path("."), help="App root directory"),
    as_json: bool = typer.Option(False, "--json", help="Output the analysis as JSON"),
    as_yaml: bool = typer.Option(False, "--yaml", help="Output the analysis as YAML"),
    extractor: str = typer.Option(
        None, "--extractor", "-e", help="Extractor strategy: pattern or tree-sitter",
    ),
):
    """[bold cyan]Analyze[/bold cyan] an app's components, routes, state and styling."""
    from rich.markup import escape
    from rich.panel import Panel
    from rich.table import Table

    from graft.analyzers.app_analyzer import AppAnalyzer, create_extractor
    from graft.core.config_service import get_config_service

    config = get_config_service()
    analyzer = AppAnalyzer(
        create_extractor(extractor or config.get_extractor_name()),
        workers=config.get_workers(),
    )

    if as_json or as_yaml:
        result = analyzer.analyze(path)
        if as_yaml:
            import yaml
            print(yaml.safe_dump(result.to_dict(), sort_keys=False, default_flow_style=False), end="")
        else:
            ui.print_json_output(result.to_dict())
        return

    with ui.status("[info]Analyzing application...[/info]"):
        result = analyzer.analyze(path)

    console = ui.console
    console.print()
    console.print(Panel(
        f"[bold]{escape(result.root.name)}[/bold]  [muted]source: {escape(result.source_dir)}/[/muted]\n"
        f"{len(result.components)} components, {len(result.routes)} routes, "
        f"{len(result.dependencies)} dependencies",
        title="App Analysis",
        border_style="cyan",
    ))

    if result.components:
        table = Table(title="Components", show_header=True, expand=False)
        table.add_column("Name", style="cyan")
        table.add_column("File")
        table.add_column("State", justify="center")
        table.add_column("Effects", justify="center")
        table.add_column("Props", justify="right")
        for c in result.components:
            table.add_row(
                escape(c.name),
                escape(c.file_path),
                ui.icon("complete") if c.has_state else "",
                ui.icon("complete") if c.has_effects else "",
                str(len(c.props)) if c.props is not None else "-",
            )
        console.print(table)
        console.print("[muted]State and effect columns come from hook-call patterns and are best-effort.[/muted]")

    if result.routes:
        table = Table(title="Routes", show_header=True, expand=False)
        table.add_column("Path", style="cyan")
        table.add_column("Component")
        table.add_column("File")
        table.add_column("Layout")
        table.add_column("Protected", justify="center")
        for r in result.routes:
            table.add_row(
                escape(r.path),
                escape(r.component),
                escape(r.component_path) if r.component_path else "[muted]unresolved[/muted]",
                escape(r.layout or ""),
                ui.icon("lock") if r.protected else "",
            )
        console.print(table)

    state = result.state_management
    style = result.style_system
    console.print(f"\n[bold]State management:[/bold] {state.kind.value}"
                  + (f" ({escape(', '.join(state.libraries))})" if state.libraries else ""))
    for store in state.store_files:
        console.print(f"  {ui.icon('bullet')} {escape(store)}")
    console.print(f"[bold]Styling:[/bold] {style.kind.value}")
    for item in style.evidence:
        console.print(f"  {ui.icon('bullet')} {escape(item)}")

    if result.api_endpoints:
        ui.section_divider("API endpoints")
        for endpoint in result.api_endpoints:
            console.print(f"  {escape(endpoint)}")

    if result.skipped_files:
        ui.section_divider("Skipped files")
        for skipped in result.skipped_files:
            console.print(f"  {ui.icon('warning')} {escape(skipped.file_path)}: {escape(skipped.reason)}")


@app.command(rich_help_panel="Analysis")
def deps(
    app_path: Path = typer.Argument(Path("."), help="App root directory"),
    framework_deps: Path = typer.Option(
        None, "--framework-deps", help="YAML/JSON file with the framework dependency set",
    ),
    as_json: bool = typer.Option(False, "--json", help="Output the report as JSON"),
):
    """Reconcile an app's dependencies with the framework's."""
    deps_cmd.show_dependencies(app_path, framework_deps, as_json)


# ── Scaffolding ──

@app.command(rich_help_panel="Templates")
@handle_errors
def new(
    template: str = typer.Argument(..., help="Template name"),
    app_name: str = typer.Argument(..., help="Name of the new app directory (a-z, 0-9, -)"),
    directory: Path = typer.Option(None, "--dir", help="Parent directory (default: current directory)"),
    api_url: str = typer.Option("http://localhost:8080", "--api-url", help="API base URL for the README"),
    framework_deps: Path = typer.Option(
        None, "--framework-deps", help="YAML/JSON file with the framework dependency set",
    ),
):
    """[bold cyan]Create[/bold cyan] a new app from a template."""
    from graft.core.config_service import load_dependency_file
    from graft.core.scaffold_service import ScaffoldService

    deps_override = load_dependency_file(framework_deps) if framework_deps else None
    service = ScaffoldService(framework_dependencies=deps_override)
    with ui.status("[info]Creating application from template...[/info]"):
        result = service.create_app(template, app_name, directory, api_url)

    ui.success_panel("Application created", ui.key_value_table([
        ("App", result.app_name),
        ("Location", str(result.app_path)),
        ("Template", result.template_name),
        ("Dependencies", str(result.dependency_count)),
    ]))
    ui.format_next_step(f"cd {result.app_path} && npm install && npm run dev")


if __name__ == "__main__":
    app()
