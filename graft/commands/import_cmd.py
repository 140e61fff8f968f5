"""Import commands: turn an existing application into a template."""
from __future__ import annotations

from pathlib import Path

from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from graft import ui
from graft.core import ImportResult
from graft.error_handler import handle_errors


def _is_remote(source: str) -> bool:
    return source.startswith(("http://", "https://", "git@", "ssh://", "git://")) or source.endswith(".git")


def _service(framework_deps: Path | None):
    from graft.core.config_service import load_dependency_file
    from graft.core.import_service import ImportService

    deps = load_dependency_file(framework_deps) if framework_deps else None
    return ImportService(framework_dependencies=deps)


def render_import_result(result: ImportResult, title: str) -> None:
    """Print the summary shown after a successful import."""
    config = result.template.get_config()
    if ui.is_json():
        ui.print_json_output({
            "template": config.to_dict(),
            "path": str(result.template.path),
            "critical_packages": result.critical_packages,
            "copied_files": result.copied_files,
            "component_count": result.component_count,
            "route_count": result.route_count,
            "skipped_files": [s.file_path for s in result.analysis.skipped_files],
        })
        return

    rows = [
        ("Template", config.name),
        ("Location", str(result.template.path)),
        ("Components", (
            f"{result.component_count} found, {len(config.components.required)} required, "
            f"{len(config.components.optional)} optional"
        )),
        ("Routes", str(result.route_count)),
        ("Dependencies", str(len(config.dependencies))),
        ("State", result.analysis.state_management.kind.value),
        ("Styling", result.analysis.style_system.kind.value),
        ("Theme support", "Yes" if config.customization.theme else "No"),
        ("Auth support", "Yes" if config.customization.auth else "No"),
        ("Files copied", str(len(result.copied_files))),
    ]
    ui.success_panel(title, ui.key_value_table(rows))

    if result.critical_packages and not ui.is_plain():
        table = Table(title="App-specific packages", show_header=True, expand=False)
        table.add_column("Package", style="cyan")
        table.add_column("Version")
        for pkg, version in sorted(result.critical_packages.items()):
            table.add_row(escape(pkg), escape(version))
        ui.console.print(table)

    if result.analysis.skipped_files:
        ui.console.print(
            f"[warning]{ui.icon('warning')} {len(result.analysis.skipped_files)} file(s) could not be analyzed "
            f"and were copied as-is.[/warning]"
        )
    ui.console.print("[muted]Required components are those using state or effect hooks (best-effort detection).[/muted]")
    ui.format_next_step(f"graft new {config.name} my-app")


@handle_errors
def import_app(
    source: str,
    template_name: str,
    branch: str = "main",
    description: str | None = None,
    framework_deps: Path | None = None,
):
    """Import from a git URL or a local directory."""
    service = _service(framework_deps)
    if _is_remote(source):
        with ui.status(f"[info]Cloning {escape(source)}...[/info]"):
            result = service.import_from_git(source, template_name, branch=branch, description=description)
    else:
        with ui.status("[info]Analyzing application...[/info]"):
            result = service.import_from_local(Path(source), template_name, description=description)
    render_import_result(result, "Template imported")


@handle_errors
def adapt_app(
    app_path: Path,
    template_name: str,
    description: str | None = None,
    framework_deps: Path | None = None,
):
    """Adapt a standalone local app (must have a package.json)."""
    service = _service(framework_deps)
    with ui.status("[info]Analyzing and adapting application...[/info]"):
        result = service.import_from_local(
            app_path, template_name, description=description, require_manifest=True,
        )
    render_import_result(result, "Application adapted")
    if not ui.is_json() and not ui.is_plain():
        ui.console.print(Panel(
            "\n".join(
                f"{escape(r.path)}  {ui.icon('arrow')}  {escape(r.component)}" for r in result.template.routes
            ) or "No routes found",
            title="Routes",
            border_style="cyan",
        ))
