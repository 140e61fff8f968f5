"""Dependency reconciliation report."""
from __future__ import annotations

from pathlib import Path

from rich.markup import escape
from rich.table import Table

from graft import ui
from graft.error_handler import handle_errors


@handle_errors
def show_dependencies(app_path: Path, framework_deps: Path | None = None, as_json: bool = False):
    """Compare an app's package.json against the framework dependency set."""
    from graft.analyzers.dependency_resolver import extract_dependencies, read_manifest
    from graft.core.config_service import get_config_service, load_dependency_file
    from graft.core.import_service import build_dependency_report
    from graft.errors import ManifestNotFoundError

    if read_manifest(app_path) is None:
        raise ManifestNotFoundError(str(app_path))

    config = get_config_service()
    if framework_deps:
        framework = load_dependency_file(framework_deps)
        packages = list(framework)
    else:
        framework = config.get_framework_dependencies()
        packages = config.get_framework_packages()

    report = build_dependency_report(extract_dependencies(app_path), framework, packages)

    if as_json:
        ui.print_json_output({
            "merged": report.merged,
            "app_only": report.app_only,
            "critical": report.critical,
            "conflicts": {
                pkg: {"app": app, "framework": fw, "chosen": chosen}
                for pkg, (app, fw, chosen) in report.conflicts.items()
            },
        })
        return

    ui.console.print(ui.key_value_table([
        ("App dependencies", str(len(report.app_dependencies))),
        ("Framework dependencies", str(len(report.framework_dependencies))),
        ("Merged", str(len(report.merged))),
        ("Not provided by framework", str(len(report.app_only))),
    ], title="Dependencies"))

    if report.conflicts:
        table = Table(title="Version conflicts", show_header=True, expand=False)
        table.add_column("Package", style="cyan")
        table.add_column("App")
        table.add_column("Framework")
        table.add_column("Chosen", style="green")
        for pkg, (app, fw, chosen) in sorted(report.conflicts.items()):
            table.add_row(escape(pkg), escape(app), escape(fw), escape(chosen))
        ui.console.print(table)
    else:
        ui.console.print(f"{ui.icon('complete')} No version conflicts")

    if report.critical:
        ui.section_divider("App-specific packages")
        for pkg, version in sorted(report.critical.items()):
            ui.console.print(f"  {ui.icon('bullet')} {escape(pkg)} {escape(version)}")
