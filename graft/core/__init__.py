"""Service layer for graft.

All services return typed dataclasses. Services never import from graft.ui,
graft.cli, or typer. The CLI handles presentation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from graft.analyzers.models import AppAnalysisResult
from graft.templates.template import Template


@dataclass
class ImportResult:
    """Result of turning an application into a template."""

    template: Template
    analysis: AppAnalysisResult
    critical_packages: dict[str, str] = field(default_factory=dict)
    copied_files: list[str] = field(default_factory=list)

    @property
    def component_count(self) -> int:
        return len(self.analysis.components)

    @property
    def route_count(self) -> int:
        return len(self.analysis.routes)


@dataclass
class DependencyReport:
    """An app's dependencies reconciled against the framework's."""

    app_dependencies: dict[str, str]
    framework_dependencies: dict[str, str]
    merged: dict[str, str]
    app_only: dict[str, str]
    critical: dict[str, str]
    # package -> (app version, framework version, chosen version)
    conflicts: dict[str, tuple[str, str, str]] = field(default_factory=dict)


@dataclass
class ScaffoldResult:
    """Result of creating a new application from a template."""

    app_name: str
    app_path: Path
    template_name: str
    dependency_count: int
    created_files: list[str] = field(default_factory=list)
