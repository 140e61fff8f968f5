"""Import service - turns an existing application into a template.

Pipeline: validate name -> analyze -> merge dependencies -> build config ->
create template -> copy sources. Each step completes before the next starts.
If anything fails after the template directory exists, the directory is
removed before the error propagates.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from collections.abc import Mapping
from pathlib import Path

from graft.analyzers import dependency_resolver
from graft.analyzers.app_analyzer import TAILWIND_CONFIGS, AppAnalyzer, create_extractor
from graft.analyzers.models import AppAnalysisResult, StyleKind
from graft.core import DependencyReport, ImportResult
from graft.core.config_service import get_config_service
from graft.errors import CloneError, GraftIOError, ManifestNotFoundError, ValidationError
from graft.templates.models import (
    ComponentSets,
    Customization,
    RouteConfig,
    TemplateConfig,
    TemplateSource,
)
from graft.templates.registry import TemplateRegistry, validate_name
from graft.templates.template import COPY_EXCLUDES, Template

logger = logging.getLogger("graft.core.import")

# Root-level build and tooling configs carried into the template
ROOT_CONFIG_FILES: tuple[str, ...] = (
    "tailwind.config.js",
    "tailwind.config.ts",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
    "postcss.config.js",
    "postcss.config.cjs",
    "tsconfig.json",
    "vite.config.ts",
    "vite.config.js",
    "vite.config.mjs",
    "webpack.config.js",
    "webpack.config.ts",
    "next.config.js",
    "next.config.mjs",
    "craco.config.js",
    ".eslintrc.js",
    ".eslintrc.json",
    ".prettierrc",
    ".prettierrc.json",
)

CLONE_TIMEOUT_SECONDS = 300


def build_template_config(
    name: str,
    description: str,
    source: TemplateSource,
    analysis: AppAnalysisResult,
    dependencies: Mapping[str, str],
) -> TemplateConfig:
    """Derive a template config from an analysis.

    Components that hold state or run effects are required; the rest are
    optional. Theme support follows Tailwind, auth follows protected routes.
    """
    required: list[str] = []
    optional: list[str] = []
    for component in analysis.components:
        target = required if (component.has_state or component.has_effects) else optional
        if component.name not in required and component.name not in optional:
            target.append(component.name)

    tailwind = analysis.style_system.kind == StyleKind.TAILWIND or any(
        name in TAILWIND_CONFIGS for name in analysis.style_system.config_files
    )

    return TemplateConfig(
        name=name,
        description=description,
        source=source,
        components=ComponentSets(required=required, optional=optional),
        routes=[
            RouteConfig(path=r.path, component=r.component, protected=r.protected, layout=r.layout)
            for r in analysis.routes
        ],
        dependencies=dict(dependencies),
        modules=[],
        customization=Customization(
            theme=tailwind,
            layout=True,
            auth=any(r.protected for r in analysis.routes),
        ),
    )


def build_dependency_report(
    app_deps: Mapping[str, str],
    framework_deps: Mapping[str, str],
    framework_packages: list[str] | None = None,
) -> DependencyReport:
    """Reconcile an app's dependencies with the framework's for display."""
    merged = dependency_resolver.merge_dependencies(app_deps, framework_deps)
    packages = framework_packages if framework_packages is not None else list(framework_deps)
    conflicts = {
        pkg: (version, framework_deps[pkg], merged[pkg])
        for pkg, version in app_deps.items()
        if pkg in framework_deps and framework_deps[pkg] != version
    }
    return DependencyReport(
        app_dependencies=dict(app_deps),
        framework_dependencies=dict(framework_deps),
        merged=merged,
        app_only=dependency_resolver.filter_framework_dependencies(app_deps, packages),
        critical=dependency_resolver.get_critical_packages(app_deps),
        conflicts=conflicts,
    )


def _ignore_build_dirs(_dir: str, names: list[str]) -> set[str]:
    return {name for name in names if name in COPY_EXCLUDES or name == ".git"}


class ImportService:
    """Imports applications from local paths or git repositories."""

    def __init__(
        self,
        registry: TemplateRegistry | None = None,
        analyzer: AppAnalyzer | None = None,
        framework_dependencies: Mapping[str, str] | None = None,
    ):
        config = get_config_service()
        self.registry = registry or TemplateRegistry(config.get_templates_dir())
        self.analyzer = analyzer or AppAnalyzer(
            create_extractor(config.get_extractor_name()),
            workers=config.get_workers(),
        )
        if framework_dependencies is None:
            framework_dependencies = config.get_framework_dependencies()
        self.framework_dependencies = dict(framework_dependencies)

    # ── Public API ────────────────────────────────────────────────

    def import_from_local(
        self,
        app_path: Path,
        template_name: str,
        description: str | None = None,
        require_manifest: bool = False,
    ) -> ImportResult:
        """Import an application directory as a new template.

        Raises:
            ValidationError: On a bad or already-used template name.
            ManifestNotFoundError: If ``require_manifest`` and there is no package.json.
            AnalysisError: If the app has no recognisable source directory.
            GraftIOError: If the template cannot be written.
        """
        self._check_name(template_name)
        app_path = Path(app_path).expanduser().resolve()
        if require_manifest and dependency_resolver.read_manifest(app_path) is None:
            raise ManifestNotFoundError(str(app_path / dependency_resolver.MANIFEST_NAME))

        return self._import(
            app_path,
            template_name,
            description or f"Imported from {app_path}",
            TemplateSource(repo="local", branch="main"),
        )

    def import_from_git(
        self,
        repo_url: str,
        template_name: str,
        branch: str = "main",
        description: str | None = None,
    ) -> ImportResult:
        """Shallow-clone ``repo_url`` and import it as a new template.

        The clone lives in a temporary directory that is removed afterwards,
        so ``result.analysis.root`` no longer exists once this returns.

        Raises:
            CloneError: If git is missing or the clone fails.
        """
        self._check_name(template_name)
        with tempfile.TemporaryDirectory(prefix="graft-clone-") as tmp:
            checkout = Path(tmp) / template_name
            self._clone(repo_url, branch, checkout)
            return self._import(
                checkout,
                template_name,
                description or f"Imported from {repo_url}",
                TemplateSource(repo=repo_url, branch=branch),
            )

    # ── Steps ─────────────────────────────────────────────────────

    def _check_name(self, template_name: str) -> None:
        validate_name(template_name)
        if self.registry.has_template(template_name):
            raise ValidationError(
                f"Template '{template_name}' already exists",
                context={"template": template_name, "search_dir": str(self.registry.templates_dir)},
            )

    def _clone(self, repo_url: str, branch: str, dest: Path) -> None:
        logger.info("Cloning %s (branch %s)", repo_url, branch)
        cmd = ["git", "clone", "--depth", "1", "--branch", branch, repo_url, str(dest)]
        try:
            proc = subprocess.run(
                cmd, capture_output=True, text=True, timeout=CLONE_TIMEOUT_SECONDS, check=False,
            )
        except FileNotFoundError:
            raise CloneError("git is not installed or not on PATH", repo_url=repo_url, branch=branch) from None
        except subprocess.TimeoutExpired:
            raise CloneError(
                f"Timed out cloning {repo_url} after {CLONE_TIMEOUT_SECONDS}s",
                repo_url=repo_url, branch=branch,
            ) from None

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout or "").strip().splitlines()
            reason = detail[-1] if detail else f"exit code {proc.returncode}"
            raise CloneError(f"Failed to clone {repo_url}: {reason}", repo_url=repo_url, branch=branch)

    def _import(
        self,
        app_root: Path,
        template_name: str,
        description: str,
        source: TemplateSource,
    ) -> ImportResult:
        analysis = self.analyzer.analyze(app_root)
        logger.info(
            "Analyzed %s: %d components, %d routes",
            app_root, len(analysis.components), len(analysis.routes),
        )

        dependencies = dependency_resolver.merge_dependencies(
            analysis.dependencies, self.framework_dependencies,
        )
        config = build_template_config(template_name, description, source, analysis, dependencies)

        self.registry.ensure_dir()
        template = self.registry.register_template(config)
        try:
            copied = self._copy_sources(analysis, template)
        except BaseException:
            self._discard(template)
            raise

        return ImportResult(
            template=template,
            analysis=analysis,
            critical_packages=dependency_resolver.get_critical_packages(analysis.dependencies),
            copied_files=copied,
        )

    def _copy_sources(self, analysis: AppAnalysisResult, template: Template) -> list[str]:
        """Copy the source dir to ``<template>/src`` plus known root configs."""
        source_dir = analysis.root / analysis.source_dir
        dest_root = template.path
        try:
            shutil.copytree(source_dir, dest_root / "src", ignore=_ignore_build_dirs, dirs_exist_ok=True)
            copied = []
            for dirpath, _dirnames, filenames in os.walk(dest_root / "src"):
                for filename in filenames:
                    copied.append((Path(dirpath) / filename).relative_to(dest_root).as_posix())

            for name in ROOT_CONFIG_FILES:
                candidate = analysis.root / name
                if candidate.is_file():
                    shutil.copy2(candidate, dest_root / name)
                    copied.append(name)
        except (shutil.Error, OSError) as e:
            raise GraftIOError(
                f"Failed to copy sources into template '{template.name}': {e}",
                path=str(dest_root),
            ) from e

        logger.debug("Copied %d files from /%s", len(copied), analysis.source_dir)
        return sorted(copied)

    def _discard(self, template: Template) -> None:
        try:
            template.destroy()
        except GraftIOError as e:
            logger.warning("Could not remove partial template %s: %s", template.path, e)
