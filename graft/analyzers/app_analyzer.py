"""Application analyzer.

Walks an application's source directory, runs a source-fact extractor over
every script file and folds the per-file facts into an
:class:`~graft.analyzers.models.AppAnalysisResult`.
"""

from __future__ import annotations

import logging
import os
import posixpath
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from graft.errors import AnalysisError, ConfigError, ExtractionError

from . import dependency_resolver
from .extractors import PatternExtractor, SourceFactExtractor, SourceFacts, detect_state_library
from .models import (
    AppAnalysisResult,
    ComponentInfo,
    RouteInfo,
    SkippedFile,
    StateKind,
    StateManagementInfo,
    StyleKind,
    StyleSystemInfo,
    find_component,
)

logger = logging.getLogger(__name__)

# Probed in order; the first existing, non-empty directory wins
SOURCE_DIR_CANDIDATES: tuple[str, ...] = ("src", "app", "source", "client")

SKIP_DIRS: set[str] = {
    "node_modules",
    "dist",
    "build",
    "out",
    ".next",
    ".nuxt",
    ".turbo",
    ".cache",
    ".parcel-cache",
    ".git",
    "coverage",
    "__snapshots__",
}

SCRIPT_EXTENSIONS: set[str] = {".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs"}

TAILWIND_CONFIGS: tuple[str, ...] = (
    "tailwind.config.js",
    "tailwind.config.ts",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
)
CSS_MODULE_SUFFIXES: tuple[str, ...] = (".module.css", ".module.scss", ".module.sass", ".module.less")

# Directory names that conventionally hold store definitions
STORE_DIRS: set[str] = {"store", "stores", "redux", "state"}
STORE_PACKAGES: tuple[str, ...] = ("redux", "@reduxjs/toolkit", "zustand")

STATE_ORDER: tuple[str, ...] = ("redux", "zustand", "context")


def create_extractor(name: str) -> SourceFactExtractor:
    """Build the extractor strategy configured as ``analysis.extractor``."""
    if name == "pattern":
        return PatternExtractor()
    if name == "tree-sitter":
        from .tree_sitter_extractor import TreeSitterExtractor
        return TreeSitterExtractor()
    raise ConfigError(f"Unknown extractor '{name}'", context={"key": "analysis.extractor"})


def find_source_dir(root: Path) -> Path:
    """Return the application's source directory.

    Raises:
        AnalysisError: If none of the candidate directories holds any files.
    """
    for candidate in SOURCE_DIR_CANDIDATES:
        path = root / candidate
        if path.is_dir() and any(path.iterdir()):
            return path
    raise AnalysisError(
        f"No source directory found in {root} (looked for {', '.join(SOURCE_DIR_CANDIDATES)})",
        root=str(root),
    )


def _is_script(name: str) -> bool:
    if name.endswith(".d.ts"):
        return False
    return os.path.splitext(name)[1] in SCRIPT_EXTENSIONS


def _walk(source_dir: Path) -> list[Path]:
    """Collect every file under ``source_dir``, pruning build and cache dirs."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for filename in sorted(filenames):
            found.append(Path(dirpath) / filename)
    return found


def _component_name(rel_path: str, facts: SourceFacts) -> str:
    if facts.default_export:
        return facts.default_export
    if facts.named_exports and not facts.has_default_export:
        return facts.named_exports[0]
    stem = posixpath.basename(rel_path).split(".")[0]
    if stem == "index":
        parent = posixpath.basename(posixpath.dirname(rel_path))
        if parent:
            return parent
    return stem


def _component_exports(facts: SourceFacts) -> list[str]:
    exports: list[str] = []
    if facts.has_default_export:
        exports.append(facts.default_export or "default")
    exports.extend(e for e in facts.named_exports if e not in exports)
    return exports


def _component_props(name: str, facts: SourceFacts):
    for type_name in (f"{name}Props", "Props"):
        if type_name in facts.prop_types:
            return list(facts.prop_types[type_name])
    return None


class AppAnalyzer:
    """Recovers components, routes, state and style conventions from an app."""

    def __init__(self, extractor: SourceFactExtractor | None = None, workers: int = 4):
        self.extractor = extractor or PatternExtractor()
        self.workers = max(1, workers)

    def analyze(self, root: Path) -> AppAnalysisResult:
        """Analyze the application rooted at ``root``.

        Args:
            root: Directory holding the app's ``package.json`` and source dir.

        Returns:
            An immutable AppAnalysisResult. Components and routes are ordered
            by file path so repeated runs over the same tree agree.

        Raises:
            AnalysisError: If ``root`` has no recognisable source directory.
        """
        root = Path(root).resolve()
        if not root.is_dir():
            raise AnalysisError(f"Not a directory: {root}", root=str(root))

        source_dir = find_source_dir(root)
        logger.info("Analyzing %s (source dir: %s)", root, source_dir.name)

        all_files = _walk(source_dir)
        scripts = [p for p in all_files if _is_script(p.name)]
        logger.info("Discovered %d script files", len(scripts))

        extracted, skipped = self._extract_all(scripts, root)
        dependencies = dependency_resolver.extract_dependencies(root)

        components = self._build_components(extracted)
        routes = self._build_routes(extracted, components)
        state = self._classify_state(extracted)
        style = self._classify_style(root, all_files, extracted, dependencies)

        endpoints: set[str] = set()
        for _, facts in extracted:
            endpoints.update(facts.api_endpoints)

        return AppAnalysisResult(
            root=root,
            source_dir=source_dir.name,
            components=tuple(components),
            routes=tuple(routes),
            dependencies=dependencies,
            state_management=state,
            style_system=style,
            api_endpoints=tuple(sorted(endpoints)),
            skipped_files=tuple(skipped),
        )

    # ── Extraction ────────────────────────────────────────────────

    def _extract_one(self, path: Path, root: Path) -> tuple[str, SourceFacts | None, str]:
        rel = path.relative_to(root).as_posix()
        try:
            text = path.read_text(encoding="utf-8")
            return rel, self.extractor.extract(path, text), ""
        except UnicodeDecodeError as e:
            return rel, None, f"not valid UTF-8: {e.reason}"
        except OSError as e:
            return rel, None, f"unreadable: {e.strerror or e}"
        except ExtractionError as e:
            return rel, None, str(e)

    def _extract_all(
        self, files: list[Path], root: Path,
    ) -> tuple[list[tuple[str, SourceFacts]], list[SkippedFile]]:
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            results = list(pool.map(lambda p: self._extract_one(p, root), files))

        extracted: list[tuple[str, SourceFacts]] = []
        skipped: list[SkippedFile] = []
        for rel, facts, reason in sorted(results, key=lambda r: r[0]):
            if facts is None:
                logger.warning("Skipping %s: %s", rel, reason)
                skipped.append(SkippedFile(file_path=rel, reason=reason))
            else:
                extracted.append((rel, facts))
        return extracted, skipped

    # ── Components & routes ───────────────────────────────────────

    def _build_components(self, extracted: list[tuple[str, SourceFacts]]) -> list[ComponentInfo]:
        components: list[ComponentInfo] = []
        for rel, facts in extracted:
            if not facts.has_exports:
                continue
            name = _component_name(rel, facts)
            components.append(ComponentInfo(
                name=name,
                file_path=rel,
                exports=_component_exports(facts),
                imports=list(facts.imports),
                has_state=facts.has_state,
                has_effects=facts.has_effects,
                props=_component_props(name, facts),
            ))
        return components

    def _build_routes(
        self,
        extracted: list[tuple[str, SourceFacts]],
        components: list[ComponentInfo],
    ) -> list[RouteInfo]:
        by_path = {c.file_path: c for c in components}
        routes: list[RouteInfo] = []
        seen: set[tuple[str, str, bool, str | None]] = set()

        for rel, facts in extracted:
            for definition in facts.routes:
                key = (definition.path, definition.component, definition.protected, definition.layout)
                if key in seen:
                    continue
                seen.add(key)
                component_path = self._resolve_component(definition.component, rel, facts, components, by_path)
                if not component_path:
                    logger.debug("Route %s: component %s not found", definition.path, definition.component)
                routes.append(RouteInfo(
                    path=definition.path,
                    component=definition.component,
                    component_path=component_path,
                    protected=definition.protected,
                    layout=definition.layout,
                ))
        return routes

    def _resolve_component(
        self,
        name: str,
        route_file: str,
        facts: SourceFacts,
        components: list[ComponentInfo],
        by_path: dict[str, ComponentInfo],
    ) -> str:
        match = find_component(components, name)
        if match is not None:
            return match.file_path

        # Aliased default import: import Home from './pages/HomePage'
        for imp in facts.imports:
            if name not in imp.specifiers or not imp.source.startswith("."):
                continue
            base = posixpath.normpath(posixpath.join(posixpath.dirname(route_file), imp.source))
            for candidate in self._module_candidates(base):
                if candidate in by_path:
                    return candidate
        return ""

    @staticmethod
    def _module_candidates(base: str) -> list[str]:
        candidates = [base]
        for ext in sorted(SCRIPT_EXTENSIONS):
            candidates.append(base + ext)
        for ext in sorted(SCRIPT_EXTENSIONS):
            candidates.append(posixpath.join(base, "index" + ext))
        return candidates

    # ── Classification ────────────────────────────────────────────

    def _classify_state(self, extracted: list[tuple[str, SourceFacts]]) -> StateManagementInfo:
        found: set[str] = set()
        store_files: set[str] = set()

        for rel, facts in extracted:
            is_store = bool(STORE_DIRS & set(rel.split("/")[:-1]))
            for imp in facts.imports:
                library = detect_state_library(imp.source)
                if library:
                    found.add(library)
                    if any(imp.source == p or imp.source.startswith(p + "/") for p in STORE_PACKAGES):
                        is_store = True
            if facts.defines_context:
                found.add("context")
                is_store = True
            if is_store:
                store_files.add(rel)

        libraries = [lib for lib in STATE_ORDER if lib in found]
        if not libraries:
            return StateManagementInfo(kind=StateKind.NONE)
        kind = StateKind(libraries[0]) if len(libraries) == 1 else StateKind.MULTIPLE
        return StateManagementInfo(kind=kind, libraries=libraries, store_files=sorted(store_files))

    def _classify_style(
        self,
        root: Path,
        all_files: list[Path],
        extracted: list[tuple[str, SourceFacts]],
        dependencies: dict[str, str],
    ) -> StyleSystemInfo:
        kinds: list[StyleKind] = []
        config_files: list[str] = []
        evidence: list[str] = []

        tailwind = [name for name in TAILWIND_CONFIGS if (root / name).is_file()]
        if tailwind:
            kinds.append(StyleKind.TAILWIND)
            config_files.extend(tailwind)
            evidence.extend(tailwind)

        modules = sorted(
            p.relative_to(root).as_posix()
            for p in all_files
            if p.name.endswith(CSS_MODULE_SUFFIXES)
        )
        if modules:
            kinds.append(StyleKind.CSS_MODULES)
            evidence.extend(modules)

        for kind, matches in (
            (StyleKind.STYLED_COMPONENTS, lambda s: s == "styled-components"),
            (StyleKind.EMOTION, lambda s: s.startswith("@emotion/")),
        ):
            files = sorted({rel for rel, facts in extracted if any(matches(i.source) for i in facts.imports)})
            packages = sorted(p for p in dependencies if matches(p))
            if files or packages:
                kinds.append(kind)
                evidence.extend(files or [f"package.json: {p}" for p in packages])

        if not kinds:
            return StyleSystemInfo(kind=StyleKind.PLAIN_CSS)
        kind = kinds[0] if len(kinds) == 1 else StyleKind.MULTIPLE
        return StyleSystemInfo(kind=kind, config_files=config_files, evidence=evidence)
