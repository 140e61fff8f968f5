"""Data models for application analysis results.

Everything reachable from an AppAnalysisResult is frozen: list fields are
stored as tuples and the dependency map is a read-only view.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


def _freeze(obj, name: str, value) -> None:
    object.__setattr__(obj, name, value)


def _plain(value):
    """Turn tuples back into lists so results serialize as JSON or YAML."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


class StateKind(str, Enum):
    """State-management approach detected in an application."""
    REDUX = "redux"
    ZUSTAND = "zustand"
    CONTEXT = "context"
    NONE = "none"
    MULTIPLE = "multiple"


class StyleKind(str, Enum):
    """Styling system detected in an application."""
    TAILWIND = "tailwind"
    CSS_MODULES = "css-modules"
    STYLED_COMPONENTS = "styled-components"
    EMOTION = "emotion"
    PLAIN_CSS = "plain-css"
    MULTIPLE = "multiple"


@dataclass(frozen=True)
class ImportInfo:
    """One import statement in a source file."""
    source: str
    specifiers: tuple[str, ...] = ()
    is_default: bool = False

    def __post_init__(self):
        _freeze(self, "specifiers", tuple(self.specifiers))


@dataclass(frozen=True)
class PropInfo:
    """A declared component prop."""
    name: str
    type: str | None = None
    required: bool = True


@dataclass(frozen=True)
class ComponentInfo:
    """A discovered component file."""
    name: str
    file_path: str  # relative to the analyzed root, POSIX separators
    exports: tuple[str, ...] = ()
    imports: tuple[ImportInfo, ...] = ()
    has_state: bool = False
    has_effects: bool = False
    props: tuple[PropInfo, ...] | None = None

    def __post_init__(self):
        _freeze(self, "exports", tuple(self.exports))
        _freeze(self, "imports", tuple(self.imports))
        if self.props is not None:
            _freeze(self, "props", tuple(self.props))


@dataclass(frozen=True)
class RouteInfo:
    """A route discovered in router configuration."""
    path: str
    component: str
    component_path: str = ""  # empty when the component could not be resolved
    protected: bool = False
    layout: str | None = None


@dataclass(frozen=True)
class StateManagementInfo:
    kind: StateKind = StateKind.NONE
    libraries: tuple[str, ...] = ()
    store_files: tuple[str, ...] = ()

    def __post_init__(self):
        _freeze(self, "libraries", tuple(self.libraries))
        _freeze(self, "store_files", tuple(self.store_files))


@dataclass(frozen=True)
class StyleSystemInfo:
    kind: StyleKind = StyleKind.PLAIN_CSS
    config_files: tuple[str, ...] = ()
    evidence: tuple[str, ...] = ()

    def __post_init__(self):
        _freeze(self, "config_files", tuple(self.config_files))
        _freeze(self, "evidence", tuple(self.evidence))


@dataclass(frozen=True)
class SkippedFile:
    """A source file that could not be analyzed."""
    file_path: str
    reason: str


def find_component(components, name: str) -> ComponentInfo | None:
    """First component called ``name``, else the first one exporting it."""
    for component in components:
        if component.name == name:
            return component
    for component in components:
        if name in component.exports:
            return component
    return None


@dataclass(frozen=True)
class AppAnalysisResult:
    """Immutable snapshot of everything recovered from an application."""
    root: Path
    source_dir: str
    components: tuple[ComponentInfo, ...] = ()
    routes: tuple[RouteInfo, ...] = ()
    dependencies: Mapping[str, str] = field(default_factory=dict)
    state_management: StateManagementInfo = field(default_factory=StateManagementInfo)
    style_system: StyleSystemInfo = field(default_factory=StyleSystemInfo)
    api_endpoints: tuple[str, ...] = ()
    skipped_files: tuple[SkippedFile, ...] = ()

    def __post_init__(self):
        _freeze(self, "components", tuple(self.components))
        _freeze(self, "routes", tuple(self.routes))
        _freeze(self, "dependencies", MappingProxyType(dict(self.dependencies)))
        _freeze(self, "api_endpoints", tuple(self.api_endpoints))
        _freeze(self, "skipped_files", tuple(self.skipped_files))

    def find_component(self, name: str) -> ComponentInfo | None:
        """Find a component by name or by any of its exports."""
        return find_component(self.components, name)

    def to_dict(self) -> dict:
        """Serializable view used by ``graft analyze --json/--yaml``."""
        return {
            "root": str(self.root),
            "source_dir": self.source_dir,
            "components": [_plain(asdict(c)) for c in self.components],
            "routes": [asdict(r) for r in self.routes],
            "dependencies": dict(self.dependencies),
            "state_management": {
                "type": self.state_management.kind.value,
                "libraries": list(self.state_management.libraries),
                "store_files": list(self.state_management.store_files),
            },
            "style_system": {
                "type": self.style_system.kind.value,
                "config_files": list(self.style_system.config_files),
                "evidence": list(self.style_system.evidence),
            },
            "api_endpoints": list(self.api_endpoints),
            "skipped_files": [asdict(s) for s in self.skipped_files],
        }
