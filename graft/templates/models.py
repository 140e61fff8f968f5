"""Template configuration models.

``TemplateConfig`` mirrors ``template.config.json`` one-to-one. ``to_dict``
fixes the key order and sorts the dependency map so that rewriting an
unchanged config produces an identical file.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from graft.errors import ValidationError

CONFIG_FILENAME = "template.config.json"
DEFAULT_VERSION = "1.0.0"

CONFIG_KEYS: tuple[str, ...] = (
    "name",
    "description",
    "version",
    "source",
    "components",
    "routes",
    "dependencies",
    "modules",
    "customization",
)


def _require(condition: bool, message: str) -> None:
    if not condition:
        raise ValidationError(f"Invalid template config: {message}")


def _string_list(value, key: str) -> list[str]:
    _require(isinstance(value, list), f"'{key}' must be a list")
    _require(all(isinstance(v, str) for v in value), f"'{key}' must contain only strings")
    return list(value)


@dataclass
class TemplateSource:
    repo: str = ""
    branch: str = "main"

    @classmethod
    def from_dict(cls, d: dict) -> TemplateSource:
        _require(isinstance(d, dict), "'source' must be an object")
        return cls(repo=str(d.get("repo", "")), branch=str(d.get("branch", "main")))


@dataclass
class ComponentSets:
    """Component names split into required and optional; the sets are disjoint."""
    required: list[str] = field(default_factory=list)
    optional: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: dict) -> ComponentSets:
        _require(isinstance(d, dict), "'components' must be an object")
        required = _string_list(d.get("required", []), "components.required")
        optional = _string_list(d.get("optional", []), "components.optional")
        overlap = sorted(set(required) & set(optional))
        _require(not overlap, f"components both required and optional: {', '.join(overlap)}")
        return cls(required=required, optional=optional)


@dataclass
class RouteConfig:
    path: str
    component: str
    protected: bool = False
    layout: str | None = None

    @classmethod
    def from_dict(cls, d: dict) -> RouteConfig:
        _require(isinstance(d, dict), "each route must be an object")
        _require(isinstance(d.get("path"), str), "route 'path' must be a string")
        _require(isinstance(d.get("component"), str), "route 'component' must be a string")
        layout = d.get("layout")
        return cls(
            path=d["path"],
            component=d["component"],
            protected=bool(d.get("protected", False)),
            layout=str(layout) if layout is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "component": self.component,
            "protected": self.protected,
            **({"layout": self.layout} if self.layout is not None else {}),
        }


@dataclass
class Customization:
    theme: bool = False
    layout: bool = True
    auth: bool = False

    @classmethod
    def from_dict(cls, d: dict) -> Customization:
        _require(isinstance(d, dict), "'customization' must be an object")
        return cls(
            theme=bool(d.get("theme", False)),
            layout=bool(d.get("layout", True)),
            auth=bool(d.get("auth", False)),
        )


@dataclass
class TemplateConfig:
    name: str
    description: str = ""
    version: str = DEFAULT_VERSION
    source: TemplateSource = field(default_factory=TemplateSource)
    components: ComponentSets = field(default_factory=ComponentSets)
    routes: list[RouteConfig] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)
    modules: list[str] = field(default_factory=list)
    customization: Customization = field(default_factory=Customization)

    @classmethod
    def from_dict(cls, d: dict) -> TemplateConfig:
        """Build a config from parsed JSON.

        Raises:
            ValidationError: If a field is missing or has the wrong type.
        """
        _require(isinstance(d, dict), "top level must be an object")
        _require(isinstance(d.get("name"), str) and bool(d.get("name")), "'name' is required")

        routes = d.get("routes", [])
        _require(isinstance(routes, list), "'routes' must be a list")
        dependencies = d.get("dependencies", {})
        _require(isinstance(dependencies, dict), "'dependencies' must be an object")

        return cls(
            name=d["name"],
            description=str(d.get("description", "")),
            version=str(d.get("version", DEFAULT_VERSION)),
            source=TemplateSource.from_dict(d.get("source", {})),
            components=ComponentSets.from_dict(d.get("components", {})),
            routes=[RouteConfig.from_dict(r) for r in routes],
            dependencies={str(k): str(v) for k, v in dependencies.items()},
            modules=_string_list(d.get("modules", []), "modules"),
            customization=Customization.from_dict(d.get("customization", {})),
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "version": self.version,
            "source": {"repo": self.source.repo, "branch": self.source.branch},
            "components": {
                "required": list(self.components.required),
                "optional": list(self.components.optional),
            },
            "routes": [r.to_dict() for r in self.routes],
            "dependencies": dict(sorted(self.dependencies.items())),
            "modules": list(self.modules),
            "customization": {
                "theme": self.customization.theme,
                "layout": self.customization.layout,
                "auth": self.customization.auth,
            },
        }


@dataclass
class TemplateMetadata:
    """Listing summary for one template."""
    name: str
    description: str
    version: str
    created_at: datetime
    updated_at: datetime
    component_count: int
    route_count: int
    path: Path | None = None
