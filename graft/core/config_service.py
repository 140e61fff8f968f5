"""Layered configuration service for graft.

Priority (highest to lowest):
1. Environment variables (GRAFT_*)
2. Project config (.graft.toml in current directory)
3. Global config (~/.config/graft/config.toml)
4. Built-in defaults
"""
from __future__ import annotations

import copy
import logging
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomli_w
import yaml

from graft.errors import ConfigError

logger = logging.getLogger("graft.config")


def _write_toml(data: dict, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        tomli_w.dump(data, f)


# Packages the host framework scaffolds into every generated app
DEFAULT_FRAMEWORK_DEPENDENCIES: dict[str, str] = {
    "react": "^18.2.0",
    "react-dom": "^18.2.0",
    "react-redux": "^9.0.4",
    "react-router-dom": "^6.21.1",
    "@reduxjs/toolkit": "^2.0.1",
}

# Default configuration values
DEFAULTS: dict[str, Any] = {
    "templates": {
        "dir": "",
    },
    "analysis": {
        "extractor": "pattern",
        "workers": 4,
    },
    "framework": {
        "dependencies": dict(DEFAULT_FRAMEWORK_DEPENDENCIES),
        "packages": sorted(DEFAULT_FRAMEWORK_DEPENDENCIES),
    },
    "ui": {
        "plain_output": False,
    },
}

EXTRACTOR_CHOICES = ("pattern", "tree-sitter")

# Mapping of env vars to config paths
ENV_VAR_MAP = {
    "GRAFT_TEMPLATES_DIR": "templates.dir",
    "GRAFT_EXTRACTOR": "analysis.extractor",
    "GRAFT_WORKERS": "analysis.workers",
    "GRAFT_PLAIN": "ui.plain_output",
}


def _global_config_dir() -> Path:
    """Return the global config directory: ~/.config/graft/."""
    return Path.home() / ".config" / "graft"


def _global_config_path() -> Path:
    """Return the global config file path."""
    return _global_config_dir() / "config.toml"


def _project_config_path() -> Path:
    """Return the project config file path (.graft.toml in cwd)."""
    return Path.cwd() / ".graft.toml"


def _read_toml(path: Path) -> dict:
    """Read a TOML file, returning empty dict if missing or unreadable."""
    if not path.is_file():
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Failed to read %s: %s", path, e)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base (override wins)."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _get_nested(data: dict, dotted_key: str, default: Any = None) -> Any:
    """Get a value from a nested dict using dotted key notation."""
    keys = dotted_key.split(".")
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
        if current is None:
            return default
    return current


def _set_nested(data: dict, dotted_key: str, value: Any) -> None:
    """Set a value in a nested dict using dotted key notation."""
    keys = dotted_key.split(".")
    current = data
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], dict):
            current[key] = {}
        current = current[key]
    current[keys[-1]] = value


def coerce_value(value: str) -> Any:
    """Convert string booleans and integers from environment variables."""
    lowered = value.lower()
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    if value.isdigit():
        return int(value)
    return value


@dataclass
class ResolvedConfig:
    """Fully resolved configuration after merging all layers."""
    data: dict = field(default_factory=dict)
    global_config_path: Optional[Path] = None
    project_config_path: Optional[Path] = None

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted key notation."""
        return _get_nested(self.data, dotted_key, default)


class ConfigService:
    """Layered configuration service.

    Resolves config from multiple sources with clear precedence:
    1. Environment variables (GRAFT_*)
    2. Project config (.graft.toml)
    3. Global config (~/.config/graft/config.toml)
    4. Built-in defaults
    """

    def __init__(self):
        self._resolved: Optional[ResolvedConfig] = None

    def resolve(self, force: bool = False) -> ResolvedConfig:
        """Resolve the full config from all layers."""
        if self._resolved is not None and not force:
            return self._resolved

        merged = copy.deepcopy(DEFAULTS)

        global_path = _global_config_path()
        global_data = _read_toml(global_path)
        if global_data:
            merged = _deep_merge(merged, global_data)
            logger.debug("Loaded global config from %s", global_path)

        project_path = _project_config_path()
        project_data = _read_toml(project_path)
        if project_data:
            merged = _deep_merge(merged, project_data)
            logger.debug("Loaded project config from %s", project_path)

        for env_var, config_path in ENV_VAR_MAP.items():
            env_value = os.environ.get(env_var)
            if env_value is not None:
                _set_nested(merged, config_path, coerce_value(env_value))

        self._resolved = ResolvedConfig(
            data=merged,
            global_config_path=global_path if global_path.is_file() else None,
            project_config_path=project_path if project_path.is_file() else None,
        )
        return self._resolved

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a resolved config value."""
        return self.resolve().get(dotted_key, default)

    def get_templates_dir(self) -> Path:
        """Get the templates directory.

        Defaults to ``./templates`` under the current working directory.
        """
        configured = self.get("templates.dir", "")
        if configured:
            return Path(str(configured)).expanduser()
        return Path.cwd() / "templates"

    def get_extractor_name(self) -> str:
        """Get the configured source-fact extractor strategy."""
        name = str(self.get("analysis.extractor", "pattern"))
        if name not in EXTRACTOR_CHOICES:
            raise ConfigError(
                f"Unknown extractor '{name}'. Choose one of: {', '.join(EXTRACTOR_CHOICES)}",
                context={"key": "analysis.extractor"},
            )
        return name

    def get_workers(self) -> int:
        """Get the number of threads used for file extraction."""
        value = self.get("analysis.workers", 4)
        try:
            workers = int(value)
        except (TypeError, ValueError):
            raise ConfigError(
                f"analysis.workers must be an integer, got {value!r}",
                context={"key": "analysis.workers"},
            ) from None
        return max(1, workers)

    def get_framework_dependencies(self) -> dict[str, str]:
        """Get the framework dependency map (package -> version range)."""
        deps = self.get("framework.dependencies", {})
        if not isinstance(deps, dict):
            raise ConfigError(
                "framework.dependencies must be a table of package = version",
                context={"key": "framework.dependencies"},
            )
        return _version_map(deps, "framework.dependencies", {"key": "framework.dependencies"})

    def get_framework_packages(self) -> list[str]:
        """Get package names owned by the framework."""
        packages = self.get("framework.packages", [])
        if not isinstance(packages, list):
            raise ConfigError(
                "framework.packages must be a list of package names",
                context={"key": "framework.packages"},
            )
        return [str(p) for p in packages]

    def set_global(self, dotted_key: str, value: Any) -> None:
        """Set a value in the global config file."""
        path = _global_config_path()
        data = _read_toml(path)
        _set_nested(data, dotted_key, value)
        _write_toml(data, path)
        # Invalidate cache
        self._resolved = None
        logger.info("Set %s = %s in %s", dotted_key, value, path)

    def init_project_config(self) -> Path:
        """Create a .graft.toml in the current directory with defaults."""
        path = _project_config_path()
        if path.exists():
            raise FileExistsError(f"Project config already exists: {path}")

        data = {
            "templates": {
                "dir": "./templates",
            },
            "analysis": {
                "extractor": "pattern",
                "workers": 4,
            },
            "framework": {
                "dependencies": dict(DEFAULT_FRAMEWORK_DEPENDENCIES),
            },
        }
        _write_toml(data, path)
        self._resolved = None
        logger.info("Created project config: %s", path)
        return path

    def show(self) -> dict:
        """Return the resolved config and the files it came from."""
        resolved = self.resolve(force=True)
        return {
            "resolved": resolved.data,
            "sources": {
                "global_config": str(resolved.global_config_path) if resolved.global_config_path else None,
                "project_config": str(resolved.project_config_path) if resolved.project_config_path else None,
            },
        }

    def config_paths(self) -> dict[str, str]:
        """Return all config file locations and their existence status."""
        global_path = _global_config_path()
        project_path = _project_config_path()
        templates_dir = self.get_templates_dir()
        return {
            "global_config": f"{global_path} ({'exists' if global_path.is_file() else 'not found'})",
            "project_config": f"{project_path} ({'exists' if project_path.is_file() else 'not found'})",
            "templates_dir": f"{templates_dir} ({'exists' if templates_dir.is_dir() else 'not found'})",
        }


# Module-level singleton
_config_service: Optional[ConfigService] = None


def get_config_service() -> ConfigService:
    """Get or create the global ConfigService instance."""
    global _config_service
    if _config_service is None:
        _config_service = ConfigService()
    return _config_service


def reset_config_service() -> None:
    """Reset the global config service (useful for testing)."""
    global _config_service
    _config_service = None


def _version_map(deps: dict, where: str, context: dict) -> dict[str, str]:
    """Package -> version map; versions must be strings so "1.10" stays "1.10"."""
    bad = sorted(str(k) for k, v in deps.items() if not isinstance(v, str))
    if bad:
        raise ConfigError(
            f"{where}: versions must be quoted strings (check {', '.join(bad)})",
            context={**context, "packages": bad},
        )
    return {str(k): v for k, v in deps.items()}


def load_dependency_file(path: Path) -> dict[str, str]:
    """Read a framework dependency set from a YAML or JSON file.

    Accepts either a plain ``package: version`` mapping or a
    ``package.json``-shaped document, whose ``dependencies`` are used.

    Raises:
        ConfigError: If the file is unreadable or malformed, or a version
            is not a string (unquoted YAML numbers like ``1.10``).
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read dependency file {path}: {e}", context={"file": str(path)}) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML/JSON in {path}: {e}", context={"file": str(path)}) from e

    if isinstance(data, dict) and isinstance(data.get("dependencies"), dict):
        data = data["dependencies"]
    if not isinstance(data, dict):
        raise ConfigError(
            f"{path} must map package names to version ranges",
            context={"file": str(path)},
        )
    return _version_map(data, str(path), {"file": str(path)})
