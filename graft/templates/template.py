"""A template directory and its ``template.config.json``.

The JSON file is the system of record; the in-memory config is a cache that
``load``/``reload`` refresh and ``update_config`` writes through. Accessors
hand out copies, so the only way to change a template is ``update_config``.

Lifecycle: create/load -> update_config* -> copy_to / destroy. A destroyed
Template raises TemplateDestroyedError from every method.
"""
from __future__ import annotations

import copy
import dataclasses
import json
import logging
import os
import shutil
import tempfile
from collections.abc import Mapping
from pathlib import Path

from graft.errors import GraftIOError, TemplateDestroyedError, TemplateNotFoundError, ValidationError

from .models import (
    CONFIG_FILENAME,
    CONFIG_KEYS,
    ComponentSets,
    Customization,
    RouteConfig,
    TemplateConfig,
    TemplateSource,
)

logger = logging.getLogger(__name__)

# Path segments never copied out of a template
COPY_EXCLUDES: frozenset[str] = frozenset({
    "node_modules",
    "dist",
    "build",
    ".next",
    ".turbo",
    ".cache",
    "coverage",
    ".parcel-cache",
})


def serialize_config(config: TemplateConfig) -> str:
    return json.dumps(config.to_dict(), indent=2, ensure_ascii=False) + "\n"


def write_config(directory: Path, config: TemplateConfig) -> None:
    """Atomically replace ``directory/template.config.json``."""
    dest = directory / CONFIG_FILENAME
    with tempfile.NamedTemporaryFile(
        "w", dir=directory, delete=False, encoding="utf-8", suffix=".tmp",
    ) as tf:
        tf.write(serialize_config(config))
        temp_name = tf.name

    try:
        os.replace(temp_name, dest)
    except Exception:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def read_config(directory: Path) -> TemplateConfig:
    """Parse the config file in ``directory``.

    Raises:
        TemplateNotFoundError: If there is no config file.
        ValidationError: If it is not valid JSON or fails schema checks.
    """
    path = directory / CONFIG_FILENAME
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise TemplateNotFoundError(directory.name, search_dir=str(directory.parent)) from None
    except NotADirectoryError:
        raise TemplateNotFoundError(directory.name, search_dir=str(directory.parent)) from None
    except OSError as e:
        raise GraftIOError(f"Cannot read {path}: {e}", path=str(path)) from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Malformed {CONFIG_FILENAME} in {directory}: {e}", context={"file": str(path)}) from e
    return TemplateConfig.from_dict(data)


def _as_json_value(value):
    """Accessor values (dataclasses, lists of them) in their JSON form."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (list, tuple)):
        return [_as_json_value(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _as_json_value(v) for k, v in value.items()}
    return value


def _ignore_excluded(_dir: str, names: list[str]) -> set[str]:
    return {name for name in names if name in COPY_EXCLUDES}


class Template:
    """One template on disk."""

    def __init__(self, path: Path, config: TemplateConfig):
        self._path = Path(path)
        self._config = config
        self._destroyed = False

    # ── Construction ──────────────────────────────────────────────

    @classmethod
    def create(cls, path: Path, config: TemplateConfig) -> Template:
        """Create the template directory, its ``src/`` and the config file.

        Raises:
            ValidationError: If a template config already exists at ``path``
                or ``config`` fails the checks ``load`` applies.
            GraftIOError: If the directory or file cannot be written.
        """
        path = Path(path)
        if (path / CONFIG_FILENAME).exists():
            raise ValidationError(
                f"A template already exists at {path}",
                context={"template": config.name, "path": str(path)},
            )
        # Same checks a load would apply
        TemplateConfig.from_dict(config.to_dict())
        try:
            (path / "src").mkdir(parents=True, exist_ok=True)
            write_config(path, config)
        except OSError as e:
            raise GraftIOError(f"Cannot create template at {path}: {e}", path=str(path)) from e

        logger.info("Created template %s at %s", config.name, path)
        return cls(path, copy.deepcopy(config))

    @classmethod
    def load(cls, path: Path) -> Template:
        path = Path(path)
        return cls(path, read_config(path))

    # ── State ─────────────────────────────────────────────────────

    def _check_alive(self) -> None:
        if self._destroyed:
            raise TemplateDestroyedError(self._config.name, path=str(self._path))

    @property
    def path(self) -> Path:
        self._check_alive()
        return self._path

    @property
    def config_path(self) -> Path:
        self._check_alive()
        return self._path / CONFIG_FILENAME

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ── Accessors ─────────────────────────────────────────────────

    @property
    def name(self) -> str:
        self._check_alive()
        return self._config.name

    @property
    def description(self) -> str:
        self._check_alive()
        return self._config.description

    @property
    def version(self) -> str:
        self._check_alive()
        return self._config.version

    @property
    def source(self) -> TemplateSource:
        self._check_alive()
        return copy.deepcopy(self._config.source)

    @property
    def components(self) -> ComponentSets:
        self._check_alive()
        return copy.deepcopy(self._config.components)

    @property
    def routes(self) -> list[RouteConfig]:
        self._check_alive()
        return copy.deepcopy(self._config.routes)

    @property
    def dependencies(self) -> dict[str, str]:
        self._check_alive()
        return dict(self._config.dependencies)

    @property
    def modules(self) -> list[str]:
        self._check_alive()
        return list(self._config.modules)

    @property
    def customization(self) -> Customization:
        self._check_alive()
        return copy.deepcopy(self._config.customization)

    def get_config(self) -> TemplateConfig:
        self._check_alive()
        return copy.deepcopy(self._config)

    # ── Mutation ──────────────────────────────────────────────────

    def update_config(self, updates: dict) -> None:
        """Shallow-merge ``updates`` into the config and rewrite the file.

        Only top-level keys are merged: to change one route, pass the whole
        ``routes`` list. Values may be given in JSON form or as the objects
        the accessors return. The name of a template never changes.

        Raises:
            ValidationError: On unknown keys, a name change, or a result that
                fails schema checks.
            GraftIOError: If the file cannot be written. The in-memory config
                is left exactly as it was.
        """
        self._check_alive()
        unknown = sorted(set(updates) - set(CONFIG_KEYS))
        if unknown:
            raise ValidationError(
                f"Unknown template config keys: {', '.join(unknown)}",
                context={"template": self._config.name, "keys": unknown},
            )
        if "name" in updates and updates["name"] != self._config.name:
            raise ValidationError(
                f"Template name cannot be changed (was '{self._config.name}')",
                context={"template": self._config.name},
            )

        merged = self._config.to_dict()
        merged.update({key: _as_json_value(value) for key, value in updates.items()})
        candidate = TemplateConfig.from_dict(merged)

        try:
            write_config(self._path, candidate)
        except OSError as e:
            raise GraftIOError(
                f"Cannot write {CONFIG_FILENAME} for '{self._config.name}': {e}",
                path=str(self._path / CONFIG_FILENAME),
            ) from e

        self._config = candidate
        logger.debug("Updated %s: %s", self._config.name, ", ".join(sorted(updates)))

    def reload(self) -> None:
        """Re-read the config file, dropping the cached copy."""
        self._check_alive()
        self._config = read_config(self._path)

    # ── Filesystem operations ─────────────────────────────────────

    def copy_to(self, destination: Path) -> Path:
        """Copy the template tree to ``destination``, skipping build/cache dirs.

        A failed copy may leave ``destination`` partially written. Callers
        that need all-or-nothing should copy to a temporary path and rename.

        Raises:
            ValidationError: If ``destination`` is inside the template.
            GraftIOError: If any file cannot be copied.
        """
        self._check_alive()
        src = self._path.resolve()
        dest = Path(destination).resolve()
        if dest == src or src in dest.parents:
            raise ValidationError(
                f"Cannot copy template '{self._config.name}' into itself ({dest})",
                context={"template": self._config.name, "destination": str(dest)},
            )

        try:
            shutil.copytree(src, dest, ignore=_ignore_excluded, dirs_exist_ok=True)
        except (shutil.Error, OSError) as e:
            raise GraftIOError(
                f"Failed to copy template '{self._config.name}' to {dest}: {e}",
                path=str(dest),
            ) from e

        logger.info("Copied template %s to %s", self._config.name, dest)
        return dest

    def destroy(self) -> None:
        """Delete the template directory. The object is unusable afterwards."""
        self._check_alive()
        try:
            if self._path.exists():
                shutil.rmtree(self._path)
        except OSError as e:
            raise GraftIOError(
                f"Failed to remove template '{self._config.name}': {e}",
                path=str(self._path),
            ) from e
        self._destroyed = True
        logger.info("Destroyed template %s", self._config.name)

    def __repr__(self) -> str:
        state = " destroyed" if self._destroyed else ""
        return f"<Template {self._config.name!r} at {str(self._path)!r}{state}>"
