"""Template registry: the set of templates under one directory.

Each template lives in ``<templates_dir>/<name>/`` with a
``template.config.json``. The registry keeps no cache; every call reads the
directory, so templates added or removed by other processes show up at once.
"""
from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from graft.errors import GraftError, GraftIOError, TemplateNotFoundError, ValidationError

from .models import CONFIG_FILENAME, TemplateConfig, TemplateMetadata
from .template import Template, read_config

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-z0-9-]+$")


def validate_name(name: str) -> str:
    """Check a template name against ``^[a-z0-9-]+$``.

    Raises:
        ValidationError: If the name is empty or uses other characters.
    """
    if not NAME_PATTERN.match(name or ""):
        raise ValidationError(
            f"Invalid template name '{name}': use lowercase letters, digits and hyphens only",
            context={"template": name},
        )
    return name


def default_templates_dir() -> Path:
    """Return the configured templates directory (``templates.dir``)."""
    from graft.core.config_service import get_config_service
    return get_config_service().get_templates_dir()


def _timestamps(path: Path) -> tuple[datetime, datetime]:
    stat = path.stat()
    created = getattr(stat, "st_birthtime", None) or stat.st_ctime
    return datetime.fromtimestamp(created), datetime.fromtimestamp(stat.st_mtime)


class TemplateRegistry:
    """Lists, finds, registers and removes templates in ``templates_dir``."""

    def __init__(self, templates_dir: Path | None = None):
        self.templates_dir = Path(templates_dir) if templates_dir is not None else default_templates_dir()

    def template_path(self, name: str) -> Path:
        return self.templates_dir / name

    def has_template(self, name: str) -> bool:
        """Return True if ``<dir>/<name>/template.config.json`` exists.

        Names that are not valid template names, and file-system errors
        while probing, count as "not present".
        """
        if not NAME_PATTERN.match(name or ""):
            return False
        try:
            return (self.template_path(name) / CONFIG_FILENAME).is_file()
        except OSError:
            return False

    def _template_dirs(self) -> list[Path]:
        try:
            entries = sorted(self.templates_dir.iterdir(), key=lambda p: p.name)
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning("Cannot list %s: %s", self.templates_dir, e)
            return []
        return [p for p in entries if p.is_dir() and (p / CONFIG_FILENAME).is_file()]

    def list_templates(self) -> list[Template]:
        """Load every valid template, skipping corrupt ones."""
        templates = []
        for path in self._template_dirs():
            try:
                templates.append(Template.load(path))
            except GraftError as e:
                logger.warning("Skipping template %s: %s", path.name, e)
        return templates

    def list_template_metadata(self) -> list[TemplateMetadata]:
        """Summaries of all valid templates, ordered by directory name.

        Templates with an unreadable or invalid config, or that vanish while
        being listed, are logged and left out.
        """
        metadata: list[TemplateMetadata] = []
        for path in self._template_dirs():
            try:
                config = read_config(path)
                created_at, updated_at = _timestamps(path)
            except (GraftError, OSError) as e:
                logger.warning("Skipping template %s: %s", path.name, e)
                continue
            metadata.append(TemplateMetadata(
                name=config.name,
                description=config.description,
                version=config.version,
                created_at=created_at,
                updated_at=updated_at,
                component_count=len(config.components.required) + len(config.components.optional),
                route_count=len(config.routes),
                path=path,
            ))
        return metadata

    def get_template(self, name: str) -> Template:
        """Load one template by name.

        Raises:
            ValidationError: If ``name`` is not a valid template name.
            TemplateNotFoundError: If no such template exists.
        """
        validate_name(name)
        if not self.has_template(name):
            raise TemplateNotFoundError(name, search_dir=str(self.templates_dir))
        return Template.load(self.template_path(name))

    def search_templates(self, name: str | None = None, description: str | None = None) -> list[Template]:
        """Case-insensitive substring search over names and descriptions."""
        results = []
        for template in self.list_templates():
            if name and name.lower() not in template.name.lower():
                continue
            if description and description.lower() not in template.description.lower():
                continue
            results.append(template)
        return results

    def register_template(self, config: TemplateConfig) -> Template:
        """Create a new template directory for ``config``.

        Raises:
            ValidationError: On a bad name or if the name is already taken.
        """
        validate_name(config.name)
        if self.has_template(config.name):
            raise ValidationError(
                f"Template '{config.name}' already exists",
                context={"template": config.name, "search_dir": str(self.templates_dir)},
            )
        return Template.create(self.template_path(config.name), config)

    def remove_template(self, name: str) -> None:
        """Delete a template directory.

        Raises:
            ValidationError: If ``name`` is not a valid template name.
            TemplateNotFoundError: If no such template exists.
        """
        template = self.get_template(name)
        template.destroy()

    def ensure_dir(self) -> Path:
        try:
            self.templates_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise GraftIOError(
                f"Cannot create templates directory {self.templates_dir}: {e}",
                path=str(self.templates_dir),
            ) from e
        return self.templates_dir
