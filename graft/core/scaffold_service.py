"""Scaffold service - creates a new application from a template.

The app is assembled in a temporary sibling directory and renamed into
place, so a failed scaffold never leaves a half-written app behind.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path

from graft.analyzers.dependency_resolver import merge_dependencies
from graft.core import ScaffoldResult
from graft.core.config_service import get_config_service
from graft.errors import GraftIOError, ValidationError
from graft.templates.models import TemplateConfig
from graft.templates.registry import TemplateRegistry, validate_name

logger = logging.getLogger("graft.core.scaffold")

DEFAULT_API_URL = "http://localhost:8080"

DEV_DEPENDENCIES: dict[str, str] = {
    "@types/react": "^18.2.46",
    "@types/react-dom": "^18.2.18",
    "@vitejs/plugin-react": "^4.2.1",
    "autoprefixer": "^10.4.16",
    "postcss": "^8.4.32",
    "tailwindcss": "^3.4.0",
    "typescript": "^5.3.3",
    "vite": "^5.0.10",
}

SCRIPTS: dict[str, str] = {
    "dev": "vite",
    "build": "tsc && vite build",
    "preview": "vite preview",
    "type-check": "tsc --noEmit",
}

GITIGNORE = """\
# Dependencies
node_modules

# Build output
dist
dist-ssr
*.local

# Environment files
.env
.env.local

# Editor
.vscode
.idea
*.swp
*.swo

# OS
.DS_Store
Thumbs.db
"""

INDEX_HTML = """\
<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{app_name}</title>
  </head>
  <body>
    <div id="root"></div>
    <script type="module" src="/src/main.tsx"></script>
  </body>
</html>
"""


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def render_readme(app_name: str, template_name: str, config: TemplateConfig, api_url: str) -> str:
    component_count = len(config.components.required) + len(config.components.optional)
    return f"""\
# {app_name}

Created from template: {template_name}

## Description

{config.description}

## Getting Started

```bash
npm install
npm run dev
npm run build
```

## Features

- Components: {component_count}
- Routes: {len(config.routes)}
- Theme customization: {_yes_no(config.customization.theme)}
- Authentication: {_yes_no(config.customization.auth)}

## API Configuration

The application connects to: `{api_url}`

## Template Source

Repository: {config.source.repo}
Branch: {config.source.branch}
"""


def render_package_json(app_name: str, dependencies: dict[str, str]) -> str:
    data = {
        "name": app_name,
        "version": "1.0.0",
        "private": True,
        "type": "module",
        "scripts": dict(SCRIPTS),
        "dependencies": dict(sorted(dependencies.items())),
        "devDependencies": dict(DEV_DEPENDENCIES),
    }
    return json.dumps(data, indent=2) + "\n"


class ScaffoldService:
    """Instantiates templates into new application directories."""

    def __init__(self, registry: TemplateRegistry | None = None, framework_dependencies: dict[str, str] | None = None):
        config = get_config_service()
        self.registry = registry or TemplateRegistry(config.get_templates_dir())
        if framework_dependencies is None:
            framework_dependencies = config.get_framework_dependencies()
        self.framework_dependencies = dict(framework_dependencies)

    def create_app(
        self,
        template_name: str,
        app_name: str,
        parent_dir: Path | None = None,
        api_url: str = DEFAULT_API_URL,
    ) -> ScaffoldResult:
        """Create ``<parent_dir>/<app_name>`` from a template.

        Raises:
            TemplateNotFoundError: If the template does not exist.
            ValidationError: On a bad app name or an existing destination.
            GraftIOError: If the app cannot be written.
        """
        validate_name(app_name)
        template = self.registry.get_template(template_name)
        config = template.get_config()

        parent = Path(parent_dir) if parent_dir is not None else Path.cwd()
        app_path = parent / app_name
        if app_path.exists():
            raise ValidationError(
                f"Destination already exists: {app_path}",
                context={"path": str(app_path)},
            )

        dependencies = merge_dependencies(config.dependencies, self.framework_dependencies)

        try:
            parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{app_name}-", dir=parent))
        except OSError as e:
            raise GraftIOError(f"Cannot create {parent}: {e}", path=str(parent)) from e

        try:
            template.copy_to(staging)
            # The template's own config stays with the template
            (staging / "template.config.json").unlink(missing_ok=True)
            (staging / "public").mkdir(exist_ok=True)
            (staging / "src" / "modules").mkdir(parents=True, exist_ok=True)

            generated = {
                "package.json": render_package_json(app_name, dependencies),
                "README.md": render_readme(app_name, template_name, config, api_url),
                ".gitignore": GITIGNORE,
            }
            if not (staging / "index.html").exists():
                generated["index.html"] = INDEX_HTML.format(app_name=app_name)
            for filename, content in generated.items():
                (staging / filename).write_text(content, encoding="utf-8")

            os.replace(staging, app_path)
        except OSError as e:
            shutil.rmtree(staging, ignore_errors=True)
            raise GraftIOError(f"Failed to create app {app_name}: {e}", path=str(app_path)) from e
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info("Created app %s from template %s", app_path, template_name)
        return ScaffoldResult(
            app_name=app_name,
            app_path=app_path,
            template_name=template_name,
            dependency_count=len(dependencies),
            created_files=sorted(generated),
        )
