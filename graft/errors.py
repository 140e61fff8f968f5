"""Custom exception hierarchy for graft.

All graft-specific exceptions derive from GraftError. Each exception
carries an optional ``context`` dict with structured metadata
(template name, file path, repository URL, etc.) that the CLI error
handler can render.

Exception hierarchy::

    GraftError
    ├── NotFoundError
    │   ├── ManifestNotFoundError
    │   ├── TemplateNotFoundError
    │   └── TemplateDestroyedError
    ├── ValidationError
    ├── AnalysisError
    ├── ExtractionError
    ├── GraftIOError
    │   └── CloneError
    └── ConfigError

Dependency version conflicts are always resolved and never raised.
"""
from __future__ import annotations

from typing import Optional


class GraftError(Exception):
    """Base class for all graft exceptions.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1

    def __init__(self, message: str, context: Optional[dict] = None):
        self.context = context or {}
        super().__init__(message)


# ── Resource Not Found ─────────────────────────────────────────────

class NotFoundError(GraftError):
    """Raised when a manifest, config file or template is missing."""
    pass


class ManifestNotFoundError(NotFoundError):
    """Raised when a package manifest is required but absent."""

    def __init__(self, path: str):
        super().__init__(f"No package.json found at {path}", context={"file": path})


class TemplateNotFoundError(NotFoundError):
    """Raised when a template cannot be found by name or path."""

    def __init__(self, template_name: str, search_dir: str = ""):
        msg = f"Template '{template_name}' not found"
        if search_dir:
            msg += f" in {search_dir}"
        super().__init__(msg, context={"template": template_name, "search_dir": search_dir})


class TemplateDestroyedError(NotFoundError):
    """Raised when a Template object is used after its directory was removed."""

    def __init__(self, template_name: str, path: str = ""):
        super().__init__(
            f"Template '{template_name}' has been destroyed",
            context={"template": template_name, "path": path},
        )


# ── Validation ─────────────────────────────────────────────────────

class ValidationError(GraftError):
    """Raised on name collisions, bad name charset or schema violations."""
    pass


# ── Analysis ───────────────────────────────────────────────────────

class AnalysisError(GraftError):
    """Raised when an application cannot be analyzed at all.

    Failures in individual source files are logged as warnings instead.
    """

    def __init__(self, message: str, root: str = ""):
        super().__init__(message, context={"root": root})


class ExtractionError(GraftError):
    """Raised when a single source file cannot be analyzed.

    The analyzer demotes this to a warning and skips the file.
    """

    def __init__(self, message: str, file_path: str = ""):
        super().__init__(message, context={"file": file_path})


# ── File-system Errors ─────────────────────────────────────────────

class GraftIOError(GraftError):
    """Raised when a create, write or copy operation fails."""

    def __init__(self, message: str, path: str = "", context: Optional[dict] = None):
        ctx = {"path": path}
        if context:
            ctx.update(context)
        super().__init__(message, context=ctx)


class CloneError(GraftIOError):
    """Raised when a remote repository cannot be cloned."""

    def __init__(self, message: str, repo_url: str = "", branch: str = ""):
        super().__init__(
            message,
            path=repo_url,
            context={"repo": repo_url, "branch": branch},
        )


class ConfigError(GraftError):
    """Raised when configuration is invalid or missing."""
    pass
