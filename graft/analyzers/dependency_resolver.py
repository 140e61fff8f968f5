"""Dependency map extraction, merging and filtering.

All functions are pure: they never mutate the maps they are given and
always return new dicts. A dependency map is ``{package name: version range}``
as found in a ``package.json``.
"""
from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable, Mapping
from pathlib import Path

from graft.errors import ValidationError

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

# Sections are read in this order; later sections win on name collisions.
MANIFEST_SECTIONS = ("devDependencies", "dependencies")

# Substrings of package names that usually belong to the app rather than the
# framework: UI primitives, charts, forms, validation, dates, class names.
CRITICAL_PATTERNS: tuple[str, ...] = (
    "@radix-ui",
    "@headlessui",
    "recharts",
    "chart.js",
    "react-hook-form",
    "formik",
    "zod",
    "yup",
    "lucide-react",
    "date-fns",
    "dayjs",
    "clsx",
    "classnames",
    "tailwind-merge",
)

_RANGE_PREFIX = re.compile(r"^[\^~]")
_LEADING_INT = re.compile(r"^\s*(\d+)")


def _manifest_file(manifest_path: Path) -> Path:
    if manifest_path.is_dir():
        return manifest_path / MANIFEST_NAME
    return manifest_path


def read_manifest(manifest_path: Path) -> dict | None:
    """Read a package manifest, returning None when it does not exist.

    Raises:
        ValidationError: If the manifest is not a JSON object.
    """
    path = _manifest_file(Path(manifest_path))
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ValidationError(
            f"Malformed manifest {path}: {e}", context={"file": str(path)}
        ) from e
    if not isinstance(data, dict):
        raise ValidationError(
            f"Manifest {path} must contain a JSON object", context={"file": str(path)}
        )
    return data


def extract_dependencies(manifest_path: Path) -> dict[str, str]:
    """Return the union of a manifest's dependencies and devDependencies.

    ``manifest_path`` may be the manifest itself or the directory holding it.
    A missing manifest yields an empty map; this is not an error.
    """
    data = read_manifest(manifest_path)
    if data is None:
        logger.debug("No manifest at %s", manifest_path)
        return {}

    result: dict[str, str] = {}
    for section in MANIFEST_SECTIONS:
        entries = data.get(section) or {}
        if not isinstance(entries, dict):
            raise ValidationError(
                f"'{section}' in {manifest_path} must be an object",
                context={"file": str(manifest_path), "section": section},
            )
        for name, version in entries.items():
            result[str(name)] = str(version)
    return result


def _version_parts(version: str) -> list[int]:
    """Split a version into integers; non-numeric parts count as 0."""
    cleaned = _RANGE_PREFIX.sub("", version.strip())
    parts: list[int] = []
    for piece in cleaned.split("."):
        match = _LEADING_INT.match(piece)
        parts.append(int(match.group(1)) if match else 0)
    return parts


def resolve_version_conflict(package: str, version1: str, version2: str) -> str:
    """Pick the newer of two version ranges for ``package``.

    Range operators (``^``, ``~``) are ignored for the comparison but the
    winning side's original string is returned. Equal versions resolve to
    ``version1``.
    """
    parts1 = _version_parts(version1)
    parts2 = _version_parts(version2)

    for i in range(max(len(parts1), len(parts2))):
        p1 = parts1[i] if i < len(parts1) else 0
        p2 = parts2[i] if i < len(parts2) else 0
        if p1 > p2:
            return version1
        if p2 > p1:
            return version2

    logger.debug("Versions tie for %s (%s vs %s), keeping %s", package, version1, version2, version1)
    return version1


def merge_dependencies(
    app_deps: Mapping[str, str],
    framework_deps: Mapping[str, str],
) -> dict[str, str]:
    """Merge an app's dependencies into the framework's.

    Starts from ``framework_deps``; app packages are added when absent and
    reconciled with :func:`resolve_version_conflict` (app version first)
    when both declare them.
    """
    merged: dict[str, str] = dict(framework_deps)

    for package, version in app_deps.items():
        if package in merged:
            merged[package] = resolve_version_conflict(package, version, merged[package])
        else:
            merged[package] = version

    return merged


def filter_framework_dependencies(
    app_deps: Mapping[str, str],
    framework_packages: Iterable[str],
) -> dict[str, str]:
    """Drop packages the host framework already provides."""
    excluded = set(framework_packages)
    return {pkg: version for pkg, version in app_deps.items() if pkg not in excluded}


def get_critical_packages(deps: Mapping[str, str]) -> dict[str, str]:
    """Return packages whose names look app-specific.

    This is a name-pattern heuristic meant to flag packages worth keeping
    during adaptation, not a correctness guarantee.
    """
    return {
        pkg: version
        for pkg, version in deps.items()
        if any(pattern in pkg for pattern in CRITICAL_PATTERNS)
    }
