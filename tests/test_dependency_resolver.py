"""Tests for dependency extraction, merging and filtering."""

import json

import pytest

from graft.analyzers.dependency_resolver import (
    extract_dependencies,
    filter_framework_dependencies,
    get_critical_packages,
    merge_dependencies,
    read_manifest,
    resolve_version_conflict,
)
from graft.errors import ValidationError


def _manifest(tmp_path, data):
    path = tmp_path / "package.json"
    path.write_text(json.dumps(data) if not isinstance(data, str) else data)
    return path


class TestExtractDependencies:
    def test_union_of_sections(self, tmp_path):
        path = _manifest(tmp_path, {
            "dependencies": {"react": "^18.2.0", "axios": "^1.6.0"},
            "devDependencies": {"vite": "^5.0.0"},
        })
        assert extract_dependencies(path) == {
            "react": "^18.2.0",
            "axios": "^1.6.0",
            "vite": "^5.0.0",
        }

    def test_accepts_directory(self, tmp_path):
        _manifest(tmp_path, {"dependencies": {"react": "^18.2.0"}})
        assert extract_dependencies(tmp_path) == {"react": "^18.2.0"}

    def test_runtime_section_wins_on_collision(self, tmp_path):
        path = _manifest(tmp_path, {
            "dependencies": {"typescript": "^5.3.0"},
            "devDependencies": {"typescript": "^4.9.0"},
        })
        assert extract_dependencies(path) == {"typescript": "^5.3.0"}

    def test_missing_manifest_is_empty(self, tmp_path):
        assert extract_dependencies(tmp_path / "package.json") == {}
        assert extract_dependencies(tmp_path) == {}

    def test_missing_sections_are_empty(self, tmp_path):
        path = _manifest(tmp_path, {"name": "bare"})
        assert extract_dependencies(path) == {}

    def test_malformed_manifest_raises(self, tmp_path):
        path = _manifest(tmp_path, "{ not json")
        with pytest.raises(ValidationError, match="Malformed manifest"):
            extract_dependencies(path)

    def test_non_object_manifest_raises(self, tmp_path):
        path = _manifest(tmp_path, "[1, 2]")
        with pytest.raises(ValidationError):
            read_manifest(path)

    def test_section_must_be_object(self, tmp_path):
        path = _manifest(tmp_path, {"dependencies": ["react"]})
        with pytest.raises(ValidationError):
            extract_dependencies(path)

    def test_read_manifest_missing_returns_none(self, tmp_path):
        assert read_manifest(tmp_path) is None


class TestResolveVersionConflict:
    def test_newer_major_wins(self):
        assert resolve_version_conflict("react", "^17.0.2", "^18.2.0") == "^18.2.0"

    def test_newer_minor_wins(self):
        assert resolve_version_conflict("react", "^18.3.1", "^18.2.0") == "^18.3.1"

    def test_numeric_not_lexicographic(self):
        assert resolve_version_conflict("x", "1.2.0", "1.10.0") == "1.10.0"

    def test_returns_original_string_with_prefix(self):
        assert resolve_version_conflict("x", "~2.0.0", "^1.9.9") == "~2.0.0"

    def test_tie_keeps_first_argument(self):
        assert resolve_version_conflict("x", "^1.2.0", "~1.2.0") == "^1.2.0"
        assert resolve_version_conflict("x", "~1.2.0", "^1.2.0") == "~1.2.0"

    def test_missing_parts_count_as_zero(self):
        assert resolve_version_conflict("x", "1.2", "1.2.0") == "1.2"
        assert resolve_version_conflict("x", "1.2", "1.2.1") == "1.2.1"

    def test_non_numeric_parts_count_as_zero(self):
        assert resolve_version_conflict("x", "latest", "^1.0.0") == "^1.0.0"
        assert resolve_version_conflict("x", "1.x", "1.0.0") == "1.x"

    def test_prerelease_suffix_uses_leading_digits(self):
        assert resolve_version_conflict("x", "2.0.0-beta.1", "1.9.0") == "2.0.0-beta.1"


class TestMergeDependencies:
    def test_union_and_conflicts(self, framework_deps):
        app = {"react": "^18.3.1", "@reduxjs/toolkit": "^1.9.7", "axios": "^1.6.0"}
        merged = merge_dependencies(app, framework_deps)

        assert set(merged) == set(app) | set(framework_deps)
        assert merged["react"] == "^18.3.1"
        assert merged["@reduxjs/toolkit"] == "^2.0.1"
        assert merged["axios"] == "^1.6.0"
        assert merged["react-dom"] == "^18.2.0"

    def test_idempotent(self, framework_deps):
        app = {"react": "^18.3.1", "zod": "^3.22.0"}
        once = merge_dependencies(app, framework_deps)
        assert merge_dependencies(once, framework_deps) == once

    def test_does_not_mutate_inputs(self, framework_deps):
        app = {"react": "^19.0.0"}
        framework_before = dict(framework_deps)
        merge_dependencies(app, framework_deps)
        assert app == {"react": "^19.0.0"}
        assert framework_deps == framework_before

    def test_equal_versions_keep_app_string(self):
        assert merge_dependencies({"x": "^1.2.0"}, {"x": "~1.2.0"}) == {"x": "^1.2.0"}

    def test_empty_inputs(self, framework_deps):
        assert merge_dependencies({}, framework_deps) == framework_deps
        assert merge_dependencies({"a": "1.0.0"}, {}) == {"a": "1.0.0"}


class TestFilterAndCritical:
    def test_filter_removes_framework_packages(self):
        app = {"react": "^18.2.0", "recharts": "^2.10.0", "axios": "^1.6.0"}
        result = filter_framework_dependencies(app, ["react", "react-dom"])
        assert result == {"recharts": "^2.10.0", "axios": "^1.6.0"}

    def test_filter_accepts_any_iterable(self):
        app = {"react": "^18.2.0", "zod": "^3.22.0"}
        assert filter_framework_dependencies(app, {"react": "^18.0.0"}) == {"zod": "^3.22.0"}

    def test_critical_packages(self):
        deps = {
            "@radix-ui/react-dialog": "^1.0.5",
            "recharts": "^2.10.0",
            "react-hook-form": "^7.49.0",
            "clsx": "^2.0.0",
            "axios": "^1.6.0",
            "react": "^18.2.0",
        }
        assert get_critical_packages(deps) == {
            "@radix-ui/react-dialog": "^1.0.5",
            "recharts": "^2.10.0",
            "react-hook-form": "^7.49.0",
            "clsx": "^2.0.0",
        }

    def test_critical_is_subset(self):
        deps = {"zod": "^3.22.0", "lodash": "^4.17.21"}
        critical = get_critical_packages(deps)
        assert set(critical) <= set(deps)
        assert all(deps[k] == v for k, v in critical.items())
