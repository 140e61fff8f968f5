"""Tests for the template registry."""

import dataclasses
from datetime import datetime

import pytest

from graft.errors import TemplateNotFoundError, ValidationError
from graft.templates.models import CONFIG_FILENAME, TemplateConfig
from graft.templates.registry import TemplateRegistry, validate_name


def _register(registry, name, description="", **kwargs):
    registry.ensure_dir()
    return registry.register_template(TemplateConfig(name=name, description=description, **kwargs))


class TestValidateName:
    @pytest.mark.parametrize("name", ["crm", "crm-2", "a", "0-9"])
    def test_valid(self, name):
        assert validate_name(name) == name

    @pytest.mark.parametrize("name", ["", "CRM", "my_app", "my app", "../escape", "ñ"])
    def test_invalid(self, name):
        with pytest.raises(ValidationError):
            validate_name(name)


class TestRegistry:
    def test_default_dir_from_config(self, graft_env):
        assert TemplateRegistry().templates_dir == graft_env

    def test_empty_when_dir_missing(self, registry):
        assert registry.list_templates() == []
        assert registry.list_template_metadata() == []
        assert registry.has_template("anything") is False

    def test_register_and_get(self, registry, sample_config):
        registry.ensure_dir()
        created = registry.register_template(sample_config)
        assert registry.has_template("crm-starter")
        assert registry.get_template("crm-starter").get_config() == created.get_config()
        assert (registry.templates_dir / "crm-starter" / CONFIG_FILENAME).is_file()

    def test_register_duplicate_rejected(self, registry):
        _register(registry, "dup")
        with pytest.raises(ValidationError, match="already exists"):
            _register(registry, "dup")

    def test_register_bad_name_rejected(self, registry, sample_config):
        registry.ensure_dir()
        with pytest.raises(ValidationError):
            registry.register_template(dataclasses.replace(sample_config, name="Bad Name"))
        assert list(registry.templates_dir.iterdir()) == []

    def test_get_missing(self, registry):
        with pytest.raises(TemplateNotFoundError, match="ghost"):
            registry.get_template("ghost")

    def test_listing_sorted_and_skips_non_templates(self, registry):
        _register(registry, "zeta")
        _register(registry, "alpha")
        (registry.templates_dir / "not-a-template").mkdir()
        (registry.templates_dir / "stray.txt").write_text("x")
        assert [t.name for t in registry.list_templates()] == ["alpha", "zeta"]

    def test_corrupt_template_skipped(self, registry, caplog):
        _register(registry, "good")
        broken = registry.templates_dir / "broken"
        broken.mkdir()
        (broken / CONFIG_FILENAME).write_text("{ not json")

        with caplog.at_level("WARNING", logger="graft"):
            names = [m.name for m in registry.list_template_metadata()]

        assert names == ["good"]
        assert [t.name for t in registry.list_templates()] == ["good"]
        assert "broken" in caplog.text

    def test_metadata(self, registry, sample_config):
        registry.ensure_dir()
        registry.register_template(sample_config)
        [meta] = registry.list_template_metadata()
        assert meta.name == "crm-starter"
        assert meta.version == "1.2.0"
        assert meta.component_count == 3
        assert meta.route_count == 2
        assert meta.path == registry.templates_dir / "crm-starter"
        assert isinstance(meta.created_at, datetime)
        assert isinstance(meta.updated_at, datetime)

    def test_search(self, registry):
        _register(registry, "crm-starter", "Customer dashboard")
        _register(registry, "blog", "Markdown blog with a Dashboard")
        _register(registry, "shop", "Storefront")

        assert [t.name for t in registry.search_templates(name="CRM")] == ["crm-starter"]
        assert [t.name for t in registry.search_templates(description="dashboard")] == ["blog", "crm-starter"]
        assert [t.name for t in registry.search_templates(name="o", description="store")] == ["shop"]
        assert len(registry.search_templates()) == 3

    def test_remove(self, registry):
        _register(registry, "gone")
        registry.remove_template("gone")
        assert registry.has_template("gone") is False
        assert not (registry.templates_dir / "gone").exists()
        with pytest.raises(TemplateNotFoundError):
            registry.remove_template("gone")

    def test_names_cannot_leave_templates_dir(self, registry):
        registry.ensure_dir()
        outside = registry.templates_dir.parent / "outside"
        outside.mkdir()
        (outside / CONFIG_FILENAME).write_text('{"name": "outside"}')

        assert registry.has_template("../outside") is False
        with pytest.raises(ValidationError):
            registry.get_template("../outside")
        with pytest.raises(ValidationError):
            registry.remove_template("..")
        assert (outside / CONFIG_FILENAME).is_file()

    def test_sees_changes_from_other_instances(self, registry):
        other = TemplateRegistry(registry.templates_dir)
        _register(other, "shared")
        assert registry.has_template("shared")
