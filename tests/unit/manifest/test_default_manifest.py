"""Tests for the built-in manifest and its migration modules."""

import importlib
from types import ModuleType

from stencil.manifest import SchemaRegistry, build_default_manifest, discover_migrations


class TestDefaultManifest:
    """Tests for build_default_manifest."""

    def test_migrations_discovered_in_order(self):
        manifest = build_default_manifest()

        assert [m.version for m in manifest.migrations] == [1, 2, 3, 4, 5, 6, 7]
        assert manifest.schema_version == 7
        assert manifest.migrations[0].description == "Initial schema with features and sections"

    def test_tables_and_views(self):
        manifest = build_default_manifest()

        assert set(manifest.tables) == {
            "features",
            "sections",
            "context_documents",
            "error_log",
            "context_loads",
            "agent_invocations",
            "agent_completions",
        }
        assert list(manifest.views) == ["agent_activity"]

    def test_categorization(self):
        registry = SchemaRegistry(build_default_manifest())

        assert registry.is_managed("agents/cadi/reviewer.md")
        assert registry.is_managed("commands/cadi/plan.md")
        assert registry.is_managed("scripts/log-agent-invocation.js")
        assert registry.is_managed("settings.json")
        assert not registry.is_managed("commands/my-custom.md")
        assert not registry.is_managed("settings.local.json")
        assert registry.get_tracked_extensions() == [".md", ".js", ".sh", ".py", ".json"]

    def test_directories(self):
        registry = SchemaRegistry(build_default_manifest())

        assert "docs/plans" in registry.get_directories()


class TestDiscoverMigrations:
    """Tests for discover_migrations."""

    def test_modules_without_version_are_skipped(self, tmp_path, monkeypatch):
        package_dir = tmp_path / "fake_versions"
        package_dir.mkdir()
        (package_dir / "__init__.py").write_text("")
        (package_dir / "v0002_second.py").write_text(
            "VERSION = 2\nDESCRIPTION = 'second'\n\ndef up(db):\n    pass\n"
        )
        (package_dir / "v0001_first.py").write_text("VERSION = 1\n\ndef up(db):\n    pass\n")
        (package_dir / "helpers.py").write_text("VALUE = 1\n")
        monkeypatch.syspath_prepend(str(tmp_path))

        package = importlib.import_module("fake_versions")
        assert isinstance(package, ModuleType)

        migrations = discover_migrations(package)

        assert [m.version for m in migrations] == [1, 2]
        assert migrations[0].description == "v0001_first"
        assert migrations[1].description == "second"
