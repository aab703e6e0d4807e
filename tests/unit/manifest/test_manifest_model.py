"""Tests for manifest construction and validation."""

import dataclasses

import pytest

from stencil.core.exceptions import ManifestError
from stencil.manifest import FileRule, Migration, TableDef

from conftest import build_test_manifest


def _noop(db):
    pass


class TestManifestValidation:
    """Invariants are checked when the manifest is built."""

    def test_valid_manifest_builds(self):
        manifest = build_test_manifest()

        assert manifest.schema_version == 2
        assert [m.version for m in manifest.migrations] == [1, 2]

    def test_manifest_is_immutable(self):
        manifest = build_test_manifest()

        with pytest.raises(dataclasses.FrozenInstanceError):
            manifest.schema_version = 3
        with pytest.raises(TypeError):
            manifest.tables["other"] = TableDef(columns=("id INTEGER",))

    def test_duplicate_versions_rejected(self):
        with pytest.raises(ManifestError, match="increasing"):
            build_test_manifest(
                migrations=(Migration(1, "a", _noop), Migration(1, "b", _noop)),
                schema_version=1,
            )

    def test_decreasing_versions_rejected(self):
        with pytest.raises(ManifestError):
            build_test_manifest(
                migrations=(Migration(2, "a", _noop), Migration(1, "b", _noop)),
                schema_version=1,
            )

    def test_version_zero_rejected(self):
        with pytest.raises(ManifestError):
            build_test_manifest(migrations=(Migration(0, "a", _noop),), schema_version=0)

    def test_schema_version_must_equal_latest_migration(self):
        with pytest.raises(ManifestError, match="schema_version"):
            build_test_manifest(schema_version=3)

    def test_no_migrations_means_version_zero(self):
        manifest = build_test_manifest(migrations=(), schema_version=0)

        assert manifest.schema_version == 0

    def test_tracking_table_name_reserved(self):
        with pytest.raises(ManifestError, match="reserved"):
            build_test_manifest(tables={"schema_version": TableDef(columns=("version INTEGER",))})

    def test_table_without_columns_rejected(self):
        with pytest.raises(ManifestError, match="no columns"):
            build_test_manifest(tables={"empty": TableDef(columns=())})

    def test_view_clashing_with_table_rejected(self):
        with pytest.raises(ManifestError, match="clashes"):
            build_test_manifest(views={"notes": "SELECT 1"})

    def test_file_rule_needs_include_pattern(self):
        with pytest.raises(ManifestError, match="include"):
            build_test_manifest(file_rules=(FileRule("base", ".claude", ()),))

    def test_file_rule_with_only_excludes_rejected(self):
        with pytest.raises(ManifestError, match="include"):
            build_test_manifest(file_rules=(FileRule("base", ".claude", ("!*.md",)),))

    def test_file_rule_destination_must_be_inside_managed_root(self):
        with pytest.raises(ManifestError, match="outside"):
            build_test_manifest(file_rules=(FileRule("base", "docs", ("*.md",)),))

    def test_file_rule_destination_below_managed_root_allowed(self):
        manifest = build_test_manifest(
            file_rules=(FileRule("scripts", ".claude/scripts", ("*.sh",)),)
        )

        assert manifest.file_rules[0].dest_dir == ".claude/scripts"

    def test_parent_references_rejected(self):
        with pytest.raises(ManifestError, match="escapes"):
            build_test_manifest(file_rules=(FileRule("../outside", ".claude", ("*.md",)),))
        with pytest.raises(ManifestError, match="escapes"):
            build_test_manifest(directories=("docs/../../etc",))
