"""Tests for BackupStore."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from stencil.core.config import Config
from stencil.core.exceptions import BackupError, NoBackupFoundError
from stencil.core.types import Installation
from stencil.sync.backup import BackupStore, new_backup_id, parse_backup_id

from conftest import read_tree, write_tree


@pytest.fixture
def installation(project_root: Path) -> Installation:
    write_tree(project_root / ".claude", {"agents/a.md": "original", "settings.json": "{}"})
    return Installation.at(project_root)


class TestBackupIds:
    """Tests for backup id formatting."""

    def test_round_trip(self):
        now = datetime(2026, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

        backup_id = new_backup_id(now)

        assert backup_id == "backup-20260301T123045123456Z"
        assert parse_backup_id(backup_id) == now
        assert parse_backup_id(backup_id + "-01") == now

    def test_foreign_names_rejected(self):
        assert parse_backup_id("backup-old") is None
        assert parse_backup_id("notes") is None


class TestBackupStore:
    """Tests for creating, listing, restoring and pruning backups."""

    def test_create_copies_managed_tree(self, installation: Installation):
        info = BackupStore(installation).create()

        assert info.path.parent == installation.backup_root
        assert info.source_installation == installation.name
        assert read_tree(info.path) == read_tree(installation.managed_root)
        assert info.size_bytes == len("original") + len("{}")
        assert not list(installation.backup_root.glob(".*"))

    def test_create_without_managed_tree_is_empty(self, project_root: Path):
        installation = Installation.at(project_root)

        info = BackupStore(installation).create()

        assert info.path.is_dir()
        assert read_tree(info.path) == {}

    def test_list_newest_first(self, installation: Installation):
        store = BackupStore(installation)
        first = store.create()
        second = store.create()
        (installation.backup_root / "not-a-backup").mkdir()

        backups = store.list()

        assert [b.id for b in backups] == [second.id, first.id]
        assert first.id < second.id

    def test_list_without_backups(self, installation: Installation):
        assert BackupStore(installation).list() == []

    def test_resolve(self, installation: Installation):
        store = BackupStore(installation)
        first = store.create()
        second = store.create()

        assert store.resolve().id == second.id
        assert store.resolve(first.id).id == first.id

    def test_resolve_missing(self, installation: Installation):
        store = BackupStore(installation)

        with pytest.raises(NoBackupFoundError):
            store.resolve()
        with pytest.raises(NoBackupFoundError, match="backup-20200101T000000000000Z"):
            store.resolve("backup-20200101T000000000000Z")
        with pytest.raises(NoBackupFoundError):
            store.resolve("../.claude")

    def test_restore_is_byte_identical(self, installation: Installation):
        store = BackupStore(installation)
        before = read_tree(installation.managed_root)
        info = store.create()

        write_tree(installation.managed_root, {"agents/a.md": "changed", "agents/new.md": "new"})
        store.restore(info)

        assert read_tree(installation.managed_root) == before
        assert read_tree(info.path) == before
        assert not (installation.root_path / ".claude.restore").exists()
        assert not (installation.root_path / ".claude.rollback-old").exists()

    def test_restore_empty_backup_removes_managed_tree_contents(self, project_root: Path):
        installation = Installation.at(project_root)
        store = BackupStore(installation)
        info = store.create()
        write_tree(installation.managed_root, {"agents/a.md": "added later"})

        store.restore(info)

        assert read_tree(installation.managed_root) == {}

    def test_prune_keeps_newest(self, installation: Installation):
        store = BackupStore(installation)
        created = [store.create() for _ in range(4)]

        removed = store.prune(2)

        assert [b.id for b in removed] == [created[1].id, created[0].id]
        assert [b.id for b in store.list()] == [created[3].id, created[2].id]

    def test_prune_rejects_negative_keep(self, installation: Installation):
        with pytest.raises(ValueError):
            BackupStore(installation).prune(-1)

    def test_backup_inside_managed_root_rejected(self, project_root: Path):
        installation = Installation.at(project_root, config=Config(backup_dir=".claude/backups"))

        with pytest.raises(BackupError, match="must not be inside"):
            BackupStore(installation).create()
