"""Tests for comparing live databases with the manifest schema."""

from pathlib import Path

from stencil.manifest import SchemaRegistry
from stencil.store import Database, SchemaMigrator, check_schema
from stencil.store.schema_check import integrity_errors


class TestCheckSchema:
    """Tests for check_schema."""

    def test_missing_database(self, registry: SchemaRegistry, tmp_path: Path):
        status = check_schema(registry, tmp_path / "missing.db")

        assert not status.valid
        assert status.needs_migration
        assert status.missing_tables == ["notes"]
        assert status.errors

    def test_current_database_is_valid(self, registry: SchemaRegistry, test_db_path: Path):
        SchemaMigrator(registry, test_db_path).run()

        status = check_schema(registry, test_db_path)

        assert status.valid
        assert not status.needs_migration
        assert status.current_version == status.expected_version == 2

    def test_missing_column_reported(self, registry: SchemaRegistry, test_db_path: Path):
        with Database(test_db_path) as db:
            db.execute("CREATE TABLE notes (id INTEGER PRIMARY KEY, body TEXT NOT NULL)")

        status = check_schema(registry, test_db_path)

        assert not status.valid
        assert status.needs_migration
        assert status.missing_columns == {"notes": ["created_at"]}
        assert status.current_version == 0

    def test_check_does_not_modify_database(self, registry: SchemaRegistry, test_db_path: Path):
        with Database(test_db_path) as db:
            db.execute("CREATE TABLE other (id INTEGER)")
        before = test_db_path.read_bytes()

        status = check_schema(registry, test_db_path)

        assert status.missing_tables == ["notes"]
        assert test_db_path.read_bytes() == before

    def test_unreadable_database_reported(self, registry: SchemaRegistry, test_db_path: Path):
        test_db_path.write_bytes(b"this is not a sqlite database at all, just junk bytes" * 10)

        status = check_schema(registry, test_db_path)

        assert not status.valid
        assert status.errors

    def test_missing_index_is_a_warning(self, registry: SchemaRegistry, test_db_path: Path):
        SchemaMigrator(registry, test_db_path).run()
        with Database(test_db_path) as db:
            db.execute("DROP INDEX idx_notes_created")

        status = check_schema(registry, test_db_path)

        assert status.missing_indexes == ["idx_notes_created"]
        assert status.valid

    def test_integrity_check_passes_on_sound_database(self, registry: SchemaRegistry, test_db_path: Path):
        SchemaMigrator(registry, test_db_path).run()

        status = check_schema(registry, test_db_path)

        assert status.integrity_errors == []
        assert status.missing_indexes == []


class FakeIntegrityDatabase:
    """Database stand-in answering PRAGMA integrity_check with fixed rows."""

    def __init__(self, rows: list[str]):
        self.rows = rows

    def execute(self, sql: str, params: tuple = ()):
        assert sql == "PRAGMA integrity_check"
        return self

    def fetchall(self) -> list[tuple[str]]:
        return [(row,) for row in self.rows]


class TestIntegrityErrors:
    """Tests for integrity_errors."""

    def test_ok_means_no_errors(self):
        assert integrity_errors(FakeIntegrityDatabase(["ok"])) == []

    def test_problems_are_returned(self):
        rows = ["row 3 missing from index idx_notes_created", "wrong # of entries in index"]

        assert integrity_errors(FakeIntegrityDatabase(rows)) == rows
