"""Tests for the installation database wrapper."""

from pathlib import Path

import pytest

from stencil.core.exceptions import DatabaseError
from stencil.store.database import Database, iter_statements


class TestIterStatements:
    """Tests for iter_statements."""

    def test_splits_statements_on_one_line(self):
        statements = list(iter_statements("CREATE TABLE a (x); CREATE TABLE b (y);"))

        assert statements == ["CREATE TABLE a (x);", "CREATE TABLE b (y);"]

    def test_semicolon_inside_string_does_not_split(self):
        statements = list(iter_statements("INSERT INTO a VALUES ('x;y'); SELECT 1;"))

        assert statements == ["INSERT INTO a VALUES ('x;y');", "SELECT 1;"]

    def test_trigger_body_kept_whole(self):
        script = """
        CREATE TRIGGER t AFTER INSERT ON a BEGIN
            UPDATE a SET x = 1;
            UPDATE a SET x = 2;
        END;
        SELECT 1;
        """

        statements = list(iter_statements(script))

        assert len(statements) == 2
        assert statements[0].startswith("CREATE TRIGGER")
        assert statements[0].endswith("END;")

    def test_comment_only_statements_skipped(self):
        statements = list(iter_statements("-- leading comment\nSELECT 1;\n-- trailing\n"))

        assert statements == ["-- leading comment\nSELECT 1;"]

    def test_incomplete_statement_raises(self):
        with pytest.raises(DatabaseError, match="Incomplete"):
            list(iter_statements("SELECT 1; SELECT 2"))


class TestDatabase:
    """Tests for Database."""

    def test_transaction_commits(self, db: Database):
        with db.transaction():
            db.execute("CREATE TABLE a (x INTEGER)")
            db.execute("INSERT INTO a VALUES (1)")

        assert db.execute("SELECT COUNT(*) AS n FROM a").fetchone()["n"] == 1

    def test_transaction_rolls_back_ddl_on_error(self, db: Database):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.execute("CREATE TABLE a (x INTEGER)")
                raise RuntimeError("boom")

        assert not db.table_exists("a")

    def test_nested_transaction_raises_database_error(self, db: Database):
        with db.transaction():
            with pytest.raises(DatabaseError, match="Failed to begin transaction"):
                with db.transaction():
                    pass

    def test_transaction_on_corrupt_file_raises_database_error(self, test_db_path: Path):
        test_db_path.write_bytes(b"this is not a sqlite database at all" * 100)

        with Database(test_db_path) as db:
            with pytest.raises(DatabaseError):
                with db.transaction():
                    db.execute("CREATE TABLE a (x INTEGER)")

    def test_executescript_does_not_commit(self, db: Database):
        with pytest.raises(DatabaseError):
            with db.transaction():
                db.executescript("CREATE TABLE a (x); CREATE TABLE b (y);")
                db.execute("SELECT * FROM missing_table")

        assert db.user_tables() == []

    def test_introspection(self, db: Database):
        db.executescript(
            """
            CREATE TABLE a (id INTEGER PRIMARY KEY, name TEXT);
            CREATE INDEX idx_a_name ON a(name);
            CREATE VIEW v AS SELECT name FROM a;
            """
        )

        assert db.table_exists("a")
        assert db.column_names("a") == ["id", "name"]
        assert db.user_tables() == ["a"]
        assert db.index_names() == ["idx_a_name"]
        assert db.view_names() == ["v"]

    def test_readonly_rejects_writes(self, test_db_path: Path):
        with Database(test_db_path) as db:
            db.execute("CREATE TABLE a (x)")

        with Database(test_db_path, readonly=True) as db:
            with pytest.raises(DatabaseError):
                db.execute("INSERT INTO a VALUES (1)")

    def test_readonly_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(DatabaseError, match="Failed to connect"):
            Database(tmp_path / "missing.db", readonly=True).connect()

    def test_execute_without_connection_raises(self, test_db_path: Path):
        with pytest.raises(DatabaseError, match="not connected"):
            Database(test_db_path).execute("SELECT 1")
