"""SQLite database connection manager for installation databases."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..core.exceptions import DatabaseError


def iter_statements(script: str) -> Iterator[str]:
    """Split a SQL script into complete statements.

    Uses sqlite3.complete_statement at every semicolon, so semicolons inside
    string literals and trigger bodies do not split a statement.

    Args:
        script: SQL script with one or more statements.

    Yields:
        Each complete statement, stripped.
    """
    buffer = ""
    for char in script:
        buffer += char
        if char == ";" and sqlite3.complete_statement(buffer):
            statement = buffer.strip()
            buffer = ""
            if not _only_comments(statement.rstrip(";")):
                yield statement
    if buffer.strip() and not _only_comments(buffer):
        raise DatabaseError(f"Incomplete SQL statement: {buffer.strip()[:80]}")


def _only_comments(text: str) -> bool:
    return all(
        not line.strip() or line.strip().startswith("--") for line in text.splitlines()
    )


class Database:
    """SQLite database connection manager.

    The connection runs in autocommit mode and transactions are explicit
    (``transaction()``), so DDL executed by a migration is part of the same
    transaction as its version record. Foreign key enforcement stays off:
    migrations that rebuild a parent table must not cascade deletes.
    """

    def __init__(self, path: Path, readonly: bool = False):
        """Initialize database with path.

        Args:
            path: Path to the SQLite database file.
            readonly: Open an existing file read-only.
        """
        self.path = path
        self.readonly = readonly
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Open the database connection, creating the file when writable."""
        try:
            if self.readonly:
                uri = f"{self.path.resolve().as_uri()}?mode=ro"
                self._connection = sqlite3.connect(uri, uri=True, isolation_level=None)
            else:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._connection = sqlite3.connect(str(self.path), isolation_level=None)
            self._connection.row_factory = sqlite3.Row
        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Failed to connect to database {self.path}: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self._connection:
            try:
                self._connection.close()
            except sqlite3.Error as e:
                raise DatabaseError(f"Failed to close database: {e}") from e
            finally:
                self._connection = None

    def __enter__(self) -> "Database":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if not self._connection:
            raise DatabaseError("Database not connected")
        return self._connection

    @contextmanager
    def transaction(self) -> Iterator["Database"]:
        """Context manager for one explicit transaction.

        Commits when the block finishes, rolls back and re-raises when it
        raises. Errors that are not already DatabaseError propagate unchanged
        so callers can report the original cause.

        Yields:
            This database, for executing statements inside the transaction.

        Raises:
            DatabaseError: If the transaction cannot begin or commit.
        """
        conn = self.connection
        try:
            conn.execute("BEGIN")
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to begin transaction: {e}") from e
        try:
            yield self
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise
        else:
            try:
                conn.commit()
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.rollback()
                raise DatabaseError(f"Failed to commit transaction: {e}") from e

    def execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        """Execute a SQL statement.

        Args:
            sql: SQL statement to execute.
            params: Parameters for the SQL statement.

        Returns:
            A cursor with the query results.

        Raises:
            DatabaseError: If connection is not available or query fails.
        """
        try:
            return self.connection.execute(sql, params)
        except sqlite3.Error as e:
            raise DatabaseError(f"Query execution failed: {e}") from e

    def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements inside the current transaction.

        Unlike sqlite3's executescript this never commits on its own.

        Args:
            sql: SQL script with multiple statements.

        Raises:
            DatabaseError: If connection is not available or a statement fails.
        """
        for statement in iter_statements(sql):
            self.execute(statement)

    def table_exists(self, name: str) -> bool:
        cursor = self.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
        )
        return cursor.fetchone() is not None

    def column_names(self, table: str) -> list[str]:
        """Column names of a table, in declaration order."""
        cursor = self.execute(f'PRAGMA table_info("{table}")')
        return [row["name"] for row in cursor.fetchall()]

    def user_tables(self) -> list[str]:
        """Names of all tables except SQLite's internal ones."""
        cursor = self.execute(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row["name"] for row in cursor.fetchall()]

    def index_names(self) -> list[str]:
        cursor = self.execute(
            "SELECT name FROM sqlite_master "
            "WHERE type = 'index' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [row["name"] for row in cursor.fetchall()]

    def view_names(self) -> list[str]:
        cursor = self.execute(
            "SELECT name FROM sqlite_master WHERE type = 'view' ORDER BY name"
        )
        return [row["name"] for row in cursor.fetchall()]
