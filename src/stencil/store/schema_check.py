"""Compare a live installation database against the manifest schema."""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..core.exceptions import DatabaseError
from ..core.types import SchemaStatus
from ..manifest.registry import SchemaRegistry
from .database import Database
from .migrations.runner import get_current_version


def integrity_errors(db: Database) -> list[str]:
    """Run ``PRAGMA integrity_check``; an empty list means the file is sound."""
    rows = [row[0] for row in db.execute("PRAGMA integrity_check").fetchall()]
    if rows == ["ok"]:
        return []
    return rows


def check_schema(registry: SchemaRegistry, database_path: Path) -> SchemaStatus:
    """Report missing tables, columns and indexes, integrity and version gap.

    Opens the database read-only; never modifies it. Missing indexes are
    reported but do not make the schema invalid.

    Args:
        registry: Registry with the expected schema.
        database_path: Installation database file.

    Returns:
        SchemaStatus. ``valid`` is true only when no table or column is
        missing, the integrity check passes and the version is current.
    """
    expected_version = registry.get_schema_version()

    if not database_path.exists():
        return SchemaStatus(
            valid=False,
            current_version=0,
            expected_version=expected_version,
            needs_migration=True,
            missing_tables=registry.get_table_names(),
            errors=["Database file does not exist"],
        )

    status = SchemaStatus(
        valid=True,
        current_version=0,
        expected_version=expected_version,
        needs_migration=False,
    )

    try:
        with Database(database_path, readonly=True) as db:
            status.current_version = get_current_version(db)
            existing = set(db.user_tables())
            indexes = set(db.index_names())

            for table in registry.get_table_names():
                if table not in existing:
                    status.missing_tables.append(table)
                    continue
                columns = set(db.column_names(table))
                missing = [c for c in registry.get_expected_columns(table) if c not in columns]
                if missing:
                    status.missing_columns[table] = missing
                status.missing_indexes.extend(
                    i for i in registry.get_expected_indexes(table) if i not in indexes
                )

            status.integrity_errors = integrity_errors(db)
    except DatabaseError as e:
        logger.warning(f"Schema check failed for {database_path}: {e}")
        status.valid = False
        status.errors.append(str(e))
        return status

    if status.missing_indexes:
        logger.warning(f"{database_path} is missing indexes: {', '.join(status.missing_indexes)}")

    if status.integrity_errors:
        logger.error(f"Integrity check failed for {database_path}: {status.integrity_errors[0]}")
        status.valid = False

    if status.missing_tables or status.missing_columns:
        status.valid = False
        status.needs_migration = True

    if status.current_version < expected_version:
        status.valid = False
        status.needs_migration = True

    return status
