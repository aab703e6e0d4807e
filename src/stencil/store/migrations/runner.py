"""Schema migration applier for installation databases.

Tracks applied migrations in a ``schema_version`` table (one row per
migration, ``max(version)`` is the current version). Each migration runs in
its own transaction together with its version record, so progress is
durable and a failed run resumes after the last committed migration.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ...core.exceptions import DatabaseError, MigrationError
from ...core.types import (
    AppliedMigration,
    ErrorCategory,
    MigrationPlan,
    MigrationResult,
    MigrationState,
    SchemaVersionRecord,
    SyncError,
)
from ...manifest.model import TRACKING_TABLE
from ...manifest.registry import SchemaRegistry
from ..database import Database

TRACKING_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TRACKING_TABLE} (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    description TEXT
)
"""


def get_current_version(db: Database) -> int:
    """Read the current schema version.

    Args:
        db: Connected database.

    Returns:
        Highest recorded version, or 0 when the tracking table is absent
        or empty.
    """
    if not db.table_exists(TRACKING_TABLE):
        return 0
    row = db.execute(f"SELECT MAX(version) AS version FROM {TRACKING_TABLE}").fetchone()
    return row["version"] or 0


class SchemaMigrator:
    """Brings one installation database to the registry's schema version.

    The migrator assumes it is the only writer for the duration of a run;
    serializing runs per installation is the caller's job.

    Example:
        migrator = SchemaMigrator(registry, installation.database_path)
        result = migrator.run()
        if not result.success:
            print(f"Migration {result.error.version} failed: {result.error.cause}")
    """

    def __init__(self, registry: SchemaRegistry, database_path: Path):
        """Initialize with a registry and a database file.

        Args:
            registry: Registry supplying migrations and init DDL.
            database_path: SQLite file; created on first run if missing.
        """
        self.registry = registry
        self.database_path = Path(database_path)

    def _state_of(self, db: Database) -> tuple[MigrationState, int]:
        target = self.registry.get_schema_version()
        if not db.table_exists(TRACKING_TABLE):
            if not db.user_tables():
                return MigrationState.UNINITIALIZED, 0
            # Tables without tracking: a legacy installation at version 0
            return (
                MigrationState.BEHIND if target > 0 else MigrationState.CURRENT,
                0,
            )

        current = get_current_version(db)
        if current > target:
            logger.warning(
                f"Database {self.database_path} is at version {current}, "
                f"newer than manifest version {target}"
            )
        state = MigrationState.BEHIND if current < target else MigrationState.CURRENT
        return state, current

    def get_version(self) -> int:
        """Get the current schema version (0 if the database does not exist)."""
        if not self.database_path.exists():
            return 0
        with Database(self.database_path, readonly=True) as db:
            return get_current_version(db)

    def state(self) -> MigrationState:
        """Get the database's state without changing it."""
        return self.plan().state

    def plan(self) -> MigrationPlan:
        """Describe what run() would do, without writing.

        Returns:
            MigrationPlan with current/target versions and pending migrations.
            For an uninitialized database every migration is listed, since
            initialization records them all.
        """
        target = self.registry.get_schema_version()
        if not self.database_path.exists():
            state, current = MigrationState.UNINITIALIZED, 0
        else:
            with Database(self.database_path, readonly=True) as db:
                state, current = self._state_of(db)

        if state == MigrationState.CURRENT:
            pending = []
        else:
            pending = [
                AppliedMigration(m.version, m.description)
                for m in self.registry.get_migrations_from(current)
            ]
        return MigrationPlan(
            current_version=current, target_version=target, state=state, pending=pending
        )

    def history(self) -> list[SchemaVersionRecord]:
        """Recorded migrations, oldest first."""
        if not self.database_path.exists():
            return []
        with Database(self.database_path, readonly=True) as db:
            if not db.table_exists(TRACKING_TABLE):
                return []
            has_description = "description" in db.column_names(TRACKING_TABLE)
            description = "description" if has_description else "NULL AS description"
            rows = db.execute(
                f"SELECT version, applied_at, {description} FROM {TRACKING_TABLE} "
                "ORDER BY version"
            ).fetchall()
        return [
            SchemaVersionRecord(row["version"], row["applied_at"], row["description"])
            for row in rows
        ]

    def run(self) -> MigrationResult:
        """Apply everything needed to reach the target version.

        Returns:
            MigrationResult. Failures are reported in ``error`` rather than
            raised; committed migrations stay applied.
        """
        target = self.registry.get_schema_version()
        try:
            db = Database(self.database_path)
            db.connect()
        except DatabaseError as e:
            logger.error(str(e))
            return MigrationResult(
                success=False,
                state=MigrationState.FAILED,
                from_version=0,
                to_version=0,
                error=SyncError(
                    ErrorCategory.STRUCTURAL, str(e), path=str(self.database_path)
                ),
            )

        try:
            state, current = self._state_of(db)

            if state == MigrationState.UNINITIALIZED:
                return self._initialize(db)

            if state == MigrationState.CURRENT:
                logger.debug(f"Database at version {current}, no migrations to apply")
                return MigrationResult(
                    success=True,
                    state=MigrationState.CURRENT,
                    from_version=current,
                    to_version=current,
                    already_current=True,
                )

            return self._migrate(db, current, target)
        except DatabaseError as e:
            logger.error(f"Cannot read schema of {self.database_path}: {e}")
            return MigrationResult(
                success=False,
                state=MigrationState.FAILED,
                from_version=0,
                to_version=0,
                error=SyncError(
                    ErrorCategory.MIGRATION,
                    str(e),
                    path=str(self.database_path),
                    cause=str(e),
                ),
            )
        finally:
            db.close()

    def _initialize(self, db: Database) -> MigrationResult:
        """Create the full schema on an empty database in one transaction.

        Every migration is recorded as applied; none is executed.
        """
        target = self.registry.get_schema_version()
        logger.info(f"Initializing {self.database_path} at schema version {target}")

        try:
            with db.transaction():
                db.execute(TRACKING_TABLE_SQL)
                for statement in self.registry.init_statements():
                    db.execute(statement)
                for migration in self.registry.get_migrations():
                    self._record(db, migration.version, migration.description)
        except Exception as e:
            logger.error(f"Schema initialization failed: {e}")
            return MigrationResult(
                success=False,
                state=MigrationState.FAILED,
                from_version=0,
                to_version=0,
                error=SyncError(
                    ErrorCategory.MIGRATION,
                    f"Schema initialization failed: {e}",
                    path=str(self.database_path),
                    cause=str(e),
                ),
            )

        return MigrationResult(
            success=True,
            state=MigrationState.CURRENT,
            from_version=0,
            to_version=target,
            initialized=True,
        )

    def _migrate(self, db: Database, current: int, target: int) -> MigrationResult:
        pending = self.registry.get_migrations_from(current)
        result = MigrationResult(
            success=False,
            state=MigrationState.MIGRATING,
            from_version=current,
            to_version=current,
        )

        try:
            with db.transaction():
                db.execute(TRACKING_TABLE_SQL)
                if "description" not in db.column_names(TRACKING_TABLE):
                    db.execute(f"ALTER TABLE {TRACKING_TABLE} ADD COLUMN description TEXT")
        except DatabaseError as e:
            logger.error(f"Cannot prepare {TRACKING_TABLE} table: {e}")
            result.state = MigrationState.FAILED
            result.error = SyncError(
                ErrorCategory.MIGRATION, str(e), path=str(self.database_path), cause=str(e)
            )
            return result

        for migration in pending:
            logger.info(
                f"Applying migration {migration.version}: {migration.description}"
            )

            try:
                with db.transaction():
                    migration.up(db)
                    self._record(db, migration.version, migration.description)
            except Exception as e:
                error = MigrationError(migration.version, migration.description, e)
                logger.error(str(error))
                result.state = MigrationState.FAILED
                result.error = SyncError(
                    ErrorCategory.MIGRATION,
                    str(error),
                    path=str(self.database_path),
                    version=migration.version,
                    cause=str(e),
                )
                return result

            result.applied.append(AppliedMigration(migration.version, migration.description))
            result.to_version = migration.version
            logger.debug(f"Migration {migration.version} applied successfully")

        result.success = True
        result.state = MigrationState.CURRENT
        logger.info(
            f"Applied {len(result.applied)} migration(s), "
            f"database now at version {result.to_version}"
        )
        return result

    def _record(self, db: Database, version: int, description: str) -> None:
        db.execute(
            f"INSERT INTO {TRACKING_TABLE} (version, description) VALUES (?, ?)",
            (version, description),
        )
