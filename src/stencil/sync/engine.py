"""Template update engine.

Diffs a template tree against installations, applies additions and managed
overwrites, keeps backups and restores them, and runs schema migrations.
Public operations report failures in their result objects instead of
raising.
"""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, TypeVar

from loguru import logger

from ..core.config import Config
from ..core.exceptions import (
    BackupError,
    DatabaseError,
    FileSyncError,
    NoBackupFoundError,
    StencilError,
)
from ..core.types import (
    AnalysisResult,
    ApplyOptions,
    ApplyResult,
    BackupInfo,
    BatchResult,
    ErrorCategory,
    FileCategory,
    HealthReport,
    Installation,
    MigrationPlan,
    MigrationResult,
    MigrationState,
    RollbackResult,
    SyncError,
)
from ..manifest.registry import SchemaRegistry
from ..store.migrations.runner import SchemaMigrator
from ..store.schema_check import check_schema
from .backup import BackupStore
from .diff import compute_changes
from .events import EventKind, EventPublisher, EventSink
from .fileops import atomic_copy, ensure_directories

T = TypeVar("T")


def _readable_dir(path: Path, label: str) -> SyncError | None:
    if not path.exists():
        return SyncError(ErrorCategory.STRUCTURAL, f"{label} does not exist: {path}", path=str(path))
    if not path.is_dir():
        return SyncError(
            ErrorCategory.STRUCTURAL, f"{label} is not a directory: {path}", path=str(path)
        )
    if not os.access(path, os.R_OK | os.X_OK):
        return SyncError(ErrorCategory.STRUCTURAL, f"{label} is not readable: {path}", path=str(path))
    return None


class UpdateEngine:
    """Keeps installations in sync with a template and its manifest.

    Example:
        registry = SchemaRegistry(build_default_manifest())
        engine = UpdateEngine(registry, Path("~/templates/cadi").expanduser())
        analysis = engine.analyze("~/projects/app")
        if analysis.safe:
            result = engine.apply("~/projects/app")
    """

    def __init__(
        self,
        registry: SchemaRegistry,
        template_root: Path | str,
        config: Config | None = None,
        sink: EventSink | None = None,
    ):
        """Initialize the engine.

        Args:
            registry: Registry over the manifest to sync against.
            template_root: Root of the template repository.
            config: Backup location and other settings.
            sink: Optional callable receiving lifecycle events.
        """
        self.registry = registry
        self.template_root = Path(template_root).expanduser()
        self.config = config or Config()
        self.events = EventPublisher(sink)

    def installation(self, root: Path | str) -> Installation:
        """Resolve the layout of an installation root."""
        manifest = self.registry.manifest
        return Installation.at(root, manifest.managed_dir, manifest.database_name, self.config)

    def _migrator(self, installation: Installation) -> SchemaMigrator:
        return SchemaMigrator(self.registry, installation.database_path)

    # Analysis

    def analyze(self, root: Path | str) -> AnalysisResult:
        """Categorize every template file against an installation.

        Read-only. ``safe`` is false only for structural problems.

        Args:
            root: Installation root.

        Returns:
            AnalysisResult with the change set and, when the installation
            has a database, its schema status.
        """
        installation = self.installation(root)
        result = AnalysisResult(installation=installation.name)

        for error in (
            _readable_dir(self.template_root, "Template root"),
            _readable_dir(installation.root_path, "Installation root"),
        ):
            if error is not None:
                logger.error(error.message)
                result.errors.append(error)
        if result.errors:
            result.safe = False
            return result

        try:
            result.changes = compute_changes(self.template_root, installation, self.registry)
        except OSError as e:
            path = getattr(e, "filename", None)
            logger.error(f"Cannot analyze {installation.name}: {e}")
            result.safe = False
            result.errors.append(
                SyncError(
                    ErrorCategory.STRUCTURAL,
                    f"Cannot read tree: {e}",
                    path=str(path) if path else None,
                    cause=type(e).__name__,
                )
            )
            return result

        if installation.database_path.exists():
            result.schema = check_schema(self.registry, installation.database_path)

        logger.debug(f"Analysis of {installation.name}: {result.changes.counts()}")
        return result

    def analyze_batch(self, roots: Iterable[Path | str], max_workers: int | None = None) -> BatchResult:
        """Analyze several installations independently."""
        return self._batch(
            roots,
            self.analyze,
            max_workers,
            lambda name, error: AnalysisResult(installation=name, safe=False, errors=[error]),
        )

    def health_check(self, root: Path | str) -> HealthReport:
        """Check an installation's layout and database.

        Read-only. Reports missing required directories (the managed root
        and the directories its file rules populate), missing manifest
        directories, and the schema status including missing indexes and
        the SQLite integrity check.
        """
        installation = self.installation(root)
        report = HealthReport(
            installation=installation.name,
            schema=check_schema(self.registry, installation.database_path),
        )
        for directory in self.registry.get_required_directories():
            if not (installation.root_path / directory).is_dir():
                report.missing_required.append(directory)
        for directory in self.registry.get_directories():
            if not (installation.root_path / directory).is_dir():
                report.missing_directories.append(directory)

        if report.missing_required:
            logger.error(
                f"{installation.name} is missing {', '.join(report.missing_required)}"
            )
        logger.debug(
            f"Health of {installation.name}: healthy={report.healthy}, "
            f"{len(report.warnings)} warning(s)"
        )
        return report

    # Apply

    def _plan_migration(
        self, migrator: SchemaMigrator
    ) -> tuple[MigrationPlan | None, SyncError | None]:
        try:
            return migrator.plan(), None
        except DatabaseError as e:
            logger.error(f"Cannot read schema of {migrator.database_path}: {e}")
            return None, SyncError(
                ErrorCategory.MIGRATION, str(e), path=str(migrator.database_path), cause=str(e)
            )

    def _fail(self, installation: Installation, result: ApplyResult, error: SyncError) -> ApplyResult:
        result.errors.append(error)
        result.success = False
        logger.error(f"Update of {installation.name} failed: {error.message}")
        self.events.emit(
            EventKind.UPDATE_FAILED,
            installation.name,
            error=error.message,
            counts=result.applied.counts(),
            backup_path=str(result.backup_path) if result.backup else None,
        )
        return result

    def apply(
        self,
        root: Path | str,
        options: ApplyOptions | None = None,
        force_migrate: bool = False,
    ) -> ApplyResult:
        """Bring an installation's managed files and schema up to date.

        Steps: analyze, back up the managed subtree, copy added files,
        overwrite modified managed files, ensure manifest directories, then
        migrate the database. Custom files are never written. Files are
        written one at a time; recovery from a failure part way through is
        a rollback to the backup taken at the start.

        Args:
            root: Installation root.
            options: Dry run, backup and migration switches.
            force_migrate: Run the migrator even when the database does not
                exist yet, creating it.

        Returns:
            ApplyResult with what was written, the backup taken and any errors.
        """
        options = options or ApplyOptions()
        installation = self.installation(root)
        result = ApplyResult(installation=installation.name, dry_run=options.dry_run)

        analysis = self.analyze(root)
        result.analysis = analysis
        if not analysis.safe:
            if options.dry_run:
                result.errors.extend(analysis.errors)
                return result
            result.errors.extend(analysis.errors[:-1])
            return self._fail(installation, result, analysis.errors[-1])

        changes = analysis.changes
        result.applied.skipped = changes.paths(FileCategory.CUSTOM)

        migrator = self._migrator(installation)
        run_migrator = force_migrate or (
            options.migrate_schema and installation.database_path.exists()
        )
        plan = None
        if run_migrator:
            plan, plan_error = self._plan_migration(migrator)
            if plan_error is not None:
                if options.dry_run:
                    result.errors.append(plan_error)
                    return result
                return self._fail(installation, result, plan_error)
        result.schema_plan = plan
        migration_pending = plan is not None and plan.state != MigrationState.CURRENT

        if options.dry_run:
            result.applied.added = changes.paths(FileCategory.ADDED)
            result.applied.modified = changes.paths(FileCategory.MODIFIED)
            result.success = True
            logger.info(f"Dry run for {installation.name}: {result.applied.counts()}")
            return result

        if not options.skip_backup and (changes.has_writes or migration_pending):
            try:
                result.backup = BackupStore(installation).create()
            except BackupError as e:
                self.events.emit(EventKind.BACKUP_FAILED, installation.name, error=str(e))
                return self._fail(installation, result, SyncError.from_exception(e))
            self.events.emit(
                EventKind.BACKUP_CREATED,
                installation.name,
                backup_path=str(result.backup.path),
            )

        for entry, kind, applied in (
            *((e, EventKind.FILE_ADDED, result.applied.added) for e in changes.added),
            *((e, EventKind.FILE_MODIFIED, result.applied.modified) for e in changes.modified),
        ):
            try:
                atomic_copy(entry.template_path, entry.installed_path)
            except FileSyncError as e:
                return self._fail(installation, result, SyncError.from_exception(e))
            applied.append(entry.relative_path)
            logger.debug(f"{kind.value}: {entry.relative_path}")
            self.events.emit(kind, installation.name, path=entry.relative_path)

        try:
            ensure_directories(installation.root_path, self.registry.get_directories())
        except FileSyncError as e:
            return self._fail(installation, result, SyncError.from_exception(e))

        if migration_pending:
            migration = self._run_migrator(installation, migrator, plan)
            result.schema_migration = migration
            if not migration.success:
                return self._fail(installation, result, migration.error)

        result.success = True
        counts = result.applied.counts()
        logger.info(
            f"Updated {installation.name}: {counts['added']} added, "
            f"{counts['modified']} modified, {counts['skipped']} custom files kept"
        )
        self.events.emit(
            EventKind.UPDATE_COMPLETE,
            installation.name,
            counts=counts,
            backup_path=str(result.backup_path) if result.backup else None,
        )
        return result

    def apply_batch(
        self,
        roots: Iterable[Path | str],
        options: ApplyOptions | None = None,
        max_workers: int | None = None,
    ) -> BatchResult:
        """Apply the template to several installations.

        Each installation succeeds or fails on its own; a failure never
        stops the rest of the batch.
        """
        return self._batch(
            roots,
            lambda root: self.apply(root, options),
            max_workers,
            lambda name, error: ApplyResult(installation=name, errors=[error]),
        )

    def initialize(self, root: Path | str) -> ApplyResult:
        """Set up a new installation.

        Creates the root if needed, copies the template, creates the manifest
        directories and creates the database at the manifest's schema
        version. Running it on an existing installation behaves like apply
        with migration forced.
        """
        installation = self.installation(root)
        try:
            installation.root_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result = ApplyResult(installation=installation.name)
            return self._fail(
                installation,
                result,
                SyncError(
                    ErrorCategory.STRUCTURAL,
                    f"Cannot create installation root: {e}",
                    path=str(installation.root_path),
                ),
            )
        logger.info(f"Initializing {installation.name}")
        return self.apply(root, ApplyOptions(), force_migrate=True)

    # Schema

    def _run_migrator(
        self, installation: Installation, migrator: SchemaMigrator, plan: MigrationPlan
    ) -> MigrationResult:
        details = {"from_version": plan.current_version, "to_version": plan.target_version}
        self.events.emit(
            EventKind.SCHEMA_MIGRATION_STARTED, installation.name, details=details
        )
        migration = migrator.run()
        if migration.success:
            self.events.emit(
                EventKind.SCHEMA_MIGRATION_COMPLETE,
                installation.name,
                details={
                    "from_version": migration.from_version,
                    "to_version": migration.to_version,
                    "applied": [m.version for m in migration.applied],
                    "initialized": migration.initialized,
                },
            )
        else:
            self.events.emit(
                EventKind.SCHEMA_MIGRATION_FAILED,
                installation.name,
                error=migration.error.message if migration.error else None,
                details={
                    "version": migration.error.version if migration.error else None,
                    "to_version": migration.to_version,
                },
            )
        return migration

    def migration_plan(self, root: Path | str) -> MigrationPlan:
        """What migrate() would do for an installation.

        An unreadable database yields a ``FAILED`` plan with nothing pending.
        """
        migrator = self._migrator(self.installation(root))
        plan, error = self._plan_migration(migrator)
        if error is not None:
            return MigrationPlan(
                current_version=0,
                target_version=self.registry.get_schema_version(),
                state=MigrationState.FAILED,
            )
        return plan

    def migrate(self, root: Path | str) -> MigrationResult:
        """Bring an installation database to the manifest's schema version.

        Creates the database when it does not exist.
        """
        installation = self.installation(root)
        migrator = self._migrator(installation)
        try:
            plan = migrator.plan()
        except DatabaseError as e:
            logger.error(f"Cannot read schema of {installation.database_path}: {e}")
            return MigrationResult(
                success=False,
                state=MigrationState.FAILED,
                from_version=0,
                to_version=0,
                error=SyncError(
                    ErrorCategory.MIGRATION,
                    str(e),
                    path=str(installation.database_path),
                    cause=str(e),
                ),
            )
        if plan.state == MigrationState.CURRENT:
            return MigrationResult(
                success=True,
                state=MigrationState.CURRENT,
                from_version=plan.current_version,
                to_version=plan.current_version,
                already_current=True,
            )
        return self._run_migrator(installation, migrator, plan)

    def migrate_batch(self, roots: Iterable[Path | str], max_workers: int | None = None) -> BatchResult:
        """Migrate several installation databases independently."""
        return self._batch(
            roots,
            self.migrate,
            max_workers,
            lambda name, error: MigrationResult(
                success=False,
                state=MigrationState.FAILED,
                from_version=0,
                to_version=0,
                error=error,
            ),
        )

    # Backups

    def list_backups(self, root: Path | str) -> list[BackupInfo]:
        """Backups of an installation, newest first."""
        return BackupStore(self.installation(root)).list()

    def prune_backups(self, root: Path | str, keep: int) -> list[BackupInfo]:
        """Delete all but the newest ``keep`` backups of an installation.

        Returns:
            The deleted backups.
        """
        return BackupStore(self.installation(root)).prune(keep)

    def rollback(self, root: Path | str, backup_id: str | None = None) -> RollbackResult:
        """Restore an installation's managed subtree from a backup.

        Args:
            root: Installation root.
            backup_id: Backup to restore; the newest one when omitted.

        Returns:
            RollbackResult. A missing backup is reported with the
            ``no_backup`` category.
        """
        installation = self.installation(root)
        result = RollbackResult(installation=installation.name)
        store = BackupStore(installation)

        try:
            info = store.resolve(backup_id)
            result.restored_from = info
            store.restore(info)
        except (NoBackupFoundError, BackupError) as e:
            error = SyncError.from_exception(e)
            result.errors.append(error)
            logger.error(f"Rollback of {installation.name} failed: {e}")
            self.events.emit(
                EventKind.ROLLBACK_FAILED,
                installation.name,
                error=error.message,
                backup_path=str(result.restored_from.path) if result.restored_from else None,
            )
            return result

        result.success = True
        self.events.emit(
            EventKind.ROLLBACK_COMPLETE, installation.name, backup_path=str(info.path)
        )
        return result

    # Batch

    def _batch(
        self,
        roots: Iterable[Path | str],
        operation: Callable[[Path | str], T],
        max_workers: int | None,
        failure: Callable[[str, SyncError], T],
    ) -> BatchResult:
        # One run per installation: equivalent roots ("p", "p/", "p/.") collapse
        unique: dict[str, Path | str] = {}
        for root in roots:
            name = self.installation(root).name
            if name in unique:
                logger.debug(f"Skipping duplicate root {root} for {name}")
                continue
            unique[name] = root
        batch = BatchResult()

        def run(item: tuple[str, Path | str]) -> T:
            name, root = item
            try:
                return operation(root)
            except (StencilError, OSError) as e:
                logger.opt(exception=e).error(f"Batch operation failed for {name}: {e}")
                return failure(name, SyncError.from_exception(e))

        items = list(unique.items())
        if max_workers is not None and max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                outcomes = list(executor.map(run, items))
        else:
            outcomes = [run(item) for item in items]

        for (name, _), outcome in zip(items, outcomes):
            batch.results[name] = outcome
        logger.info(
            f"Batch finished: {len(batch.succeeded)} succeeded, {len(batch.failed)} failed"
        )
        return batch
