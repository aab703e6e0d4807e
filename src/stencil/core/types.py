"""Type definitions for stencil."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

from .config import Config
from .exceptions import (
    BackupError,
    FileSyncError,
    MigrationError,
    NoBackupFoundError,
    StructuralError,
)


@dataclass(frozen=True)
class Installation:
    """One target directory kept in sync with a manifest.

    Attributes:
        root_path: Installation (project) root.
        managed_root: Directory holding distributed assets.
        database_path: Embedded SQLite database file.
        backup_root: Sibling directory that holds backup snapshots.
    """

    root_path: Path
    managed_root: Path
    database_path: Path
    backup_root: Path

    @classmethod
    def at(
        cls,
        root: Path | str,
        managed_dir: str = ".claude",
        database_name: str = "project.db",
        config: Config | None = None,
    ) -> "Installation":
        """Build the installation layout for a root directory.

        Args:
            root: Installation root path.
            managed_dir: Managed subtree, relative to root.
            database_name: Database file name inside the managed subtree.
            config: Supplies the backup directory name (defaults when omitted).

        Returns:
            Installation with all paths resolved against root.
        """
        config = config or Config()
        root_path = Path(root).expanduser().resolve()
        managed_root = root_path / managed_dir
        return cls(
            root_path=root_path,
            managed_root=managed_root,
            database_path=managed_root / database_name,
            backup_root=root_path / config.backup_dir,
        )

    @property
    def name(self) -> str:
        """Identifier used in events and logs."""
        return str(self.root_path)


class FileCategory(Enum):
    """Classification of a template file against an installation."""

    ADDED = "added"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"
    CUSTOM = "custom"


@dataclass(frozen=True)
class FileDiffEntry:
    """One template file compared against the installation.

    ``relative_path`` is relative to the managed root and always uses
    forward slashes.
    """

    relative_path: str
    category: FileCategory
    template_hash: str
    installed_hash: Optional[str]
    template_path: Path
    installed_path: Path


@dataclass
class ChangeSet:
    """Categorized diff between a template and an installation."""

    added: list[FileDiffEntry] = field(default_factory=list)
    modified: list[FileDiffEntry] = field(default_factory=list)
    unchanged: list[FileDiffEntry] = field(default_factory=list)
    custom: list[FileDiffEntry] = field(default_factory=list)

    def add(self, entry: FileDiffEntry) -> None:
        """Append an entry to the list for its category."""
        getattr(self, entry.category.value).append(entry)

    def paths(self, category: FileCategory) -> list[str]:
        """Relative paths in a category, in discovery order."""
        return [entry.relative_path for entry in getattr(self, category.value)]

    @property
    def has_writes(self) -> bool:
        """True when applying would write at least one file."""
        return bool(self.added or self.modified)

    def counts(self) -> dict[str, int]:
        return {category.value: len(getattr(self, category.value)) for category in FileCategory}


class ErrorCategory(Enum):
    """Failure categories callers branch on."""

    STRUCTURAL = "structural"
    MIGRATION = "migration"
    FILE_IO = "file_io"
    BACKUP = "backup"
    NO_BACKUP = "no_backup"


@dataclass(frozen=True)
class SyncError:
    """Structured failure record returned instead of raising.

    Attributes:
        category: Failure category.
        message: Human-readable description.
        path: Filesystem path involved, if any.
        version: Migration version involved, if any.
        cause: Text of the underlying exception, if any.
    """

    category: ErrorCategory
    message: str
    path: Optional[str] = None
    version: Optional[int] = None
    cause: Optional[str] = None

    @property
    def retryable(self) -> bool:
        """Whether retrying the same call can succeed without user action."""
        return self.category not in (ErrorCategory.STRUCTURAL, ErrorCategory.NO_BACKUP)

    @classmethod
    def from_exception(cls, error: Exception) -> "SyncError":
        """Convert a raised exception into a structured record.

        Args:
            error: Exception caught at a component boundary.

        Returns:
            SyncError with the category matching the exception type.
        """
        if isinstance(error, StructuralError):
            return cls(ErrorCategory.STRUCTURAL, str(error), path=error.path)
        if isinstance(error, MigrationError):
            return cls(
                ErrorCategory.MIGRATION,
                str(error),
                version=error.version,
                cause=str(error.cause),
            )
        if isinstance(error, FileSyncError):
            return cls(
                ErrorCategory.FILE_IO, str(error), path=error.path, cause=str(error.cause)
            )
        if isinstance(error, NoBackupFoundError):
            return cls(ErrorCategory.NO_BACKUP, str(error), path=error.installation)
        if isinstance(error, BackupError):
            return cls(ErrorCategory.BACKUP, str(error))
        filename = getattr(error, "filename", None)
        return cls(
            ErrorCategory.FILE_IO,
            str(error),
            path=str(filename) if filename else None,
            cause=type(error).__name__,
        )


class MigrationState(Enum):
    """Schema state of one installation database."""

    UNINITIALIZED = "uninitialized"
    BEHIND = "behind"
    CURRENT = "current"
    MIGRATING = "migrating"
    FAILED = "failed"


@dataclass(frozen=True)
class AppliedMigration:
    """A migration recorded in the tracking table."""

    version: int
    description: str


@dataclass(frozen=True)
class SchemaVersionRecord:
    """One row of an installation's tracking table."""

    version: int
    applied_at: Optional[str]
    description: Optional[str]


@dataclass
class MigrationPlan:
    """What a migration run would do, without doing it."""

    current_version: int
    target_version: int
    state: MigrationState
    pending: list[AppliedMigration] = field(default_factory=list)


@dataclass
class MigrationResult:
    """Outcome of a migration run."""

    success: bool
    state: MigrationState
    from_version: int
    to_version: int
    applied: list[AppliedMigration] = field(default_factory=list)
    initialized: bool = False
    already_current: bool = False
    error: Optional[SyncError] = None


@dataclass
class SchemaStatus:
    """Live database compared against the manifest schema."""

    valid: bool
    current_version: int
    expected_version: int
    needs_migration: bool
    missing_tables: list[str] = field(default_factory=list)
    missing_columns: dict[str, list[str]] = field(default_factory=dict)
    missing_indexes: list[str] = field(default_factory=list)
    integrity_errors: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class HealthReport:
    """Layout and database health of one installation.

    Missing required directories and an invalid schema make the report
    unhealthy. Missing manifest directories and missing indexes are only
    warnings.
    """

    installation: str
    schema: SchemaStatus
    missing_required: list[str] = field(default_factory=list)
    missing_directories: list[str] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.missing_required and self.schema.valid

    @property
    def warnings(self) -> list[str]:
        return [f"missing directory: {d}" for d in self.missing_directories] + [
            f"missing index: {i}" for i in self.schema.missing_indexes
        ]


@dataclass(frozen=True)
class BackupInfo:
    """A snapshot of an installation's managed subtree."""

    id: str
    path: Path
    source_installation: str
    size_bytes: int
    created_at: datetime


@dataclass
class AnalysisResult:
    """Outcome of analyzing one installation."""

    installation: str
    safe: bool = True
    errors: list[SyncError] = field(default_factory=list)
    changes: ChangeSet = field(default_factory=ChangeSet)
    schema: Optional[SchemaStatus] = None


@dataclass(frozen=True)
class ApplyOptions:
    """Options for applying a template to an installation.

    ``preserve_custom`` is accepted but has no effect: custom files are
    never written by apply.
    """

    dry_run: bool = False
    skip_backup: bool = False
    preserve_custom: bool = True
    migrate_schema: bool = True


@dataclass
class AppliedChanges:
    """Relative paths written or skipped by an apply."""

    added: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "added": len(self.added),
            "modified": len(self.modified),
            "skipped": len(self.skipped),
        }


@dataclass
class ApplyResult:
    """Outcome of applying a template to one installation."""

    installation: str
    success: bool = False
    dry_run: bool = False
    applied: AppliedChanges = field(default_factory=AppliedChanges)
    backup: Optional[BackupInfo] = None
    errors: list[SyncError] = field(default_factory=list)
    analysis: Optional[AnalysisResult] = None
    schema_plan: Optional[MigrationPlan] = None
    schema_migration: Optional[MigrationResult] = None

    @property
    def backup_path(self) -> Optional[Path]:
        return self.backup.path if self.backup else None


@dataclass
class RollbackResult:
    """Outcome of restoring an installation from a backup."""

    installation: str
    success: bool = False
    restored_from: Optional[BackupInfo] = None
    errors: list[SyncError] = field(default_factory=list)


@dataclass
class BatchResult:
    """Per-installation results of a batch operation, keyed by installation."""

    results: dict[str, object] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [name for name, result in self.results.items() if _ok(result)]

    @property
    def failed(self) -> list[str]:
        return [name for name, result in self.results.items() if not _ok(result)]


def _ok(result: object) -> bool:
    if isinstance(result, AnalysisResult):
        return result.safe
    return bool(getattr(result, "success", False))
