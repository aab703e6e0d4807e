"""Core configuration, types and errors for stencil."""

from .config import Config
from .exceptions import (
    BackupError,
    DatabaseError,
    FileSyncError,
    ManifestError,
    MigrationError,
    NoBackupFoundError,
    StencilError,
    StructuralError,
)
from .types import (
    AnalysisResult,
    AppliedChanges,
    AppliedMigration,
    ApplyOptions,
    ApplyResult,
    BackupInfo,
    BatchResult,
    ChangeSet,
    ErrorCategory,
    FileCategory,
    FileDiffEntry,
    HealthReport,
    Installation,
    MigrationPlan,
    MigrationResult,
    MigrationState,
    RollbackResult,
    SchemaStatus,
    SchemaVersionRecord,
    SyncError,
)

__all__ = [
    "Config",
    "StencilError",
    "ManifestError",
    "DatabaseError",
    "StructuralError",
    "MigrationError",
    "FileSyncError",
    "BackupError",
    "NoBackupFoundError",
    "AnalysisResult",
    "AppliedChanges",
    "AppliedMigration",
    "ApplyOptions",
    "ApplyResult",
    "BackupInfo",
    "BatchResult",
    "ChangeSet",
    "ErrorCategory",
    "FileCategory",
    "FileDiffEntry",
    "HealthReport",
    "Installation",
    "MigrationPlan",
    "MigrationResult",
    "MigrationState",
    "RollbackResult",
    "SchemaStatus",
    "SchemaVersionRecord",
    "SyncError",
]
