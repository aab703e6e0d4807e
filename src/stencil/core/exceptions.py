"""Custom exceptions for stencil."""


class StencilError(Exception):
    """Base exception for all stencil errors."""

    pass


class ManifestError(StencilError):
    """Manifest is malformed. Raised at construction time, never later."""

    pass


class DatabaseError(StencilError):
    """Database operation failed."""

    pass


class StructuralError(StencilError):
    """Template or installation root is missing or unreadable."""

    def __init__(self, message: str, path: str | None = None):
        """Initialize exception with message and offending path.

        Args:
            message: Human-readable description.
            path: Filesystem path that caused the failure.
        """
        self.path = path
        super().__init__(message)


class MigrationError(StencilError):
    """A single migration failed and was rolled back."""

    def __init__(self, version: int, description: str, cause: Exception):
        """Initialize exception with the failing migration.

        Args:
            version: Version of the migration that failed.
            description: Description of the migration that failed.
            cause: Underlying exception raised by the migration.
        """
        self.version = version
        self.description = description
        self.cause = cause
        super().__init__(f"Migration {version} ({description}) failed: {cause}")


class FileSyncError(StencilError):
    """Copying a template file into an installation failed."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to write {path}: {cause}")


class BackupError(StencilError):
    """Backup creation or restore failed."""

    pass


class NoBackupFoundError(BackupError):
    """No backup exists for the requested installation or id."""

    def __init__(self, installation: str, backup_id: str | None = None):
        """Initialize exception with installation and requested id.

        Args:
            installation: Installation root path.
            backup_id: Explicitly requested backup id, if any.
        """
        self.installation = installation
        self.backup_id = backup_id
        if backup_id:
            message = f"Backup not found: {backup_id} (installation {installation})"
        else:
            message = f"No backups found for installation {installation}"
        super().__init__(message)
