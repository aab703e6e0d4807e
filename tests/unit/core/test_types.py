"""Tests for core types and configuration."""

from pathlib import Path

from stencil.core.config import Config
from stencil.core.exceptions import (
    BackupError,
    FileSyncError,
    MigrationError,
    NoBackupFoundError,
    StructuralError,
)
from stencil.core.types import (
    AnalysisResult,
    ApplyResult,
    BatchResult,
    ErrorCategory,
    Installation,
    SyncError,
)


class TestSyncError:
    """Tests for converting exceptions into SyncError records."""

    def test_categories(self):
        cases = [
            (StructuralError("gone", path="/x"), ErrorCategory.STRUCTURAL),
            (MigrationError(5, "Add thing", RuntimeError("boom")), ErrorCategory.MIGRATION),
            (FileSyncError("/x/a.md", PermissionError("denied")), ErrorCategory.FILE_IO),
            (NoBackupFoundError("/x"), ErrorCategory.NO_BACKUP),
            (BackupError("disk full"), ErrorCategory.BACKUP),
            (OSError("other"), ErrorCategory.FILE_IO),
        ]

        for error, category in cases:
            assert SyncError.from_exception(error).category == category

    def test_migration_error_keeps_version_and_cause(self):
        error = SyncError.from_exception(MigrationError(5, "Add thing", RuntimeError("boom")))

        assert error.version == 5
        assert error.cause == "boom"
        assert "Migration 5 (Add thing) failed" in error.message

    def test_retryable(self):
        assert not SyncError(ErrorCategory.STRUCTURAL, "x").retryable
        assert not SyncError(ErrorCategory.NO_BACKUP, "x").retryable
        assert SyncError(ErrorCategory.FILE_IO, "x").retryable
        assert SyncError(ErrorCategory.MIGRATION, "x").retryable


class TestInstallation:
    """Tests for Installation layout."""

    def test_default_layout(self, tmp_path: Path):
        installation = Installation.at(tmp_path)

        assert installation.managed_root == tmp_path.resolve() / ".claude"
        assert installation.database_path == tmp_path.resolve() / ".claude" / "project.db"
        assert installation.backup_root == tmp_path.resolve() / ".claude-backup"

    def test_custom_layout(self, tmp_path: Path):
        installation = Installation.at(
            tmp_path, managed_dir=".agent", database_name="agent.db", config=Config(backup_dir=".snapshots")
        )

        assert installation.database_path == tmp_path.resolve() / ".agent" / "agent.db"
        assert installation.backup_root == tmp_path.resolve() / ".snapshots"


class TestBatchResult:
    """Tests for BatchResult."""

    def test_succeeded_and_failed(self):
        batch = BatchResult(
            results={
                "a": ApplyResult(installation="a", success=True),
                "b": ApplyResult(installation="b", success=False),
                "c": AnalysisResult(installation="c", safe=True),
            }
        )

        assert batch.succeeded == ["a", "c"]
        assert batch.failed == ["b"]


class TestConfig:
    """Tests for Config.from_env."""

    def test_from_env(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("STENCIL_TEMPLATE_PATH", str(tmp_path))
        monkeypatch.setenv("STENCIL_BACKUP_DIR", ".snapshots")
        monkeypatch.setenv("STENCIL_LOG_LEVEL", "debug")
        monkeypatch.delenv("STENCIL_MANIFEST", raising=False)

        config = Config.from_env()

        assert config.template_path == tmp_path
        assert config.manifest_path is None
        assert config.backup_dir == ".snapshots"
        assert config.log_level == "DEBUG"

    def test_defaults(self, monkeypatch):
        for name in ("STENCIL_TEMPLATE_PATH", "STENCIL_MANIFEST", "STENCIL_BACKUP_DIR", "STENCIL_LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        config = Config.from_env()

        assert config.template_path is None
        assert config.backup_dir == ".claude-backup"
        assert config.log_level == "INFO"
