"""Configuration management for stencil."""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class Config:
    """Main application configuration.

    The managed subtree and database names belong to the manifest; the
    config only decides where templates, manifests and backups live.
    Backups sit beside the managed subtree so restoring it never touches them.
    """

    template_path: Path | None = None
    manifest_path: Path | None = None  # YAML manifest; None uses the built-in one
    backup_dir: str = ".claude-backup"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        config = cls()

        if path := os.environ.get("STENCIL_TEMPLATE_PATH"):
            config.template_path = Path(path)

        if path := os.environ.get("STENCIL_MANIFEST"):
            config.manifest_path = Path(path)

        if backup_dir := os.environ.get("STENCIL_BACKUP_DIR"):
            config.backup_dir = backup_dir

        if level := os.environ.get("STENCIL_LOG_LEVEL"):
            config.log_level = level.upper()

        return config
