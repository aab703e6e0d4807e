"""Snapshots of an installation's managed subtree.

Backups live in a directory beside the managed subtree, one directory per
snapshot named ``backup-<UTC timestamp>``. Ids sort in creation order.
A snapshot is copied into a hidden ``.partial`` directory first and renamed
into place, so a listed backup is always complete. Nothing here deletes a
backup except an explicit prune.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from ..core.exceptions import BackupError, NoBackupFoundError
from ..core.types import BackupInfo, Installation
from .fileops import remove_tree
from .walker import directory_size

BACKUP_PREFIX = "backup-"
TIMESTAMP_FORMAT = "%Y%m%dT%H%M%S%fZ"

_BACKUP_ID = re.compile(r"^backup-(\d{8}T\d{12}Z)(?:-\d+)?$")


def new_backup_id(now: datetime | None = None) -> str:
    """Build a backup id from a UTC timestamp with microsecond precision."""
    now = now or datetime.now(timezone.utc)
    return f"{BACKUP_PREFIX}{now.strftime(TIMESTAMP_FORMAT)}"


def parse_backup_id(backup_id: str) -> datetime | None:
    """Creation time encoded in a backup id, or None if the id is not ours."""
    match = _BACKUP_ID.match(backup_id)
    if not match:
        return None
    return datetime.strptime(match.group(1), TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


class BackupStore:
    """Creates, lists, restores and prunes backups of one installation."""

    def __init__(self, installation: Installation):
        self.installation = installation
        self.root = installation.backup_root

    def _check_layout(self) -> None:
        managed = self.installation.managed_root
        if self.root == managed or self.root.is_relative_to(managed):
            raise BackupError(
                f"Backup directory {self.root} must not be inside managed root {managed}"
            )

    def _unique_id(self) -> str:
        backup_id = new_backup_id()
        candidate = backup_id
        suffix = 1
        while (self.root / candidate).exists():
            candidate = f"{backup_id}-{suffix:02d}"
            suffix += 1
        return candidate

    def _info(self, path: Path) -> BackupInfo | None:
        created_at = parse_backup_id(path.name)
        if created_at is None:
            return None
        return BackupInfo(
            id=path.name,
            path=path,
            source_installation=self.installation.name,
            size_bytes=directory_size(path),
            created_at=created_at,
        )

    def create(self) -> BackupInfo:
        """Snapshot the whole managed subtree.

        A missing managed subtree produces an empty backup, so rolling back
        to it removes everything a later apply created.

        Returns:
            BackupInfo of the new, complete snapshot.

        Raises:
            BackupError: If the snapshot cannot be written. No partial
                snapshot is left behind.
        """
        self._check_layout()
        managed = self.installation.managed_root

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            backup_id = self._unique_id()
            partial = self.root / f".{backup_id}.partial"
            final = self.root / backup_id
            try:
                if managed.is_dir():
                    shutil.copytree(managed, partial, symlinks=True)
                else:
                    partial.mkdir()
                partial.rename(final)
            except OSError:
                remove_tree(partial)
                raise
        except OSError as e:
            logger.error(f"Backup of {managed} failed: {e}")
            raise BackupError(f"Failed to back up {managed}: {e}") from e

        info = self._info(final)
        logger.info(f"Created backup {info.id} ({info.size_bytes} bytes) for {self.installation.name}")
        return info

    def list(self) -> list[BackupInfo]:
        """All complete backups, newest first."""
        if not self.root.is_dir():
            return []
        backups = []
        for path in self.root.iterdir():
            if not path.is_dir() or path.name.startswith("."):
                continue
            info = self._info(path)
            if info is None:
                logger.debug(f"Ignoring {path}, not a backup directory")
                continue
            backups.append(info)
        backups.sort(key=lambda b: b.id, reverse=True)
        return backups

    def resolve(self, backup_id: str | None = None) -> BackupInfo:
        """Find a backup by id, or the newest one.

        Raises:
            NoBackupFoundError: If the id does not exist or there are no backups.
        """
        if backup_id is None:
            backups = self.list()
            if not backups:
                raise NoBackupFoundError(self.installation.name)
            return backups[0]

        path = self.root / backup_id
        if Path(backup_id).name != backup_id or not path.is_dir():
            raise NoBackupFoundError(self.installation.name, backup_id)
        info = self._info(path)
        if info is None:
            raise NoBackupFoundError(self.installation.name, backup_id)
        return info

    def restore(self, info: BackupInfo) -> None:
        """Replace the managed subtree with a backup.

        The backup is copied next to the managed subtree first; only then is
        the current subtree moved aside and the copy renamed into place. If
        the swap fails the original subtree is moved back. The backup itself
        is never modified.

        Raises:
            BackupError: If the restore fails.
        """
        managed = self.installation.managed_root
        staging = managed.parent / f".{managed.name}.restore"
        previous = managed.parent / f".{managed.name}.rollback-old"

        try:
            remove_tree(staging)
            remove_tree(previous)
            shutil.copytree(info.path, staging, symlinks=True)
        except OSError as e:
            remove_tree(staging)
            raise BackupError(f"Failed to stage backup {info.id}: {e}") from e

        moved = False
        try:
            if managed.exists():
                managed.rename(previous)
                moved = True
            staging.rename(managed)
        except OSError as e:
            if moved and not managed.exists():
                previous.rename(managed)
            remove_tree(staging)
            raise BackupError(f"Failed to restore backup {info.id}: {e}") from e

        if moved:
            try:
                remove_tree(previous)
            except OSError as e:
                logger.warning(f"Could not remove previous managed tree {previous}: {e}")

        logger.info(f"Restored {managed} from backup {info.id}")

    def prune(self, keep: int) -> list[BackupInfo]:
        """Delete all but the newest ``keep`` backups.

        Returns:
            The backups that were deleted.
        """
        if keep < 0:
            raise ValueError("keep must be zero or positive")
        removed = []
        for info in self.list()[keep:]:
            try:
                remove_tree(info.path)
            except OSError as e:
                raise BackupError(f"Failed to delete backup {info.id}: {e}") from e
            logger.info(f"Deleted backup {info.id}")
            removed.append(info)
        return removed
