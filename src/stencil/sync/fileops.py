"""Filesystem writes used by the update engine."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from loguru import logger

from ..core.exceptions import FileSyncError


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy a file so readers never observe a partially written destination.

    The content is written to a temporary file in the destination directory
    and then renamed over the destination. Permission bits follow the source.

    Args:
        source: File to copy.
        destination: Target path; parent directories are created.

    Raises:
        FileSyncError: If any step fails. The destination is left untouched.
    """
    tmp_path: Path | None = None
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(source, "rb") as src, tempfile.NamedTemporaryFile(
            dir=destination.parent,
            prefix=f".{destination.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            shutil.copyfileobj(src, tmp)
            tmp.flush()
            os.fsync(tmp.fileno())
        shutil.copymode(source, tmp_path)
        os.replace(tmp_path, destination)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise FileSyncError(str(destination), e) from e


def ensure_directories(root: Path, directories: list[str]) -> list[str]:
    """Create directories below root that do not exist yet.

    Args:
        root: Installation root.
        directories: Root-relative directory paths.

    Returns:
        The directories that were created by this call.
    """
    created = []
    for directory in directories:
        path = root / directory
        if path.is_dir():
            continue
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSyncError(str(path), e) from e
        logger.debug(f"Created directory {path}")
        created.append(directory)
    return created


def remove_tree(path: Path) -> None:
    """Delete a directory tree if it exists."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
