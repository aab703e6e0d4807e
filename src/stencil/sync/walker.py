"""Iterative directory traversal.

Depth-first with an explicit stack of pending directories, so deep trees
never hit the recursion limit. Output order is deterministic: entries are
visited in sorted name order.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator

from loguru import logger


@dataclass(frozen=True)
class WalkedFile:
    """A file found by walk_files."""

    relative_path: str  # relative to the walk base, forward slashes
    path: Path


def walk_files(
    base: Path,
    start: str = "",
    include: Callable[[str], bool] | None = None,
) -> Iterator[WalkedFile]:
    """Yield regular files below base, depth first.

    Symlinked directories are not followed. Unreadable subdirectories are
    logged and skipped; an unreadable start directory raises.

    Args:
        base: Directory that relative paths are computed against.
        start: Subdirectory of base to begin at ("" for base itself).
        include: Optional predicate on the relative path.

    Yields:
        WalkedFile for each matching file.

    Raises:
        OSError: If the start directory exists but cannot be listed.
    """
    root = base / start if start else base
    if not root.is_dir():
        logger.debug(f"Nothing to walk at {root}")
        return

    stack: list[tuple[Path, str]] = [(root, start.strip("/"))]
    first = True

    while stack:
        directory, prefix = stack.pop()
        try:
            with os.scandir(directory) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            if first:
                raise
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            continue
        first = False

        subdirectories = []
        for entry in entries:
            relative = f"{prefix}/{entry.name}" if prefix else entry.name
            if entry.is_dir(follow_symlinks=False):
                subdirectories.append((Path(entry.path), relative))
            elif entry.is_file():
                if include is None or include(relative):
                    yield WalkedFile(relative_path=relative, path=Path(entry.path))

        # Reversed so the stack pops them in sorted order
        stack.extend(reversed(subdirectories))


def directory_size(path: Path) -> int:
    """Total size in bytes of all regular files below path."""
    total = 0
    for walked in walk_files(path):
        try:
            total += walked.path.stat().st_size
        except OSError as e:
            logger.warning(f"Cannot stat {walked.path}: {e}")
    return total
