"""Tests for atomic file operations."""

import os
import stat
from pathlib import Path

import pytest

from stencil.core.exceptions import FileSyncError
from stencil.sync.fileops import atomic_copy, ensure_directories


class TestAtomicCopy:
    """Tests for atomic_copy."""

    def test_copies_into_new_directories(self, tmp_path: Path):
        source = tmp_path / "src.md"
        source.write_text("content")
        destination = tmp_path / "a" / "b" / "dest.md"

        atomic_copy(source, destination)

        assert destination.read_text() == "content"
        assert [p.name for p in destination.parent.iterdir()] == ["dest.md"]

    def test_overwrites_existing_file(self, tmp_path: Path):
        source = tmp_path / "src.md"
        source.write_text("new")
        destination = tmp_path / "dest.md"
        destination.write_text("old")

        atomic_copy(source, destination)

        assert destination.read_text() == "new"

    def test_preserves_executable_bit(self, tmp_path: Path):
        source = tmp_path / "run.sh"
        source.write_text("#!/bin/sh\n")
        source.chmod(0o755)
        destination = tmp_path / "out" / "run.sh"

        atomic_copy(source, destination)

        assert os.stat(destination).st_mode & stat.S_IXUSR

    def test_missing_source_leaves_destination_untouched(self, tmp_path: Path):
        destination = tmp_path / "dest.md"
        destination.write_text("keep")

        with pytest.raises(FileSyncError):
            atomic_copy(tmp_path / "missing.md", destination)

        assert destination.read_text() == "keep"
        assert [p.name for p in tmp_path.iterdir()] == ["dest.md"]


class TestEnsureDirectories:
    """Tests for ensure_directories."""

    def test_creates_missing_only(self, tmp_path: Path):
        (tmp_path / "docs" / "plans").mkdir(parents=True)

        created = ensure_directories(tmp_path, ["docs/plans", "docs/features"])

        assert created == ["docs/features"]
        assert (tmp_path / "docs" / "features").is_dir()

    def test_file_in_the_way_raises(self, tmp_path: Path):
        (tmp_path / "docs").write_text("not a directory")

        with pytest.raises(FileSyncError):
            ensure_directories(tmp_path, ["docs/plans"])
