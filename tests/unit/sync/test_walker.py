"""Tests for the iterative directory walker."""

import os
from pathlib import Path

import pytest

from stencil.sync.walker import directory_size, walk_files

from conftest import write_tree


class TestWalkFiles:
    """Tests for walk_files."""

    def test_yields_files_in_sorted_depth_first_order(self, tmp_path: Path):
        write_tree(tmp_path, {"b.md": "", "a/z.md": "", "a/b/c.md": "", "c/d.md": ""})

        paths = [f.relative_path for f in walk_files(tmp_path)]

        assert paths == ["b.md", "a/z.md", "a/b/c.md", "c/d.md"]

    def test_start_directory_prefixes_relative_paths(self, tmp_path: Path):
        write_tree(tmp_path, {"agents/x.md": "", "other/y.md": ""})

        paths = [f.relative_path for f in walk_files(tmp_path, "agents")]

        assert paths == ["agents/x.md"]

    def test_include_predicate(self, tmp_path: Path):
        write_tree(tmp_path, {"a.md": "", "b.txt": ""})

        paths = [f.relative_path for f in walk_files(tmp_path, include=lambda p: p.endswith(".md"))]

        assert paths == ["a.md"]

    def test_missing_start_yields_nothing(self, tmp_path: Path):
        assert list(walk_files(tmp_path, "missing")) == []

    def test_deep_tree_does_not_recurse(self, tmp_path: Path):
        deep = tmp_path
        for i in range(300):
            deep = deep / f"d{i}"
        deep.mkdir(parents=True)
        (deep / "leaf.md").write_text("x")

        files = list(walk_files(tmp_path))

        assert len(files) == 1
        assert files[0].relative_path.endswith("d299/leaf.md")

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlinked_directories_not_followed(self, tmp_path: Path):
        write_tree(tmp_path / "real", {"a.md": ""})
        (tmp_path / "tree").mkdir()
        (tmp_path / "tree" / "link").symlink_to(tmp_path / "real", target_is_directory=True)

        assert list(walk_files(tmp_path / "tree")) == []


class TestDirectorySize:
    """Tests for directory_size."""

    def test_sums_file_sizes(self, tmp_path: Path):
        write_tree(tmp_path, {"a.md": "12345", "sub/b.md": "123"})

        assert directory_size(tmp_path) == 8

    def test_missing_directory_is_zero(self, tmp_path: Path):
        assert directory_size(tmp_path / "missing") == 0
