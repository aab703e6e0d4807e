"""Pytest configuration and fixtures."""

import pytest
from pathlib import Path

from stencil.core.config import Config
from stencil.manifest import (
    CategorizationPolicy,
    FileRule,
    Manifest,
    Migration,
    SchemaRegistry,
    TableDef,
)
from stencil.store.database import Database
from stencil.sync import EventRecorder, UpdateEngine


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files below root from a {relative path: content} mapping."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def read_tree(root: Path) -> dict[str, bytes]:
    """Snapshot every file below root as {relative path: bytes}."""
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


def _create_notes(db):
    db.execute("CREATE TABLE IF NOT EXISTS notes (id INTEGER PRIMARY KEY, body TEXT NOT NULL)")


def _add_created_at(db):
    if "created_at" not in db.column_names("notes"):
        db.execute("ALTER TABLE notes ADD COLUMN created_at TIMESTAMP")
    db.execute("CREATE INDEX IF NOT EXISTS idx_notes_created ON notes(created_at)")


def build_test_manifest(**overrides) -> Manifest:
    """Small manifest: one table, two migrations, one file rule."""
    fields = dict(
        name="test",
        schema_version=2,
        tables={
            "notes": TableDef(
                columns=("id INTEGER PRIMARY KEY", "body TEXT NOT NULL", "created_at TIMESTAMP"),
                indexes=("CREATE INDEX IF NOT EXISTS idx_notes_created ON notes(created_at)",),
            )
        },
        migrations=(
            Migration(1, "Create notes", _create_notes),
            Migration(2, "Add created_at to notes", _add_created_at),
        ),
        directories=("docs/notes",),
        file_rules=(
            FileRule(
                source_dir="base",
                dest_dir=".claude",
                include=("agents/**/*.md", "commands/**/*.md", "settings.json"),
            ),
        ),
        categorization=CategorizationPolicy.from_prefixes(
            tracked_extensions=(".md", ".json"),
            managed_prefixes=("agents/", "commands/core/", "settings.json"),
        ),
    )
    fields.update(overrides)
    return Manifest(**fields)


TEMPLATE_FILES = {
    "base/agents/foo.md": "# Foo agent\n",
    "base/agents/sub/bar.md": "# Bar agent\n",
    "base/agents/notes.txt": "not tracked\n",
    "base/commands/core/run.md": "# Run\n",
    "base/settings.json": '{"theme": "dark"}\n',
    "base/README.md": "outside every rule\n",
}


@pytest.fixture
def test_manifest() -> Manifest:
    """Provide the small test manifest."""
    return build_test_manifest()


@pytest.fixture
def registry(test_manifest: Manifest) -> SchemaRegistry:
    """Provide a registry over the test manifest."""
    return SchemaRegistry(test_manifest)


@pytest.fixture
def template_root(tmp_path: Path) -> Path:
    """Provide a template tree matching the test manifest."""
    return write_tree(tmp_path / "template", TEMPLATE_FILES)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Provide an empty installation root."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def recorder() -> EventRecorder:
    """Provide an event sink that records every event."""
    return EventRecorder()


@pytest.fixture
def engine(registry: SchemaRegistry, template_root: Path, recorder: EventRecorder) -> UpdateEngine:
    """Provide an engine over the test template with a recording sink."""
    return UpdateEngine(registry, template_root, config=Config(), sink=recorder)


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    """Provide a temporary database path for tests."""
    return tmp_path / "test.db"


@pytest.fixture
def db(test_db_path: Path) -> Database:
    """Provide a connected database instance."""
    database = Database(test_db_path)
    database.connect()
    yield database
    database.close()
