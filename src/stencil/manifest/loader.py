"""Load a manifest from a YAML file.

File manifests describe migrations as SQL scripts instead of Python
functions. Layout::

    name: example
    schema_version: 2            # optional, defaults to the last migration
    managed_dir: .claude
    database_name: project.db
    tables:
      notes:
        columns:
          - id INTEGER PRIMARY KEY
          - body TEXT NOT NULL
        indexes:
          - CREATE INDEX IF NOT EXISTS idx_notes_body ON notes(body)
    views:
      recent_notes: SELECT * FROM notes ORDER BY id DESC
    migrations:
      - version: 1
        description: Create notes
        sql: |
          CREATE TABLE IF NOT EXISTS notes (id INTEGER PRIMARY KEY, body TEXT NOT NULL);
    directories: [docs/notes]
    files:
      - source: base
        destination: .claude
        include: ["agents/**/*.md"]
    categorization:
      tracked_extensions: [.md, .json]
      managed_paths: [agents/core/]
      custom_paths: []
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import yaml
from loguru import logger

from ..core.exceptions import ManifestError
from .model import FileRule, Manifest, Migration, TableDef
from .policy import CategorizationPolicy


def _sql_migration(sql: str) -> Callable:
    def up(db) -> None:
        db.executescript(sql)

    return up


def _require(data: dict, key: str, where: str) -> Any:
    if key not in data:
        raise ManifestError(f"Missing '{key}' in {where}")
    return data[key]


def _as_list(value: Any, where: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ManifestError(f"Expected a list for {where}, got {type(value).__name__}")
    return value


def manifest_from_dict(data: dict[str, Any]) -> Manifest:
    """Build a Manifest from parsed YAML/JSON data.

    Args:
        data: Mapping with the layout shown in the module docstring.

    Returns:
        Validated Manifest.

    Raises:
        ManifestError: If a field is missing, mistyped, or invariants fail.
    """
    if not isinstance(data, dict):
        raise ManifestError("Manifest must be a mapping")

    raw_tables = data.get("tables") or {}
    if not isinstance(raw_tables, dict):
        raise ManifestError("tables must be a mapping")

    tables = {}
    for name, table in raw_tables.items():
        if not isinstance(table, dict):
            raise ManifestError(f"Table {name!r} must be a mapping")
        tables[name] = TableDef(
            columns=tuple(_as_list(table.get("columns"), f"tables.{name}.columns")),
            indexes=tuple(_as_list(table.get("indexes"), f"tables.{name}.indexes")),
        )

    migrations = []
    for index, item in enumerate(_as_list(data.get("migrations"), "migrations")):
        where = f"migrations[{index}]"
        if not isinstance(item, dict):
            raise ManifestError(f"{where} must be a mapping")
        migrations.append(
            Migration(
                version=_require(item, "version", where),
                description=str(item.get("description", f"migration {item.get('version')}")),
                up=_sql_migration(str(_require(item, "sql", where))),
            )
        )

    files = []
    for index, item in enumerate(_as_list(data.get("files"), "files")):
        where = f"files[{index}]"
        if not isinstance(item, dict):
            raise ManifestError(f"{where} must be a mapping")
        files.append(
            FileRule(
                source_dir=str(_require(item, "source", where)),
                dest_dir=str(_require(item, "destination", where)),
                include=tuple(_as_list(_require(item, "include", where), f"{where}.include")),
            )
        )

    categorization = data.get("categorization") or {}
    if not isinstance(categorization, dict):
        raise ManifestError("categorization must be a mapping")
    policy = CategorizationPolicy.from_prefixes(
        tracked_extensions=_as_list(
            categorization.get("tracked_extensions"), "categorization.tracked_extensions"
        ),
        managed_prefixes=_as_list(
            categorization.get("managed_paths"), "categorization.managed_paths"
        ),
        custom_paths=_as_list(
            categorization.get("custom_paths"), "categorization.custom_paths"
        ),
    )

    latest = migrations[-1].version if migrations else 0
    try:
        return Manifest(
            name=str(data.get("name", "manifest")),
            schema_version=data.get("schema_version", latest),
            tables=tables,
            views=dict(data.get("views") or {}),
            migrations=tuple(migrations),
            directories=tuple(_as_list(data.get("directories"), "directories")),
            file_rules=tuple(files),
            categorization=policy,
            managed_dir=str(data.get("managed_dir", ".claude")),
            database_name=str(data.get("database_name", "project.db")),
        )
    except (TypeError, AttributeError) as e:
        raise ManifestError(f"Malformed manifest: {e}") from e


def load_manifest(path: Path) -> Manifest:
    """Load and validate a YAML manifest file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated Manifest.

    Raises:
        ManifestError: If the file is missing, unparsable or invalid.
    """
    logger.debug(f"Loading manifest from {path}")
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ManifestError(f"Manifest not found at {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"Manifest {path} is not valid YAML: {e}") from e

    manifest = manifest_from_dict(data)
    logger.info(
        f"Loaded manifest {manifest.name!r} (schema version {manifest.schema_version}, "
        f"{len(manifest.migrations)} migrations)"
    )
    return manifest
