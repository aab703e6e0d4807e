"""Manifest data model.

A manifest is an immutable value describing everything an installation
needs: the target schema, the ordered migrations that reach it, the
directories to create, which template files are distributed where, and
which installed files the engine owns. Construction validates the whole
value and raises ManifestError on the first problem, so a manifest is
either complete or never exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping

from ..core.exceptions import ManifestError
from .policy import CategorizationPolicy, normalize_path

if TYPE_CHECKING:
    from ..store.database import Database

TRACKING_TABLE = "schema_version"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class TableDef:
    """Columns (and table constraints) in order, plus CREATE INDEX statements."""

    columns: tuple[str, ...]
    indexes: tuple[str, ...] = ()


@dataclass(frozen=True)
class Migration:
    """A versioned, one-way schema step."""

    version: int
    description: str
    up: Callable[["Database"], None]

    def __repr__(self) -> str:
        return f"Migration({self.version}, {self.description!r})"


@dataclass(frozen=True)
class FileRule:
    """Distribute files under ``source_dir`` matching ``include`` to ``dest_dir``.

    Attributes:
        source_dir: Directory relative to the template root.
        dest_dir: Directory relative to the installation root; must lie inside
            the managed subtree.
        include: Glob patterns relative to ``source_dir``. Use ! prefix to
            exclude.
    """

    source_dir: str
    dest_dir: str
    include: tuple[str, ...]


@dataclass(frozen=True)
class Manifest:
    """Single source of truth for schema, directories and distribution rules."""

    schema_version: int
    tables: Mapping[str, TableDef]
    migrations: tuple[Migration, ...]
    directories: tuple[str, ...]
    file_rules: tuple[FileRule, ...]
    categorization: CategorizationPolicy
    views: Mapping[str, str] = field(default_factory=dict)
    managed_dir: str = ".claude"
    database_name: str = "project.db"
    name: str = "manifest"

    def __post_init__(self) -> None:
        object.__setattr__(self, "tables", MappingProxyType(dict(self.tables)))
        object.__setattr__(self, "views", MappingProxyType(dict(self.views)))
        object.__setattr__(self, "migrations", tuple(self.migrations))
        object.__setattr__(self, "directories", tuple(self.directories))
        object.__setattr__(self, "file_rules", tuple(self.file_rules))
        validate_manifest(self)

    def __hash__(self) -> int:
        return hash((self.name, self.schema_version))


def validate_manifest(manifest: Manifest) -> None:
    """Check manifest invariants.

    Args:
        manifest: Manifest to validate.

    Raises:
        ManifestError: On the first violated invariant.
    """
    previous = 0
    for migration in manifest.migrations:
        if not isinstance(migration.version, int) or migration.version <= previous:
            raise ManifestError(
                f"Migration versions must be unique, increasing and above 0: "
                f"{migration.version!r} follows {previous}"
            )
        if not callable(migration.up):
            raise ManifestError(f"Migration {migration.version} has no callable up()")
        previous = migration.version

    latest = manifest.migrations[-1].version if manifest.migrations else 0
    if manifest.schema_version != latest:
        raise ManifestError(
            f"schema_version {manifest.schema_version} does not match latest "
            f"migration version {latest}"
        )

    for name, table in manifest.tables.items():
        if not _IDENTIFIER.match(name):
            raise ManifestError(f"Invalid table name: {name!r}")
        if name == TRACKING_TABLE:
            raise ManifestError(f"Table name {TRACKING_TABLE!r} is reserved")
        if not table.columns:
            raise ManifestError(f"Table {name!r} has no columns")

    for name in manifest.views:
        if not _IDENTIFIER.match(name):
            raise ManifestError(f"Invalid view name: {name!r}")
        if name in manifest.tables:
            raise ManifestError(f"View {name!r} clashes with a table")

    managed = normalize_path(manifest.managed_dir).rstrip("/")
    if not managed:
        raise ManifestError("managed_dir must not be empty")

    for rule in manifest.file_rules:
        if not rule.include or not any(not p.startswith("!") for p in rule.include):
            raise ManifestError(
                f"File rule {rule.source_dir!r} needs at least one include pattern"
            )
        dest = normalize_path(rule.dest_dir).rstrip("/")
        if dest != managed and not dest.startswith(managed + "/"):
            raise ManifestError(
                f"File rule destination {rule.dest_dir!r} is outside {manifest.managed_dir!r}"
            )
        if ".." in dest.split("/") or ".." in normalize_path(rule.source_dir).split("/"):
            raise ManifestError(f"File rule {rule.source_dir!r} escapes its root")

    for directory in manifest.directories:
        if ".." in normalize_path(directory).split("/"):
            raise ManifestError(f"Directory {directory!r} escapes the installation root")
