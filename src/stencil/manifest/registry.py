"""Schema registry: the one accessor both the migrator and the engine read.

Example:
    from stencil.manifest import SchemaRegistry, build_default_manifest

    registry = SchemaRegistry(build_default_manifest())
    print(registry.get_schema_version())
    print(registry.generate_init_sql())
"""

from __future__ import annotations

import re
from typing import Any

from .model import FileRule, Manifest, Migration
from .policy import normalize_path

INDEX_NAME_PATTERN = re.compile(
    r"CREATE\s+(?:UNIQUE\s+)?INDEX\s+(?:IF\s+NOT\s+EXISTS\s+)?[\"`\[]?(\w+)",
    re.IGNORECASE,
)


class SchemaRegistry:
    """Read-only view over a Manifest.

    Every method is a pure function of the manifest it was built with.
    """

    def __init__(self, manifest: Manifest):
        """Initialize with a validated manifest.

        Args:
            manifest: Manifest to expose.
        """
        self.manifest = manifest

    def get_schema_version(self) -> int:
        return self.manifest.schema_version

    def get_migrations(self) -> list[Migration]:
        """Get all migrations, in ascending version order."""
        return list(self.manifest.migrations)

    def get_migrations_from(self, current_version: int) -> list[Migration]:
        """Get migrations needed to move past current_version.

        Args:
            current_version: Version the database is at.

        Returns:
            Migrations with version > current_version, ascending.
        """
        return [m for m in self.manifest.migrations if m.version > current_version]

    def init_statements(self) -> list[str]:
        """Statements that create the full schema on an empty database.

        Tables come first in manifest order, each followed by its indexes,
        then views (which may reference any table).

        Returns:
            List of complete SQL statements without trailing semicolons.
        """
        statements = []
        for name, table in self.manifest.tables.items():
            columns = ",\n  ".join(table.columns)
            statements.append(f"CREATE TABLE IF NOT EXISTS {name} (\n  {columns}\n)")
            statements.extend(index.rstrip().rstrip(";") for index in table.indexes)
        for name, select in self.manifest.views.items():
            statements.append(
                f"CREATE VIEW IF NOT EXISTS {name} AS\n{select.strip().rstrip(';')}"
            )
        return statements

    def generate_init_sql(self) -> str:
        """Full DDL script for a fresh installation."""
        return "\n\n".join(f"{statement};" for statement in self.init_statements()) + "\n"

    def is_managed(self, relative_path: str) -> bool:
        """Check whether the engine owns a managed-root-relative path."""
        return self.manifest.categorization.is_managed(relative_path)

    def is_tracked(self, filename: str) -> bool:
        """Check whether a file is considered at all, by extension."""
        return self.manifest.categorization.is_tracked(filename)

    def get_directories(self) -> list[str]:
        return list(self.manifest.directories)

    def get_required_directories(self) -> list[str]:
        """Directories an initialized installation must have.

        The managed root, plus the leading literal directory of every
        include pattern below its rule's destination (``agents/**/*.md``
        into ``.claude`` requires ``.claude/agents``).

        Returns:
            Installation-root-relative paths, managed root first.
        """
        required = [normalize_path(self.manifest.managed_dir).rstrip("/")]
        for rule in self.manifest.file_rules:
            for pattern in rule.include:
                head, sep, _ = pattern.partition("/")
                if pattern.startswith("!") or not sep or any(c in head for c in "*?["):
                    continue
                path = f"{normalize_path(rule.dest_dir).rstrip('/')}/{head}"
                if path not in required:
                    required.append(path)
        return required

    def get_file_rules(self) -> list[FileRule]:
        return list(self.manifest.file_rules)

    def get_tracked_extensions(self) -> list[str]:
        return list(self.manifest.categorization.tracked_extensions)

    def get_table_names(self) -> list[str]:
        return list(self.manifest.tables)

    def get_expected_columns(self, table: str) -> list[str]:
        """Column names declared for a table, skipping table constraints.

        Args:
            table: Table name from the manifest.

        Returns:
            Column names in declaration order.
        """
        constraint_keywords = {"FOREIGN", "PRIMARY", "CHECK", "UNIQUE", "CONSTRAINT"}
        names = []
        for column in self.manifest.tables[table].columns:
            first = column.split(None, 1)[0]
            if first.upper() in constraint_keywords:
                continue
            names.append(first.strip('"`[]'))
        return names

    def get_expected_indexes(self, table: str) -> list[str]:
        """Index names declared for a table."""
        names = []
        for statement in self.manifest.tables[table].indexes:
            match = INDEX_NAME_PATTERN.search(statement)
            if match:
                names.append(match.group(1))
        return names

    def get_summary(self) -> dict[str, Any]:
        """Summarize the manifest for display."""
        return {
            "name": self.manifest.name,
            "schema_version": self.manifest.schema_version,
            "table_count": len(self.manifest.tables),
            "view_count": len(self.manifest.views),
            "migration_count": len(self.manifest.migrations),
            "directory_count": len(self.manifest.directories),
            "file_rule_count": len(self.manifest.file_rules),
            "managed_dir": self.manifest.managed_dir,
            "tracked_extensions": self.get_tracked_extensions(),
            "managed_prefixes": list(self.manifest.categorization.managed_prefixes),
        }
