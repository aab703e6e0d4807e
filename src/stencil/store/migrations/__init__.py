"""Database migrations for installation databases.

Versions are tracked in a ``schema_version`` table inside each installation
database. Migrations come from the manifest, not from this package.

Example:
    from stencil.store.migrations import SchemaMigrator

    migrator = SchemaMigrator(registry, installation.database_path)
    result = migrator.run()
"""

from .runner import TRACKING_TABLE_SQL, SchemaMigrator, get_current_version

__all__ = [
    "TRACKING_TABLE_SQL",
    "SchemaMigrator",
    "get_current_version",
]
