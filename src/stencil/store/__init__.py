"""Installation database access, migration and inspection."""

from .database import Database, iter_statements
from .schema_check import check_schema
from .migrations import SchemaMigrator, get_current_version

__all__ = [
    "Database",
    "SchemaMigrator",
    "check_schema",
    "get_current_version",
    "iter_statements",
]
