"""Manifest: schema, migrations, directories and distribution rules.

Example:
    from stencil.manifest import SchemaRegistry, build_default_manifest

    registry = SchemaRegistry(build_default_manifest())
    registry.is_managed("agents/cadi/reviewer.md")  # True
"""

from .default import build_default_manifest, discover_migrations
from .loader import load_manifest, manifest_from_dict
from .model import TRACKING_TABLE, FileRule, Manifest, Migration, TableDef
from .policy import CategorizationPolicy, PathRule
from .registry import SchemaRegistry

__all__ = [
    "TRACKING_TABLE",
    "CategorizationPolicy",
    "FileRule",
    "Manifest",
    "Migration",
    "PathRule",
    "SchemaRegistry",
    "TableDef",
    "build_default_manifest",
    "discover_migrations",
    "load_manifest",
    "manifest_from_dict",
]
