"""Migration version modules for the built-in manifest.

Each module in this package is one migration. Modules must define:
    VERSION: int - The version number (unique, increasing)
    DESCRIPTION: str - Human-readable description
    up(db): Function that applies the migration to a stencil Database

Migrations run inside a transaction opened by the migrator, so they must
use ``db.execute``/``db.executescript`` and never commit. They must also be
safe on legacy databases that already contain some of their objects.
"""
