"""Add resolved_at to error_log tables created before version 3 existed."""

VERSION = 4
DESCRIPTION = "Add resolved_at column to error_log (fix for existing tables)"


def up(db):
    if "resolved_at" not in db.column_names("error_log"):
        db.execute("ALTER TABLE error_log ADD COLUMN resolved_at TIMESTAMP")
