"""Add error_log, or patch a pre-existing one that lacks resolved_at."""

VERSION = 3
DESCRIPTION = "Add error_log table and resolved_at column"


def up(db):
    if db.table_exists("error_log"):
        if "resolved_at" not in db.column_names("error_log"):
            db.execute("ALTER TABLE error_log ADD COLUMN resolved_at TIMESTAMP")
    else:
        db.executescript(
            """
            CREATE TABLE error_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                agent_name TEXT NOT NULL,
                command_name TEXT,
                feature_id INTEGER,
                section_id INTEGER,
                error_type TEXT NOT NULL,
                error_message TEXT NOT NULL,
                error_context TEXT,
                severity TEXT CHECK(severity IN ('low', 'medium', 'high', 'critical')) DEFAULT 'medium',
                resolved BOOLEAN DEFAULT 0,
                resolution TEXT,
                resolved_at TIMESTAMP,
                FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE,
                FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE
            );
            """
        )

    db.executescript(
        """
        CREATE INDEX IF NOT EXISTS idx_error_log_timestamp ON error_log(timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_error_log_feature ON error_log(feature_id);
        CREATE INDEX IF NOT EXISTS idx_error_log_severity ON error_log(severity);
        CREATE INDEX IF NOT EXISTS idx_error_log_resolved ON error_log(resolved);
        """
    )
