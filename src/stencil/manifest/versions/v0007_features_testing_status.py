"""Allow the 'testing' status on features.

SQLite cannot alter a CHECK constraint, so the table is rebuilt and the
view that depends on it recreated. Requires foreign key enforcement to be
off, otherwise dropping features would cascade into sections.
"""

VERSION = 7
DESCRIPTION = "Add testing status to features"


def up(db):
    db.executescript(
        """
        DROP VIEW IF EXISTS agent_activity;

        CREATE TABLE features_new (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            planning_doc_path TEXT NOT NULL,
            summary TEXT,
            status TEXT CHECK(status IN ('planning', 'ready', 'in_progress', 'testing', 'completed')) DEFAULT 'planning',
            priority INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            started_at TIMESTAMP,
            completed_at TIMESTAMP
        );

        INSERT INTO features_new SELECT * FROM features;

        DROP TABLE features;

        ALTER TABLE features_new RENAME TO features;

        CREATE VIEW IF NOT EXISTS agent_activity AS
        SELECT
            i.id AS invocation_id,
            i.agent_type,
            i.agent_description,
            i.parent_agent,
            i.session_id,
            i.invoked_at,
            c.completed_at,
            c.duration_ms,
            c.success,
            c.error_message,
            f.name AS feature_name,
            s.name AS section_name
        FROM agent_invocations i
        LEFT JOIN agent_completions c ON i.id = c.invocation_id
        LEFT JOIN features f ON i.feature_id = f.id
        LEFT JOIN sections s ON i.section_id = s.id
        ORDER BY i.invoked_at DESC;
        """
    )
