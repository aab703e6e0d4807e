"""Add context_loads for monitoring what context agents pull in."""

VERSION = 5
DESCRIPTION = "Add context_loads table for monitoring agent context"


def up(db):
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS context_loads (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            agent_name TEXT NOT NULL,
            feature_id INTEGER,
            section_id INTEGER,
            request TEXT NOT NULL,
            category TEXT,
            tags TEXT,
            document_ids TEXT,
            document_count INTEGER NOT NULL,
            total_tokens INTEGER,
            duration_ms INTEGER,
            FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE,
            FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_context_loads_timestamp ON context_loads(timestamp DESC);
        CREATE INDEX IF NOT EXISTS idx_context_loads_agent ON context_loads(agent_name);
        CREATE INDEX IF NOT EXISTS idx_context_loads_feature ON context_loads(feature_id);
        CREATE INDEX IF NOT EXISTS idx_context_loads_section ON context_loads(section_id);
        """
    )
