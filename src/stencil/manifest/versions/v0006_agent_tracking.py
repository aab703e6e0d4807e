"""Track agent invocations and completions, with an activity view.

Creates:
- agent_invocations: one row per Task tool call
- agent_completions: one row per finished invocation
- agent_activity: invocations joined with completion, feature and section
"""

VERSION = 6
DESCRIPTION = "Add agent invocation and completion tracking"


def up(db):
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS agent_invocations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            agent_type TEXT NOT NULL,
            agent_prompt TEXT NOT NULL,
            agent_description TEXT,
            session_id TEXT NOT NULL,
            parent_agent TEXT,
            feature_id INTEGER,
            section_id INTEGER,
            tool_name TEXT DEFAULT 'Task',
            tool_input TEXT,
            invoked_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE,
            FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE
        );

        CREATE TABLE IF NOT EXISTS agent_completions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invocation_id INTEGER NOT NULL,
            session_id TEXT NOT NULL,
            completed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
            duration_ms INTEGER,
            tool_response TEXT,
            success BOOLEAN DEFAULT 1,
            error_message TEXT,
            FOREIGN KEY (invocation_id) REFERENCES agent_invocations(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_agent_invocations_session ON agent_invocations(session_id);
        CREATE INDEX IF NOT EXISTS idx_agent_invocations_type ON agent_invocations(agent_type);
        CREATE INDEX IF NOT EXISTS idx_agent_invocations_invoked_at ON agent_invocations(invoked_at DESC);
        CREATE INDEX IF NOT EXISTS idx_agent_invocations_feature ON agent_invocations(feature_id);
        CREATE INDEX IF NOT EXISTS idx_agent_completions_invocation ON agent_completions(invocation_id);
        CREATE INDEX IF NOT EXISTS idx_agent_completions_session ON agent_completions(session_id);
        CREATE INDEX IF NOT EXISTS idx_agent_completions_completed_at ON agent_completions(completed_at DESC);

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
