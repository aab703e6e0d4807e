"""Add the context_documents index table."""

VERSION = 2
DESCRIPTION = "Add context_documents table"


def up(db):
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS context_documents (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            file_path TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL,
            category TEXT NOT NULL,
            summary TEXT,
            tags TEXT,
            feature_id INTEGER,
            estimated_tokens INTEGER,
            last_indexed TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            file_modified TIMESTAMP,
            FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_docs_category ON context_documents(category);
        CREATE INDEX IF NOT EXISTS idx_docs_feature ON context_documents(feature_id);
        """
    )
