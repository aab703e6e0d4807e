"""Create the base planning tables: features and sections."""

VERSION = 1
DESCRIPTION = "Initial schema with features and sections"


def up(db):
    db.executescript(
        """
        CREATE TABLE IF NOT EXISTS features (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            planning_doc_path TEXT NOT NULL,
            summary TEXT,
            status TEXT CHECK(status IN ('planning', 'ready', 'in_progress', 'completed')) DEFAULT 'planning',
            priority INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            started_at TIMESTAMP,
            completed_at TIMESTAMP
        );

        CREATE TABLE IF NOT EXISTS sections (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            feature_id INTEGER NOT NULL,
            name TEXT NOT NULL,
            description TEXT,
            objectives TEXT,
            verification_criteria TEXT,
            order_index INTEGER NOT NULL,
            status TEXT CHECK(status IN ('pending', 'in_progress', 'completed')) DEFAULT 'pending',
            depends_on INTEGER,
            estimated_hours REAL,
            actual_hours REAL,
            started_at TIMESTAMP,
            completed_at TIMESTAMP,
            notes TEXT,
            FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE,
            FOREIGN KEY (depends_on) REFERENCES sections(id)
        );

        CREATE INDEX IF NOT EXISTS idx_sections_feature_status ON sections(feature_id, status);
        CREATE INDEX IF NOT EXISTS idx_sections_order ON sections(feature_id, order_index);
        """
    )
