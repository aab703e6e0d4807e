"""Built-in manifest for the project-tracking template.

Tables here describe the schema as it stands after the latest migration in
``stencil.manifest.versions``; a fresh installation gets exactly this, an
existing one reaches it by replaying migrations.
"""

from __future__ import annotations

import importlib
import pkgutil
from types import ModuleType

from loguru import logger

from .model import FileRule, Manifest, Migration, TableDef
from .policy import CategorizationPolicy

_TABLES = {
    "features": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "name TEXT NOT NULL UNIQUE",
            "planning_doc_path TEXT NOT NULL",
            "summary TEXT",
            "status TEXT CHECK(status IN ('planning', 'ready', 'in_progress', 'testing', 'completed')) DEFAULT 'planning'",
            "priority INTEGER DEFAULT 0",
            "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "started_at TIMESTAMP",
            "completed_at TIMESTAMP",
        ),
    ),
    "sections": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "feature_id INTEGER NOT NULL",
            "name TEXT NOT NULL",
            "description TEXT",
            "objectives TEXT",
            "verification_criteria TEXT",
            "order_index INTEGER NOT NULL",
            "status TEXT CHECK(status IN ('pending', 'in_progress', 'completed')) DEFAULT 'pending'",
            "depends_on INTEGER",
            "estimated_hours REAL",
            "actual_hours REAL",
            "started_at TIMESTAMP",
            "completed_at TIMESTAMP",
            "notes TEXT",
            "FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE",
            "FOREIGN KEY (depends_on) REFERENCES sections(id)",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_sections_feature_status ON sections(feature_id, status)",
            "CREATE INDEX IF NOT EXISTS idx_sections_order ON sections(feature_id, order_index)",
        ),
    ),
    "context_documents": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "file_path TEXT NOT NULL UNIQUE",
            "title TEXT NOT NULL",
            "category TEXT NOT NULL",
            "summary TEXT",
            "tags TEXT",
            "feature_id INTEGER",
            "estimated_tokens INTEGER",
            "last_indexed TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "file_modified TIMESTAMP",
            "FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_docs_category ON context_documents(category)",
            "CREATE INDEX IF NOT EXISTS idx_docs_feature ON context_documents(feature_id)",
        ),
    ),
    "error_log": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "agent_name TEXT NOT NULL",
            "command_name TEXT",
            "feature_id INTEGER",
            "section_id INTEGER",
            "error_type TEXT NOT NULL",
            "error_message TEXT NOT NULL",
            "error_context TEXT",
            "severity TEXT CHECK(severity IN ('low', 'medium', 'high', 'critical')) DEFAULT 'medium'",
            "resolved BOOLEAN DEFAULT 0",
            "resolution TEXT",
            "resolved_at TIMESTAMP",
            "FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE",
            "FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_error_log_timestamp ON error_log(timestamp DESC)",
            "CREATE INDEX IF NOT EXISTS idx_error_log_feature ON error_log(feature_id)",
            "CREATE INDEX IF NOT EXISTS idx_error_log_severity ON error_log(severity)",
            "CREATE INDEX IF NOT EXISTS idx_error_log_resolved ON error_log(resolved)",
        ),
    ),
    "context_loads": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
            "agent_name TEXT NOT NULL",
            "feature_id INTEGER",
            "section_id INTEGER",
            "request TEXT NOT NULL",
            "category TEXT",
            "tags TEXT",
            "document_ids TEXT",
            "document_count INTEGER NOT NULL",
            "total_tokens INTEGER",
            "duration_ms INTEGER",
            "FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE",
            "FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_context_loads_timestamp ON context_loads(timestamp DESC)",
            "CREATE INDEX IF NOT EXISTS idx_context_loads_agent ON context_loads(agent_name)",
            "CREATE INDEX IF NOT EXISTS idx_context_loads_feature ON context_loads(feature_id)",
            "CREATE INDEX IF NOT EXISTS idx_context_loads_section ON context_loads(section_id)",
        ),
    ),
    "agent_invocations": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "agent_type TEXT NOT NULL",
            "agent_prompt TEXT NOT NULL",
            "agent_description TEXT",
            "session_id TEXT NOT NULL",
            "parent_agent TEXT",
            "feature_id INTEGER",
            "section_id INTEGER",
            "tool_name TEXT DEFAULT 'Task'",
            "tool_input TEXT",
            "invoked_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
            "FOREIGN KEY (feature_id) REFERENCES features(id) ON DELETE CASCADE",
            "FOREIGN KEY (section_id) REFERENCES sections(id) ON DELETE CASCADE",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_agent_invocations_session ON agent_invocations(session_id)",
            "CREATE INDEX IF NOT EXISTS idx_agent_invocations_type ON agent_invocations(agent_type)",
            "CREATE INDEX IF NOT EXISTS idx_agent_invocations_invoked_at ON agent_invocations(invoked_at DESC)",
            "CREATE INDEX IF NOT EXISTS idx_agent_invocations_feature ON agent_invocations(feature_id)",
        ),
    ),
    "agent_completions": TableDef(
        columns=(
            "id INTEGER PRIMARY KEY AUTOINCREMENT",
            "invocation_id INTEGER NOT NULL",
            "session_id TEXT NOT NULL",
            "completed_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP",
            "duration_ms INTEGER",
            "tool_response TEXT",
            "success BOOLEAN DEFAULT 1",
            "error_message TEXT",
            "FOREIGN KEY (invocation_id) REFERENCES agent_invocations(id) ON DELETE CASCADE",
        ),
        indexes=(
            "CREATE INDEX IF NOT EXISTS idx_agent_completions_invocation ON agent_completions(invocation_id)",
            "CREATE INDEX IF NOT EXISTS idx_agent_completions_session ON agent_completions(session_id)",
            "CREATE INDEX IF NOT EXISTS idx_agent_completions_completed_at ON agent_completions(completed_at DESC)",
        ),
    ),
}

_VIEWS = {
    "agent_activity": """
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
        ORDER BY i.invoked_at DESC
    """,
}

DIRECTORIES = (
    "docs/backend",
    "docs/frontend",
    "docs/plans",
    "docs/features",
)

FILE_RULES = (
    FileRule(
        source_dir="base-claude",
        dest_dir=".claude",
        include=("agents/**/*.md", "commands/**/*.md"),
    ),
    FileRule(
        source_dir="base-claude/.claude",
        dest_dir=".claude",
        include=("settings.json",),
    ),
    FileRule(
        source_dir="scripts",
        dest_dir=".claude/scripts",
        include=("*.js", "*.sh", "*.py"),
    ),
)

CATEGORIZATION = CategorizationPolicy.from_prefixes(
    tracked_extensions=(".md", ".js", ".sh", ".py", ".json"),
    managed_prefixes=("agents/cadi/", "commands/cadi/", "scripts/", "settings.json"),
)


def discover_migrations(package: ModuleType) -> list[Migration]:
    """Collect migrations from the modules of a package, sorted by version.

    Args:
        package: Package whose modules define VERSION, DESCRIPTION and up().

    Returns:
        List of Migration objects sorted by version number.
    """
    migrations = []

    for _, modname, ispkg in pkgutil.iter_modules(package.__path__):
        if ispkg:
            continue

        module = importlib.import_module(f"{package.__name__}.{modname}")

        if not hasattr(module, "VERSION") or not hasattr(module, "up"):
            logger.warning(f"Skipping invalid migration module: {modname}")
            continue

        migrations.append(
            Migration(
                version=module.VERSION,
                description=getattr(module, "DESCRIPTION", modname),
                up=module.up,
            )
        )

    migrations.sort(key=lambda m: m.version)
    return migrations


def build_default_manifest() -> Manifest:
    """Construct the built-in manifest.

    Returns:
        Validated Manifest whose schema version is the latest migration.
    """
    from . import versions

    migrations = discover_migrations(versions)
    return Manifest(
        name="cadi",
        schema_version=migrations[-1].version,
        tables=_TABLES,
        views=_VIEWS,
        migrations=tuple(migrations),
        directories=DIRECTORIES,
        file_rules=FILE_RULES,
        categorization=CATEGORIZATION,
    )
