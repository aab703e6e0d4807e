"""Template diffing, application, backup and rollback."""

from .backup import BackupStore, new_backup_id, parse_backup_id
from .diff import TemplateFile, categorize, collect_template_files, compute_changes
from .engine import UpdateEngine
from .events import EventKind, EventPublisher, EventRecorder, EventSink, SyncEvent
from .fileops import atomic_copy, ensure_directories
from .glob_matcher import MultiGlobMatcher, compile_glob
from .walker import WalkedFile, directory_size, walk_files

__all__ = [
    "BackupStore",
    "EventKind",
    "EventPublisher",
    "EventRecorder",
    "EventSink",
    "MultiGlobMatcher",
    "SyncEvent",
    "TemplateFile",
    "UpdateEngine",
    "WalkedFile",
    "atomic_copy",
    "categorize",
    "collect_template_files",
    "compile_glob",
    "compute_changes",
    "directory_size",
    "ensure_directories",
    "new_backup_id",
    "parse_backup_id",
    "walk_files",
]
