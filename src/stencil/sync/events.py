"""Lifecycle events pushed by the update engine.

The engine takes an optional sink (any callable accepting a SyncEvent) and
calls it synchronously, in program order for each installation. During
batch runs with several workers the sink is called from worker threads.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

from loguru import logger


class EventKind(Enum):
    """Kinds of lifecycle events."""

    BACKUP_CREATED = "backup_created"
    BACKUP_FAILED = "backup_failed"
    FILE_ADDED = "file_added"
    FILE_MODIFIED = "file_modified"
    SCHEMA_MIGRATION_STARTED = "schema_migration_started"
    SCHEMA_MIGRATION_COMPLETE = "schema_migration_complete"
    SCHEMA_MIGRATION_FAILED = "schema_migration_failed"
    UPDATE_COMPLETE = "update_complete"
    UPDATE_FAILED = "update_failed"
    ROLLBACK_COMPLETE = "rollback_complete"
    ROLLBACK_FAILED = "rollback_failed"


@dataclass(frozen=True)
class SyncEvent:
    """One lifecycle event.

    Attributes:
        kind: What happened.
        installation: Installation root the event concerns.
        path: Managed-root-relative file path, for file events.
        backup_path: Backup directory, for backup and rollback events.
        counts: Added/modified/skipped counts, for update events.
        error: Error message, for failure events.
        details: Anything else (migration versions, ...).
    """

    kind: EventKind
    installation: str
    path: Optional[str] = None
    backup_path: Optional[str] = None
    counts: Optional[dict[str, int]] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


EventSink = Callable[[SyncEvent], None]


class EventRecorder:
    """Sink that keeps every event in memory, for tests and polling callers."""

    def __init__(self) -> None:
        self.events: list[SyncEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: SyncEvent) -> None:
        with self._lock:
            self.events.append(event)

    def kinds(self) -> list[EventKind]:
        return [event.kind for event in self.events]

    def of_kind(self, kind: EventKind) -> list[SyncEvent]:
        return [event for event in self.events if event.kind == kind]

    def clear(self) -> None:
        with self._lock:
            self.events.clear()


class EventPublisher:
    """Delivers events to an optional sink.

    A failing sink is an observer problem, not a sync failure: the error is
    logged and the operation continues.
    """

    def __init__(self, sink: EventSink | None = None):
        self.sink = sink

    def emit(self, kind: EventKind, installation: str, **fields: Any) -> SyncEvent:
        event = SyncEvent(kind=kind, installation=installation, **fields)
        logger.debug(f"Event {kind.value} for {installation}")
        if self.sink is not None:
            try:
                self.sink(event)
            except Exception as e:
                logger.opt(exception=e).warning(
                    f"Event sink failed on {kind.value} for {installation}: {e}"
                )
        return event
