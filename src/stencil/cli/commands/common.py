"""Helpers shared by the stencil CLI commands."""

from pathlib import Path

from loguru import logger

from ...core.config import Config
from ...core.exceptions import StencilError
from ...core.types import SyncError
from ...manifest import SchemaRegistry, build_default_manifest, load_manifest
from ...sync import EventKind, SyncEvent, UpdateEngine


def add_target_arguments(parser, batch: bool = True) -> None:
    """Add installation root arguments.

    Args:
        parser: Argument parser for the command.
        batch: Accept several roots instead of one.
    """
    if batch:
        parser.add_argument(
            "roots",
            nargs="*",
            default=["."],
            help="Installation root directories (default: current directory)",
        )
        parser.add_argument(
            "-j",
            "--jobs",
            type=int,
            default=None,
            help="Process up to N installations concurrently",
        )
    else:
        parser.add_argument(
            "root",
            nargs="?",
            default=".",
            help="Installation root directory (default: current directory)",
        )


def load_registry(config: Config) -> SchemaRegistry:
    """Build the registry from the configured manifest file or the built-in one."""
    if config.manifest_path:
        logger.debug(f"Loading manifest from {config.manifest_path}")
        return SchemaRegistry(load_manifest(config.manifest_path))
    return SchemaRegistry(build_default_manifest())


def build_engine(config: Config, sink=None, require_template: bool = True) -> UpdateEngine:
    """Create an engine for the configured template and manifest.

    Raises:
        ValueError: If a template is required but none is configured.
    """
    template = config.template_path
    if template is None:
        if require_template:
            raise ValueError("No template given; use --template or STENCIL_TEMPLATE_PATH")
        template = Path(".")
    return UpdateEngine(load_registry(config), template, config=config, sink=sink)


_EVENT_MARKS = {
    EventKind.FILE_ADDED: "+",
    EventKind.FILE_MODIFIED: "~",
}


def print_event(event: SyncEvent) -> None:
    """Print file-level events as they happen."""
    mark = _EVENT_MARKS.get(event.kind)
    if mark:
        print(f"  {mark} {event.path}")
    elif event.kind == EventKind.BACKUP_CREATED:
        print(f"  Backup: {event.backup_path}")
    elif event.kind == EventKind.SCHEMA_MIGRATION_STARTED:
        print(
            f"  Migrating schema {event.details.get('from_version')} "
            f"-> {event.details.get('to_version')}"
        )


def print_errors(errors: list[SyncError]) -> None:
    for error in errors:
        location = f" ({error.path})" if error.path else ""
        print(f"✗ [{error.category.value}] {error.message}{location}")


def fail_if_any(failed: list[str], action: str) -> None:
    """Raise when some installations failed, so the CLI exits non-zero."""
    if failed:
        raise StencilError(f"{action} failed for {len(failed)} installation(s)")
