"""Backup and rollback commands for the stencil CLI."""

from ...core.config import Config
from .common import build_engine, fail_if_any, print_errors


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def handle_backups(args, config: Config) -> None:
    """Handle backups subcommands.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    engine = build_engine(config, require_template=False)

    if args.backups_cmd == "list":
        backups = engine.list_backups(args.root)
        if not backups:
            print("No backups found.")
            return
        for info in backups:
            created = info.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")
            print(f"{info.id}  {created}  {_format_size(info.size_bytes)}")
    elif args.backups_cmd == "prune":
        removed = engine.prune_backups(args.root, args.keep)
        for info in removed:
            print(f"✓ Deleted {info.id}")
        print(f"Removed {len(removed)} backup(s), kept at most {args.keep}")


def handle_rollback(args, config: Config) -> None:
    """Handle rollback command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    engine = build_engine(config, require_template=False)
    result = engine.rollback(args.root, args.backup)

    if result.success:
        print(f"✓ Restored {result.installation} from {result.restored_from.id}")
    else:
        print_errors(result.errors)
    fail_if_any([] if result.success else [result.installation], "Rollback")
