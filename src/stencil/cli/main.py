"""CLI entry point for stencil."""

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from loguru import logger

from ..core.config import Config
from . import commands


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="stencil",
        description="Stencil - keep project installations in sync with a template and schema",
    )
    parser.add_argument("-v", "--version", action="version", version="%(prog)s 0.1.0")
    parser.add_argument(
        "--verbose", action="store_true", help="Show debug logging and unchanged files"
    )
    parser.add_argument(
        "-t",
        "--template",
        type=Path,
        default=None,
        help="Template repository root (default: $STENCIL_TEMPLATE_PATH)",
    )
    parser.add_argument(
        "-m",
        "--manifest",
        type=Path,
        default=None,
        help="YAML manifest file (default: built-in manifest)",
    )

    subparsers = parser.add_subparsers(dest="command", required=False)

    # Sync commands
    analyze_parser = subparsers.add_parser(
        "analyze", help="Show how installations differ from the template"
    )
    commands.add_target_arguments(analyze_parser)

    apply_parser = subparsers.add_parser("apply", help="Update installations from the template")
    commands.add_target_arguments(apply_parser)
    commands.add_apply_arguments(apply_parser)

    init_parser = subparsers.add_parser("init", help="Set up a new installation")
    commands.add_target_arguments(init_parser, batch=False)

    # Backup commands
    backups_parser = subparsers.add_parser("backups", help="Manage backups")
    backups_subparsers = backups_parser.add_subparsers(dest="backups_cmd", required=True)

    list_parser = backups_subparsers.add_parser("list", help="List backups, newest first")
    commands.add_target_arguments(list_parser, batch=False)

    prune_parser = backups_subparsers.add_parser("prune", help="Delete old backups")
    commands.add_target_arguments(prune_parser, batch=False)
    prune_parser.add_argument(
        "-k",
        "--keep",
        type=int,
        default=5,
        help="Number of newest backups to keep (default: 5)",
    )

    rollback_parser = subparsers.add_parser(
        "rollback", help="Restore the managed directory from a backup"
    )
    commands.add_target_arguments(rollback_parser, batch=False)
    rollback_parser.add_argument(
        "-b",
        "--backup",
        default=None,
        help="Backup id to restore (default: newest)",
    )

    # Schema commands
    migrate_parser = subparsers.add_parser(
        "migrate", help="Bring installation databases to the manifest schema version"
    )
    commands.add_target_arguments(migrate_parser)
    migrate_parser.add_argument(
        "--plan", action="store_true", help="Show pending migrations without applying them"
    )

    schema_parser = subparsers.add_parser("schema", help="Inspect the manifest schema")
    schema_subparsers = schema_parser.add_subparsers(dest="schema_cmd", required=True)
    schema_subparsers.add_parser("sql", help="Print the DDL for a fresh database")
    schema_subparsers.add_parser("version", help="Print the manifest schema version")
    schema_subparsers.add_parser("summary", help="Print a JSON summary of the manifest")
    schema_subparsers.add_parser("directories", help="List directories every installation gets")
    check_parser = schema_subparsers.add_parser(
        "check", help="Check installation directories, databases and integrity"
    )
    commands.add_target_arguments(check_parser)

    return parser


def configure_logging(config: Config, verbose: bool = False) -> None:
    """Send log records to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else config.log_level)


def main() -> NoReturn:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()
    config = Config.from_env()

    if args.template is not None:
        config.template_path = args.template
    if args.manifest is not None:
        config.manifest_path = args.manifest
    configure_logging(config, args.verbose)

    try:
        if args.command == "analyze":
            commands.handle_analyze(args, config)
        elif args.command == "apply":
            commands.handle_apply(args, config)
        elif args.command == "init":
            commands.handle_init(args, config)
        elif args.command == "backups":
            commands.handle_backups(args, config)
        elif args.command == "rollback":
            commands.handle_rollback(args, config)
        elif args.command == "migrate":
            commands.handle_migrate(args, config)
        elif args.command == "schema":
            commands.handle_schema(args, config)
        else:
            parser.print_help()

        sys.exit(0)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
