"""Analyze, apply and init commands for the stencil CLI."""

from ...core.config import Config
from ...core.types import AnalysisResult, ApplyOptions, ApplyResult, FileCategory
from .common import build_engine, fail_if_any, print_errors, print_event


def add_apply_arguments(parser) -> None:
    """Add arguments for the apply command.

    Args:
        parser: Argument parser for the command.
    """
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would change without writing anything",
    )
    parser.add_argument(
        "--skip-backup",
        action="store_true",
        help="Do not back up the managed directory before writing",
    )
    parser.add_argument(
        "--no-migrate",
        action="store_true",
        help="Leave the installation database untouched",
    )


def handle_analyze(args, config: Config) -> None:
    """Handle analyze command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    engine = build_engine(config)
    batch = engine.analyze_batch(args.roots, max_workers=args.jobs)

    for name, analysis in batch.results.items():
        _print_analysis(name, analysis, verbose=args.verbose)

    fail_if_any(batch.failed, "Analysis")


def _print_analysis(name: str, analysis: AnalysisResult, verbose: bool = False) -> None:
    print(f"{name}")
    if not analysis.safe:
        print_errors(analysis.errors)
        return

    counts = analysis.changes.counts()
    print(
        f"  {counts['added']} added, {counts['modified']} modified, "
        f"{counts['unchanged']} unchanged, {counts['custom']} custom"
    )
    for category, mark in (
        (FileCategory.ADDED, "+"),
        (FileCategory.MODIFIED, "~"),
        (FileCategory.CUSTOM, "!"),
    ):
        for path in analysis.changes.paths(category):
            print(f"  {mark} {path}")
    if verbose:
        for path in analysis.changes.paths(FileCategory.UNCHANGED):
            print(f"  = {path}")

    schema = analysis.schema
    if schema is not None:
        state = "ok" if schema.valid else "needs migration" if schema.needs_migration else "invalid"
        print(f"  Schema: version {schema.current_version}/{schema.expected_version} ({state})")


def handle_apply(args, config: Config) -> None:
    """Handle apply command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    options = ApplyOptions(
        dry_run=args.dry_run,
        skip_backup=args.skip_backup,
        migrate_schema=not args.no_migrate,
    )
    engine = build_engine(config, sink=print_event)
    batch = engine.apply_batch(args.roots, options, max_workers=args.jobs)

    for name, result in batch.results.items():
        _print_apply(name, result)

    fail_if_any(batch.failed, "Update")


def _print_apply(name: str, result: ApplyResult) -> None:
    counts = result.applied.counts()
    if result.success:
        verb = "Would update" if result.dry_run else "Updated"
        print(
            f"✓ {verb} {name}: {counts['added']} added, {counts['modified']} modified, "
            f"{counts['skipped']} custom kept"
        )
        if result.dry_run:
            for path in result.applied.added:
                print(f"  + {path}")
            for path in result.applied.modified:
                print(f"  ~ {path}")
            plan = result.schema_plan
            if plan is not None and plan.pending:
                versions = ", ".join(str(m.version) for m in plan.pending)
                print(f"  Schema: would apply migrations {versions}")
        elif result.backup:
            print(f"  Backup: {result.backup.id}")
        if result.schema_migration and result.schema_migration.success:
            print(f"  Schema: now at version {result.schema_migration.to_version}")
    else:
        print(f"✗ Update of {name} failed")
        print_errors(result.errors)
        if result.backup:
            print(f"  Restore with: stencil rollback --backup {result.backup.id} {name}")


def handle_init(args, config: Config) -> None:
    """Handle init command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    engine = build_engine(config, sink=print_event)
    result = engine.initialize(args.root)
    _print_apply(result.installation, result)
    fail_if_any([] if result.success else [result.installation], "Initialization")
