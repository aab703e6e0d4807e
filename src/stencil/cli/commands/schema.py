"""Schema and migration commands for the stencil CLI."""

import json

from ...core.config import Config
from .common import build_engine, fail_if_any, load_registry, print_errors, print_event


def handle_schema(args, config: Config) -> None:
    """Handle schema subcommands.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    registry = load_registry(config)

    if args.schema_cmd == "sql":
        print(registry.generate_init_sql(), end="")
    elif args.schema_cmd == "version":
        print(registry.get_schema_version())
    elif args.schema_cmd == "summary":
        print(json.dumps(registry.get_summary(), indent=2))
    elif args.schema_cmd == "directories":
        for directory in registry.get_directories():
            print(directory)
    elif args.schema_cmd == "check":
        _check(args, config)


def _check(args, config: Config) -> None:
    engine = build_engine(config, require_template=False)
    failed = []
    for root in args.roots:
        report = engine.health_check(root)
        status = report.schema
        mark = "✓" if report.healthy else "✗"
        print(
            f"{mark} {report.installation}: version "
            f"{status.current_version}/{status.expected_version}"
        )
        for directory in report.missing_required:
            print(f"  missing required directory: {directory}")
        for table in status.missing_tables:
            print(f"  missing table: {table}")
        for table, columns in status.missing_columns.items():
            print(f"  missing columns in {table}: {', '.join(columns)}")
        for problem in status.integrity_errors:
            print(f"  integrity: {problem}")
        for error in status.errors:
            print(f"  {error}")
        for warning in report.warnings:
            print(f"  ⚠ {warning}")
        if not report.healthy:
            failed.append(report.installation)
    fail_if_any(failed, "Health check")


def handle_migrate(args, config: Config) -> None:
    """Handle migrate command.

    Args:
        args: Parsed command arguments.
        config: Application configuration.
    """
    engine = build_engine(config, sink=print_event, require_template=False)

    if args.plan:
        for root in args.roots:
            plan = engine.migration_plan(root)
            name = engine.installation(root).name
            print(
                f"{name}: {plan.state.value}, version "
                f"{plan.current_version} -> {plan.target_version}"
            )
            for migration in plan.pending:
                print(f"  {migration.version}: {migration.description}")
        return

    batch = engine.migrate_batch(args.roots, max_workers=args.jobs)
    for name, result in batch.results.items():
        if result.success:
            if result.already_current:
                print(f"✓ {name}: already at version {result.to_version}")
            elif result.initialized:
                print(f"✓ {name}: created at version {result.to_version}")
            else:
                print(f"✓ {name}: {result.from_version} -> {result.to_version}")
        else:
            print(f"✗ {name}: migration failed")
            print_errors([result.error] if getattr(result, "error", None) else result.errors)
    fail_if_any(batch.failed, "Migration")
