"""Command implementations for the stencil CLI."""

from .backups import handle_backups, handle_rollback
from .common import add_target_arguments
from .schema import handle_migrate, handle_schema
from .sync import add_apply_arguments, handle_analyze, handle_apply, handle_init

__all__ = [
    "add_target_arguments",
    "add_apply_arguments",
    "handle_analyze",
    "handle_apply",
    "handle_init",
    "handle_backups",
    "handle_rollback",
    "handle_schema",
    "handle_migrate",
]
