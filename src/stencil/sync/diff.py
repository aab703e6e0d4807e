"""Categorized diff between a template tree and an installation.

Only paths present in the template are reported. Files that exist only in
the installation are never listed and therefore never touched.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from ..core.types import ChangeSet, FileCategory, FileDiffEntry, Installation
from ..manifest.model import FileRule
from ..manifest.policy import normalize_path
from ..manifest.registry import SchemaRegistry
from ..utils.hashing import sha256_file
from .glob_matcher import MultiGlobMatcher
from .walker import walk_files


@dataclass(frozen=True)
class TemplateFile:
    """A distributable template file.

    ``relative_path`` is where the file lands, relative to the managed root.
    """

    relative_path: str
    source: Path
    hash: str


def destination_prefix(rule: FileRule, managed_dir: str) -> str:
    """Path of a rule's destination relative to the managed root.

    Args:
        rule: File rule whose dest_dir lies inside managed_dir.
        managed_dir: Managed subtree relative to the installation root.

    Returns:
        "" when the rule targets the managed root itself.
    """
    dest = normalize_path(rule.dest_dir).rstrip("/")
    managed = normalize_path(managed_dir).rstrip("/")
    return dest[len(managed) :].lstrip("/")


def _walk_starts(prefixes: list[str]) -> list[str]:
    """Smallest set of start directories covering every prefix."""
    starts: list[str] = []
    for prefix in sorted(set(prefixes)):
        if any(s == "" or prefix == s or prefix.startswith(s + "/") for s in starts):
            continue
        starts.append(prefix)
    return starts


def collect_template_files(
    template_root: Path, registry: SchemaRegistry
) -> dict[str, TemplateFile]:
    """Walk the template restricted to the manifest's file rules.

    When two rules produce the same destination, the first rule wins.

    Args:
        template_root: Root of the template repository.
        registry: Registry with file rules and tracking policy.

    Returns:
        Mapping of managed-root-relative path to TemplateFile, in
        discovery order.
    """
    files: dict[str, TemplateFile] = {}
    managed_dir = registry.manifest.managed_dir

    for rule in registry.get_file_rules():
        source_root = template_root / normalize_path(rule.source_dir)
        if not source_root.is_dir():
            logger.debug(f"Template source {source_root} does not exist, skipping rule")
            continue

        matcher = MultiGlobMatcher(list(rule.include))
        prefix = destination_prefix(rule, managed_dir)
        for start in _walk_starts(matcher.static_prefixes()):
            for walked in walk_files(source_root, start, include=matcher.matches):
                if not registry.is_tracked(walked.path.name):
                    continue
                relative = f"{prefix}/{walked.relative_path}" if prefix else walked.relative_path
                if relative in files:
                    logger.debug(f"{relative} already provided by an earlier rule")
                    continue
                files[relative] = TemplateFile(
                    relative_path=relative,
                    source=walked.path,
                    hash=sha256_file(walked.path),
                )

    logger.debug(f"Collected {len(files)} template files from {template_root}")
    return files


def categorize(
    template_files: dict[str, TemplateFile],
    installation: Installation,
    registry: SchemaRegistry,
) -> ChangeSet:
    """Classify each template file against the installation.

    Ownership decides first: a path that exists in the installation but is
    not managed is custom whatever its content. Managed paths are compared
    by content hash.

    Args:
        template_files: Output of collect_template_files.
        installation: Target installation layout.
        registry: Registry with the categorization policy.

    Returns:
        ChangeSet with every template path in exactly one category.
    """
    changes = ChangeSet()

    for relative, template_file in template_files.items():
        installed_path = installation.managed_root / relative

        if not installed_path.exists() and not installed_path.is_symlink():
            category = FileCategory.ADDED
            installed_hash = None
        else:
            installed_hash = sha256_file(installed_path) if installed_path.is_file() else None
            if not registry.is_managed(relative):
                category = FileCategory.CUSTOM
            elif installed_hash == template_file.hash:
                category = FileCategory.UNCHANGED
            else:
                category = FileCategory.MODIFIED

        changes.add(
            FileDiffEntry(
                relative_path=relative,
                category=category,
                template_hash=template_file.hash,
                installed_hash=installed_hash,
                template_path=template_file.source,
                installed_path=installed_path,
            )
        )

    logger.debug(
        f"Categorized {len(template_files)} files for {installation.name}: {changes.counts()}"
    )
    return changes


def compute_changes(
    template_root: Path, installation: Installation, registry: SchemaRegistry
) -> ChangeSet:
    """Collect template files and categorize them against an installation."""
    return categorize(collect_template_files(template_root, registry), installation, registry)
