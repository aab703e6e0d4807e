"""File categorization policy.

The policy is plain data: an ordered table of path rules plus the set of
tracked file extensions. Classification is a pure function over that table,
so the policy can be tested without touching the filesystem.

Rule patterns come in two shapes:

- ``"agents/cadi/"`` (trailing slash) matches every path under that prefix.
- ``"settings.json"`` (no trailing slash) matches exactly that path.

Rules are evaluated in order and the first match decides. A path that no
rule matches is not managed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


def normalize_path(path: str) -> str:
    """Normalize a relative path for rule matching.

    Args:
        path: Relative path, possibly with backslashes or a leading ``./``.

    Returns:
        Forward-slash path without leading ``./`` or ``/``.
    """
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


@dataclass(frozen=True)
class PathRule:
    """One row of the categorization table."""

    pattern: str
    managed: bool = True

    @property
    def is_prefix(self) -> bool:
        return self.pattern.endswith("/")

    def matches(self, path: str) -> bool:
        """Check whether a normalized relative path falls under this rule."""
        if self.is_prefix:
            return path.startswith(self.pattern)
        return path == self.pattern


def match_rule(rules: Iterable[PathRule], path: str) -> PathRule | None:
    """Return the first rule matching path, or None."""
    normalized = normalize_path(path)
    for rule in rules:
        if rule.matches(normalized):
            return rule
    return None


@dataclass(frozen=True)
class CategorizationPolicy:
    """Which files are tracked, and which tracked files the engine owns.

    Attributes:
        tracked_extensions: File suffixes (with dot) considered at all.
        rules: Ordered path rules; first match wins, default is unmanaged.
    """

    tracked_extensions: tuple[str, ...] = ()
    rules: tuple[PathRule, ...] = field(default_factory=tuple)

    @classmethod
    def from_prefixes(
        cls,
        tracked_extensions: Iterable[str],
        managed_prefixes: Iterable[str],
        custom_paths: Iterable[str] = (),
    ) -> "CategorizationPolicy":
        """Build a policy from managed prefixes and optional custom overrides.

        Custom overrides are placed before the managed rules so they win.

        Args:
            tracked_extensions: Extensions to track (".md", ".json", ...).
            managed_prefixes: Paths or directory prefixes owned by the engine.
            custom_paths: Paths or prefixes that stay user-owned even when a
                managed prefix covers them.

        Returns:
            CategorizationPolicy with the combined rule table.
        """
        rules = [PathRule(normalize_path(p), managed=False) for p in custom_paths]
        rules.extend(PathRule(normalize_path(p), managed=True) for p in managed_prefixes)
        return cls(tracked_extensions=tuple(tracked_extensions), rules=tuple(rules))

    @property
    def managed_prefixes(self) -> tuple[str, ...]:
        return tuple(rule.pattern for rule in self.rules if rule.managed)

    def is_managed(self, relative_path: str) -> bool:
        """Check whether the engine owns a managed-root-relative path."""
        rule = match_rule(self.rules, relative_path)
        return rule is not None and rule.managed

    def is_tracked(self, filename: str) -> bool:
        """Check whether a file name has a tracked extension."""
        return any(filename.endswith(ext) for ext in self.tracked_extensions)
