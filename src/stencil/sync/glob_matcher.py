"""Multi-glob pattern matching for file rules.

Patterns follow gitignore-like conventions:

- ``*`` matches within one path segment, ``?`` one character.
- ``**/`` matches zero or more leading directories, so ``agents/**/*.md``
  matches both ``agents/a.md`` and ``agents/x/y/a.md``.
- A trailing ``/**`` matches everything below a directory.
- A ``!`` prefix turns a pattern into an exclusion.

Patterns are anchored at the rule's source directory: ``*.sh`` matches
``run.sh`` but not ``sub/run.sh``.
"""

from __future__ import annotations

import re
from functools import lru_cache

from loguru import logger


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob pattern into an anchored regular expression.

    Args:
        pattern: Glob pattern using forward slashes.

    Returns:
        Compiled regex matching whole relative paths.
    """
    parts = []
    i = 0
    n = len(pattern)
    while i < n:
        char = pattern[i]
        if pattern.startswith("**/", i):
            parts.append("(?:[^/]+/)*")
            i += 3
        elif pattern.startswith("/**", i) and i + 3 == n:
            parts.append("(?:/.*)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif char == "*":
            parts.append("[^/]*")
            i += 1
        elif char == "?":
            parts.append("[^/]")
            i += 1
        elif char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                parts.append(re.escape(char))
                i += 1
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append(f"[{body}]")
                i = end + 1
        else:
            parts.append(re.escape(char))
            i += 1
    return re.compile("".join(parts) + r"\Z")


class MultiGlobMatcher:
    """Match files against multiple glob patterns with include/exclude semantics.

    A path matches if it satisfies ANY include pattern AND does NOT match
    ANY exclude pattern.

    Example:
        matcher = MultiGlobMatcher(["agents/**/*.md", "!agents/drafts/**"])
        matcher.matches("agents/cadi/reviewer.md")  # True
        matcher.matches("agents/drafts/wip.md")     # False (excluded)
    """

    def __init__(self, patterns: list[str] | tuple[str, ...]) -> None:
        """Initialize with pattern list.

        Args:
            patterns: List of glob patterns. Use ! prefix for exclusions.

        Raises:
            ValueError: If no include patterns are provided.
        """
        self.includes = [p for p in patterns if not p.startswith("!")]
        self.excludes = [p[1:] for p in patterns if p.startswith("!")]

        if not self.includes:
            raise ValueError(
                "At least one include pattern required (patterns without ! prefix)"
            )

        logger.debug(
            f"MultiGlobMatcher initialized: includes={self.includes}, excludes={self.excludes}"
        )

    def matches(self, path: str) -> bool:
        """Check if a relative path matches the pattern set.

        Args:
            path: Relative file path to check.

        Returns:
            True if path matches any include and no excludes.
        """
        normalized = path.replace("\\", "/")

        if not any(compile_glob(inc).match(normalized) for inc in self.includes):
            return False

        if any(compile_glob(exc).match(normalized) for exc in self.excludes):
            return False

        return True

    def static_prefixes(self) -> list[str]:
        """Leading directories of include patterns that contain no wildcards.

        ``agents/**/*.md`` yields ``agents``; ``*.sh`` yields ``""``. A walk
        can start from these directories instead of the whole source tree.
        """
        prefixes = []
        for pattern in self.includes:
            segments = pattern.split("/")[:-1]
            static = []
            for segment in segments:
                if any(ch in segment for ch in "*?["):
                    break
                static.append(segment)
            prefixes.append("/".join(static))
        return prefixes
