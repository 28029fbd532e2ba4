"""Exclusion rules shared by archiving and reconciliation."""

import fnmatch
from collections.abc import Iterable
from typing import Optional


class ExclusionSet:
    """Path predicates that are never archived and never deleted.

    Patterns use fnmatch syntax and are matched against the forward-slash
    relative path. A pattern without a slash also matches the final path
    component, and a pattern matching a directory excludes everything
    below it.

    Examples:
        >>> exclusions = ExclusionSet([".vaultsync.json", ".vaultsync-staging-*"])
        >>> exclusions.is_excluded(".vaultsync.json")
        True
        >>> exclusions.is_excluded(".vaultsync-staging-abc/notes/a.md")
        True
        >>> exclusions.is_excluded("notes/a.md")
        False
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self.patterns: tuple[str, ...] = tuple(
            p.strip("/") for p in (patterns or []) if p and p.strip("/")
        )

    def __repr__(self) -> str:
        return f"ExclusionSet({list(self.patterns)!r})"

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def union(self, patterns: Iterable[str]) -> "ExclusionSet":
        """Return a new set with additional patterns."""
        return ExclusionSet([*self.patterns, *patterns])

    def _matches(self, relative_path: str) -> bool:
        name = relative_path.rsplit("/", 1)[-1]
        for pattern in self.patterns:
            if fnmatch.fnmatchcase(relative_path, pattern):
                return True
            if "/" not in pattern and fnmatch.fnmatchcase(name, pattern):
                return True
        return False

    def is_excluded(self, relative_path: str) -> bool:
        """Check a relative path and each of its ancestor directories."""
        if not self.patterns:
            return False
        parts = relative_path.strip("/").split("/")
        for i in range(1, len(parts) + 1):
            if self._matches("/".join(parts[:i])):
                return True
        return False

    def filter(self, relative_paths: Iterable[str]) -> set[str]:
        """Return the subset of paths that are not excluded."""
        return {p for p in relative_paths if not self.is_excluded(p)}
