"""Directory scanning utilities for sync operations."""

import logging
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Optional

from ..exceptions import TraversalError
from .exclusion import ExclusionSet

logger = logging.getLogger(__name__)


class PathWalker:
    """Enumerates every file below a root as forward-slash relative paths.

    Iterating a walker is lazy, and every new iteration walks the tree
    again, so one instance can be reused to take several snapshots.
    Directories are never yielded; they only drive recursion. Symlinked
    directories are not followed.

    Unreadable children are skipped with a warning. An unreadable or
    missing root raises :class:`TraversalError` on first iteration.

    Examples:
        >>> walker = PathWalker(Path("/home/user/vault"))
        >>> for rel_path in walker:
        ...     print(rel_path)
        >>> snapshot = walker.snapshot()
    """

    def __init__(
        self,
        root: Path,
        skip_dirs: Optional[Iterable[Path]] = None,
        exclusions: Optional[ExclusionSet] = None,
    ):
        """Initialize path walker.

        Args:
            root: Directory to walk
            skip_dirs: Directories (absolute or relative to root) that are
                never entered, e.g. an active staging area
            exclusions: Optional exclusion set; matching files are not
                yielded and matching directories are not entered
        """
        self.root = Path(root)
        self.skip_dirs = {self._resolve(Path(d)) for d in (skip_dirs or [])}
        self.exclusions = exclusions or ExclusionSet()

    def _resolve(self, path: Path) -> Path:
        if not path.is_absolute():
            path = self.root / path
        return path.resolve()

    def _check_root(self) -> None:
        if not self.root.exists():
            raise TraversalError(f"Directory does not exist: {self.root}")
        if not self.root.is_dir():
            raise TraversalError(f"Path is not a directory: {self.root}")

    def __iter__(self) -> Iterator[str]:
        self._check_root()
        try:
            root_entries = sorted(self.root.iterdir())
        except OSError as e:
            raise TraversalError(f"Cannot read directory {self.root}: {e}") from e

        stack: list[Iterator[Path]] = [iter(root_entries)]
        while stack:
            item = next(stack[-1], None)
            if item is None:
                stack.pop()
                continue

            relative_path = item.relative_to(self.root).as_posix()
            if self.exclusions.is_excluded(relative_path):
                logger.debug("Skipping excluded path: %s", relative_path)
                continue

            try:
                if item.is_dir() and not item.is_symlink():
                    if item.resolve() in self.skip_dirs:
                        logger.debug("Skipping directory: %s", relative_path)
                        continue
                    stack.append(iter(sorted(item.iterdir())))
                elif item.is_file():
                    yield relative_path
            except OSError as e:
                # Skip entries we can't stat or list
                logger.warning("Skipping unreadable path %s: %s", relative_path, e)

    def snapshot(self) -> frozenset[str]:
        """Walk the tree once and return the set of relative paths."""
        return frozenset(self)


def walk_tree(root: Path, skip_dirs: Optional[Iterable[Path]] = None) -> set[str]:
    """Return all relative file paths below ``root``.

    Args:
        root: Directory to walk
        skip_dirs: Directories that are never entered

    Returns:
        Set of forward-slash relative paths

    Raises:
        TraversalError: If the root is missing or unreadable
    """
    return set(PathWalker(root, skip_dirs=skip_dirs))
