"""Reconciliation of a staged snapshot into the local tree."""

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

from ..exceptions import ReconcileError
from ..utils import DEFAULT_MAX_WORKERS
from .comparator import DiffResult
from .exclusion import ExclusionSet

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of applying a DiffResult."""

    deleted: list[str] = field(default_factory=list)
    """Local files that were removed"""

    written: list[str] = field(default_factory=list)
    """Staged files copied into the local tree"""

    pruned_dirs: list[str] = field(default_factory=list)
    """Directories removed because they became empty"""

    failures: list[tuple[str, str]] = field(default_factory=list)
    """(relative path, error message) for every failed path operation"""

    @property
    def ok(self) -> bool:
        """True when every path operation succeeded."""
        return not self.failures

    def to_dict(self) -> dict:
        """Convert result to dictionary for JSON output."""
        return {
            "deleted": sorted(self.deleted),
            "written": sorted(self.written),
            "pruned_dirs": sorted(self.pruned_dirs),
            "failures": [
                {"path": path, "error": error} for path, error in self.failures
            ],
        }


class Reconciler:
    """Applies a DiffResult to the local tree.

    Deletions run first, each followed by pruning of ancestor directories
    that became empty. Writes follow, copying staged files over local ones
    unconditionally. Within each phase paths are processed concurrently on
    a bounded thread pool. A failed path is logged and recorded; it never
    aborts the batch.

    Known limitation: pruning removes an ancestor directory purely because
    it is empty at the moment of the check. There is no record of whether
    the user meant to keep it, so a folder whose last file was deleted
    remotely disappears locally as well. Directories that are not ancestors
    of a deleted file are never touched, so pre-existing empty siblings
    survive.
    """

    def __init__(
        self,
        exclusions: Optional[ExclusionSet] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """Initialize reconciler.

        Args:
            exclusions: Paths that must never be deleted
            max_workers: Number of parallel workers per phase
        """
        self.exclusions = exclusions or ExclusionSet()
        self.max_workers = max_workers

    def apply(
        self, diff: DiffResult, local_root: Path, staging_root: Path
    ) -> ReconcileResult:
        """Apply ``diff`` to ``local_root`` using files from ``staging_root``.

        Args:
            diff: Diff to apply
            local_root: Root of the local tree
            staging_root: Staging area holding the extracted snapshot

        Returns:
            ReconcileResult with per-path outcomes

        Raises:
            ReconcileError: If the local root is (or becomes) inaccessible
        """
        local_root = Path(local_root)
        staging_root = Path(staging_root)
        self._check_root(local_root)

        result = ReconcileResult()

        to_delete = []
        for path in sorted(diff.to_delete):
            if self.exclusions.is_excluded(path):
                logger.warning("Refusing to delete excluded path: %s", path)
                continue
            to_delete.append(path)

        self._run_parallel(
            to_delete,
            lambda path: self._delete_and_prune(local_root, path, result),
            result,
        )
        self._run_parallel(
            sorted(diff.to_write),
            lambda path: self._write(local_root, staging_root, path, result),
            result,
        )

        if result.failures:
            # Distinguish per-path failures from losing the root itself
            self._check_root(local_root)
            logger.warning(
                "Reconcile finished with %d failed path(s)", len(result.failures)
            )

        logger.debug(
            "Reconciled %s: %d deleted, %d written, %d dir(s) pruned",
            local_root,
            len(result.deleted),
            len(result.written),
            len(result.pruned_dirs),
        )
        return result

    def _check_root(self, local_root: Path) -> None:
        try:
            if not local_root.is_dir():
                raise ReconcileError(f"Local root is not accessible: {local_root}")
            next(local_root.iterdir(), None)
        except OSError as e:
            raise ReconcileError(
                f"Local root is not accessible: {local_root}: {e}"
            ) from e

    def _run_parallel(
        self,
        paths: list[str],
        action: Callable[[str], None],
        result: ReconcileResult,
    ) -> None:
        if not paths:
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(action, path): path for path in paths}
            for future in as_completed(futures):
                path = futures[future]
                try:
                    future.result()
                except OSError as e:
                    logger.warning("Failed to reconcile %s: %s", path, e)
                    result.failures.append((path, str(e)))

    def _delete_and_prune(
        self, local_root: Path, relative_path: str, result: ReconcileResult
    ) -> None:
        target = local_root / relative_path
        try:
            target.unlink()
            result.deleted.append(relative_path)
            logger.debug("Deleted %s", relative_path)
        except FileNotFoundError:
            logger.debug("Already absent: %s", relative_path)

        self._prune_empty_parents(local_root, relative_path, result)

    def _prune_empty_parents(
        self, local_root: Path, relative_path: str, result: ReconcileResult
    ) -> None:
        """Remove now-empty ancestors of a deleted path, never the root."""
        for parent in PurePosixPath(relative_path).parents:
            if parent == PurePosixPath("."):
                break
            directory = local_root / parent
            try:
                directory.rmdir()
            except FileNotFoundError:
                # Removed concurrently by another deletion; keep walking up
                continue
            except OSError:
                # Not empty (or not removable): ancestors are not empty either
                break
            result.pruned_dirs.append(parent.as_posix())
            logger.debug("Pruned empty directory %s", parent.as_posix())

    def _write(
        self,
        local_root: Path,
        staging_root: Path,
        relative_path: str,
        result: ReconcileResult,
    ) -> None:
        destination = local_root / relative_path
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(staging_root / relative_path, destination)
        result.written.append(relative_path)
        logger.debug("Wrote %s", relative_path)
