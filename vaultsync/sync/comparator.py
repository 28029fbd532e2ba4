"""Snapshot comparison logic for pull operations."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .exclusion import ExclusionSet


class SyncAction(str, Enum):
    """Actions that can be taken during reconciliation."""

    WRITE = "write"
    """Copy the staged file into the local tree"""

    DELETE_LOCAL = "delete_local"
    """Delete local file"""


@dataclass
class SyncDecision:
    """Represents a decision about how to reconcile a single path."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the file"""


@dataclass(frozen=True)
class DiffResult:
    """Presence-only difference between a local and a staged snapshot.

    ``to_write`` is exactly the staged snapshot. ``to_delete`` is the local
    snapshot minus the staged snapshot minus excluded paths, so the two
    sets never intersect.
    """

    to_delete: frozenset[str] = field(default_factory=frozenset)
    """Local-only paths to remove"""

    to_write: frozenset[str] = field(default_factory=frozenset)
    """Staged paths to copy over the local tree"""

    overwrites: frozenset[str] = field(default_factory=frozenset)
    """Subset of ``to_write`` that already exists locally (reporting only)"""

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to delete or write."""
        return not self.to_delete and not self.to_write

    def decisions(self) -> list[SyncDecision]:
        """Return one decision per path, sorted by path."""
        decisions = [
            SyncDecision(
                action=SyncAction.DELETE_LOCAL,
                reason="File absent from remote snapshot",
                relative_path=path,
            )
            for path in self.to_delete
        ]
        for path in self.to_write:
            reason = (
                "Replaced by remote snapshot"
                if path in self.overwrites
                else "New remote file"
            )
            decisions.append(
                SyncDecision(action=SyncAction.WRITE, reason=reason, relative_path=path)
            )
        return sorted(decisions, key=lambda d: d.relative_path)

    def stats(self) -> dict:
        """Return counts for display."""
        return {
            "writes": len(self.to_write),
            "new": len(self.to_write) - len(self.overwrites),
            "overwrites": len(self.overwrites),
            "deletes": len(self.to_delete),
        }


class DiffEngine:
    """Compares local and staged snapshots to determine reconcile actions.

    The comparison is by relative path only. A file present in both trees
    is always written, whatever its content.
    """

    def __init__(self, exclusions: Optional[ExclusionSet] = None):
        """Initialize diff engine.

        Args:
            exclusions: Paths that must never be deleted locally
        """
        self.exclusions = exclusions or ExclusionSet()

    def compute(self, local: Iterable[str], staged: Iterable[str]) -> DiffResult:
        """Compute the diff between two snapshots.

        Args:
            local: Relative paths present in the local tree
            staged: Relative paths present in the staging area

        Returns:
            DiffResult for applying the staged snapshot locally
        """
        local_set = frozenset(local)
        staged_set = frozenset(staged)

        to_delete = frozenset(
            path
            for path in local_set - staged_set
            if not self.exclusions.is_excluded(path)
        )
        return DiffResult(
            to_delete=to_delete,
            to_write=staged_set,
            overwrites=staged_set & local_set,
        )
